"""Port for manifest resolution, segment planning and segment retrieval."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from crunchystream.domain.entities.segment import Segment, SegmentPlan
    from crunchystream.domain.entities.stream import StreamHandle
    from crunchystream.domain.entities.variant import Variant


class WritableSink(Protocol):
    """Anything with a binary ``write`` (files, ``io.BytesIO``, ...)."""

    def write(self, data: bytes, /) -> object: ...


@runtime_checkable
class StreamingPort(Protocol):
    async def resolve_variants(
        self, manifest_url: str, handle: StreamHandle
    ) -> list[Variant]:
        """Fetch and parse a DASH or HLS manifest into variants."""
        ...

    async def plan_segments(self, variant: Variant) -> SegmentPlan: ...

    async def fetch(self, segment: Segment) -> bytes: ...

    async def fetch_and_decrypt(self, segment: Segment) -> bytes: ...

    async def write_to(self, segment: Segment, sink: WritableSink) -> int: ...
