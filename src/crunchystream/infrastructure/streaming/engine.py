"""StreamingPort implementation composed of resolver, planner and fetcher."""

from __future__ import annotations

from crunchystream.domain.entities.segment import Segment, SegmentPlan
from crunchystream.domain.entities.stream import StreamHandle
from crunchystream.domain.entities.variant import Variant
from crunchystream.domain.ports.executor import ExecutorPort
from crunchystream.domain.ports.streaming import WritableSink
from crunchystream.infrastructure.streaming.fetcher import SegmentFetcher
from crunchystream.infrastructure.streaming.planner import SegmentPlanner
from crunchystream.infrastructure.streaming.resolver import ManifestResolver


class StreamingEngine:
    """Implements ``StreamingPort`` from domain.ports.streaming."""

    def __init__(
        self,
        *,
        resolver: ManifestResolver,
        planner: SegmentPlanner,
        fetcher: SegmentFetcher,
    ) -> None:
        self._resolver = resolver
        self._planner = planner
        self._fetcher = fetcher

    @classmethod
    def create(cls, executor: ExecutorPort, *, strict: bool = True) -> StreamingEngine:
        return cls(
            resolver=ManifestResolver(executor=executor, strict=strict),
            planner=SegmentPlanner(executor=executor),
            fetcher=SegmentFetcher(executor=executor),
        )

    async def resolve_variants(
        self, manifest_url: str, handle: StreamHandle
    ) -> list[Variant]:
        variants = await self._resolver.resolve_variants(manifest_url, handle)
        if handle.context is None:
            return variants
        return [v.attach_context(handle.context) for v in variants]

    async def plan_segments(self, variant: Variant) -> SegmentPlan:
        return await self._planner.plan_segments(variant)

    async def fetch(self, segment: Segment) -> bytes:
        return await self._fetcher.fetch(segment)

    async def fetch_and_decrypt(self, segment: Segment) -> bytes:
        return await self._fetcher.fetch_and_decrypt(segment)

    async def write_to(self, segment: Segment, sink: WritableSink) -> int:
        return await self._fetcher.write_to(segment, sink)
