"""Variant descriptors and their per-variant fetch sources."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Literal, Union

from crunchystream.domain.exceptions import InternalError

if TYPE_CHECKING:
    from crunchystream.domain.entities.segment import Segment, SegmentPlan
    from crunchystream.domain.ports.context import ClientContext
    from crunchystream.domain.ports.streaming import WritableSink

VariantKind = Literal["video", "audio"]


@dataclass(frozen=True)
class Resolution:
    width: int
    height: int

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass(frozen=True)
class DrmInfo:
    """Content protection data the caller hands to an external DRM client."""

    pssh: str | None
    token: str

    def __repr__(self) -> str:
        return f"DrmInfo(pssh={self.pssh!r}, token=<redacted>)"


@dataclass(frozen=True)
class VariantDescriptor:
    """One encoding of a stream.

    Video variants carry ``resolution`` and ``fps``, audio variants carry
    ``sampling_rate``; never both.
    """

    bandwidth: int
    codecs: str
    resolution: Resolution | None = None
    fps: float | None = None
    sampling_rate: int | None = None
    drm: DrmInfo | None = None

    def __post_init__(self) -> None:
        is_video = self.resolution is not None or self.fps is not None
        is_audio = self.sampling_rate is not None
        if is_video == is_audio:
            raise ValueError(
                "VariantDescriptor needs either resolution/fps or sampling_rate"
            )
        if is_video and (self.resolution is None or self.fps is None):
            raise ValueError("video variants need both resolution and fps")

    @property
    def kind(self) -> VariantKind:
        return "video" if self.resolution is not None else "audio"


# ---------------------------------------------------------------------------
# Fetch sources
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TimelineEntry:
    """A ``SegmentTimeline`` ``S`` element: ``repeat + 1`` segments of ``duration``."""

    duration: int
    repeat: int = 0
    start: int | None = None


@dataclass(frozen=True)
class SegmentTemplate:
    """Raw ``SegmentTemplate`` values; validated by the planner."""

    media: str | None
    initialization: str | None = None
    start_number: int | None = None
    timescale: int = 1
    timeline: tuple[TimelineEntry, ...] = ()


@dataclass(frozen=True)
class DashSource:
    representation_id: str
    base_url: str
    template: SegmentTemplate | None
    bandwidth: int = 0


@dataclass(frozen=True)
class HlsSource:
    playlist_url: str


VariantSource = Union[DashSource, HlsSource]


@dataclass(frozen=True)
class Variant:
    """A resolved variant together with the handle needed to fetch it."""

    descriptor: VariantDescriptor
    source: VariantSource
    context: ClientContext | None = field(default=None, repr=False, compare=False)

    def attach_context(self, context: ClientContext) -> Variant:
        return replace(self, context=context)

    @property
    def kind(self) -> VariantKind:
        return self.descriptor.kind

    def _require_context(self) -> ClientContext:
        if self.context is None:
            raise InternalError("variant has no attached client context")
        return self.context

    async def segments(self) -> SegmentPlan:
        return await self._require_context().streaming.plan_segments(self)

    async def fetch(self, segment: Segment) -> bytes:
        return await self._require_context().streaming.fetch(segment)

    async def fetch_and_decrypt(self, segment: Segment) -> bytes:
        return await self._require_context().streaming.fetch_and_decrypt(segment)

    async def write_segment(self, segment: Segment, sink: WritableSink) -> int:
        return await self._require_context().streaming.write_to(segment, sink)
