"""Segment level value objects produced by the segment planner."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass


@dataclass(frozen=True)
class DecryptionKey:
    """AES-128-CBC key and IV active for a run of HLS segments."""

    key: bytes
    iv: bytes

    def __repr__(self) -> str:
        # Key material stays out of logs and tracebacks.
        return f"DecryptionKey(key=<{len(self.key)} bytes>, iv=<{len(self.iv)} bytes>)"


@dataclass(frozen=True)
class Segment:
    """One fetchable unit of a variant.

    ``length`` is the presentation duration in seconds (zero for
    initialization segments).
    """

    url: str
    length: float
    key: DecryptionKey | None = None
    number: int | None = None
    init: bool = False

    @property
    def encrypted(self) -> bool:
        return self.key is not None


@dataclass(frozen=True)
class SegmentPlan:
    """Ordered segments of exactly one variant, in presentation order."""

    segments: tuple[Segment, ...]
    base_url: str
    representation_id: str | None = None

    def __iter__(self) -> Iterator[Segment]:
        return iter(self.segments)

    def __len__(self) -> int:
        return len(self.segments)

    def __getitem__(self, index: int) -> Segment:
        return self.segments[index]

    @property
    def init_segment(self) -> Segment | None:
        if self.segments and self.segments[0].init:
            return self.segments[0]
        return None

    @property
    def media_segments(self) -> tuple[Segment, ...]:
        return tuple(s for s in self.segments if not s.init)

    @property
    def duration(self) -> float:
        """Total presentation duration in seconds."""
        return sum(s.length for s in self.segments)
