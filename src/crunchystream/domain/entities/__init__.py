from .media import Concert, Episode, Movie, MusicVideo, StreamableMixin
from .segment import DecryptionKey, Segment, SegmentPlan
from .stream import NO_HARDSUB, StreamHandle, StreamVersion, SubtitleRef
from .variant import (
    DashSource,
    DrmInfo,
    HlsSource,
    Resolution,
    SegmentTemplate,
    TimelineEntry,
    Variant,
    VariantDescriptor,
)

__all__ = [
    "NO_HARDSUB",
    "Concert",
    "DashSource",
    "DecryptionKey",
    "DrmInfo",
    "Episode",
    "HlsSource",
    "Movie",
    "MusicVideo",
    "Resolution",
    "Segment",
    "SegmentPlan",
    "SegmentTemplate",
    "StreamHandle",
    "StreamVersion",
    "StreamableMixin",
    "SubtitleRef",
    "TimelineEntry",
    "Variant",
    "VariantDescriptor",
]
