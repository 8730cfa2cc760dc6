from .engine import StreamingEngine
from .fetcher import SegmentFetcher
from .planner import SegmentPlanner
from .resolver import ManifestResolver

__all__ = ["ManifestResolver", "SegmentFetcher", "SegmentPlanner", "StreamingEngine"]
