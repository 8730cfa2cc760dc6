from .context import ClientContext
from .executor import ExecutorPort
from .playback import PlaybackPort
from .streamable import Streamable
from .streaming import StreamingPort, WritableSink

__all__ = [
    "ClientContext",
    "ExecutorPort",
    "PlaybackPort",
    "Streamable",
    "StreamingPort",
    "WritableSink",
]
