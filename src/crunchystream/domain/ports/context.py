"""Shared context attached to entities after deserialization."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from crunchystream.domain.ports.executor import ExecutorPort
from crunchystream.domain.ports.playback import PlaybackPort
from crunchystream.domain.ports.streaming import StreamingPort


@runtime_checkable
class ClientContext(Protocol):
    """What an attached entity may call back into."""

    @property
    def executor(self) -> ExecutorPort: ...

    @property
    def playback(self) -> PlaybackPort: ...

    @property
    def streaming(self) -> StreamingPort: ...
