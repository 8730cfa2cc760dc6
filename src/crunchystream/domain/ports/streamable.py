"""Capability port implemented by every streamable content entity."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from crunchystream.domain.entities.stream import StreamHandle


@runtime_checkable
class Streamable(Protocol):
    @property
    def stream_id(self) -> str: ...

    @property
    def is_premium_only(self) -> bool: ...

    async def stream(self) -> StreamHandle: ...

    async def stream_maybe_without_drm(self) -> StreamHandle: ...

    async def available(self) -> bool: ...
