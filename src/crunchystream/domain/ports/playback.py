"""Port for playback session negotiation."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from crunchystream.domain.entities.stream import StreamHandle


@runtime_checkable
class PlaybackPort(Protocol):
    async def stream(self, content_id: str) -> StreamHandle:
        """Negotiate a session on the DRM endpoint."""
        ...

    async def stream_maybe_without_drm(self, content_id: str) -> StreamHandle:
        """Negotiate a session on the endpoint serving clear streams."""
        ...

    async def invalidate(self, handle: StreamHandle) -> None:
        """Release the session slot held by ``handle``."""
        ...

    async def versions(
        self, handle: StreamHandle, audio_locales: list[str] | None
    ) -> list[StreamHandle]:
        """Negotiate sessions for other audio versions (all if ``None``)."""
        ...
