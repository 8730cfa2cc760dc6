"""Playback session negotiation use case.

content id -> play service -> StreamHandle (context attached)
"""

from __future__ import annotations

from typing import Any

import structlog

from crunchystream.domain.entities.stream import StreamHandle
from crunchystream.domain.exceptions import (
    AuthorizationError,
    RequestError,
    TooManyActiveStreamsError,
)
from crunchystream.domain.ports.context import ClientContext
from crunchystream.domain.ports.executor import ExecutorPort

log = structlog.get_logger(__name__)

# (device, platform) path segments of the play service.
_DRM_DEVICE = ("web", "chrome")
_CLEAR_DEVICE = ("console", "switch")


class PlaybackUseCase:
    """Implements ``PlaybackPort`` from domain.ports.playback."""

    def __init__(
        self,
        *,
        executor: ExecutorPort,
        play_service_url: str,
        release_active_streams: bool = False,
        context: ClientContext | None = None,
    ) -> None:
        self._executor = executor
        self._base = play_service_url.rstrip("/")
        self._release_active_streams = release_active_streams
        self._context = context

    def bind(self, context: ClientContext) -> None:
        """Set the context attached to every negotiated handle."""
        self._context = context

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _play(self, content_id: str, device: tuple[str, str]) -> Any:
        url = f"{self._base}/v3/{content_id}/{device[0]}/{device[1]}/play"
        try:
            return await self._executor.request("GET", url)
        except TooManyActiveStreamsError:
            raise
        except RequestError as exc:
            if exc.status == 403:
                raise AuthorizationError(
                    f"playback rejected: {exc.message}", url=url, status=403
                ) from exc
            raise

    async def _deactivate(self, content_id: str, token: str) -> None:
        await self._executor.request(
            "PATCH", f"{self._base}/v1/token/{content_id}/{token}/inactive"
        )

    async def _release(self, active_streams: list[dict[str, Any]]) -> None:
        for active in active_streams:
            content_id, token = active.get("contentId"), active.get("token")
            if content_id and token:
                await self._deactivate(str(content_id), str(token))
                log.info("active_stream_released", content_id=content_id)

    async def _negotiate(
        self, content_id: str, device: tuple[str, str], *, drm: bool
    ) -> StreamHandle:
        try:
            data = await self._play(content_id, device)
        except TooManyActiveStreamsError as exc:
            if not self._release_active_streams or not exc.active_streams:
                raise
            log.warning(
                "too_many_active_streams",
                content_id=content_id,
                active=len(exc.active_streams),
            )
            await self._release(exc.active_streams)
            data = await self._play(content_id, device)

        if isinstance(data, dict) and data.get("error"):
            raise AuthorizationError(f"playback rejected: {data['error']}")

        handle = StreamHandle.from_api(data, content_id=content_id, drm=drm)
        if self._context is not None:
            handle = handle.attach_context(self._context)
        log.info(
            "playback_negotiated",
            content_id=content_id,
            device="/".join(device),
            drm=drm,
            audio_locale=handle.audio_locale,
            hardsubs=len(handle.hardsub_locales()),
        )
        return handle

    # ------------------------------------------------------------------
    # Public API (PlaybackPort)
    # ------------------------------------------------------------------

    async def stream(self, content_id: str) -> StreamHandle:
        return await self._negotiate(content_id, _DRM_DEVICE, drm=True)

    async def stream_maybe_without_drm(self, content_id: str) -> StreamHandle:
        return await self._negotiate(content_id, _CLEAR_DEVICE, drm=False)

    async def invalidate(self, handle: StreamHandle) -> None:
        url = f"{self._base}/v1/token/{handle.id}/{handle.token}"
        try:
            await self._executor.request("DELETE", url)
        except RequestError as exc:
            if exc.status not in (404, 405):
                raise
            # Older sessions only support being marked inactive.
            await self._deactivate(handle.id, handle.token)
        log.info("stream_invalidated", content_id=handle.id)

    async def versions(
        self, handle: StreamHandle, audio_locales: list[str] | None
    ) -> list[StreamHandle]:
        negotiate = self.stream if handle.drm else self.stream_maybe_without_drm
        result: list[StreamHandle] = []
        for version in handle.versions:
            if audio_locales is not None and version.audio_locale not in audio_locales:
                continue
            result.append(await negotiate(version.media_id))
        return result
