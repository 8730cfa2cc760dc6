"""Composition root: wires config, HTTP clients, session and use cases."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from types import TracebackType
from typing import TypeVar

import httpx
import structlog

from crunchystream.application.use_cases.media_lookup import fetch_media
from crunchystream.application.use_cases.playback import PlaybackUseCase
from crunchystream.domain.entities.media import Concert, Episode, Movie, MusicVideo
from crunchystream.infrastructure.config.schema import AppConfig
from crunchystream.infrastructure.http.auth import (
    AuthResponse,
    auth_anonymously,
    auth_with_credentials,
    auth_with_etp_rt,
    auth_with_refresh_token,
)
from crunchystream.infrastructure.http.clients import (
    create_api_client,
    create_download_client,
)
from crunchystream.infrastructure.http.executor import HttpxExecutor
from crunchystream.infrastructure.http.session import Session, SessionToken
from crunchystream.infrastructure.streaming.engine import StreamingEngine

log = structlog.get_logger(__name__)

_T = TypeVar("_T", Episode, Movie, MusicVideo, Concert)

MEDIA_TYPES: dict[str, type] = {
    "episode": Episode,
    "movie": Movie,
    "music_video": MusicVideo,
    "concert": Concert,
}


class Crunchyroll:
    """Logged in client; the context every returned entity is attached to."""

    def __init__(
        self,
        *,
        config: AppConfig,
        executor: HttpxExecutor,
        playback: PlaybackUseCase,
        streaming: StreamingEngine,
    ) -> None:
        self._config = config
        self._executor = executor
        self._playback = playback
        self._streaming = streaming
        playback.bind(self)

    @classmethod
    def from_session(
        cls,
        config: AppConfig,
        *,
        session: Session,
        api_client: httpx.AsyncClient,
        download_client: httpx.AsyncClient,
    ) -> Crunchyroll:
        executor = HttpxExecutor(
            session=session,
            api_client=api_client,
            download_client=download_client,
            base_url=config.api_base_url,
            locale=config.locale,
            preferred_audio_locale=config.preferred_audio_locale,
        )
        return cls(
            config=config,
            executor=executor,
            playback=PlaybackUseCase(
                executor=executor,
                play_service_url=config.play_service_url,
                release_active_streams=config.release_active_streams,
            ),
            streaming=StreamingEngine.create(executor, strict=config.strict),
        )

    # ------------------------------------------------------------------
    # ClientContext
    # ------------------------------------------------------------------

    @property
    def executor(self) -> HttpxExecutor:
        return self._executor

    @property
    def playback(self) -> PlaybackUseCase:
        return self._playback

    @property
    def streaming(self) -> StreamingEngine:
        return self._streaming

    @property
    def config(self) -> AppConfig:
        return self._config

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def media_from_id(self, media_type: type[_T], media_id: str) -> _T:
        media = await fetch_media(self._executor, media_type, media_id)
        return media.attach_context(self)

    async def episode(self, episode_id: str) -> Episode:
        return await self.media_from_id(Episode, episode_id)

    async def movie(self, movie_id: str) -> Movie:
        return await self.media_from_id(Movie, movie_id)

    async def music_video(self, music_video_id: str) -> MusicVideo:
        return await self.media_from_id(MusicVideo, music_video_id)

    async def concert(self, concert_id: str) -> Concert:
        return await self.media_from_id(Concert, concert_id)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def session_token(self) -> SessionToken:
        """Credential to persist for a later password-less login."""
        return await self._executor.session.session_token()

    async def aclose(self) -> None:
        await self._executor.aclose()

    async def __aenter__(self) -> Crunchyroll:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


class CrunchyrollBuilder:
    """Creates HTTP clients, runs one login grant and returns a :class:`Crunchyroll`."""

    def __init__(self, config: AppConfig) -> None:
        self._config = config

    async def _login(
        self,
        grant: Callable[[httpx.AsyncClient], Awaitable[AuthResponse]],
        session_token: Callable[[AuthResponse], SessionToken],
        method: str,
    ) -> Crunchyroll:
        api_client = create_api_client(self._config)
        download_client = create_download_client(self._config)
        try:
            auth = await grant(api_client)
        except BaseException:
            await api_client.aclose()
            await download_client.aclose()
            raise

        session = Session(
            http_client=api_client,
            base_url=self._config.api_base_url,
            auth=auth,
            session_token=session_token(auth),
        )
        log.info("logged_in", method=method, anonymous=auth.account_id is None)
        return Crunchyroll.from_session(
            self._config,
            session=session,
            api_client=api_client,
            download_client=download_client,
        )

    async def login_anonymously(self) -> Crunchyroll:
        base = self._config.api_base_url
        return await self._login(
            lambda client: auth_anonymously(client, base),
            lambda auth: SessionToken.anonymous(),
            "anonymous",
        )

    async def login_with_credentials(self, username: str, password: str) -> Crunchyroll:
        base = self._config.api_base_url
        return await self._login(
            lambda client: auth_with_credentials(client, base, username, password),
            _refresh_token_of,
            "credentials",
        )

    async def login_with_refresh_token(self, refresh_token: str) -> Crunchyroll:
        base = self._config.api_base_url
        return await self._login(
            lambda client: auth_with_refresh_token(client, base, refresh_token),
            _refresh_token_of,
            "refresh_token",
        )

    async def login_with_etp_rt(self, etp_rt: str) -> Crunchyroll:
        base = self._config.api_base_url
        return await self._login(
            lambda client: auth_with_etp_rt(client, base, etp_rt),
            lambda auth: SessionToken.etp_rt(auth.refresh_token or etp_rt),
            "etp_rt",
        )


def _refresh_token_of(auth: AuthResponse) -> SessionToken:
    return SessionToken.refresh_token(auth.refresh_token or "")
