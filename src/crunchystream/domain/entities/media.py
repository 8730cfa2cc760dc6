"""Streamable content entities: episodes, movies, music videos and concerts.

Entities are built in two phases: ``from_api`` turns a raw API object into
plain data, ``attach_context`` threads the shared client context through
before the value reaches the caller.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, TypeVar

from crunchystream.domain.entities.stream import StreamVersion
from crunchystream.domain.exceptions import InternalError

if TYPE_CHECKING:
    from crunchystream.domain.entities.stream import StreamHandle
    from crunchystream.domain.ports.context import ClientContext

_M = TypeVar("_M", bound="StreamableMixin")


def stream_id_from_link(link: str | None, fallback: str) -> str:
    """Extract the video id from a ``.../videos/<id>/streams`` link."""
    if not link:
        return fallback
    parts = [p for p in link.split("/") if p]
    if len(parts) >= 2 and parts[-1] == "streams":
        return parts[-2]
    return fallback


class StreamableMixin:
    """Playback behaviour shared by every streamable entity.

    Subclasses are dataclasses providing ``id``, ``stream_id``,
    ``is_premium_only`` and ``context`` fields.
    """

    id: str
    stream_id: str
    is_premium_only: bool
    context: ClientContext | None

    def attach_context(self: _M, context: ClientContext) -> _M:
        return replace(self, context=context)  # type: ignore[type-var]

    def _require_context(self) -> ClientContext:
        if self.context is None:
            raise InternalError(
                f"{type(self).__name__} {self.id!r} has no attached client context"
            )
        return self.context

    async def stream(self) -> StreamHandle:
        """Negotiate a DRM protected playback session."""
        return await self._require_context().playback.stream(self.stream_id)

    async def stream_maybe_without_drm(self) -> StreamHandle:
        """Negotiate a session on the endpoint that currently serves clear streams.

        Upstream may start protecting this endpoint at any time; check
        ``StreamHandle.drm`` and the variant descriptors.
        """
        return await self._require_context().playback.stream_maybe_without_drm(
            self.stream_id
        )

    async def available(self) -> bool:
        """Whether the current account may watch this media."""
        if not self.is_premium_only:
            return True
        return await self._require_context().executor.is_premium()


def _versions(raw: Any) -> tuple[StreamVersion, ...]:
    if not raw:
        return ()
    return tuple(StreamVersion.from_api(v) for v in raw if isinstance(v, Mapping))


@dataclass(frozen=True)
class Episode(StreamableMixin):
    id: str
    stream_id: str
    title: str
    is_premium_only: bool = False
    series_id: str = ""
    series_title: str = ""
    season_id: str = ""
    season_number: int = 0
    episode_number: int | None = None
    sequence_number: float = 0.0
    audio_locale: str = ""
    duration_ms: int = 0
    versions: tuple[StreamVersion, ...] = ()
    context: ClientContext | None = field(default=None, repr=False, compare=False)

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> Episode:
        meta = data.get("episode_metadata") or data
        media_id = str(data["id"])
        return cls(
            id=media_id,
            stream_id=media_id,
            title=str(data.get("title") or ""),
            is_premium_only=bool(meta.get("is_premium_only", False)),
            series_id=str(meta.get("series_id") or ""),
            series_title=str(meta.get("series_title") or ""),
            season_id=str(meta.get("season_id") or ""),
            season_number=int(meta.get("season_number") or 0),
            episode_number=meta.get("episode_number"),
            sequence_number=float(meta.get("sequence_number") or 0),
            audio_locale=str(meta.get("audio_locale") or ""),
            duration_ms=int(meta.get("duration_ms") or 0),
            versions=_versions(meta.get("versions")),
        )


@dataclass(frozen=True)
class Movie(StreamableMixin):
    id: str
    stream_id: str
    title: str
    is_premium_only: bool = False
    movie_listing_id: str = ""
    movie_listing_title: str = ""
    duration_ms: int = 0
    context: ClientContext | None = field(default=None, repr=False, compare=False)

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> Movie:
        meta = data.get("movie_metadata") or data
        media_id = str(data["id"])
        return cls(
            id=media_id,
            stream_id=media_id,
            title=str(data.get("title") or ""),
            is_premium_only=bool(meta.get("is_premium_only", False)),
            movie_listing_id=str(meta.get("movie_listing_id") or ""),
            movie_listing_title=str(meta.get("movie_listing_title") or ""),
            duration_ms=int(meta.get("duration_ms") or 0),
        )


@dataclass(frozen=True)
class _MusicMedia(StreamableMixin):
    # The music API answers in camelCase.
    id: str
    stream_id: str
    title: str
    is_premium_only: bool = False
    display_artist_name: str = ""
    sequence_number: float = 0.0
    duration_ms: int = 0
    context: ClientContext | None = field(default=None, repr=False, compare=False)

    @classmethod
    def from_api(cls: type[_MM], data: Mapping[str, Any]) -> _MM:
        media_id = str(data["id"])
        link = data.get("streamsLink") or data.get("streams_link")
        return cls(
            id=media_id,
            stream_id=stream_id_from_link(link, media_id),
            title=str(data.get("title") or ""),
            is_premium_only=bool(data.get("isPremiumOnly", False)),
            display_artist_name=str(data.get("displayArtistName") or ""),
            sequence_number=float(data.get("sequenceNumber") or 0),
            duration_ms=int(data.get("durationMs") or 0),
        )


_MM = TypeVar("_MM", bound=_MusicMedia)


@dataclass(frozen=True)
class MusicVideo(_MusicMedia):
    pass


@dataclass(frozen=True)
class Concert(_MusicMedia):
    pass
