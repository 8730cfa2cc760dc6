"""Look up streamable media by id."""

from __future__ import annotations

from typing import Any, TypeVar

import structlog

from crunchystream.domain.entities.media import Concert, Episode, Movie, MusicVideo
from crunchystream.domain.exceptions import InputError, ProtocolError
from crunchystream.domain.ports.executor import ExecutorPort

log = structlog.get_logger(__name__)

_T = TypeVar("_T", Episode, Movie, MusicVideo, Concert)

# Media type -> API path below the base url.
_MEDIA_PATHS: dict[type, str] = {
    Episode: "content/v2/cms/episodes",
    Movie: "content/v2/cms/movies",
    MusicVideo: "content/v2/music/music_videos",
    Concert: "content/v2/music/concerts",
}


def media_path(media_type: type) -> str:
    try:
        return _MEDIA_PATHS[media_type]
    except KeyError:
        raise InputError(f"{media_type.__name__} cannot be fetched by id") from None


def _locale_params(executor: ExecutorPort) -> dict[str, str]:
    params = {"locale": executor.locale}
    if executor.preferred_audio_locale:
        params["preferred_audio_language"] = executor.preferred_audio_locale
    return params


async def fetch_media(
    executor: ExecutorPort,
    media_type: type[_T],
    media_id: str,
) -> _T:
    """Fetch one media object; the result has no context attached yet."""
    if not media_id:
        raise InputError("media id must not be empty")

    url = f"{executor.base_url}/{media_path(media_type)}/{media_id}"
    data: Any = await executor.request("GET", url, params=_locale_params(executor))

    items = data.get("data") if isinstance(data, dict) else None
    if not isinstance(items, list):
        raise ProtocolError("data", url=url)
    if not items:
        raise InputError(f"no {media_type.__name__} with id {media_id!r}", url=url)

    media = media_type.from_api(items[0])
    log.debug(
        "media_fetched",
        media_type=media_type.__name__,
        media_id=media_id,
        stream_id=media.stream_id,
    )
    return media
