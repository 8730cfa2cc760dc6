"""Playback session entities returned by the play service."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from crunchystream.domain.exceptions import InputError, InternalError

if TYPE_CHECKING:
    from crunchystream.domain.entities.variant import Variant
    from crunchystream.domain.ports.context import ClientContext
    from crunchystream.domain.ports.streaming import WritableSink

# Key of the manifest without burned-in subtitles.
NO_HARDSUB = ""


def normalize_locale(locale: str | None) -> str:
    """The play service uses ``":"`` for "no locale" in some payloads."""
    if not locale or locale == ":":
        return NO_HARDSUB
    return locale


@dataclass(frozen=True)
class SubtitleRef:
    locale: str
    url: str
    format: str
    context: ClientContext | None = field(default=None, repr=False, compare=False)

    @classmethod
    def from_api(cls, locale: str, data: Mapping[str, Any]) -> SubtitleRef:
        return cls(
            locale=normalize_locale(data.get("language") or locale),
            url=str(data.get("url") or ""),
            format=str(data.get("format") or ""),
        )

    def attach_context(self, context: ClientContext) -> SubtitleRef:
        return replace(self, context=context)

    async def write_to(self, sink: WritableSink) -> int:
        """Download the subtitle file unparsed and write it to ``sink``."""
        if self.context is None:
            raise InternalError("subtitle has no attached client context")
        data = await self.context.executor.request_raw(self.url)
        try:
            sink.write(data)
        except OSError as exc:
            raise InputError(f"failed to write subtitle: {exc}") from exc
        return len(data)


@dataclass(frozen=True)
class StreamVersion:
    """Same media in another audio language."""

    id: str
    media_id: str
    audio_locale: str
    is_premium_only: bool = False
    original: bool = False
    season_id: str = ""
    variant: str = ""

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> StreamVersion:
        return cls(
            id=str(data.get("guid") or ""),
            media_id=str(data.get("media_guid") or data.get("guid") or ""),
            audio_locale=str(data.get("audio_locale") or ""),
            is_premium_only=bool(data.get("is_premium_only", False)),
            original=bool(data.get("original", False)),
            season_id=str(data.get("season_guid") or ""),
            variant=str(data.get("variant") or ""),
        )


@dataclass(frozen=True)
class StreamHandle:
    """One negotiated playback session.

    ``urls`` maps a hardsub locale to its manifest URL; :data:`NO_HARDSUB`
    holds the clean one. Sessions with ``drm`` set count against the
    account's concurrent stream limit until :meth:`invalidate` is called.
    """

    id: str
    token: str
    audio_locale: str
    urls: Mapping[str, str]
    subtitles: Mapping[str, SubtitleRef] = field(default_factory=dict)
    captions: Mapping[str, SubtitleRef] = field(default_factory=dict)
    drm: bool = True
    versions: tuple[StreamVersion, ...] = ()
    context: ClientContext | None = field(default=None, repr=False, compare=False)

    def __repr__(self) -> str:
        return (
            f"StreamHandle(id={self.id!r}, audio_locale={self.audio_locale!r}, "
            f"hardsubs={sorted(self.urls)!r}, drm={self.drm!r})"
        )

    @classmethod
    def from_api(
        cls, data: Mapping[str, Any], *, content_id: str, drm: bool
    ) -> StreamHandle:
        urls: dict[str, str] = {}
        if data.get("url"):
            urls[NO_HARDSUB] = str(data["url"])
        for locale, entry in (data.get("hardSubs") or {}).items():
            if isinstance(entry, Mapping) and entry.get("url"):
                urls[normalize_locale(locale)] = str(entry["url"])

        return cls(
            id=content_id,
            token=str(data.get("token") or ""),
            audio_locale=normalize_locale(data.get("audioLocale")),
            urls=urls,
            subtitles=_subtitle_map(data.get("subtitles")),
            captions=_subtitle_map(data.get("captions")),
            drm=drm,
            versions=tuple(
                StreamVersion.from_api(v) for v in data.get("versions") or ()
            ),
        )

    def attach_context(self, context: ClientContext) -> StreamHandle:
        return replace(
            self,
            context=context,
            subtitles={k: v.attach_context(context) for k, v in self.subtitles.items()},
            captions={k: v.attach_context(context) for k, v in self.captions.items()},
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _require_context(self) -> ClientContext:
        if self.context is None:
            raise InternalError("stream handle has no attached client context")
        return self.context

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def hardsub_locales(self) -> list[str]:
        """Locales with burned-in subtitles (the clean variant excluded)."""
        return [locale for locale in self.urls if locale != NO_HARDSUB]

    def manifest_url(self, hardsub: str = NO_HARDSUB) -> str:
        key = normalize_locale(hardsub)
        try:
            return self.urls[key]
        except KeyError:
            raise InputError(
                f"no stream with hardsub locale {hardsub!r} available"
            ) from None

    async def variants(self, hardsub: str = NO_HARDSUB) -> list[Variant]:
        context = self._require_context()
        return await context.streaming.resolve_variants(
            self.manifest_url(hardsub), self
        )

    async def dash_streaming_data(
        self, hardsub: str = NO_HARDSUB
    ) -> tuple[list[Variant], list[Variant]]:
        """Resolve the manifest and split the result into (video, audio)."""
        variants = await self.variants(hardsub)
        video = [v for v in variants if v.kind == "video"]
        audio = [v for v in variants if v.kind == "audio"]
        return video, audio

    async def invalidate(self) -> None:
        await self._require_context().playback.invalidate(self)

    def available_versions(self) -> list[str]:
        return [v.audio_locale for v in self.versions]

    async def version(self, audio_locales: Iterable[str]) -> list[StreamHandle]:
        return await self._require_context().playback.versions(
            self, list(audio_locales)
        )

    async def all_versions(self) -> list[StreamHandle]:
        return await self._require_context().playback.versions(self, None)


def _subtitle_map(raw: Any) -> dict[str, SubtitleRef]:
    if not isinstance(raw, Mapping):
        return {}
    out: dict[str, SubtitleRef] = {}
    for locale, entry in raw.items():
        if isinstance(entry, Mapping) and entry.get("url"):
            ref = SubtitleRef.from_api(locale, entry)
            out[ref.locale] = ref
    return out
