"""Segment planning for DASH and HLS variants.

DASH plans are computed from the ``SegmentTemplate`` already parsed with
the manifest. HLS plans need one more fetch for the media playlist plus one
fetch per distinct key URI.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Any
from urllib.parse import urljoin, urlsplit

import m3u8
import structlog

from crunchystream.domain.entities.segment import DecryptionKey, Segment, SegmentPlan
from crunchystream.domain.entities.variant import (
    DashSource,
    HlsSource,
    TimelineEntry,
    Variant,
)
from crunchystream.domain.exceptions import InternalError, ProtocolError
from crunchystream.domain.ports.executor import ExecutorPort
from crunchystream.infrastructure.streaming.bodies import reject_json_body
from crunchystream.infrastructure.streaming.crypto import derive_iv
from crunchystream.infrastructure.streaming.hls import load_playlist

log = structlog.get_logger(__name__)

# $Name$ or $Name%0Nd$; "$$" is a literal dollar.
_TEMPLATE_RE = re.compile(r"\$(?:(RepresentationID|Number|Time|Bandwidth)(?:%0(\d+)d)?)?\$")


def expand_template(template: str, **values: Any) -> str:
    """Substitute DASH template identifiers in ``template``."""

    def _sub(match: re.Match[str]) -> str:
        name, width = match.group(1), match.group(2)
        if name is None:
            return "$"
        value = values.get(name)
        if value is None:
            raise ProtocolError(name, f"no value for template identifier ${name}$")
        if width:
            return f"{int(value):0{int(width)}d}"
        return str(value)

    return _TEMPLATE_RE.sub(_sub, template)


def expand_timeline(entries: Iterable[TimelineEntry]) -> list[int]:
    """Durations of every segment, ``S(d, r)`` contributing ``r + 1`` entries."""
    durations: list[int] = []
    for entry in entries:
        durations.extend([entry.duration] * (entry.repeat + 1))
    return durations


def _prefix(base_url: str, path: str) -> str:
    if urlsplit(path).scheme:
        return path
    return base_url + path


class SegmentPlanner:
    """Builds :class:`SegmentPlan` values; stateless between calls."""

    def __init__(self, *, executor: ExecutorPort) -> None:
        self._executor = executor

    # ------------------------------------------------------------------
    # DASH
    # ------------------------------------------------------------------

    @staticmethod
    def plan_dash(source: DashSource) -> SegmentPlan:
        template = source.template
        if template is None:
            raise ProtocolError("SegmentTemplate")
        if template.start_number is None:
            # A guessed default would shift every segment URL.
            raise ProtocolError("startNumber")
        if not template.media:
            raise ProtocolError("media")
        if not template.initialization:
            raise ProtocolError("initialization")
        if not template.timeline:
            raise ProtocolError("SegmentTimeline")

        rep_id = source.representation_id
        common = {"RepresentationID": rep_id, "Bandwidth": source.bandwidth}

        segments = [
            Segment(
                url=_prefix(
                    source.base_url, expand_template(template.initialization, **common)
                ),
                length=0.0,
                init=True,
            )
        ]

        number = template.start_number
        time = 0
        for entry in template.timeline:
            if entry.start is not None:
                time = entry.start
            for _ in range(entry.repeat + 1):
                path = expand_template(template.media, Number=number, Time=time, **common)
                segments.append(
                    Segment(
                        url=_prefix(source.base_url, path),
                        length=entry.duration / template.timescale,
                        number=number,
                    )
                )
                number += 1
                time += entry.duration

        return SegmentPlan(
            segments=tuple(segments),
            base_url=source.base_url,
            representation_id=rep_id,
        )

    # ------------------------------------------------------------------
    # HLS
    # ------------------------------------------------------------------

    async def plan_hls(self, source: HlsSource) -> SegmentPlan:
        url = source.playlist_url
        body = await self._executor.request_raw(url)
        reject_json_body(body, url)
        playlist = load_playlist(body, url)
        if playlist.is_variant:
            raise ProtocolError("EXTINF", "expected a media playlist", url=url)

        key_bytes: dict[str, bytes] = {}
        derived: dict[tuple[str, str | None], DecryptionKey] = {}
        segments: list[Segment] = []
        current_init: str | None = None
        number = playlist.media_sequence or 0

        for seg in playlist.segments:
            init_uri = seg.init_section.absolute_uri if seg.init_section else None
            if init_uri is not None and init_uri != current_init:
                current_init = init_uri
                segments.append(Segment(url=current_init, length=0.0, init=True))

            key = await self._segment_key(seg.key, key_bytes, derived, url)
            segments.append(
                Segment(
                    url=seg.absolute_uri,
                    length=float(seg.duration),
                    key=key,
                    number=number,
                )
            )
            number += 1

        log.debug(
            "hls_plan_built",
            url=url,
            segments=len(segments),
            keys=len(key_bytes),
        )
        return SegmentPlan(segments=tuple(segments), base_url=urljoin(url, "."))

    async def _segment_key(
        self,
        key: m3u8.Key | None,
        key_bytes: dict[str, bytes],
        derived: dict[tuple[str, str | None], DecryptionKey],
        playlist_url: str,
    ) -> DecryptionKey | None:
        if key is None or (key.method or "NONE").upper() == "NONE":
            return None
        if key.method.upper() != "AES-128":
            raise ProtocolError(
                "METHOD", f"unsupported key method {key.method!r}", url=playlist_url
            )
        if not key.uri:
            raise ProtocolError("URI", "EXT-X-KEY without URI", url=playlist_url)

        key_url = key.absolute_uri
        iv_text = key.iv or None
        cache_key = (key_url, iv_text)
        if cache_key in derived:
            return derived[cache_key]

        if key_url not in key_bytes:
            key_bytes[key_url] = await self._executor.request_raw(key_url)
            log.debug("hls_key_fetched", playlist=playlist_url)
        raw = key_bytes[key_url]
        decryption_key = DecryptionKey(key=raw, iv=derive_iv(raw, iv_text))
        derived[cache_key] = decryption_key
        return decryption_key

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def plan_segments(self, variant: Variant) -> SegmentPlan:
        source = variant.source
        if isinstance(source, DashSource):
            plan = self.plan_dash(source)
        elif isinstance(source, HlsSource):
            plan = await self.plan_hls(source)
        else:
            raise InternalError(f"unknown variant source {type(source).__name__}")
        log.info(
            "segment_plan_built",
            kind=variant.kind,
            bandwidth=variant.descriptor.bandwidth,
            segments=len(plan),
            duration=round(plan.duration, 3),
        )
        return plan
