"""HLS playlist parsing on top of the ``m3u8`` package.

Relative URIs resolve against the playlist URL through the package's
``absolute_uri``; the planner walks ``segments`` of media playlists and
:func:`parse_master` turns ``playlists`` of a master playlist into variants.
"""

from __future__ import annotations

import math

import m3u8
import structlog

from crunchystream.domain.entities.variant import (
    HlsSource,
    Resolution,
    Variant,
    VariantDescriptor,
)
from crunchystream.domain.exceptions import DecodeError, ProtocolError

log = structlog.get_logger(__name__)

_BOM = b"\xef\xbb\xbf"


def looks_like_m3u8(body: bytes) -> bool:
    return body.lstrip().removeprefix(_BOM).lstrip().startswith(b"#EXTM3U")


def load_playlist(body: bytes, url: str) -> m3u8.M3U8:
    """Parse a master or media playlist fetched from ``url``."""
    if not looks_like_m3u8(body):
        raise DecodeError("playlist does not start with #EXTM3U", body=body, url=url)
    try:
        text = body.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise DecodeError(f"malformed playlist: {exc}", body=body, url=url) from exc

    try:
        return m3u8.loads(text, uri=url)
    except KeyError as exc:
        # EXT-X-STREAM-INF attributes are indexed by name; BANDWIDTH is mandatory.
        if exc.args == ("bandwidth",):
            raise ProtocolError("BANDWIDTH", url=url) from exc
        raise DecodeError(f"malformed playlist: {exc!r}", body=body, url=url) from exc
    except (ValueError, TypeError, IndexError, m3u8.ParseError) as exc:
        raise DecodeError(f"malformed playlist: {exc}", body=body, url=url) from exc


def parse_master(
    body: bytes,
    *,
    manifest_url: str,
    strict: bool = True,
) -> list[Variant]:
    """One video variant per ``#EXT-X-STREAM-INF``.

    Media playlists are not fetched here; the planner loads them on demand.
    """
    playlist = load_playlist(body, manifest_url)
    if not playlist.is_variant:
        raise ProtocolError(
            "EXT-X-STREAM-INF", "expected a master playlist", url=manifest_url
        )

    variants: list[Variant] = []
    for entry in playlist.playlists:
        info = entry.stream_info
        if not info.bandwidth or info.bandwidth <= 0:
            raise ProtocolError("BANDWIDTH", url=manifest_url)

        codecs = info.codecs
        if not codecs:
            if strict:
                raise ProtocolError("CODECS", url=manifest_url)
            codecs = ""

        width, height = info.resolution or (0, 0)
        if width <= 0 or height <= 0:
            if strict:
                raise ProtocolError("RESOLUTION", url=manifest_url)
            width, height = 0, 0

        fps = info.frame_rate
        if not fps or not math.isfinite(fps) or fps <= 0:
            if strict:
                raise ProtocolError("FRAME-RATE", url=manifest_url)
            fps = 0.0

        descriptor = VariantDescriptor(
            bandwidth=info.bandwidth,
            codecs=codecs,
            resolution=Resolution(width, height),
            fps=fps,
        )
        variants.append(
            Variant(
                descriptor=descriptor,
                source=HlsSource(playlist_url=entry.absolute_uri),
            )
        )

    log.debug("hls_master_parsed", url=manifest_url, variants=len(variants))
    return variants
