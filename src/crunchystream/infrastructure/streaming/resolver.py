"""Manifest resolution: one playback URL in, a list of variants out."""

from __future__ import annotations

from urllib.parse import urlsplit

import structlog

from crunchystream.domain.entities.stream import StreamHandle
from crunchystream.domain.entities.variant import Variant
from crunchystream.domain.ports.executor import ExecutorPort
from crunchystream.infrastructure.streaming.bodies import reject_json_body
from crunchystream.infrastructure.streaming.dash import parse_mpd
from crunchystream.infrastructure.streaming.hls import looks_like_m3u8, parse_master

log = structlog.get_logger(__name__)


def _is_hls_url(url: str) -> bool:
    return urlsplit(url).path.endswith(".m3u8")


class ManifestResolver:
    """Fetches a DASH or HLS manifest and parses it into variants.

    The format is taken from the body, not the URL. Nothing is cached and
    nothing is retried; every call fetches the manifest again.
    """

    def __init__(self, *, executor: ExecutorPort, strict: bool = True) -> None:
        self._executor = executor
        self._strict = strict

    def _manifest_params(self, manifest_url: str, handle: StreamHandle) -> dict[str, str]:
        if _is_hls_url(manifest_url):
            return {}
        params = {"playbackGuid": handle.token}
        if self._executor.account_id:
            params["accountid"] = self._executor.account_id
        return params

    async def resolve_variants(
        self, manifest_url: str, handle: StreamHandle
    ) -> list[Variant]:
        body = await self._executor.request_raw(
            manifest_url, params=self._manifest_params(manifest_url, handle) or None
        )
        reject_json_body(body, manifest_url)

        if looks_like_m3u8(body):
            fmt = "hls"
            variants = parse_master(body, manifest_url=manifest_url, strict=self._strict)
        else:
            fmt = "dash"
            variants = parse_mpd(
                body,
                manifest_url=manifest_url,
                drm_token=handle.token,
                strict=self._strict,
            )

        log.info(
            "manifest_resolved",
            content_id=handle.id,
            format=fmt,
            variants=len(variants),
        )
        return variants
