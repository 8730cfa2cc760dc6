"""httpx client factories for API and CDN traffic."""

from __future__ import annotations

import httpx

from crunchystream.infrastructure.config.schema import AppConfig


def create_api_client(config: AppConfig) -> httpx.AsyncClient:
    """Client for the JSON API and the play service."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(config.http_timeout_seconds),
        follow_redirects=True,
        headers={
            "User-Agent": config.http_user_agent,
            "Accept": "application/json",
        },
    )


def create_download_client(config: AppConfig) -> httpx.AsyncClient:
    """Client for manifests, keys, subtitles and segments.

    The CDN rejects API user agents, so this one looks like a browser.
    """
    return httpx.AsyncClient(
        timeout=httpx.Timeout(config.http_timeout_seconds),
        follow_redirects=True,
        headers={
            "User-Agent": config.http_download_user_agent,
            "Accept": "*/*",
        },
    )
