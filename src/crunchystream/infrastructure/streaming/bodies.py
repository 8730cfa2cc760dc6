"""Checks shared by every manifest download."""

from __future__ import annotations

import json
from collections.abc import Mapping

import structlog

from crunchystream.domain.exceptions import AuthorizationError

log = structlog.get_logger(__name__)

_BOM = b"\xef\xbb\xbf"


def reject_json_body(body: bytes, url: str) -> None:
    """Raise AuthorizationError when a manifest endpoint answered with JSON.

    Forbidden manifests come back as a JSON error document with status 200,
    so this check must run before any XML or M3U8 parsing.
    """
    stripped = body.lstrip().removeprefix(_BOM).strip()
    if not stripped.startswith((b"{", b"[")):
        return
    try:
        value = json.loads(stripped)
    except ValueError:
        return

    message = "manifest endpoint returned an error document"
    if isinstance(value, Mapping):
        detail = value.get("error") or value.get("message") or value.get("code")
        if detail:
            message = f"{message}: {detail}"
    log.warning("manifest_forbidden", url=url, detail=message)
    raise AuthorizationError(message, url=url)
