"""Turn API responses into decoded JSON or typed errors."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

import httpx
import structlog

from crunchystream.domain.exceptions import (
    BlockedError,
    DecodeError,
    RateLimitError,
    RequestError,
    TooManyActiveStreamsError,
)

log = structlog.get_logger(__name__)

_CLOUDFLARE_TITLE = b"<title>Just a moment...</title>"


def _is_cloudflare_block(body: bytes) -> bool:
    return body.lstrip().startswith(b"<!DOCTYPE html>") and _CLOUDFLARE_TITLE in body


def _retry_after(response: httpx.Response) -> int | None:
    value = response.headers.get("retry-after")
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def error_from_body(value: Any) -> str | None:
    """Return a message if ``value`` is one of the API's JSON error shapes.

    Recognized shapes::

        {"type": ..., "message": ...}
        {"code": ..., "context": [{"code": ..., "field": ...}], "message"|"error": ...}
        {"code": ..., "context": [{"code": ..., "violated_constraints": [[k, v]]}]}
    """
    if not isinstance(value, Mapping):
        return None

    if isinstance(value.get("type"), str) and isinstance(value.get("message"), str):
        return f"{value['type']} - {value['message']}"

    code = value.get("code")
    context = value.get("context")
    if not isinstance(code, str) or not isinstance(context, list):
        return None
    if not all(isinstance(item, Mapping) for item in context):
        return None

    if all("field" in item for item in context):
        details = ", ".join(f"{item['field']}: {item.get('code', '')}" for item in context)
        message = value.get("message") or value.get("error")
        if message:
            return f"{message} ({code}) - {details}"
        return f"({code}) - {details}"

    if all("violated_constraints" in item for item in context):
        details = ", ".join(
            f"{name}: {constraint}"
            for item in context
            for name, constraint in item.get("violated_constraints") or ()
        )
        return f"({code}) - {details}"

    return None


def check_response(response: httpx.Response) -> Any:
    """Decode a JSON API response, raising typed errors for failures.

    An empty successful body decodes to ``{}``.
    """
    url = str(response.request.url)
    status = response.status_code
    body = response.content

    if status == 403 and _is_cloudflare_block(body):
        raise BlockedError("triggered Cloudflare bot protection", url=url, status=status)
    if status == 404:
        raise RequestError(
            "the requested resource is not present (404)", url=url, status=status
        )
    if status == 429:
        retry_after = _retry_after(response)
        hint = (
            f"try again in {retry_after} seconds"
            if retry_after is not None
            else "try again later"
        )
        raise RateLimitError(
            f"rate limit detected, {hint}",
            url=url,
            status=status,
            retry_after=retry_after,
        )

    if not body.strip():
        if status >= 400:
            raise RequestError(f"HTTP {status} with empty body", url=url, status=status)
        return {}

    try:
        value = json.loads(body)
    except ValueError as exc:
        if status == 420:
            raise TooManyActiveStreamsError(
                "too many active streams", url=url, status=status
            ) from exc
        if status >= 400:
            raise RequestError(f"HTTP {status}", url=url, status=status) from exc
        raise DecodeError(
            f"response is not valid JSON: {exc}", body=body, url=url, status=status
        ) from exc

    if status == 420:
        active = value.get("activeStreams") if isinstance(value, Mapping) else None
        raise TooManyActiveStreamsError(
            "too many active streams",
            url=url,
            status=status,
            active_streams=[s for s in active or () if isinstance(s, Mapping)],
        )

    message = error_from_body(value)
    if message is not None:
        log.debug("api_error_body", url=url, status=status, error=message)
        raise RequestError(message, url=url, status=status)
    if status >= 400:
        raise RequestError(f"HTTP {status}: {body[:200]!r}", url=url, status=status)
    return value


def check_raw_response(response: httpx.Response) -> bytes:
    """Return the raw body of a download response or raise ``RequestError``."""
    url = str(response.request.url)
    status = response.status_code
    if status == 403 and _is_cloudflare_block(response.content):
        raise BlockedError("triggered Cloudflare bot protection", url=url, status=status)
    if status == 429:
        raise RateLimitError(
            "rate limit detected", url=url, status=status, retry_after=_retry_after(response)
        )
    if status >= 400:
        raise RequestError(f"HTTP {status}", url=url, status=status)
    return response.content
