"""Error hierarchy shared by every layer of the client."""

from __future__ import annotations

from typing import Any


class CrunchyError(Exception):
    """Base class for all client errors.

    ``url`` and ``status`` are filled in whenever the error originates from an
    HTTP exchange.
    """

    def __init__(
        self,
        message: str,
        *,
        url: str | None = None,
        status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.url = url
        self.status = status

    def __str__(self) -> str:
        parts = [self.message]
        if self.status is not None:
            parts.append(f"status={self.status}")
        if self.url is not None:
            parts.append(f"url={self.url}")
        return " ".join(parts)


class InternalError(CrunchyError):
    """Raised when the client is used in a way that should not be possible."""


class RequestError(CrunchyError):
    """Transport failure or an error status/body returned by the API."""


class BlockedError(RequestError):
    """Raised when Cloudflare bot protection answers instead of the API."""


class RateLimitError(RequestError):
    """Raised on HTTP 429. ``retry_after`` is in seconds when the server sent it."""

    def __init__(
        self,
        message: str,
        *,
        url: str | None = None,
        status: int | None = None,
        retry_after: int | None = None,
    ) -> None:
        super().__init__(message, url=url, status=status)
        self.retry_after = retry_after


class TooManyActiveStreamsError(RequestError):
    """Raised when the account already holds the maximum of playback sessions."""

    def __init__(
        self,
        message: str,
        *,
        url: str | None = None,
        status: int | None = None,
        active_streams: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(message, url=url, status=status)
        self.active_streams = active_streams or []


class DecodeError(CrunchyError):
    """Payload could not be parsed. ``body`` keeps the raw bytes."""

    def __init__(
        self,
        message: str,
        *,
        body: bytes = b"",
        url: str | None = None,
        status: int | None = None,
    ) -> None:
        super().__init__(message, url=url, status=status)
        self.body = body


class ProtocolError(CrunchyError):
    """Payload parsed fine but lacks a field the client depends on."""

    def __init__(
        self,
        field: str,
        message: str | None = None,
        *,
        url: str | None = None,
    ) -> None:
        super().__init__(message or f"missing or invalid field: {field}", url=url)
        self.field = field


class CryptoError(CrunchyError):
    """AES-CBC decryption or PKCS7 unpadding failed for a segment."""


class AuthorizationError(CrunchyError):
    """The server refused access to a manifest or a playback session."""


class AuthenticationError(CrunchyError):
    """Login or token refresh failed, or the session lacks an account."""


class InputError(CrunchyError):
    """Invalid caller input."""
