"""Port for issuing authenticated requests against the API."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ExecutorPort(Protocol):
    """Authenticated request capability shared by every attached entity.

    Implementations own the session token and refresh it transparently.
    """

    @property
    def base_url(self) -> str:
        """Base of the content and auth API, without trailing slash."""
        ...

    @property
    def locale(self) -> str: ...

    @property
    def preferred_audio_locale(self) -> str | None: ...

    @property
    def account_id(self) -> str | None:
        """Account id of the session, ``None`` for anonymous sessions."""
        ...

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        """Send an authenticated request and return the decoded JSON body."""
        ...

    async def request_raw(
        self,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
    ) -> bytes:
        """GET ``url`` without API authentication and return the raw body."""
        ...

    async def is_premium(self) -> bool: ...
