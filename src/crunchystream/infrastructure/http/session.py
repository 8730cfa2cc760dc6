"""Bearer token lifecycle shared by every request of a client."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

import httpx
import structlog

from crunchystream.domain.exceptions import AuthenticationError
from crunchystream.infrastructure.http.auth import (
    AuthResponse,
    auth_anonymously,
    auth_with_etp_rt,
    auth_with_refresh_token,
)

log = structlog.get_logger(__name__)

SessionTokenKind = Literal["refresh_token", "etp_rt", "anonymous"]


@dataclass(frozen=True)
class SessionToken:
    """Credential used to mint new access tokens.

    Persist ``value`` of a ``refresh_token`` or ``etp_rt`` token to log in
    again later without a password.
    """

    kind: SessionTokenKind
    value: str | None = None

    @classmethod
    def refresh_token(cls, value: str) -> SessionToken:
        return cls("refresh_token", value)

    @classmethod
    def etp_rt(cls, value: str) -> SessionToken:
        return cls("etp_rt", value)

    @classmethod
    def anonymous(cls) -> SessionToken:
        return cls("anonymous")

    def __repr__(self) -> str:
        return f"SessionToken(kind={self.kind!r})"


class Session:
    """Access token, its expiry and the credential to refresh it.

    ``authorization()`` is the only entry point for requests; the refresh
    runs inside ``self._lock`` so concurrent callers refresh once.
    """

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient,
        base_url: str,
        auth: AuthResponse,
        session_token: SessionToken,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._http = http_client
        self._base_url = base_url
        self._clock = clock
        self._lock = asyncio.Lock()
        self._session_token = session_token
        self._account_id = auth.account_id
        self._apply(auth)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _apply(self, auth: AuthResponse) -> None:
        self._token_type = auth.token_type
        self._access_token = auth.access_token
        self._expires_at = self._clock() + auth.expires_in

    async def _refresh(self) -> None:
        token = self._session_token
        if token.kind == "anonymous":
            auth = await auth_anonymously(self._http, self._base_url)
            new_token = token
        else:
            if not token.value:
                raise AuthenticationError(f"no {token.kind} available to refresh with")
            if token.kind == "refresh_token":
                auth = await auth_with_refresh_token(
                    self._http, self._base_url, token.value
                )
            else:
                auth = await auth_with_etp_rt(self._http, self._base_url, token.value)
            if not auth.refresh_token:
                raise AuthenticationError("refresh response without refresh_token")
            new_token = SessionToken(token.kind, auth.refresh_token)

        self._apply(auth)
        self._session_token = new_token
        if auth.account_id:
            self._account_id = auth.account_id
        log.info("session_refreshed", kind=token.kind, expires_in=auth.expires_in)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def account_id(self) -> str | None:
        return self._account_id

    @property
    def expired(self) -> bool:
        return self._expires_at <= self._clock()

    async def authorization(self) -> str:
        """Return the ``Authorization`` header value, refreshing when expired."""
        async with self._lock:
            if self.expired:
                await self._refresh()
            return f"{self._token_type} {self._access_token}"

    async def session_token(self) -> SessionToken:
        async with self._lock:
            return self._session_token
