"""Token endpoint grants.

Every grant posts a form to ``/auth/v1/token`` with client credentials
matching the grant type and returns an :class:`AuthResponse`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from crunchystream.domain.exceptions import AuthenticationError, RequestError
from crunchystream.infrastructure.http.responses import check_response

log = structlog.get_logger(__name__)

_TOKEN_PATH = "/auth/v1/token"

# Basic client credentials per grant family.
_ANONYMOUS_CLIENT = "Basic Y3Jfd2ViOg=="
_ACCOUNT_CLIENT = (
    "Basic aHJobzlxM2F3dnNrMjJ1LXRzNWE6cHROOURteXRBU2Z6QjZvbXVsSzh6cUxzYTczVE1TY1k="
)
_ETP_RT_CLIENT = "Basic bm9haWhkZXZtXzZpeWcwYThsMHE6"


@dataclass(frozen=True)
class AuthResponse:
    access_token: str
    token_type: str
    expires_in: int
    refresh_token: str | None = None
    account_id: str | None = None
    country: str = ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> AuthResponse:
        if not data.get("access_token"):
            raise AuthenticationError("token response without access_token")
        return cls(
            access_token=str(data["access_token"]),
            token_type=str(data.get("token_type") or "Bearer"),
            expires_in=int(data.get("expires_in") or 0),
            refresh_token=data.get("refresh_token"),
            account_id=data.get("account_id"),
            country=str(data.get("country") or ""),
        )

    def __repr__(self) -> str:
        return (
            f"AuthResponse(token_type={self.token_type!r}, "
            f"expires_in={self.expires_in!r}, account_id={self.account_id!r})"
        )


async def _grant(
    client: httpx.AsyncClient,
    base_url: str,
    *,
    authorization: str,
    form: dict[str, str],
    cookies: dict[str, str] | None = None,
) -> AuthResponse:
    url = f"{base_url}{_TOKEN_PATH}"
    grant_type = form["grant_type"]
    headers = {"Authorization": authorization}
    if cookies:
        headers["Cookie"] = "; ".join(f"{k}={v}" for k, v in cookies.items())
    try:
        resp = await client.post(
            url,
            data={**form, "scope": "offline_access"},
            headers=headers,
        )
    except httpx.HTTPError as exc:
        raise RequestError(f"token request failed: {exc!r}", url=url) from exc

    try:
        data = check_response(resp)
    except RequestError as exc:
        log.warning("auth_grant_rejected", grant_type=grant_type, status=exc.status)
        raise AuthenticationError(
            f"{grant_type} grant rejected: {exc.message}", url=url, status=exc.status
        ) from exc

    log.debug("auth_grant_ok", grant_type=grant_type)
    return AuthResponse.from_api(data)


async def auth_anonymously(client: httpx.AsyncClient, base_url: str) -> AuthResponse:
    return await _grant(
        client,
        base_url,
        authorization=_ANONYMOUS_CLIENT,
        form={"grant_type": "client_id"},
    )


async def auth_with_credentials(
    client: httpx.AsyncClient, base_url: str, username: str, password: str
) -> AuthResponse:
    return await _grant(
        client,
        base_url,
        authorization=_ACCOUNT_CLIENT,
        form={"username": username, "password": password, "grant_type": "password"},
    )


async def auth_with_refresh_token(
    client: httpx.AsyncClient, base_url: str, refresh_token: str
) -> AuthResponse:
    return await _grant(
        client,
        base_url,
        authorization=_ACCOUNT_CLIENT,
        form={"refresh_token": refresh_token, "grant_type": "refresh_token"},
    )


async def auth_with_etp_rt(
    client: httpx.AsyncClient, base_url: str, etp_rt: str
) -> AuthResponse:
    return await _grant(
        client,
        base_url,
        authorization=_ETP_RT_CLIENT,
        form={"grant_type": "etp_rt_cookie"},
        cookies={"etp_rt": etp_rt},
    )
