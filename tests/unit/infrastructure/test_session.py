"""Tests for token grants and the refreshing session."""

from __future__ import annotations

import asyncio

import httpx
import pytest
import respx

from crunchystream.domain.exceptions import AuthenticationError
from crunchystream.infrastructure.http.auth import (
    AuthResponse,
    auth_anonymously,
    auth_with_credentials,
    auth_with_etp_rt,
)
from crunchystream.infrastructure.http.session import Session, SessionToken

_BASE = "https://api.test"
_TOKEN_URL = f"{_BASE}/auth/v1/token"


def _token_body(access: str = "acc", refresh: str | None = "ref-2") -> dict:
    body = {
        "access_token": access,
        "token_type": "Bearer",
        "expires_in": 300,
        "account_id": "acc-1",
    }
    if refresh is not None:
        body["refresh_token"] = refresh
    return body


class _Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture()
def http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient()


@pytest.fixture()
def clock() -> _Clock:
    return _Clock()


# ---------------------------------------------------------------------------
# Grants
# ---------------------------------------------------------------------------


class TestGrants:
    @pytest.mark.asyncio()
    @respx.mock
    async def test_anonymous_grant(self, http_client: httpx.AsyncClient) -> None:
        route = respx.post(_TOKEN_URL).mock(
            return_value=httpx.Response(200, json=_token_body(refresh=None))
        )

        auth = await auth_anonymously(http_client, _BASE)

        assert auth.access_token == "acc"
        form = route.calls.last.request.content.decode()
        assert "grant_type=client_id" in form
        assert "scope=offline_access" in form
        assert route.calls.last.request.headers["Authorization"].startswith("Basic ")

    @pytest.mark.asyncio()
    @respx.mock
    async def test_credentials_grant(self, http_client: httpx.AsyncClient) -> None:
        route = respx.post(_TOKEN_URL).mock(
            return_value=httpx.Response(200, json=_token_body())
        )

        auth = await auth_with_credentials(http_client, _BASE, "me@x", "pw")

        assert auth.refresh_token == "ref-2"
        assert auth.account_id == "acc-1"
        assert "grant_type=password" in route.calls.last.request.content.decode()

    @pytest.mark.asyncio()
    @respx.mock
    async def test_etp_rt_sends_cookie(self, http_client: httpx.AsyncClient) -> None:
        route = respx.post(_TOKEN_URL).mock(
            return_value=httpx.Response(200, json=_token_body())
        )

        await auth_with_etp_rt(http_client, _BASE, "cookie-value")

        assert route.calls.last.request.headers["Cookie"] == "etp_rt=cookie-value"

    @pytest.mark.asyncio()
    @respx.mock
    async def test_rejected_grant(self, http_client: httpx.AsyncClient) -> None:
        respx.post(_TOKEN_URL).mock(
            return_value=httpx.Response(
                401, json={"type": "unauthorized", "message": "bad credentials"}
            )
        )

        with pytest.raises(AuthenticationError) as exc_info:
            await auth_with_credentials(http_client, _BASE, "me@x", "wrong")
        assert exc_info.value.status == 401

    def test_response_without_access_token(self) -> None:
        with pytest.raises(AuthenticationError):
            AuthResponse.from_api({"token_type": "Bearer"})

    def test_repr_hides_tokens(self) -> None:
        auth = AuthResponse.from_api(_token_body(access="secret-access"))
        assert "secret-access" not in repr(auth)


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


def _session(
    http_client: httpx.AsyncClient,
    clock: _Clock,
    token: SessionToken,
) -> Session:
    return Session(
        http_client=http_client,
        base_url=_BASE,
        auth=AuthResponse.from_api(_token_body(access="first")),
        session_token=token,
        clock=clock,
    )


class TestSession:
    @pytest.mark.asyncio()
    @respx.mock
    async def test_valid_token_no_refresh(
        self, http_client: httpx.AsyncClient, clock: _Clock
    ) -> None:
        route = respx.post(_TOKEN_URL)
        session = _session(http_client, clock, SessionToken.refresh_token("ref-1"))

        assert await session.authorization() == "Bearer first"
        assert route.call_count == 0

    @pytest.mark.asyncio()
    @respx.mock
    async def test_refresh_rotates_refresh_token(
        self, http_client: httpx.AsyncClient, clock: _Clock
    ) -> None:
        route = respx.post(_TOKEN_URL).mock(
            return_value=httpx.Response(200, json=_token_body(access="second"))
        )
        session = _session(http_client, clock, SessionToken.refresh_token("ref-1"))
        clock.now += 301

        assert await session.authorization() == "Bearer second"
        assert "refresh_token=ref-1" in route.calls.last.request.content.decode()
        token = await session.session_token()
        assert token == SessionToken.refresh_token("ref-2")
        assert session.expired is False

    @pytest.mark.asyncio()
    @respx.mock
    async def test_concurrent_callers_refresh_once(
        self, http_client: httpx.AsyncClient, clock: _Clock
    ) -> None:
        route = respx.post(_TOKEN_URL).mock(
            return_value=httpx.Response(200, json=_token_body(access="second"))
        )
        session = _session(http_client, clock, SessionToken.etp_rt("etp"))
        clock.now += 301

        headers = await asyncio.gather(*(session.authorization() for _ in range(10)))

        assert set(headers) == {"Bearer second"}
        assert route.call_count == 1

    @pytest.mark.asyncio()
    @respx.mock
    async def test_anonymous_refresh(
        self, http_client: httpx.AsyncClient, clock: _Clock
    ) -> None:
        route = respx.post(_TOKEN_URL).mock(
            return_value=httpx.Response(200, json=_token_body(refresh=None))
        )
        session = _session(http_client, clock, SessionToken.anonymous())
        clock.now += 301

        await session.authorization()

        assert "grant_type=client_id" in route.calls.last.request.content.decode()
        assert await session.session_token() == SessionToken.anonymous()

    @pytest.mark.asyncio()
    @respx.mock
    async def test_refresh_without_new_refresh_token_fails(
        self, http_client: httpx.AsyncClient, clock: _Clock
    ) -> None:
        respx.post(_TOKEN_URL).mock(
            return_value=httpx.Response(200, json=_token_body(refresh=None))
        )
        session = _session(http_client, clock, SessionToken.refresh_token("ref-1"))
        clock.now += 301

        with pytest.raises(AuthenticationError):
            await session.authorization()

    @pytest.mark.asyncio()
    async def test_missing_refresh_credential(
        self, http_client: httpx.AsyncClient, clock: _Clock
    ) -> None:
        session = _session(http_client, clock, SessionToken.refresh_token(""))
        clock.now += 301

        with pytest.raises(AuthenticationError):
            await session.authorization()

    def test_session_token_repr_hides_value(self) -> None:
        assert "ref-1" not in repr(SessionToken.refresh_token("ref-1"))
