"""Tests for the builder and the logged in client."""

from __future__ import annotations

import httpx
import pytest
import respx

from crunchystream.domain.entities.media import Episode
from crunchystream.domain.exceptions import AuthenticationError
from crunchystream.infrastructure.config.schema import AppConfig
from crunchystream.interfaces.composition import Crunchyroll, CrunchyrollBuilder

_BASE = "https://api.test"
_TOKEN_URL = f"{_BASE}/auth/v1/token"


def _config() -> AppConfig:
    return AppConfig(
        api_base_url=_BASE,
        play_service_url="https://play.test",
        locale="de-DE",
        environment="test",
    )


def _token_body(account_id: str | None = "acc-1", refresh: str | None = "ref-2") -> dict:
    body: dict = {"access_token": "acc", "token_type": "Bearer", "expires_in": 300}
    if account_id:
        body["account_id"] = account_id
    if refresh:
        body["refresh_token"] = refresh
    return body


class TestBuilder:
    @pytest.mark.asyncio()
    @respx.mock
    async def test_login_anonymously(self) -> None:
        route = respx.post(_TOKEN_URL).mock(
            return_value=httpx.Response(200, json=_token_body(account_id=None))
        )

        async with await CrunchyrollBuilder(_config()).login_anonymously() as client:
            assert isinstance(client, Crunchyroll)
            assert client.executor.account_id is None
            token = await client.session_token()
            assert token.kind == "anonymous"
            assert client.playback is not None
            assert client.streaming is not None

        form = route.calls.last.request.content.decode()
        assert "grant_type=client_id" in form

    @pytest.mark.asyncio()
    @respx.mock
    async def test_login_with_refresh_token_keeps_rotated_token(self) -> None:
        respx.post(_TOKEN_URL).mock(
            return_value=httpx.Response(200, json=_token_body(refresh="ref-new"))
        )

        builder = CrunchyrollBuilder(_config())
        async with await builder.login_with_refresh_token("ref-old") as client:
            token = await client.session_token()

        assert token.kind == "refresh_token"
        assert token.value == "ref-new"
        assert client.executor.account_id == "acc-1"

    @pytest.mark.asyncio()
    @respx.mock
    async def test_login_with_etp_rt_falls_back_to_cookie(self) -> None:
        route = respx.post(_TOKEN_URL).mock(
            return_value=httpx.Response(200, json=_token_body(refresh=None))
        )

        async with await CrunchyrollBuilder(_config()).login_with_etp_rt("cookie") as client:
            token = await client.session_token()

        assert token.kind == "etp_rt"
        assert token.value == "cookie"
        assert route.calls.last.request.headers["Cookie"] == "etp_rt=cookie"

    @pytest.mark.asyncio()
    @respx.mock
    async def test_rejected_credentials(self) -> None:
        respx.post(_TOKEN_URL).mock(
            return_value=httpx.Response(401, json={"error": "invalid_grant"})
        )

        with pytest.raises(AuthenticationError):
            await CrunchyrollBuilder(_config()).login_with_credentials("user", "bad")


class TestCrunchyroll:
    @pytest.mark.asyncio()
    @respx.mock
    async def test_episode_has_context_attached(self) -> None:
        respx.post(_TOKEN_URL).mock(
            return_value=httpx.Response(200, json=_token_body())
        )
        route = respx.get(url__startswith=f"{_BASE}/content/v2/cms/episodes/E1").mock(
            return_value=httpx.Response(
                200, json={"data": [{"id": "E1", "title": "Pilot"}]}
            )
        )

        async with await CrunchyrollBuilder(_config()).login_anonymously() as client:
            episode = await client.episode("E1")

        assert isinstance(episode, Episode)
        assert episode.context is client
        request = route.calls.last.request
        assert request.url.params["locale"] == "de-DE"
        assert request.headers["Authorization"] == "Bearer acc"
