"""Shared fixtures for integration tests.

These tests wire the real client (builder, session, executor, play service
use case and streaming engine) together with mocked HTTP via respx.
"""

from __future__ import annotations

import httpx
import pytest
import respx

from crunchystream.infrastructure.config.schema import AppConfig

API_BASE = "https://api.test"
PLAY_BASE = "https://play.test"


@pytest.fixture()
def config() -> AppConfig:
    """Client config pointing at the mocked hosts."""
    return AppConfig(
        api_base_url=API_BASE,
        play_service_url=PLAY_BASE,
        environment="test",
    )


@pytest.fixture()
def respx_mock() -> respx.MockRouter:
    """Explicit respx mock router for request interception."""
    with respx.mock(assert_all_called=False) as router:
        yield router


@pytest.fixture()
def token_route(respx_mock: respx.MockRouter) -> respx.Route:
    """Anonymous token grant answering with a five minute access token."""
    return respx_mock.post(f"{API_BASE}/auth/v1/token").mock(
        return_value=httpx.Response(
            200,
            json={"access_token": "acc", "token_type": "Bearer", "expires_in": 300},
        )
    )


@pytest.fixture()
def episode_route(respx_mock: respx.MockRouter) -> respx.Route:
    return respx_mock.get(url__startswith=f"{API_BASE}/content/v2/cms/episodes/E1").mock(
        return_value=httpx.Response(
            200,
            json={
                "total": 1,
                "data": [
                    {
                        "id": "E1",
                        "title": "Pilot",
                        "episode_metadata": {"series_title": "Show", "episode_number": 1},
                    }
                ],
            },
        )
    )
