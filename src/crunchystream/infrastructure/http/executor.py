"""Authenticated request executor built on httpx."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx
import structlog

from crunchystream.domain.exceptions import RequestError
from crunchystream.infrastructure.http.responses import (
    check_raw_response,
    check_response,
)
from crunchystream.infrastructure.http.session import Session

log = structlog.get_logger(__name__)


class HttpxExecutor:
    """Implements ``ExecutorPort`` from domain.ports.executor.

    API calls go through ``api_client`` with the session's bearer token;
    downloads go through ``download_client`` without it.
    """

    def __init__(
        self,
        *,
        session: Session,
        api_client: httpx.AsyncClient,
        download_client: httpx.AsyncClient,
        base_url: str,
        locale: str,
        preferred_audio_locale: str | None = None,
    ) -> None:
        self._session = session
        self._api = api_client
        self._download = download_client
        self._base_url = base_url
        self._locale = locale
        self._preferred_audio_locale = preferred_audio_locale
        self._premium: bool | None = None

    @property
    def session(self) -> Session:
        return self._session

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def locale(self) -> str:
        return self._locale

    @property
    def preferred_audio_locale(self) -> str | None:
        return self._preferred_audio_locale

    @property
    def account_id(self) -> str | None:
        return self._session.account_id

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        authorization = await self._session.authorization()
        log.debug("api_request", method=method, url=url)
        try:
            resp = await self._api.request(
                method,
                url,
                params=params,
                json=json,
                headers={"Authorization": authorization},
            )
        except httpx.HTTPError as exc:
            raise RequestError(f"{method} failed: {exc!r}", url=url) from exc
        return check_response(resp)

    async def request_raw(
        self,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
    ) -> bytes:
        try:
            resp = await self._download.get(url, params=params)
        except httpx.HTTPError as exc:
            raise RequestError(f"download failed: {exc!r}", url=url) from exc
        return check_raw_response(resp)

    async def is_premium(self) -> bool:
        """Whether the account holds the premium benefit (cached per executor)."""
        if self._premium is not None:
            return self._premium
        account_id = self.account_id
        if account_id is None:
            self._premium = False
            return False
        url = f"{self._base_url}/subs/v1/subscriptions/{account_id}/benefits"
        try:
            data = await self.request("GET", url)
        except RequestError as exc:
            # Accounts without any subscription have no benefits resource.
            if exc.status != 404:
                raise
            data = {}
        items = data.get("items") if isinstance(data, dict) else None
        self._premium = any(
            isinstance(item, dict) and item.get("benefit") == "cr_premium"
            for item in items or ()
        )
        return self._premium

    async def aclose(self) -> None:
        await self._api.aclose()
        await self._download.aclose()
