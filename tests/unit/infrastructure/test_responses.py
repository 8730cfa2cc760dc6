"""Tests for API response decoding and error detection."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from crunchystream.domain.exceptions import (
    BlockedError,
    DecodeError,
    RateLimitError,
    RequestError,
    TooManyActiveStreamsError,
)
from crunchystream.infrastructure.http.responses import (
    check_raw_response,
    check_response,
    error_from_body,
)

_URL = "https://api.test/content/v2/cms/episodes/X"


def _response(
    status: int,
    body: Any = b"",
    headers: dict[str, str] | None = None,
) -> httpx.Response:
    content = body if isinstance(body, bytes) else json.dumps(body).encode()
    return httpx.Response(
        status,
        content=content,
        headers=headers,
        request=httpx.Request("GET", _URL),
    )


class TestErrorFromBody:
    def test_type_message_shape(self) -> None:
        msg = error_from_body({"type": "bad_request", "message": "nope"})
        assert msg == "bad_request - nope"

    def test_field_context_shape(self) -> None:
        msg = error_from_body(
            {
                "code": "invalid",
                "context": [{"code": "required", "field": "locale"}],
                "error": "Bad request",
            }
        )
        assert msg == "Bad request (invalid) - locale: required"

    def test_violated_constraints_shape(self) -> None:
        msg = error_from_body(
            {
                "code": "invalid",
                "context": [{"code": "x", "violated_constraints": [["max", "100"]]}],
            }
        )
        assert msg == "(invalid) - max: 100"

    @pytest.mark.parametrize(
        "value",
        [
            {"data": []},
            {"code": "x"},
            {"code": "x", "context": "nope"},
            ["list"],
            "text",
        ],
    )
    def test_non_error_values(self, value: Any) -> None:
        assert error_from_body(value) is None


class TestCheckResponse:
    def test_success_json(self) -> None:
        assert check_response(_response(200, {"data": [1]})) == {"data": [1]}

    @pytest.mark.parametrize("body", [b"", b"   \n"])
    def test_empty_success_is_empty_dict(self, body: bytes) -> None:
        assert check_response(_response(204, body)) == {}

    def test_error_body_with_200(self) -> None:
        with pytest.raises(RequestError, match="bad_request"):
            check_response(_response(200, {"type": "bad_request", "message": "x"}))

    def test_not_found(self) -> None:
        with pytest.raises(RequestError) as exc_info:
            check_response(_response(404, {"whatever": True}))
        assert exc_info.value.status == 404
        assert exc_info.value.url == _URL

    def test_rate_limit_with_retry_after(self) -> None:
        with pytest.raises(RateLimitError) as exc_info:
            check_response(_response(429, b"", headers={"Retry-After": "7"}))
        assert exc_info.value.retry_after == 7

    def test_rate_limit_without_retry_after(self) -> None:
        with pytest.raises(RateLimitError) as exc_info:
            check_response(_response(429))
        assert exc_info.value.retry_after is None

    def test_cloudflare_block(self) -> None:
        body = b"<!DOCTYPE html><html><head><title>Just a moment...</title></head></html>"
        with pytest.raises(BlockedError):
            check_response(_response(403, body))

    def test_plain_forbidden_is_request_error(self) -> None:
        with pytest.raises(RequestError) as exc_info:
            check_response(_response(403, {"message": "denied"}))
        assert not isinstance(exc_info.value, BlockedError)

    def test_too_many_active_streams(self) -> None:
        body = {
            "error": "TOO_MANY_ACTIVE_STREAMS",
            "activeStreams": [
                {"contentId": "G1", "token": "t1"},
                {"contentId": "G2", "token": "t2"},
            ],
        }
        with pytest.raises(TooManyActiveStreamsError) as exc_info:
            check_response(_response(420, body))
        assert [s["contentId"] for s in exc_info.value.active_streams] == ["G1", "G2"]

    def test_invalid_json_success(self) -> None:
        with pytest.raises(DecodeError) as exc_info:
            check_response(_response(200, b"<html>"))
        assert exc_info.value.body == b"<html>"

    def test_invalid_json_error_status(self) -> None:
        with pytest.raises(RequestError) as exc_info:
            check_response(_response(500, b"<html>oops</html>"))
        assert exc_info.value.status == 500


class TestCheckRawResponse:
    def test_returns_bytes(self) -> None:
        assert check_raw_response(_response(200, b"\x00\x01")) == b"\x00\x01"

    def test_error_status(self) -> None:
        with pytest.raises(RequestError):
            check_raw_response(_response(410, b"gone"))

    def test_rate_limit(self) -> None:
        with pytest.raises(RateLimitError):
            check_raw_response(_response(429))
