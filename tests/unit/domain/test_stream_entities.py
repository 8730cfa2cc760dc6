"""Tests for StreamHandle, SubtitleRef and StreamVersion."""

from __future__ import annotations

import io
from typing import Any
from unittest.mock import MagicMock

import pytest

from crunchystream.domain.entities.stream import (
    NO_HARDSUB,
    StreamHandle,
    StreamVersion,
    SubtitleRef,
    normalize_locale,
)
from crunchystream.domain.exceptions import InputError, InternalError


class TestNormalizeLocale:
    @pytest.mark.parametrize("value", [None, "", ":"])
    def test_empty_markers_mean_no_hardsub(self, value: str | None) -> None:
        assert normalize_locale(value) == NO_HARDSUB

    def test_regular_locale_unchanged(self) -> None:
        assert normalize_locale("de-DE") == "de-DE"


class TestStreamHandleFromApi:
    def test_fields(self, stream_handle: StreamHandle) -> None:
        assert stream_handle.id == "G1"
        assert stream_handle.token == "play-token-1"
        assert stream_handle.audio_locale == "ja-JP"
        assert stream_handle.drm is True
        assert stream_handle.context is None

    def test_clean_url_under_no_hardsub(self, stream_handle: StreamHandle) -> None:
        assert stream_handle.urls[NO_HARDSUB] == "https://cdn/manifest.mpd"
        assert stream_handle.manifest_url() == "https://cdn/manifest.mpd"

    def test_hardsub_locales(self, stream_handle: StreamHandle) -> None:
        assert sorted(stream_handle.hardsub_locales()) == ["de-DE", "en-US"]
        assert stream_handle.manifest_url("en-US") == "https://cdn/manifest-en.mpd"

    def test_unknown_hardsub_raises_input_error(
        self, stream_handle: StreamHandle
    ) -> None:
        with pytest.raises(InputError):
            stream_handle.manifest_url("fr-FR")

    def test_subtitles_without_url_dropped(self, stream_handle: StreamHandle) -> None:
        assert list(stream_handle.subtitles) == ["en-US"]
        sub = stream_handle.subtitles["en-US"]
        assert sub.format == "ass"
        assert sub.url == "https://cdn/en.ass"

    def test_versions(self, stream_handle: StreamHandle) -> None:
        assert stream_handle.available_versions() == ["ja-JP", "en-US"]
        assert stream_handle.versions[1] == StreamVersion(
            id="G2",
            media_id="M2",
            audio_locale="en-US",
            is_premium_only=True,
            original=False,
            season_id="S2",
            variant="",
        )

    def test_missing_optional_blocks(self) -> None:
        handle = StreamHandle.from_api(
            {"url": "https://cdn/m.mpd", "token": "t"}, content_id="X", drm=False
        )
        assert handle.hardsub_locales() == []
        assert handle.subtitles == {}
        assert handle.versions == ()
        assert handle.audio_locale == NO_HARDSUB

    def test_repr_hides_token(self, stream_handle: StreamHandle) -> None:
        assert "play-token-1" not in repr(stream_handle)


class TestAttachContext:
    def test_returns_copy_with_context(
        self, stream_handle: StreamHandle, context: Any
    ) -> None:
        attached = stream_handle.attach_context(context)
        assert attached is not stream_handle
        assert attached.context is context
        assert stream_handle.context is None

    def test_recurses_into_subtitles(
        self, stream_handle: StreamHandle, context: Any
    ) -> None:
        attached = stream_handle.attach_context(context)
        assert all(s.context is context for s in attached.subtitles.values())

    def test_context_not_part_of_equality(
        self, stream_handle: StreamHandle, context: Any
    ) -> None:
        assert stream_handle.attach_context(context) == stream_handle


class TestStreamHandleDelegation:
    @pytest.mark.asyncio()
    async def test_without_context_raises_internal_error(
        self, stream_handle: StreamHandle
    ) -> None:
        with pytest.raises(InternalError):
            await stream_handle.variants()

    @pytest.mark.asyncio()
    async def test_variants_use_streaming_port(
        self, stream_handle: StreamHandle, context: Any
    ) -> None:
        context.streaming.resolve_variants.return_value = []
        handle = stream_handle.attach_context(context)

        await handle.variants("en-US")

        context.streaming.resolve_variants.assert_awaited_once_with(
            "https://cdn/manifest-en.mpd", handle
        )

    @pytest.mark.asyncio()
    async def test_dash_streaming_data_splits_by_kind(
        self, stream_handle: StreamHandle, context: Any
    ) -> None:
        video_variant = MagicMock(kind="video")
        audio_variant = MagicMock(kind="audio")
        context.streaming.resolve_variants.return_value = [audio_variant, video_variant]
        handle = stream_handle.attach_context(context)

        videos, audios = await handle.dash_streaming_data()

        assert videos == [video_variant]
        assert audios == [audio_variant]

    @pytest.mark.asyncio()
    async def test_invalidate_delegates(
        self, stream_handle: StreamHandle, context: Any
    ) -> None:
        handle = stream_handle.attach_context(context)
        await handle.invalidate()
        context.playback.invalidate.assert_awaited_once_with(handle)

    @pytest.mark.asyncio()
    async def test_version_filters_by_locale(
        self, stream_handle: StreamHandle, context: Any
    ) -> None:
        handle = stream_handle.attach_context(context)
        await handle.version(["en-US"])
        context.playback.versions.assert_awaited_once_with(handle, ["en-US"])

    @pytest.mark.asyncio()
    async def test_all_versions(
        self, stream_handle: StreamHandle, context: Any
    ) -> None:
        handle = stream_handle.attach_context(context)
        await handle.all_versions()
        context.playback.versions.assert_awaited_once_with(handle, None)


class TestSubtitleRef:
    @pytest.mark.asyncio()
    async def test_write_to_sink(self, context: Any) -> None:
        context.executor.request_raw.return_value = b"[Script Info]"
        sub = SubtitleRef(locale="en-US", url="https://cdn/en.ass", format="ass")
        sink = io.BytesIO()

        written = await sub.attach_context(context).write_to(sink)

        assert written == len(b"[Script Info]")
        assert sink.getvalue() == b"[Script Info]"
        context.executor.request_raw.assert_awaited_once_with("https://cdn/en.ass")

    @pytest.mark.asyncio()
    async def test_sink_failure_is_input_error(self, context: Any) -> None:
        class _BrokenSink:
            def write(self, data: bytes) -> int:
                raise OSError("disk full")

        context.executor.request_raw.return_value = b"data"
        sub = SubtitleRef(locale="en-US", url="https://cdn/en.ass", format="ass")
        with pytest.raises(InputError):
            await sub.attach_context(context).write_to(_BrokenSink())

    @pytest.mark.asyncio()
    async def test_without_context(self) -> None:
        sub = SubtitleRef(locale="en-US", url="https://cdn/en.ass", format="ass")
        with pytest.raises(InternalError):
            await sub.write_to(io.BytesIO())
