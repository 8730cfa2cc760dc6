"""Shared test fixtures for the crunchystream test suite."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from crunchystream.domain.entities.stream import StreamHandle

# ---------------------------------------------------------------------------
# Manifest fixtures
# ---------------------------------------------------------------------------

SAMPLE_MPD = b"""<?xml version="1.0" encoding="UTF-8"?>
<MPD xmlns="urn:mpeg:dash:schema:mpd:2011"
     xmlns:cenc="urn:mpeg:cenc:2013"
     type="static" mediaPresentationDuration="PT6S">
  <Period id="0">
    <AdaptationSet mimeType="video/mp4" maxWidth="1920" maxHeight="1080">
      <ContentProtection schemeIdUri="urn:uuid:edef8ba9-79d6-4ace-a3c8-27dcd51d21ed">
        <cenc:pssh>AAAAPnBzc2g=</cenc:pssh>
      </ContentProtection>
      <Representation id="video-1080" bandwidth="5000000" codecs="avc1.640028"
                      width="1920" height="1080" frameRate="24000/1001">
        <BaseURL>https://cdn/x/</BaseURL>
        <SegmentTemplate timescale="1000" startNumber="1"
                         initialization="$RepresentationID$/init.mp4"
                         media="$RepresentationID$/seg-$Number$.m4s">
          <SegmentTimeline>
            <S t="0" d="2000" r="2"/>
          </SegmentTimeline>
        </SegmentTemplate>
      </Representation>
    </AdaptationSet>
    <AdaptationSet mimeType="audio/mp4" lang="ja-JP">
      <Representation id="audio-128" bandwidth="128000" codecs="mp4a.40.2"
                      audioSamplingRate="44100">
        <BaseURL>https://cdn/a/</BaseURL>
        <SegmentTemplate timescale="44100" startNumber="1"
                         initialization="init-$RepresentationID$.mp4"
                         media="chunk-$Number%05d$.m4s">
          <SegmentTimeline>
            <S d="88200" r="1"/>
          </SegmentTimeline>
        </SegmentTemplate>
      </Representation>
    </AdaptationSet>
    <AdaptationSet mimeType="text/vtt">
      <Representation id="subs" bandwidth="100"/>
    </AdaptationSet>
  </Period>
</MPD>
"""

MASTER_PLAYLIST = b"""#EXTM3U
#EXT-X-STREAM-INF:BANDWIDTH=831000,RESOLUTION=1280x720,FRAME-RATE=23.976,CODECS="avc1.64001f,mp4a.40.2"
https://cdn/hls/720/index.m3u8
#EXT-X-STREAM-INF:BANDWIDTH=2400000,RESOLUTION=1920x1080,FRAME-RATE=23.976,CODECS="avc1.640028,mp4a.40.2"
1080/index.m3u8
"""

AES_KEY = bytes(range(16))


@pytest.fixture()
def sample_mpd() -> bytes:
    return SAMPLE_MPD


@pytest.fixture()
def master_playlist() -> bytes:
    return MASTER_PLAYLIST


@pytest.fixture()
def aes_key() -> bytes:
    return AES_KEY


# ---------------------------------------------------------------------------
# Port fakes
# ---------------------------------------------------------------------------


@pytest.fixture()
def executor() -> MagicMock:
    """ExecutorPort fake; ``request``/``request_raw`` are AsyncMocks."""
    mock = MagicMock()
    mock.base_url = "https://api.test"
    mock.locale = "en-US"
    mock.preferred_audio_locale = None
    mock.account_id = "acc-1"
    mock.request = AsyncMock(return_value={})
    mock.request_raw = AsyncMock(return_value=b"")
    mock.is_premium = AsyncMock(return_value=False)
    return mock


@dataclass
class FakeContext:
    """ClientContext whose collaborators are mocks."""

    executor: Any
    playback: Any = field(default_factory=AsyncMock)
    streaming: Any = field(default_factory=AsyncMock)


@pytest.fixture()
def context(executor: MagicMock) -> FakeContext:
    return FakeContext(executor=executor)


# ---------------------------------------------------------------------------
# Play service fixtures
# ---------------------------------------------------------------------------

PLAY_RESPONSE: dict[str, Any] = {
    "url": "https://cdn/manifest.mpd",
    "token": "play-token-1",
    "audioLocale": "ja-JP",
    "hardSubs": {
        "en-US": {"url": "https://cdn/manifest-en.mpd", "hlang": "en-US"},
        "de-DE": {"url": "https://cdn/manifest-de.mpd", "hlang": "de-DE"},
    },
    "subtitles": {
        "en-US": {"format": "ass", "language": "en-US", "url": "https://cdn/en.ass"},
        "none": {"format": "ass", "language": "none", "url": ""},
    },
    "captions": {},
    "versions": [
        {
            "audio_locale": "ja-JP",
            "guid": "G1",
            "media_guid": "M1",
            "is_premium_only": False,
            "original": True,
            "season_guid": "S1",
            "variant": "",
        },
        {
            "audio_locale": "en-US",
            "guid": "G2",
            "media_guid": "M2",
            "is_premium_only": True,
            "original": False,
            "season_guid": "S2",
            "variant": "",
        },
    ],
}


@pytest.fixture()
def play_response() -> dict[str, Any]:
    return dict(PLAY_RESPONSE)


@pytest.fixture()
def stream_handle(play_response: dict[str, Any]) -> StreamHandle:
    return StreamHandle.from_api(play_response, content_id="G1", drm=True)
