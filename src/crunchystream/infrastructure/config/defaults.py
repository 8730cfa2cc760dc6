"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "environment": "dev",
    "api": {
        "base_url": "https://www.crunchyroll.com",
        "play_service_url": "https://cr-play-service.prd.crunchyrollsvc.com",
        "locale": "en-US",
        "preferred_audio_locale": None,
    },
    "http": {
        "timeout_seconds": 30.0,
        "user_agent": "Crunchyroll/3.60.0 Android/9 okhttp/4.12.0",
        "download_user_agent": (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:128.0) "
            "Gecko/20100101 Firefox/128.0"
        ),
    },
    "streaming": {
        "strict": True,
        "concurrency": 4,
        "release_active_streams": False,
    },
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
    },
}
