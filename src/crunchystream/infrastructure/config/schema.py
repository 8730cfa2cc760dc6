"""Pydantic configuration models with validation."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]


class AppConfig(BaseModel):
    """
    Canonical client configuration (validated, final).

    Note:
    - YAML is expected to be sectioned (api/http/streaming/logging).
    - Environment variables are handled by EnvOverrides(BaseSettings) to allow strict
      precedence control (defaults < YAML < ENV < CLI) in load.py.
    """

    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )

    # API (YAML section: api.*)
    api_base_url: str = Field(
        default="https://www.crunchyroll.com",
        validation_alias=AliasChoices(
            "api_base_url",
            AliasPath("api", "base_url"),
        ),
        description="Base URL of the content and auth API.",
    )
    play_service_url: str = Field(
        default="https://cr-play-service.prd.crunchyrollsvc.com",
        validation_alias=AliasChoices(
            "play_service_url",
            AliasPath("api", "play_service_url"),
        ),
        description="Base URL of the playback negotiation service.",
    )
    locale: str = Field(
        default="en-US",
        validation_alias=AliasChoices(
            "locale",
            AliasPath("api", "locale"),
        ),
        description="Locale for localized API responses.",
    )
    preferred_audio_locale: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "preferred_audio_locale",
            AliasPath("api", "preferred_audio_locale"),
        ),
        description="Audio locale the API should prefer when picking versions.",
    )

    # HTTP (YAML section: http.*)
    http_timeout_seconds: float = Field(
        default=30.0,
        validation_alias=AliasChoices(
            "http_timeout_seconds",
            AliasPath("http", "timeout_seconds"),
        ),
        description="HTTP timeout in seconds for API and CDN requests.",
    )
    http_user_agent: str = Field(
        default="Crunchyroll/3.60.0 Android/9 okhttp/4.12.0",
        validation_alias=AliasChoices(
            "http_user_agent",
            AliasPath("http", "user_agent"),
        ),
        description="User-Agent header for API requests.",
    )
    http_download_user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:128.0) "
            "Gecko/20100101 Firefox/128.0"
        ),
        validation_alias=AliasChoices(
            "http_download_user_agent",
            AliasPath("http", "download_user_agent"),
        ),
        description="User-Agent header for manifest, key and segment downloads.",
    )

    # Streaming (YAML section: streaming.*)
    strict: bool = Field(
        default=True,
        validation_alias=AliasChoices(
            "strict",
            AliasPath("streaming", "strict"),
        ),
        description=(
            "Reject variants without codecs/resolution/frame-rate instead of "
            "using placeholder values."
        ),
    )
    concurrency: int = Field(
        default=4,
        validation_alias=AliasChoices(
            "concurrency",
            AliasPath("streaming", "concurrency"),
        ),
        description="Parallel segment downloads used by the CLI.",
    )
    release_active_streams: bool = Field(
        default=False,
        validation_alias=AliasChoices(
            "release_active_streams",
            AliasPath("streaming", "release_active_streams"),
        ),
        description=(
            "Deactivate the account's other sessions once when the play service "
            "reports too many active streams."
        ),
    )

    # Logging (YAML section: logging.*)
    log_level: LogLevel = Field(
        default="INFO",
        validation_alias=AliasChoices(
            "log_level",
            AliasPath("logging", "level"),
        ),
        description="Log level.",
    )
    log_format: Optional[LogFormat] = Field(
        default=None,
        validation_alias=AliasChoices(
            "log_format",
            AliasPath("logging", "format"),
        ),
        description=(
            "Log renderer format (console/json). If unset, derived from environment."
        ),
    )

    @field_validator("api_base_url", "play_service_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("http_timeout_seconds")
    @classmethod
    def _validate_http_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("http_timeout_seconds must be > 0")
        return v

    @field_validator("concurrency")
    @classmethod
    def _validate_concurrency(cls, v: int) -> int:
        if v < 1:
            raise ValueError("concurrency must be >= 1")
        return v

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        # Default log format: console in dev/test, json in prod.
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        return self

    def to_sectioned_dict(self) -> dict[str, Any]:
        """
        Dump configuration in the sectioned shape used by config.yaml.
        """
        return {
            "environment": self.environment,
            "api": {
                "base_url": self.api_base_url,
                "play_service_url": self.play_service_url,
                "locale": self.locale,
                "preferred_audio_locale": self.preferred_audio_locale,
            },
            "http": {
                "timeout_seconds": self.http_timeout_seconds,
                "user_agent": self.http_user_agent,
                "download_user_agent": self.http_download_user_agent,
            },
            "streaming": {
                "strict": self.strict,
                "concurrency": self.concurrency,
                "release_active_streams": self.release_active_streams,
            },
            "logging": {"level": self.log_level, "format": self.log_format},
        }


class EnvOverrides(BaseSettings):
    """
    Environment-variable overrides (all optional).

    Intended usage:
    - load.py creates EnvOverrides() to read CRUNCHYSTREAM_* variables,
      converts to dict of set values, merges into YAML/defaults,
      then validates AppConfig.

    Supported env var examples (flat, explicit):
    - CRUNCHYSTREAM_LOCALE
    - CRUNCHYSTREAM_HTTP_TIMEOUT_SECONDS
    - CRUNCHYSTREAM_STRICT
    - CRUNCHYSTREAM_LOG_LEVEL
    """

    model_config = SettingsConfigDict(
        env_prefix="CRUNCHYSTREAM_",
        extra="ignore",
        case_sensitive=False,
    )

    environment: Optional[Environment] = None

    api_base_url: Optional[str] = None
    play_service_url: Optional[str] = None
    locale: Optional[str] = None
    preferred_audio_locale: Optional[str] = None

    http_timeout_seconds: Optional[float] = None
    http_user_agent: Optional[str] = None
    http_download_user_agent: Optional[str] = None

    strict: Optional[bool] = None
    concurrency: Optional[int] = None
    release_active_streams: Optional[bool] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    def to_update_dict(self) -> dict[str, Any]:
        """
        Return only values that were actually provided (non-None), for merging.
        """
        return self.model_dump(exclude_none=True)
