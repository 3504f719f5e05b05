"""
Application settings using Pydantic.

Provides environment-based configuration loading with GRAFANA_UNFURL_ prefix.
Durations accept either a number of seconds or a "<qty><s|m|h|d>" string.
"""

from __future__ import annotations

import re
from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings

_DURATION_RE = re.compile(r"^(?P<qty>\d+)(?P<suffix>[smhd])$")
_SUFFIX_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(value: str | int, path: str | None = None) -> int:
    """Convert a duration such as "30d" or "15m" to seconds."""
    if isinstance(value, int):
        return value
    match = _DURATION_RE.match(value.strip())
    if match is None:
        raise ValueError(
            f"The duration {value!r} specified at {path or 'unknown'} must be a number "
            "followed by a suffix (s, m, h, d)"
        )
    return int(match.group("qty")) * _SUFFIX_SECONDS[match.group("suffix")]


def _with_trailing_slash(value: str) -> str:
    return value if value.endswith("/") else f"{value}/"


class Settings(BaseSettings):
    """Application settings."""

    # HTTP surface
    url_path: str = "/"

    # Grafana
    grafana_url: str
    grafana_match_url: str
    grafana_headers: dict[str, str] = {}
    grafana_retention: int = 30 * 86400
    grafana_cleanup_interval: int = 86400
    grafana_render_width: int = 1000
    grafana_render_height: int = 500
    grafana_render_timeout: float = 60.0

    # S3
    s3_bucket: str
    s3_root: str = ""
    s3_endpoint: str | None = None
    s3_region: str | None = None
    s3_access_key_id: str | None = None
    s3_secret_access_key: str | None = None
    s3_url_signing_access_key_id: str | None = None
    s3_url_signing_secret_access_key: str | None = None
    storage_timeout: float = 30.0

    # Slack
    slack_bot_token: str
    slack_signing_secret: str | None = None
    slack_base_url: str = "https://slack.com/api"

    # Pending panel selections
    selection_ttl: int = 86400
    selection_max_pending: int = 1000

    # HTTP client settings
    http_timeout: int = 30

    # Logging
    log_level: str = "info"
    log_format: str = "json"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "GRAFANA_UNFURL_"

    @field_validator("grafana_retention", "grafana_cleanup_interval", "selection_ttl", mode="before")
    @classmethod
    def _parse_duration(cls, value: str | int, info) -> int:  # noqa: ANN001
        return parse_duration(value, info.field_name)

    @field_validator("grafana_url", "grafana_match_url", "url_path")
    @classmethod
    def _normalize_url(cls, value: str) -> str:
        return _with_trailing_slash(value)

    @field_validator("s3_root")
    @classmethod
    def _normalize_root(cls, value: str) -> str:
        value = value.lstrip("/")
        return _with_trailing_slash(value) if value else value

    @model_validator(mode="after")
    def _default_signing_credentials(self) -> "Settings":
        if self.s3_url_signing_access_key_id is None:
            self.s3_url_signing_access_key_id = self.s3_access_key_id
        if self.s3_url_signing_secret_access_key is None:
            self.s3_url_signing_secret_access_key = self.s3_secret_access_key
        if not self.s3_url_signing_access_key_id or not self.s3_url_signing_secret_access_key:
            raise ValueError(
                "S3 URL signing credentials are required: set s3.urlSigning or s3.accessKeyId/"
                "s3.secretAccessKey"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance built from the environment."""
    return Settings()  # type: ignore[call-arg]
