"""Root test configuration."""

from __future__ import annotations

import logging

import pytest
import structlog
from grafana_unfurl.config import Settings

from fakes import GRAFANA_URL, MATCH_URL


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        grafana_url=GRAFANA_URL,
        grafana_match_url=MATCH_URL,
        grafana_retention="1h",
        grafana_cleanup_interval="10m",
        s3_bucket="unfurl-bucket",
        s3_root="/cache",
        s3_access_key_id="upload-key",
        s3_secret_access_key="upload-secret",
        slack_bot_token="xoxb-test",
    )
