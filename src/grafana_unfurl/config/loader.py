"""
Configuration file loading.

The YAML file uses the camelCase layout below. Values found in the file take
precedence over GRAFANA_UNFURL_* environment variables.

    urlPath: /
    grafana: {url, matchUrl, retention, cleanupInterval, headers, render: {width, height}}
    s3: {bucket, root, endpoint, region, accessKeyId, secretAccessKey,
         urlSigning: {accessKeyId, secretAccessKey}}
    slack: {botToken, signingSecret}
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any

import pydantic
import structlog
import yaml

from grafana_unfurl.config.settings import Settings
from grafana_unfurl.core.errors import ConfigurationError

logger = structlog.get_logger()

# (yaml path, settings field)
_FIELD_MAP: list[tuple[tuple[str, ...], str]] = [
    (("urlPath",), "url_path"),
    (("grafana", "url"), "grafana_url"),
    (("grafana", "matchUrl"), "grafana_match_url"),
    (("grafana", "headers"), "grafana_headers"),
    (("grafana", "retention"), "grafana_retention"),
    (("grafana", "cleanupInterval"), "grafana_cleanup_interval"),
    (("grafana", "render", "width"), "grafana_render_width"),
    (("grafana", "render", "height"), "grafana_render_height"),
    (("grafana", "render", "timeout"), "grafana_render_timeout"),
    (("s3", "bucket"), "s3_bucket"),
    (("s3", "root"), "s3_root"),
    (("s3", "endpoint"), "s3_endpoint"),
    (("s3", "region"), "s3_region"),
    (("s3", "accessKeyId"), "s3_access_key_id"),
    (("s3", "secretAccessKey"), "s3_secret_access_key"),
    (("s3", "urlSigning", "accessKeyId"), "s3_url_signing_access_key_id"),
    (("s3", "urlSigning", "secretAccessKey"), "s3_url_signing_secret_access_key"),
    (("s3", "timeout"), "storage_timeout"),
    (("slack", "botToken"), "slack_bot_token"),
    (("slack", "signingSecret"), "slack_signing_secret"),
    (("logLevel",), "log_level"),
    (("logFormat",), "log_format"),
]

_SENSITIVE_FIELDS = (
    "s3_access_key_id",
    "s3_secret_access_key",
    "s3_url_signing_access_key_id",
    "s3_url_signing_secret_access_key",
    "slack_bot_token",
    "slack_signing_secret",
)
_SENSITIVE_HEADERS = ("Authorization", "Cookie")


def _lookup(data: dict[str, Any], path: tuple[str, ...]) -> Any:
    node: Any = data
    for part in path:
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node


def read_config_file(path: str | Path) -> dict[str, Any]:
    """Read the YAML config file and flatten it to Settings field names."""
    config_path = Path(path)
    try:
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    except OSError as exc:
        raise ConfigurationError(f"Unable to read config file {config_path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Unable to parse config file {config_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {config_path} must contain a mapping")

    values: dict[str, Any] = {}
    for yaml_path, field_name in _FIELD_MAP:
        value = _lookup(data, yaml_path)
        if value is not None:
            values[field_name] = value
    return values


def load_settings(config_path: str | Path | None = None) -> Settings:
    """
    Build Settings from an optional YAML file plus the environment.

    Raises:
        ConfigurationError: the file is unreadable or the result is invalid
    """
    values: dict[str, Any] = {}
    if config_path is not None and Path(config_path).exists():
        values = read_config_file(config_path)
        logger.debug("config_file_loaded", path=str(config_path))
    elif config_path is not None:
        logger.info("config_file_missing", path=str(config_path))

    try:
        return Settings(**values)
    except pydantic.ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'settings'}: {err['msg']}"
            for err in exc.errors()
        )
        raise ConfigurationError(f"Unable to validate config: {problems}") from exc


def _mask(value: Any) -> Any:
    return value if value is None else "XXXX"


def mask_sensitive(settings: Settings) -> dict[str, Any]:
    """Return a dump of the settings with credentials replaced by XXXX."""
    masked = copy.deepcopy(settings.model_dump())
    for field_name in _SENSITIVE_FIELDS:
        masked[field_name] = _mask(masked.get(field_name))
    headers = masked.get("grafana_headers") or {}
    for header in _SENSITIVE_HEADERS:
        if header in headers:
            headers[header] = _mask(headers[header])
    return masked
