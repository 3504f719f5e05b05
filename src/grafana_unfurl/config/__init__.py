"""
grafana-unfurl configuration.

Pydantic-based settings (environment variables, .env files) optionally
populated from a YAML config file.
"""

from grafana_unfurl.config.loader import load_settings, mask_sensitive, read_config_file
from grafana_unfurl.config.settings import Settings, get_settings, parse_duration

__all__ = [
    "Settings",
    "get_settings",
    "parse_duration",
    "load_settings",
    "mask_sensitive",
    "read_config_file",
]
