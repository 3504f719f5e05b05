"""Command-line entry point: load configuration and serve the API."""

from __future__ import annotations

import argparse
import sys
from typing import Sequence

import structlog
import uvicorn

from grafana_unfurl.api.main import create_app
from grafana_unfurl.config import load_settings, mask_sensitive
from grafana_unfurl.core.errors import ConfigurationError, ExitCode, main_with_error_handling
from grafana_unfurl.logging import LOG_FORMATS, configure_logging

logger = structlog.get_logger()

LOG_LEVELS = ("error", "warning", "info", "debug")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="grafana-unfurl", description="Grafana Unfurler for Slack"
    )
    parser.add_argument(
        "-c", "--config", default="config.yaml", help="Path to the config file (default: config.yaml)"
    )
    parser.add_argument("--log-level", choices=LOG_LEVELS, help="Log level (default: info)")
    parser.add_argument("--log-format", choices=LOG_FORMATS, help="Log format (default: json)")
    parser.add_argument("--host", default="0.0.0.0", help="Address to listen on")
    parser.add_argument("--port", type=int, default=3000, help="Port to listen on")
    return parser


@main_with_error_handling()
def run(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = load_settings(args.config)
    except ConfigurationError:
        configure_logging(args.log_level or "info", args.log_format or "json")
        raise

    configure_logging(
        args.log_level or settings.log_level,
        args.log_format or settings.log_format,
    )
    logger.debug("configuration_loaded", config=mask_sensitive(settings))

    app = create_app(settings)
    uvicorn.run(app, host=args.host, port=args.port, log_config=None)
    return ExitCode.SUCCESS


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
