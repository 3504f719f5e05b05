"""
Error taxonomy for grafana-unfurl.

Every domain error carries the HTTP status the API layer answers with when
the error reaches a caller. Chat-driven paths log these errors instead of
surfacing them.

Status codes:
- 400: ParseError (malformed or unsupported dashboard URL)
- 404: SelectionNotFoundError (stale or unknown selection token)
- 422: ValidationError (payload does not match the expected shape)
- 502: RenderError, StorageError, MetadataFetchError, SlackAPIError
- 504: RenderError / StorageError with ErrorKind.TIMEOUT
"""

from __future__ import annotations

import functools
import sys
import traceback
from enum import Enum, IntEnum
from typing import Any, Callable, TypeVar

import structlog

logger = structlog.get_logger()


class ExitCode(IntEnum):
    """Exit codes for the command-line entry point."""

    SUCCESS = 0
    CONFIG_ERROR = 10
    UNKNOWN_ERROR = 127


class ErrorKind(str, Enum):
    UPSTREAM = "upstream"
    TIMEOUT = "timeout"


class UnfurlError(Exception):
    """Base exception for grafana-unfurl errors."""

    status_code: int = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(UnfurlError):
    """Raised for configuration-related errors."""


class ParseError(UnfurlError):
    """Raised when a URL cannot be turned into a dashboard reference."""

    status_code = 400


class ValidationError(UnfurlError):
    """Raised when a payload does not match its expected shape."""

    status_code = 422


class SelectionNotFoundError(UnfurlError):
    """Raised when a selection token is unknown, expired or already consumed."""

    status_code = 404


class UpstreamError(UnfurlError):
    """Base for failures of an external service."""

    status_code = 502

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        *,
        kind: ErrorKind = ErrorKind.UPSTREAM,
    ):
        super().__init__(message, details)
        self.kind = kind
        if kind is ErrorKind.TIMEOUT:
            self.status_code = 504


class RenderError(UpstreamError):
    """Raised when Grafana fails to render a panel."""


class StorageError(UpstreamError):
    """Raised when an object storage operation fails."""


class MetadataFetchError(UpstreamError):
    """Raised when dashboard metadata cannot be fetched or validated."""


class SlackAPIError(UpstreamError):
    """Raised when the Slack Web API answers with ok=false."""


F = TypeVar("F", bound=Callable[..., int])


def main_with_error_handling(
    *,
    show_traceback: bool = False,
    log_errors: bool = True,
) -> Callable[[F], F]:
    """
    Decorator for the CLI main function that converts exceptions to exit codes.

    Exit codes:
        - ConfigurationError: 10
        - KeyboardInterrupt: 130 (standard for SIGINT)
        - Other exceptions: 127
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> int:
            try:
                return func(*args, **kwargs)
            except ConfigurationError as e:
                if log_errors:
                    logger.error(
                        "configuration_error",
                        message=e.message,
                        exit_code=ExitCode.CONFIG_ERROR,
                        **e.details,
                    )
                if show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return ExitCode.CONFIG_ERROR
            except KeyboardInterrupt:
                if log_errors:
                    logger.info("command_interrupted")
                return 130
            except Exception as e:
                if log_errors:
                    logger.error(
                        "unexpected_error",
                        error_type=type(e).__name__,
                        message=str(e),
                        exit_code=ExitCode.UNKNOWN_ERROR,
                    )
                if show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return ExitCode.UNKNOWN_ERROR

        return wrapper  # type: ignore[return-value]

    return decorator


def format_error_message(error: UnfurlError) -> str:
    """Format an error message for display to users."""
    msg = error.message
    if error.details:
        detail_str = ", ".join(f"{k}={v}" for k, v in error.details.items())
        msg = f"{msg} ({detail_str})"
    return msg
