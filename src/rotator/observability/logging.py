"""
Structured logging configuration for the rotator.

Provides JSON and human-readable formatters, a context-carrying logger
with rotation lifecycle events, and a configure_logging() entry point
used by the CLI.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

ROOT_LOGGER = "rotator"

_RESERVED_ATTRS = frozenset(
    (
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    )
)


class StructuredFormatter(logging.Formatter):
    """
    Formatter that outputs one JSON object per log record.

    Extra fields passed to the logger are included at the top level,
    which suits Cloud Logging and other log aggregation systems.
    """

    def __init__(
        self,
        include_location: bool = False,
        extra_fields: dict[str, Any] | None = None,
    ):
        """
        Initialize structured formatter.

        Args:
            include_location: Include file/line location
            extra_fields: Additional fields to include in every log
        """
        super().__init__()
        self.include_location = include_location
        self.extra_fields = extra_fields or {}

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "severity": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_location:
            log_data["location"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_data[key] = value

        log_data.update(self.extra_fields)

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Formatter that outputs human-readable logs.

    Useful for local runs and run-once invocations from a terminal.
    """

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True):
        """
        Initialize human-readable formatter.

        Args:
            use_colors: Use ANSI colors when writing to a terminal
        """
        super().__init__()
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as human-readable text."""
        timestamp = datetime.fromtimestamp(record.created, timezone.utc).strftime(
            "%Y-%m-%d %H:%M:%S"
        )
        level = record.levelname
        if self.use_colors and level in self.COLORS:
            level = f"{self.COLORS[level]}{level}{self.RESET}"

        output = f"[{timestamp}] {level:>8} {record.name}: {record.getMessage()}"

        if record.exc_info:
            output += "\n" + self.formatException(record.exc_info)

        return output


class RotatorLogger:
    """
    Wrapper around Python logging for rotation events.

    Context fields and event fields are attached to records as extras, so
    the JSON formatter emits them as top-level keys.
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)
        self._context: dict[str, Any] = {}

    def set_context(self, **kwargs: Any) -> None:
        """Set persistent context fields for all logs."""
        self._context.update(kwargs)

    def _log(self, level: int, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        extra = {**self._context, **kwargs}
        self.logger.log(level, message, exc_info=exc_info, extra=extra)

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        self._log(logging.ERROR, message, exc_info=exc_info, **kwargs)

    def pass_started(self, secret_count: int) -> None:
        """Log reconciliation pass start."""
        self.debug(
            f"Reconciliation pass started for {secret_count} secrets",
            event_type="pass.started",
            secret_count=secret_count,
        )

    def pass_completed(self, succeeded: int, failed: int, duration_seconds: float) -> None:
        """Log reconciliation pass completion."""
        level = logging.WARNING if failed else logging.INFO
        self._log(
            level,
            f"Reconciliation pass completed: {succeeded} succeeded, {failed} failed "
            f"in {duration_seconds:.2f}s",
            event_type="pass.completed",
            succeeded=succeeded,
            failed=failed,
            duration_seconds=duration_seconds,
        )

    def action_applied(self, secret_name: str, action: str) -> None:
        """Log a lifecycle action that was applied to a secret."""
        self.info(
            f"Applied {action} to {secret_name}",
            event_type="action.applied",
            secret_name=secret_name,
            action=action,
        )

    def secret_failed(self, secret_name: str, error_kind: str, error: str) -> None:
        """Log a per-secret failure."""
        self.error(
            f"Rotation of {secret_name} failed ({error_kind}): {error}",
            event_type="secret.failed",
            secret_name=secret_name,
            error_kind=error_kind,
            error=error,
        )


def configure_logging(
    level: str = "INFO",
    format: str = "human",
    output: str = "stderr",
    extra_fields: dict[str, Any] | None = None,
) -> None:
    """
    Configure logging for the rotator.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: Output format (human, json)
        output: Output destination (stderr, stdout)
        extra_fields: Extra fields to include in structured logs
    """
    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    if output == "stdout":
        handler = logging.StreamHandler(sys.stdout)
    else:
        handler = logging.StreamHandler(sys.stderr)

    if format == "json":
        formatter: logging.Formatter = StructuredFormatter(extra_fields=extra_fields)
    else:
        formatter = HumanReadableFormatter()

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)


def get_logger(name: str) -> RotatorLogger:
    """
    Get a rotator logger instance.

    Args:
        name: Logger name relative to the rotator package

    Returns:
        RotatorLogger instance
    """
    return RotatorLogger(f"{ROOT_LOGGER}.{name}")
