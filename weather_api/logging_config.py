"""Structured logging configuration.

JSON (production) or plain-text (development) log lines, each tagged with
the request correlation ID and, once the access gate has seen one, a
redacted prefix of the presented API key.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any

# Request-scoped context, populated by the correlation middleware and the gate
correlation_id_ctx: ContextVar[str | None] = ContextVar("correlation_id", default=None)
api_key_prefix_ctx: ContextVar[str | None] = ContextVar("api_key_prefix", default=None)

_KEY_PREFIX_LENGTH = 8


def redact_api_key(api_key: str | None) -> str:
    """Return a loggable stand-in for a presented API key."""
    if not api_key:
        return "missing"
    if len(api_key) <= _KEY_PREFIX_LENGTH:
        return "short"
    return api_key[:_KEY_PREFIX_LENGTH] + "..."


def _context_fields() -> dict[str, str]:
    fields = {}
    correlation_id = correlation_id_ctx.get()
    if correlation_id:
        fields["correlation_id"] = correlation_id
    key_prefix = api_key_prefix_ctx.get()
    if key_prefix:
        fields["api_key"] = key_prefix
    return fields


class JsonFormatter(logging.Formatter):
    """Render each record as a single JSON object.

    Keys: timestamp, level, service, logger, message, request context
    (correlation_id, api_key), any structured extra fields, and for
    ERROR and above the source location.
    """

    def __init__(self, service_name: str = "weather-api"):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_data.update(_context_fields())

        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields:
            log_data.update(extra_fields)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if record.levelno >= logging.ERROR:
            log_data["location"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable formatter for local development.

    Format: timestamp - service - level - [correlation_id] - message key=value...
    """

    def __init__(self, service_name: str = "weather-api"):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        correlation_id = correlation_id_ctx.get() or "-"

        line = (
            f"{timestamp} - {self.service_name} - {record.levelname} - "
            f"[{correlation_id}] - {record.getMessage()}"
        )

        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields:
            line += " " + " ".join(f"{k}={v}" for k, v in extra_fields.items())

        if record.exc_info:
            line += f"\n{self.formatException(record.exc_info)}"

        return line


def setup_logging(
    log_format: str = "json",
    log_level: str = "INFO",
    service_name: str = "weather-api",
) -> None:
    """Install a single stdout handler on the root logger.

    Args:
        log_format: 'json' for structured logging, 'text' for human-readable
        log_level: Logging level name (DEBUG, INFO, WARNING, ...)
        service_name: Service name stamped on every line
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if log_format.lower() == "json":
        handler.setFormatter(JsonFormatter(service_name=service_name))
    else:
        handler.setFormatter(TextFormatter(service_name=service_name))
    root_logger.addHandler(handler)

    # Quiet chatty libraries
    for noisy in ("uvicorn.access", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


class StructuredLogger:
    """Thin wrapper over logging.Logger accepting keyword extra fields."""

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, msg: str, extra_fields: dict[str, Any]) -> None:
        extra = {"extra_fields": extra_fields} if extra_fields else {}
        self._logger.log(level, msg, extra=extra)

    def debug(self, msg: str, **extra_fields: Any) -> None:
        self._log(logging.DEBUG, msg, extra_fields)

    def info(self, msg: str, **extra_fields: Any) -> None:
        self._log(logging.INFO, msg, extra_fields)

    def warning(self, msg: str, **extra_fields: Any) -> None:
        self._log(logging.WARNING, msg, extra_fields)

    def error(self, msg: str, **extra_fields: Any) -> None:
        self._log(logging.ERROR, msg, extra_fields)

    def exception(self, msg: str, **extra_fields: Any) -> None:
        """Log at ERROR with the active exception's traceback."""
        extra = {"extra_fields": extra_fields} if extra_fields else {}
        self._logger.exception(msg, extra=extra)


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger (typically ``get_logger(__name__)``)."""
    return StructuredLogger(name)
