"""
Logging setup for the Herbario API.

One handler on the root logger. Production writes one JSON object per line;
other environments get a short human-readable line. Every record carries the
request's correlation id, and credential-bearing extras (passwords, tokens,
Authorization headers) are masked before any formatter sees them.

Usage:
    from herbario.logging_config import get_logger
    logger = get_logger(__name__)
    logger.info("Plant accepted", extra={"plant_id": str(plant.id)})
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Set by CorrelationIdMiddleware for the duration of a request
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

REDACTED = "***"
SENSITIVE_FIELDS = frozenset({
    "authorization",
    "password",
    "password_hash",
    "secret_key",
    "token",
})

# Attributes every LogRecord has; anything else came in through extra=
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "correlation_id"}

_NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "multipart")


def get_correlation_id() -> Optional[str]:
    return correlation_id_var.get()


def extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    """Structured fields passed through ``extra=``, minus empty values."""
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _STANDARD_ATTRS and value is not None
    }


class CorrelationIdFilter(logging.Filter):
    """Stamp the correlation id on each record and mask sensitive extras."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or "-"  # type: ignore[attr-defined]
        for key in SENSITIVE_FIELDS.intersection(vars(record)):
            setattr(record, key, REDACTED)
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per record, for log aggregators."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        correlation_id = getattr(record, "correlation_id", "-")
        if correlation_id != "-":
            entry["correlation_id"] = correlation_id
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        for key, value in extra_fields(record).items():
            try:
                json.dumps(value)
            except (TypeError, ValueError):
                value = str(value)
            entry[key] = value
        return json.dumps(entry)


class ConsoleFormatter(logging.Formatter):
    """Readable single line; structured extras are appended as key=value."""

    def __init__(self) -> None:
        super().__init__(
            "%(asctime)s %(levelname)-5s [%(name)s] corr=%(correlation_id)s %(message)s",
            datefmt="%H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = "-"  # type: ignore[attr-defined]
        line = super().format(record)
        extras = extra_fields(record)
        if extras:
            line += " " + " ".join(f"{k}={v}" for k, v in sorted(extras.items()))
        return line


def configure_logging(
    *,
    log_level: str = "INFO",
    environment: str = "development",
    debug: bool = False,
) -> None:
    """
    Install the application log handler on the root logger.

    Safe to call more than once; earlier handlers are replaced.
    """
    level = logging.DEBUG if debug else getattr(logging, log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(JsonFormatter() if environment == "production" else ConsoleFormatter())

    root = logging.getLogger()
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
