"""Structured JSON logging with correlation ID support."""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

from .correlation import get_correlation_id
from .redaction import SENSITIVE_KEYS

SERVICE_NAME = "roombook"


class JsonFormatter(logging.Formatter):
    """One JSON object per record: level, logger, correlationId, extra_fields.

    Sensitive keys are stripped from ``extra_fields`` even when a caller
    skipped ``safe_log_context``.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_obj: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "service": SERVICE_NAME,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = get_correlation_id()
        if correlation_id:
            log_obj["correlationId"] = correlation_id

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields:
            log_obj.update(
                {k: v for k, v in extra_fields.items() if k not in SENSITIVE_KEYS}
            )

        return json.dumps(log_obj, default=str)


def _json_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    return handler


def get_logger(name: str) -> logging.Logger:
    """Logger with its own JSON handler, for modules outside ``roombook.*``
    or used before configure_logging() runs."""
    logger = logging.getLogger(name)

    if not logger.handlers:
        logger.addHandler(_json_handler())
        logger.setLevel(logging.INFO)
        logger.propagate = False

    return logger


def configure_logging(level: int | str | None = None) -> None:
    """Route every ``roombook.*`` logger through the JSON formatter.

    Domain modules use plain ``logging.getLogger(__name__)``; calling this
    once at process start gives them the same output as ``get_logger``.
    The level defaults to ROOMBOOK_LOG_LEVEL, then INFO.
    """
    if level is None:
        level = os.environ.get("ROOMBOOK_LOG_LEVEL", "INFO").upper()
    root = logging.getLogger(SERVICE_NAME)
    if not any(isinstance(h.formatter, JsonFormatter) for h in root.handlers):
        root.addHandler(_json_handler())
    root.setLevel(level)
