"""Redaction helpers for safe logging.

Booking topics are free text written by users and routinely contain names,
phone numbers or e-mail addresses; PIN codes open doors. Neither may reach
the logs, whatever the booking's privacy flag says.
"""

import re
from datetime import date, datetime
from enum import Enum
from typing import Any

_PHONE_PATTERN = re.compile(r"\+?\d[\d\s\-()]{8,}\d")
_EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

_REDACTED = "[REDACTED]"

# Keys whose values are dropped outright
SENSITIVE_KEYS = frozenset({"topic", "pin_code", "pinCode", "password"})


def redact_string(value: str) -> str:
    """Mask phone and e-mail patterns in a string."""
    result = _PHONE_PATTERN.sub(_REDACTED, value)
    result = _EMAIL_PATTERN.sub(_REDACTED, result)
    return result


def redact_value(value: Any) -> str:
    """Render any value for safe logging."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, str):
        return redact_string(value)
    if isinstance(value, dict):
        # Structure only, never values
        return f"dict(keys={list(value.keys())})"
    if isinstance(value, (list, tuple, set, frozenset)):
        return f"list(len={len(value)})"
    return f"<{type(value).__name__}>"


def safe_log_context(**kwargs: Any) -> dict[str, str]:
    """Build a context dict safe for logging."""
    return {
        k: (_REDACTED if k in SENSITIVE_KEYS else redact_value(v))
        for k, v in kwargs.items()
    }
