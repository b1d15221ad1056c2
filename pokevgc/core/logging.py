"""JSON-lines logging with a per-request correlation id.

Only whitelisted ``extra`` fields reach the output, and anything that looks
like a bearer or refresh token inside a message is masked.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any, TextIO

CORRELATION_ID_CTX: ContextVar[str] = ContextVar("correlation_id", default="")

LOG_EXTRA_FIELDS = (
    "path",
    "method",
    "status_code",
    "duration_ms",
    "user_id",
    "role",
    "move",
    "species",
)

_SECRET_PATTERNS = (
    re.compile(r"(?i)(bearer\s+)[A-Za-z0-9._~+/=-]+"),
    re.compile(r"\b[0-9a-f]{96}\b"),
)
_MASK = "[redacted]"

# Access lines duplicate request_completed.
_QUIET_LOGGERS = ("uvicorn.access",)


def redact(message: str) -> str:
    for pattern in _SECRET_PATTERNS:
        message = pattern.sub(
            lambda match: f"{match.group(1) if match.groups() else ''}{_MASK}", message
        )
    return message


class JsonLogFormatter(logging.Formatter):
    """One compact JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": redact(record.getMessage()),
        }
        correlation_id = CORRELATION_ID_CTX.get()
        if correlation_id:
            payload["correlation_id"] = correlation_id

        for key in LOG_EXTRA_FIELDS:
            value = getattr(record, key, None)
            if value not in (None, ""):
                payload[key] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", stream: TextIO | None = None) -> None:
    """Route the root logger to stdout as JSON lines."""
    handler = logging.StreamHandler(stream=stream or sys.stdout)
    handler.setFormatter(JsonLogFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.addHandler(handler)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def set_correlation_id(correlation_id: str) -> Token[str]:
    return CORRELATION_ID_CTX.set(correlation_id)


def reset_correlation_id(token: Token[str]) -> None:
    CORRELATION_ID_CTX.reset(token)
