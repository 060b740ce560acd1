from __future__ import annotations

import json
import logging
import sys
from typing import Any

from oauthbridge.core.config import settings

PROJECT_LOGGER = "oauthbridge"
REDACTED = "[redacted]"

# Keys whose values are credentials whenever they show up in a record's extra.
SENSITIVE_KEYS = frozenset(
    {
        "access_token",
        "refresh_token",
        "id_token",
        "token",
        "client_secret",
        "code",
        "state",
        "signature",
        "authorization",
        "provider_body",
    }
)

_RESERVED_ATTRS = set(vars(logging.makeLogRecord({})).keys()) | {"message", "asctime"}


def redact(key: str, value: Any) -> Any:
    return REDACTED if key.lower() in SENSITIVE_KEYS else value


class JsonFormatter(logging.Formatter):
    """One JSON object per line; extra fields are nested under "extra" with credentials redacted."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        for key, value in record.__dict__.items():
            if key.startswith("_") or key in payload or key in _RESERVED_ATTRS:
                continue
            payload.setdefault("extra", {})[key] = redact(key, value)
        return json.dumps(payload, default=str)


def init_logging(level: int | None = None) -> None:
    effective_level = level or getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.getLogger(PROJECT_LOGGER).setLevel(effective_level)
    # httpx logs every request URL at INFO; provider API URLs may carry query credentials.
    logging.getLogger("httpx").setLevel(logging.WARNING)

    root = logging.getLogger()
    if root.handlers:
        return
    handler = logging.StreamHandler(sys.stdout)
    if settings.LOG_FORMAT.lower() == "json":
        handler.setFormatter(JsonFormatter())
    else:
        fmt = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
        handler.setFormatter(logging.Formatter(fmt))
    root.setLevel(effective_level)
    root.addHandler(handler)
