"""JSON log lines enriched with the current request context."""
from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone

from foodhub.core.config import LOG_LEVEL
from foodhub.core.request_context import get_request_id, get_restaurant, get_user_id

_SECRET_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"(authorization\s*[:=]\s*bearer\s+)([^\s\"]+)",
        r"(\b(?:access_)?token\s*[:=]\s*)([^\s\",}]+)",
        r"(password(?:_hash)?\s*[:=]\s*)([^\s\",}]+)",
        r"(secret(?:_key)?\s*[:=]\s*)([^\s\",}]+)",
    )
)

# LogRecord attributes copied to the payload when a caller passes them via ``extra``
_EXTRA_FIELDS = ("endpoint", "method", "status_code", "event", "order_id")


def mask_secrets(text: str) -> str:
    for pattern in _SECRET_PATTERNS:
        text = pattern.sub(r"\1***", text)
    return text


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "request_id": getattr(record, "request_id", None) or get_request_id(),
            "restaurant": getattr(record, "restaurant", None) or get_restaurant(),
            "user_id": getattr(record, "user_id", None) or get_user_id(),
            "message": mask_secrets(record.getMessage()),
            "duration_ms": getattr(record, "duration_ms", None),
        }
        payload.update(
            {name: getattr(record, name) for name in _EXTRA_FIELDS if getattr(record, name, None) is not None}
        )
        if record.exc_info:
            payload["exception"] = mask_secrets(self.formatException(record.exc_info))
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: str = LOG_LEVEL) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers[:] = [handler]
    root_logger.setLevel(level)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(level)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
