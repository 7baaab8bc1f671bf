from __future__ import annotations

import json
import logging
from datetime import UTC, datetime


HTTP_LOGGER_NAME = "powertap.http"
# httpx and httpcore duplicate what the diagnostic interceptor already records.
_QUIETED_LOGGERS = ("httpx", "httpcore")

_RECORD_FIELDS = ("method", "url", "status_code", "duration_ms", "operation", "envelope_code")


def _resolve_level(name: str | None, default: int) -> int:
    if not name:
        return default
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else default


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in _RECORD_FIELDS:
            if hasattr(record, field):
                payload[field] = getattr(record, field)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(*, log_level: str, app_env: str, http_log_level: str | None = None) -> None:
    """Installs a single root handler.

    Request/response diagnostics are emitted at DEBUG on ``powertap.http``.
    ``http_log_level`` sets that logger independently of the root level, so
    wire traces can be switched on without making the rest of the app verbose.
    """
    level = _resolve_level(log_level, logging.INFO)
    handler = logging.StreamHandler()
    if app_env.lower() == "production":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s %(message)s"))
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)
    root.addHandler(handler)

    logging.getLogger(HTTP_LOGGER_NAME).setLevel(_resolve_level(http_log_level, level))
    for name in _QUIETED_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
