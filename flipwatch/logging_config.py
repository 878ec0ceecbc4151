# flipwatch/logging_config.py
from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Optional

from .middleware.request_context import get_request_id

# keys callers attach with extra={...}; anything else on the record is ignored
SYNC_EXTRAS = ("market", "market_code", "page", "batch", "property_id", "task_id")
HTTP_EXTRAS = ("method", "path", "status_code", "latency_ms")

# noisy libraries and the env var that overrides each one's level
_LIBRARY_LEVELS = {
    "uvicorn.access": ("LOG_LEVEL", None),
    "httpx": ("HTTP_LOG_LEVEL", "WARNING"),
    "httpcore": ("HTTP_LOG_LEVEL", "WARNING"),
    "sqlalchemy.engine": ("SQL_LOG_LEVEL", "WARNING"),
    "celery": ("CELERY_LOG_LEVEL", None),
}


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line: ts, level, logger, message, plus request_id
    while an API request is in flight, the sync/http extras that were set,
    and the formatted traceback under "exc".
    """

    extra_keys: tuple[str, ...] = SYNC_EXTRAS + HTTP_EXTRAS

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        rid = get_request_id()
        if rid:
            payload["request_id"] = rid

        for k in self.extra_keys:
            v = getattr(record, k, None)
            if v is not None:
                payload[k] = v

        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def _level(env_var: str, fallback: str) -> str:
    return (os.getenv(env_var) or fallback).upper()


def configure_logging(level: Optional[str] = None) -> None:
    """
    Route the root logger to stdout through JsonFormatter. Safe to call more
    than once (app factory, uvicorn reload, celery worker start).
    """
    root_level = (level or _level("LOG_LEVEL", "INFO")).upper()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())

    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(handler)
    root.setLevel(root_level)

    for name, (env_var, default) in _LIBRARY_LEVELS.items():
        logging.getLogger(name).setLevel(_level(env_var, default or root_level))
