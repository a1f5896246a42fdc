from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Union


class JsonFormatter(logging.Formatter):
    """
    Structured JSON formatter for the similarity engine and its callers.

    One JSON object per record, with a fixed whitelist of `extra` keys so
    that log lines stay machine-readable and stable across modules.
    """

    _extra_keys: Iterable[str] = (
        "event",
        "step",
        "duration_ms",
        "exception_type",
        # Engine context
        "profiles",
        "internal_id",
        "user_id",
        "movie_id",
        "threshold",
        "damping_floor",
        # Data / config context
        "source",
        "path",
        "rows",
        "columns",
        "missing_columns",
        "env_var",
        # Evaluation context
        "users_evaluated",
        "mae",
        "rmse",
        "coverage",
    )

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in self._extra_keys:
            if hasattr(record, key):
                payload[key] = getattr(record, key)

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logger(name: str = "recommender", level: Union[int, str] = logging.INFO) -> logging.Logger:
    """
    Return a logger writing JSON lines to stdout.

    Idempotent: repeated calls never stack handlers. The logger does not
    propagate, so tests attach `caplog.handler` to it directly.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not any(isinstance(h.formatter, JsonFormatter) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)

    logger.propagate = False
    return logger


def set_package_level(prefix: str, level: Union[int, str]) -> None:
    """Apply `level` to every already-created logger under `prefix`."""
    for name in list(logging.root.manager.loggerDict):
        if name == prefix or name.startswith(prefix + "."):
            logging.getLogger(name).setLevel(level)
