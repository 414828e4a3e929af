"""
Logging setup for tablemap.

The mapping engine, the table store and the importer never configure logging;
they log through `get_logger(__name__)` and pass context with `extra=`
(table, field, rows, ...). The CLI configures the root logger once from
settings (`LOG_LEVEL`, `LOG_JSON`), either as console lines or as one JSON
object per record with the `extra=` fields promoted to top-level keys.

Usage:
    from tablemap.utils.logging import configure_from_settings, get_logger

    configure_from_settings()
    log = get_logger(__name__)
    log.warning("Field conversion failed", extra={"field": "published_at"})
    # LOG_JSON=1 -> {"level": "WARNING", ..., "field": "published_at"}
"""

from __future__ import annotations

import json
import logging
import logging.config
from typing import Any, Dict, Optional

from tablemap.config import Settings, get_settings

# Attributes every LogRecord carries; anything else arrived through `extra=`.
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime", "taskName"}

CONSOLE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Client libraries that log every request or pool event at INFO.
_CHATTY_LOGGERS = ("httpx", "httpcore", "psycopg.pool")


def _json_formatter(record: logging.LogRecord) -> str:
    """Render a record as one JSON object; `extra=` context becomes top-level keys."""
    payload: Dict[str, Any] = {
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
    }
    context = {key: value for key, value in vars(record).items() if key not in _STANDARD_ATTRS}
    nested = context.pop("extra", None)
    if isinstance(nested, dict):
        context.update(nested)
    elif nested is not None:
        context["extra"] = nested
    for key, value in context.items():
        payload.setdefault(key, value)
    if record.exc_info:
        payload["exc_info"] = logging.Formatter().formatException(record.exc_info)
    return json.dumps(payload, default=str)


class JsonFormatter(logging.Formatter):
    """One JSON object per record, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        return _json_formatter(record)


def _dict_config(level: str, json_logs: bool) -> Dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {"format": CONSOLE_FORMAT, "datefmt": "%Y-%m-%d %H:%M:%S"},
            "json": {"()": JsonFormatter},
        },
        "handlers": {
            "stderr": {
                "class": "logging.StreamHandler",
                "formatter": "json" if json_logs else "console",
                "level": level,
            }
        },
        "loggers": {name: {"level": "WARNING"} for name in _CHATTY_LOGGERS},
        "root": {"handlers": ["stderr"], "level": level},
    }


def configure_logging(
    level: str = "INFO",
    json_logs: bool = False,
    force: bool = True,
) -> None:
    """
    Install a single stderr handler on the root logger.

    Parameters
    ----------
    level : str
        Level name applied to the root logger and its handler.
    json_logs : bool
        Emit JSON objects instead of console lines.
    force : bool
        When False, leave an already configured root logger alone (embedding
        applications keep their own handlers).
    """
    if not force and logging.getLogger().handlers:
        return
    logging.config.dictConfig(_dict_config(level.upper(), json_logs))


def configure_from_settings(settings: Optional[Settings] = None, force: bool = True) -> None:
    """Configure logging from `LOG_LEVEL` and `LOG_JSON`."""
    settings = settings or get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json, force=force)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name)


__all__ = ["JsonFormatter", "configure_from_settings", "configure_logging", "get_logger"]
