"""Logging setup shared by the tpkexport CLI and library modules.

Modules log through ``get_logger(__name__)`` and attach their context as
``extra`` fields (bundle paths, tile addresses, counters). The plain-text format
drops those fields; ``JSONFormatter`` keeps them so a run can
be filtered per bundle or per tile afterwards.
"""

from __future__ import annotations

import json
import logging
import time
from logging import Logger
from logging.config import dictConfig
from typing import Any, Dict, Optional

PACKAGE_LOGGER = "tpkexport"
DEFAULT_LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Attributes present on every LogRecord; anything else arrived via ``extra``.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime"}


class UTCFormatter(logging.Formatter):
    """Plain-text formatter whose timestamps match the trailing ``Z``."""

    converter = time.gmtime


class JSONFormatter(UTCFormatter):
    """Structured JSON formatter that keeps ``extra`` fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


def configure_logging(
    *,
    level: str = DEFAULT_LOG_LEVEL,
    json_logs: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """Send tpkexport logs at ``level`` to stderr and optionally ``log_file``.

    Only the ``tpkexport`` logger tree gets ``level``; other libraries stay at
    WARNING so a DEBUG run lists bundle and tile events without their chatter.
    """

    formatter = "json" if json_logs else "standard"
    handlers: Dict[str, Dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": formatter,
        }
    }
    if log_file:
        handlers["file"] = {
            "class": "logging.FileHandler",
            "filename": log_file,
            "encoding": "utf-8",
            "formatter": formatter,
        }

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "standard": {
                    "class": f"{__name__}.UTCFormatter",
                    "format": LOG_FORMAT,
                    "datefmt": DATE_FORMAT,
                },
                "json": {"()": JSONFormatter, "datefmt": DATE_FORMAT},
            },
            "handlers": handlers,
            "loggers": {
                PACKAGE_LOGGER: {"level": level.upper()},
            },
            "root": {
                "handlers": list(handlers.keys()),
                "level": "WARNING",
            },
        }
    )


def get_logger(name: str) -> Logger:
    """Return a module-scoped logger."""

    return logging.getLogger(name)
