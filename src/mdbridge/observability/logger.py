"""Structured JSON logger for mdbridge.

Every log record is emitted as a single-line JSON object so runs can be
grepped or shipped to a log pipeline without additional parsing.

Typical structured output::

    {"ts": "2025-07-01T12:00:00.123456+00:00", "level": "INFO",
     "logger": "mdbridge.uploader", "message": "Uploading blocks",
     "document_id": "doxcn123", "percent": 40, "done": 40, "total": 100}

Usage::

    from mdbridge.observability import get_logger

    log = get_logger("mdbridge.pipeline")
    log.info("document published", extra={"extra_fields": {"file": "a.md"}})
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any


class StructuredFormatter(logging.Formatter):
    """Format log records as single-line JSON objects.

    Guaranteed keys are ``ts``, ``level``, ``logger`` and ``message``.
    Extra structured fields passed via ``extra={"extra_fields": {...}}`` are
    merged into the top-level object; ``exc_info`` and ``stack_info`` are
    serialised when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extra_fields: dict[str, Any] | None = getattr(
            record, "extra_fields", None
        )
        if extra_fields is not None:
            log_entry.update(extra_fields)

        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            log_entry["stack_info"] = self.formatStack(record.stack_info)

        # Chinese/Japanese document titles stay readable in the log.
        return json.dumps(log_entry, default=str, ensure_ascii=False)


# One handler per logger name so that ``get_logger`` is idempotent.
_configured_loggers: set[str] = set()


def get_logger(
    name: str = "mdbridge",
    *,
    level: int | str = logging.DEBUG,
    stream: Any | None = None,
) -> logging.Logger:
    """Get or create a structured JSON logger.

    Only the root ``"mdbridge"`` logger receives a handler; child loggers
    such as ``"mdbridge.uploader"`` propagate to it.

    Parameters
    ----------
    name:
        Logger name.  Defaults to ``"mdbridge"``.
    level:
        Minimum level applied when the root logger is first configured.
        Accepts an ``int`` or a case-insensitive level name.
    stream:
        Output stream for the handler.  Defaults to ``sys.stderr``.

    Returns
    -------
    logging.Logger
    """
    root_name = name.split(".", 1)[0]
    if root_name not in _configured_loggers:
        root = logging.getLogger(root_name)
        resolved_level = (
            logging.getLevelName(level.upper())
            if isinstance(level, str)
            else level
        )
        root.setLevel(resolved_level)

        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(StructuredFormatter())
        root.addHandler(handler)
        root.propagate = False

        _configured_loggers.add(root_name)

    return logging.getLogger(name)


def set_level(level: int | str, name: str = "mdbridge") -> None:
    """Change the level of an already configured logger tree."""
    resolved = logging.getLevelName(level.upper()) if isinstance(level, str) else level
    get_logger(name).setLevel(resolved)
