"""
Structured logging for Zonesync.

Every record is a single JSON line.  Besides the message, a record carries
whichever reconciliation context the caller passed: ``provider``,
``zone_id``, ``task``, ``operation`` and a ``request_id`` (generated when
not given) that ties together the lines of one call.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any

CONTEXT_KEYS = ("request_id", "provider", "zone_id", "task", "operation")


class StructuredFormatter(logging.Formatter):
    """Render log records as JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in CONTEXT_KEYS:
            val = getattr(record, key, None)
            if val is not None:
                entry[key] = val
        if record.exc_info and record.exc_info[1]:
            exc = record.exc_info[1]
            entry["exception"] = f"{type(exc).__name__}: {exc}"
        return json.dumps(entry, default=str)


class ZonesyncLogger:
    """Thin wrapper over a :class:`logging.Logger` taking context as keywords.

    Example::

        zs_logger.info("zone created", zone_id=zone.id, operation="create_zone")
    """

    def __init__(self, name: str = "zonesync") -> None:
        self.logger = logging.getLogger(name)
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(StructuredFormatter())
            self.logger.addHandler(handler)
            self.logger.setLevel(logging.INFO)

    def set_level(self, level: str | int) -> None:
        self.logger.setLevel(level.upper() if isinstance(level, str) else level)

    def log(self, level: int, message: str, *, exc_info: bool = False, **context: Any) -> None:
        """Emit *message* with the given context keys.

        Raises:
            TypeError: On a context key outside :data:`CONTEXT_KEYS`.
        """
        unknown = set(context) - set(CONTEXT_KEYS)
        if unknown:
            raise TypeError(f"unknown log context: {', '.join(sorted(unknown))}")
        extra = {key: context.get(key) for key in CONTEXT_KEYS}
        extra["request_id"] = extra["request_id"] or uuid.uuid4().hex[:12]
        self.logger.log(level, message, extra=extra, exc_info=exc_info)

    def debug(self, message: str, **context: Any) -> None:
        self.log(logging.DEBUG, message, **context)

    def info(self, message: str, **context: Any) -> None:
        self.log(logging.INFO, message, **context)

    def warning(self, message: str, **context: Any) -> None:
        self.log(logging.WARNING, message, **context)

    def error(self, message: str, **context: Any) -> None:
        self.log(logging.ERROR, message, **context)


zs_logger = ZonesyncLogger()
