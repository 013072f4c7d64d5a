"""Logging setup for restbridge.

Modules log through standard ``logging.getLogger("restbridge.<area>")``
loggers. ``configure_logging`` attaches one handler to the ``restbridge``
logger rendering either human-readable text or one JSON object per line.

Quick Start:
    >>> from restbridge.runtime.observability import configure_logging
    >>> configure_logging(format="json", level="DEBUG")
    >>> logging.getLogger("restbridge.binding").info("ready", extra={"operations": 12})
    # => {"ts": "...", "level": "info", "logger": "restbridge.binding", "event": "ready", "operations": 12}
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING, TextIO

if TYPE_CHECKING:
    from restbridge.foundation.config import LoggingSettings

ROOT_LOGGER = "restbridge"

# Attributes every LogRecord carries; anything else came in through ``extra``
_RESERVED: frozenset[str] = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}

_TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class JsonFormatter(logging.Formatter):
    """Render records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "ts": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "event": record.getMessage(),
        }
        entry.update({k: v for k, v in vars(record).items() if k not in _RESERVED})
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def configure_logging(
    settings: LoggingSettings | None = None,
    *,
    level: str | None = None,
    format: str | None = None,  # noqa: A002 - matches LoggingSettings.format
    stream: TextIO | None = None,
) -> logging.Logger:
    """Configure the ``restbridge`` logger. Safe to call repeatedly.

    Explicit ``level`` / ``format`` arguments override ``settings``.
    """
    level = (level or (settings.level if settings else "INFO")).upper()
    fmt = format or (settings.format if settings else "text")

    handler = logging.StreamHandler(stream or sys.stderr)
    match fmt:
        case "json":
            handler.setFormatter(JsonFormatter())
        case "text":
            handler.setFormatter(logging.Formatter(_TEXT_FORMAT))
        case _:
            raise ValueError(f"Unknown log format: {fmt}. Use 'text' or 'json'")

    root = logging.getLogger(ROOT_LOGGER)
    for existing in [h for h in root.handlers if getattr(h, "_restbridge", False)]:
        root.removeHandler(existing)
    handler._restbridge = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(getattr(logging, level, logging.INFO))
    return root
