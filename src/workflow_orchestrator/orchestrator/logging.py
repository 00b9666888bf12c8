"""Run logging.

Records go to stderr, one JSON object per line by default, so command output
on stdout stays machine readable. Anything passed through ``extra=`` (run and
step ids, event data) lands under the ``"extra"`` key.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any, TextIO

# Attributes every LogRecord carries; anything else came in through ``extra=``.
_STANDARD_ATTRS: frozenset[str] = frozenset(vars(logging.makeLogRecord({}))) | {
    "message",
    "asctime",
}

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
TEXT_DATEFMT = "%Y-%m-%d %H:%M:%S"

_NOISY_LOGGERS = ("asyncio", "httpx", "uvicorn.access")


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    for key, value in vars(record).items():
        if key in _STANDARD_ATTRS or key.startswith("_") or value is None:
            continue
        fields[key] = value
    return fields


class JsonFormatter(logging.Formatter):
    """Formats a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (record)
        when = datetime.fromtimestamp(record.created, tz=UTC)
        payload: dict[str, Any] = {
            "timestamp": when.isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        extra = _extra_fields(record)
        if extra:
            payload["extra"] = extra
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        # Event data may hold datetimes or models; fall back to their str().
        return json.dumps(payload, ensure_ascii=False, default=str)


def _formatter_for(fmt: str) -> logging.Formatter:
    if fmt == "text":
        return logging.Formatter(TEXT_FORMAT, datefmt=TEXT_DATEFMT)
    return JsonFormatter()


def configure_logging(level: str, fmt: str = "json", *, stream: TextIO | None = None) -> None:
    """Point the root logger at ``stream`` (stderr by default).

    Calling it again replaces the previous handlers rather than stacking them.
    """

    root = logging.getLogger()
    for old in list(root.handlers):
        root.removeHandler(old)

    handler = logging.StreamHandler(stream=stream or sys.stderr)
    handler.setFormatter(_formatter_for(fmt))
    root.addHandler(handler)
    root.setLevel(level.upper())

    floor = max(root.level, logging.INFO)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(floor)
