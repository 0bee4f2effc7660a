"""Stderr logging for JMAP clients and the CLI.

stdout carries command output, so records always go to stderr. Each record
gets the fields bound with ``log_context`` plus any passed per call as
``extra={"fields": {...}}``.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any, TextIO

from . import fields
from .context import bind_context, get_context

_MERGED_ATTR = "jmap_fields"


class FieldsFilter(logging.Filter):
    """Merge bound context with the record's own ``fields`` extra."""

    def filter(self, record: logging.LogRecord) -> bool:
        merged: dict[str, Any] = get_context()
        extra = getattr(record, "fields", None)
        if isinstance(extra, Mapping):
            merged.update((str(key), value) for key, value in extra.items())
        setattr(record, _MERGED_ATTR, merged)
        return True


def _record_fields(record: logging.LogRecord) -> dict[str, Any]:
    value = getattr(record, _MERGED_ATTR, None)
    return value if isinstance(value, dict) else {}


class JsonFormatter(logging.Formatter):
    """One JSON object per line; bound fields sit beside the core keys."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            fields.TIMESTAMP: datetime.fromtimestamp(record.created, UTC).isoformat(),
            fields.LEVEL: record.levelname,
            fields.LOGGER: record.name,
            fields.MESSAGE: record.getMessage(),
            **_record_fields(record),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, separators=(",", ":"))


class PlainFormatter(logging.Formatter):
    """``time LEVEL logger message key=value ...`` for terminals."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S%z",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = _record_fields(record)
        if not extras:
            return line
        pairs = " ".join(f"{key}={extras[key]}" for key in sorted(extras))
        return f"{line} {pairs}"


def configure_logging(
    *,
    level: str = "WARNING",
    json_output: bool = True,
    service: str | None = None,
    environment: str | None = None,
    stream: TextIO | None = None,
) -> logging.Handler:
    """Install one stderr handler on the root logger and return it.

    Earlier root handlers are removed, so repeated calls never duplicate output.
    """
    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.addFilter(FieldsFilter())
    handler.setFormatter(JsonFormatter() if json_output else PlainFormatter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level.upper())

    bind_context(**{fields.SERVICE: service, fields.ENVIRONMENT: environment})
    return handler


def get_logger(name: str | None = None) -> logging.Logger:
    return logging.getLogger(name)
