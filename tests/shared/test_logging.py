"""Tests for stderr logging formatters and context propagation."""

from __future__ import annotations

import io
import json
import logging
from collections.abc import Iterator

import pytest

from packages.jmap_shared.logging import (
    bind_context,
    clear_context,
    configure_logging,
    fields,
    get_context,
    get_logger,
    log_context,
)


@pytest.fixture(autouse=True)
def _restore_root_logger() -> Iterator[None]:
    """Undo handler and level changes made by configure_logging."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    clear_context()
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    clear_context()


def test_json_output_includes_core_and_extra_fields() -> None:
    """JSON lines should carry level, logger, message and extra fields."""
    stream = io.StringIO()
    configure_logging(level="DEBUG", json_output=True, service="jmap", stream=stream)

    get_logger("jmap.test").info(
        "Executed batch", extra={"fields": {fields.BATCH_CALLS: 2}}
    )

    payload = json.loads(stream.getvalue().strip())
    assert payload[fields.LEVEL] == "INFO"
    assert payload[fields.LOGGER] == "jmap.test"
    assert payload[fields.MESSAGE] == "Executed batch"
    assert payload[fields.BATCH_CALLS] == 2
    assert payload[fields.SERVICE] == "jmap"


def test_plain_output_appends_sorted_context() -> None:
    """Plain lines should end with key=value pairs in key order."""
    stream = io.StringIO()
    configure_logging(level="INFO", json_output=False, stream=stream)

    with log_context({fields.ACCOUNT_ID: "u1"}):
        get_logger("jmap.test").warning("Rejected", extra={"fields": {"b": 1}})

    line = stream.getvalue().strip()
    assert " WARNING jmap.test Rejected " in line
    assert line.endswith(f"{fields.ACCOUNT_ID}=u1 b=1")


def test_records_below_level_are_dropped() -> None:
    """The configured level should filter lower-severity records."""
    stream = io.StringIO()
    configure_logging(level="WARNING", stream=stream)

    get_logger("jmap.test").debug("hidden")

    assert stream.getvalue() == ""


def test_log_context_is_restored_after_block() -> None:
    """log_context should not leak bindings past its block."""
    bind_context(outer="1", skipped=None)

    with log_context({"inner": 2}, extra=None) as bound:
        assert bound == {"outer": "1", "inner": "2"}
        assert get_context() == bound

    assert get_context() == {"outer": "1"}
    clear_context("outer")
    assert get_context() == {}
