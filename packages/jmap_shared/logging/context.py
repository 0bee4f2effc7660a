"""Per-scope log fields for JMAP requests.

``log_context`` binds fields such as the account id for the duration of one
batch, and every record logged inside the block carries them. Bindings live in
a ``ContextVar``, so concurrent async batches keep separate values.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from types import MappingProxyType
from typing import Iterator, Mapping

_FIELDS: ContextVar[Mapping[str, str]] = ContextVar(
    "jmap_log_fields", default=MappingProxyType({})
)


def get_context() -> dict[str, str]:
    """Return a copy of the fields bound in the current scope."""
    return dict(_FIELDS.get())


def _merged(values: Mapping[str, object]) -> Mapping[str, str]:
    merged = dict(_FIELDS.get())
    merged.update(
        {str(key): str(value) for key, value in values.items() if value is not None}
    )
    return MappingProxyType(merged)


def bind_context(**values: object) -> None:
    """Bind fields for the rest of the current scope; ``None`` values are skipped."""
    if values:
        _FIELDS.set(_merged(values))


def clear_context(*keys: str) -> None:
    """Drop ``keys``, or every bound field when none are given."""
    remaining = (
        {key: value for key, value in _FIELDS.get().items() if key not in keys}
        if keys
        else {}
    )
    _FIELDS.set(MappingProxyType(remaining))


@contextmanager
def log_context(
    values: Mapping[str, object] | None = None, **more: object
) -> Iterator[dict[str, str]]:
    """Bind fields inside the block only; yields the fields now in effect."""
    token = _FIELDS.set(_merged({**(values or {}), **more}))
    try:
        yield get_context()
    finally:
        _FIELDS.reset(token)
