"""Method-call batch construction with back-reference resolution.

A batch is an ordered list of ``[name, arguments, callId]`` invocations sent
in one request. Later calls may consume results of earlier ones through
placeholders that the server resolves while executing the batch:

- ``Reference`` becomes an RFC 8620 result reference,
  ``"#key": {"resultOf": callId, "name": method, "path": pointer}``.
  A reference nested below the top level of the arguments is encoded the
  same way, but RFC 8620 servers only resolve ``#`` keys on the top-level
  arguments object, so nested references need a server that resolves them
  at depth.
- ``CreationReference`` becomes ``"#creationId"``, naming an object created
  under that id by a ``create`` argument earlier in the batch.

Placeholders are validated and encoded by ``MethodCallBuilder.build``; nothing
is checked against the referenced call when the placeholder is created.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any

from packages.jmap_sdk.errors import (
    BuilderError,
    DanglingReferenceError,
    DuplicateCorrelationIdError,
    EmptyBatchError,
    EmptyMethodNameError,
)

_ALPHABET = "abcdefghijklmnopqrstuvwxyz"


@dataclass(frozen=True, slots=True)
class Reference:
    """Placeholder for the value at ``path`` in the result of call ``call_id``."""

    call_id: str
    path: str
    name: str | None = None

    def encode(self, method_name: str) -> dict[str, str]:
        """Return the wire form, naming the referenced call's method."""
        return {
            "resultOf": self.call_id,
            "name": self.name or method_name,
            "path": self.path,
        }


@dataclass(frozen=True, slots=True)
class CreationReference:
    """Placeholder for the server id of an object created in this batch."""

    creation_id: str

    def encode(self) -> str:
        """Return the wire form ``#<creationId>``."""
        return f"#{self.creation_id}"


@dataclass(frozen=True, slots=True)
class MethodCall:
    """One immutable method invocation."""

    method_name: str
    arguments: Mapping[str, Any]
    call_id: str
    using: tuple[str, ...] = ()

    def as_wire(self) -> list[Any]:
        """Return the ``[name, arguments, callId]`` triple as plain JSON values."""
        return [self.method_name, _plain(self.arguments), self.call_id]


@dataclass(frozen=True, slots=True)
class MethodCallBatch:
    """Ordered, resolved calls plus the capabilities they declare."""

    using: tuple[str, ...]
    calls: tuple[MethodCall, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.calls)

    @property
    def call_ids(self) -> tuple[str, ...]:
        """Return call ids in request order."""
        return tuple(call.call_id for call in self.calls)

    def call(self, call_id: str) -> MethodCall:
        """Return the call registered under ``call_id``."""
        for item in self.calls:
            if item.call_id == call_id:
                return item
        raise KeyError(call_id)

    def as_request(self) -> dict[str, Any]:
        """Return the request body as a fresh JSON-compatible mapping."""
        return {
            "using": list(self.using),
            "methodCalls": [call.as_wire() for call in self.calls],
        }

    def to_json(self) -> bytes:
        """Serialize the request body; equal batches give identical bytes."""
        return json.dumps(
            self.as_request(), ensure_ascii=False, separators=(",", ":")
        ).encode("utf-8")


class MethodCallBuilder:
    """Accumulate method calls for one batch.

    ``account_id`` is inserted as the first argument of every call that does
    not carry its own. ``using`` lists capabilities declared for every call.
    """

    def __init__(
        self,
        *,
        account_id: str | None = None,
        using: Iterable[str] = (),
    ) -> None:
        self._account_id = account_id
        self._using = _dedupe(using)
        self._calls: list[MethodCall] = []
        self._positions: dict[str, int] = {}
        self._next_tag = 0

    def __len__(self) -> int:
        return len(self._calls)

    @property
    def call_ids(self) -> tuple[str, ...]:
        """Return call ids in the order they were added."""
        return tuple(call.call_id for call in self._calls)

    def add_call(
        self,
        method_name: str,
        arguments: Mapping[str, Any] | None = None,
        call_id: str | None = None,
        *,
        using: Iterable[str] = (),
    ) -> MethodCall:
        """Append one call; ``call_id=None`` allocates the next free tag.

        Raises ``EmptyMethodNameError`` or ``DuplicateCorrelationIdError``
        and leaves the builder unchanged on failure.
        """
        if not isinstance(method_name, str) or method_name.strip() == "":
            raise EmptyMethodNameError(message="method name must not be blank")
        if arguments is not None and not isinstance(arguments, Mapping):
            raise BuilderError(
                message=f"arguments for {method_name!r} must be a mapping, "
                f"got {type(arguments).__name__}"
            )
        if call_id is None:
            call_id = self._allocate_call_id()
        elif not isinstance(call_id, str) or call_id.strip() == "":
            raise BuilderError(message="call id must not be blank")
        elif call_id in self._positions:
            raise DuplicateCorrelationIdError(
                message=f"call id {call_id!r} is already used in this batch",
                call_id=call_id,
            )

        values = _plain(arguments or {})
        if self._account_id is not None and "accountId" not in values:
            values = {"accountId": self._account_id, **values}

        call = MethodCall(
            method_name=method_name,
            arguments=MappingProxyType(values),
            call_id=call_id,
            using=_dedupe((*self._using, *using)),
        )
        self._positions[call_id] = len(self._calls)
        self._calls.append(call)
        return call

    def add_reference(
        self, call_id: str, path: str, *, name: str | None = None
    ) -> Reference:
        """Return a result reference to ``path`` in the result of ``call_id``.

        ``path`` is a JSON pointer; a missing leading ``/`` is added. ``name``
        overrides the method name otherwise taken from the referenced call.
        """
        pointer = path if path.startswith("/") else f"/{path}"
        return Reference(call_id=call_id, path=pointer, name=name)

    def creation_reference(self, creation_id: str) -> CreationReference:
        """Return a reference to an object created under ``creation_id``."""
        if creation_id.strip() == "":
            raise BuilderError(message="creation id must not be blank")
        return CreationReference(creation_id=creation_id.lstrip("#"))

    def build(self) -> MethodCallBatch:
        """Resolve every placeholder and return the immutable batch."""
        if not self._calls:
            raise EmptyBatchError(message="batch has no method calls")

        created: set[str] = set()
        resolved: list[MethodCall] = []
        for position, call in enumerate(self._calls):
            created.update(_creation_ids(call.arguments))
            arguments = self._resolve_mapping(
                call.arguments, position=position, call=call, created=created
            )
            resolved.append(replace(call, arguments=MappingProxyType(arguments)))

        using = _dedupe(capability for call in self._calls for capability in call.using)
        return MethodCallBatch(using=using, calls=tuple(resolved))

    def _resolve(
        self, value: Any, *, position: int, call: MethodCall, created: set[str]
    ) -> Any:
        if isinstance(value, Reference):
            return self._encode_reference(value, position=position, call=call)
        if isinstance(value, CreationReference):
            if value.creation_id not in created:
                raise DanglingReferenceError(
                    message=(
                        f"call {call.call_id!r} references creation id "
                        f"{value.creation_id!r}, which no call up to it creates"
                    ),
                    call_id=call.call_id,
                    target=value.encode(),
                )
            return value.encode()
        if isinstance(value, Mapping):
            return self._resolve_mapping(
                value, position=position, call=call, created=created
            )
        if isinstance(value, (list, tuple)):
            return [
                self._resolve(item, position=position, call=call, created=created)
                for item in value
            ]
        return value

    def _resolve_mapping(
        self,
        mapping: Mapping[str, Any],
        *,
        position: int,
        call: MethodCall,
        created: set[str],
    ) -> dict[str, Any]:
        output: dict[str, Any] = {}
        for key, value in mapping.items():
            if not isinstance(value, Reference):
                output[key] = self._resolve(
                    value, position=position, call=call, created=created
                )
                continue
            wire_key = f"#{key}"
            if wire_key in mapping:
                raise BuilderError(
                    message=f"call {call.call_id!r} sets {key!r} both directly and by reference"
                )
            output[wire_key] = self._encode_reference(value, position=position, call=call)
        return output

    def _encode_reference(
        self, reference: Reference, *, position: int, call: MethodCall
    ) -> dict[str, str]:
        target = self._positions.get(reference.call_id)
        if target is None or target >= position:
            raise DanglingReferenceError(
                message=(
                    f"call {call.call_id!r} references {reference.call_id!r}, "
                    "which is not an earlier call in this batch"
                ),
                call_id=call.call_id,
                target=reference.call_id,
            )
        return reference.encode(self._calls[target].method_name)

    def _allocate_call_id(self) -> str:
        while True:
            tag = _alphabetic_tag(self._next_tag)
            self._next_tag += 1
            if tag not in self._positions:
                return tag


def _alphabetic_tag(index: int) -> str:
    """Return the spreadsheet-style tag for ``index``: a..z, aa, ab, ..."""
    letters = ""
    index += 1
    while index > 0:
        index, remainder = divmod(index - 1, len(_ALPHABET))
        letters = _ALPHABET[remainder] + letters
    return letters


def _creation_ids(arguments: Mapping[str, Any]) -> set[str]:
    create = arguments.get("create")
    if isinstance(create, Mapping):
        return {str(key) for key in create}
    return set()


def _dedupe(values: Iterable[str]) -> tuple[str, ...]:
    """Collapse duplicates, keeping first-seen order."""
    return tuple(dict.fromkeys(values))


def _plain(value: Any) -> Any:
    """Copy argument trees into fresh dicts and lists; leaves stay shared."""
    if isinstance(value, Mapping):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value
