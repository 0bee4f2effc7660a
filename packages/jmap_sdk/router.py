"""Correlate a ``methodResponses`` array back to the calls that produced it.

Entry ``i`` of the response must answer call ``i`` of the request and carry
the same call id. Any count or identity mismatch fails the whole batch; no
partial mapping is ever returned. Per-call business failures are not errors
here: they come back as ``NotFound`` or ``MethodError`` outcomes.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, NamedTuple, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from packages.jmap_sdk.builder import MethodCallBatch
from packages.jmap_sdk.capabilities import ERROR_METHOD, METHOD_ERROR_TYPES
from packages.jmap_sdk.errors import (
    CorrelationMismatchError,
    MalformedResponseError,
    ResponseCountMismatchError,
)
from packages.jmap_shared.logging import fields, get_logger

logger = get_logger(__name__)

_FOUND_KEYS = ("list", "created", "updated", "destroyed")


class ResponseEntry(NamedTuple):
    """One ``[name, result, callId]`` triple from the response."""

    method_name: str
    result: dict[str, Any]
    call_id: str


class ResponseEnvelope(BaseModel):
    """Decoded response body."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    session_state: str | None = Field(default=None, alias="sessionState")
    latest_client_version: str | None = Field(
        default=None, alias="latestClientVersion"
    )
    method_responses: tuple[ResponseEntry, ...] = Field(alias="methodResponses")

    @classmethod
    def from_json(cls, data: Any) -> ResponseEnvelope:
        """Decode one raw JSON document, mapping shape failures to ``MalformedResponseError``."""
        if not isinstance(data, Mapping):
            raise MalformedResponseError(
                message=f"response body must be a JSON object, got {type(data).__name__}"
            )
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise _malformed(exc) from None


@dataclass(frozen=True, slots=True)
class Success:
    """Call completed; ``result`` is the server's object exactly as received."""

    call_id: str
    method_name: str
    result: Mapping[str, Any]
    account_id: str | None = None
    new_state: str | None = None
    not_found: frozenset[str] = frozenset()

    @property
    def ok(self) -> bool:
        return True

    @property
    def list(self) -> list[Any]:
        """Return records from a ``/get`` result."""
        return list(self.result.get("list") or [])

    @property
    def ids(self) -> list[str]:
        """Return ids from a ``/query`` result."""
        return list(self.result.get("ids") or [])

    @property
    def created(self) -> dict[str, Any]:
        return dict(self.result.get("created") or {})

    @property
    def updated(self) -> dict[str, Any]:
        """Return updated ids mapped to the server patch, which may be ``None``."""
        return dict(self.result.get("updated") or {})

    @property
    def destroyed(self) -> list[str]:
        return list(self.result.get("destroyed") or [])

    @property
    def not_created(self) -> dict[str, Any]:
        return dict(self.result.get("notCreated") or {})

    @property
    def not_updated(self) -> dict[str, Any]:
        return dict(self.result.get("notUpdated") or {})

    @property
    def not_destroyed(self) -> dict[str, Any]:
        return dict(self.result.get("notDestroyed") or {})


@dataclass(frozen=True, slots=True)
class NotFound:
    """Every requested id was missing and nothing was found."""

    call_id: str
    method_name: str
    ids: frozenset[str]

    @property
    def ok(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class MethodError:
    """Server rejected the call as a whole."""

    call_id: str
    method_name: str
    type: str
    description: str | None = None

    @property
    def ok(self) -> bool:
        return False


MethodOutcome: TypeAlias = Success | NotFound | MethodError


class MethodResponseRouter:
    """Match response entries to request calls and classify each one."""

    def route(
        self, envelope: ResponseEnvelope, batch: MethodCallBatch
    ) -> dict[str, MethodOutcome]:
        """Return one outcome per call id, in request order."""
        entries = envelope.method_responses
        try:
            self._check_alignment(entries, batch)
            return {
                entry.call_id: classify(entry, index=index)
                for index, entry in enumerate(entries)
            }
        except (ResponseCountMismatchError, CorrelationMismatchError, MalformedResponseError) as exc:
            logger.warning(
                "Rejected JMAP response: %s",
                exc,
                extra={
                    "fields": {
                        fields.EVENT: fields.BATCH_REJECTED_EVENT,
                        fields.BATCH_CALLS: len(batch),
                        fields.SESSION_STATE: envelope.session_state,
                    }
                },
            )
            raise

    def route_json(self, data: Any, batch: MethodCallBatch) -> dict[str, MethodOutcome]:
        """Decode a raw response document and route it."""
        return self.route(ResponseEnvelope.from_json(data), batch)

    @staticmethod
    def _check_alignment(
        entries: tuple[ResponseEntry, ...], batch: MethodCallBatch
    ) -> None:
        if len(entries) != len(batch.calls):
            raise ResponseCountMismatchError(
                message=(
                    f"response has {len(entries)} entries for "
                    f"{len(batch.calls)} method calls"
                ),
                expected=len(batch.calls),
                actual=len(entries),
            )
        for index, (entry, call) in enumerate(zip(entries, batch.calls)):
            if entry.call_id != call.call_id:
                raise CorrelationMismatchError(
                    message=(
                        f"response entry {index} answers call id {entry.call_id!r}, "
                        f"expected {call.call_id!r}"
                    ),
                    index=index,
                    expected_id=call.call_id,
                    actual_id=entry.call_id,
                )


def route(envelope: ResponseEnvelope, batch: MethodCallBatch) -> dict[str, MethodOutcome]:
    """Route ``envelope`` against ``batch`` with a default router."""
    return MethodResponseRouter().route(envelope, batch)


def classify(entry: ResponseEntry, *, index: int = 0) -> MethodOutcome:
    """Classify one response entry as success, not-found or method error."""
    result = entry.result
    error_type = result.get("type")
    if entry.method_name == ERROR_METHOD or (
        isinstance(error_type, str) and error_type in METHOD_ERROR_TYPES
    ):
        if not isinstance(error_type, str) or error_type == "":
            raise MalformedResponseError(
                message=f"error response at entry {index} has no type",
                index=index,
            )
        description = result.get("description")
        return MethodError(
            call_id=entry.call_id,
            method_name=entry.method_name,
            type=error_type,
            description=description if isinstance(description, str) else None,
        )

    not_found = _id_set(result.get("notFound"), index=index)
    if not_found and not any(result.get(key) for key in _FOUND_KEYS):
        return NotFound(
            call_id=entry.call_id, method_name=entry.method_name, ids=not_found
        )

    return Success(
        call_id=entry.call_id,
        method_name=entry.method_name,
        result=result,
        account_id=_optional_str(result.get("accountId")),
        new_state=_optional_str(result.get("newState", result.get("state"))),
        not_found=not_found,
    )


def _id_set(value: Any, *, index: int) -> frozenset[str]:
    if value is None:
        return frozenset()
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise MalformedResponseError(
            message=f"notFound at entry {index} must be a list of ids",
            index=index,
        )
    return frozenset(value)


def _optional_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _malformed(error: ValidationError) -> MalformedResponseError:
    """Map the first validation failure to a stable message and entry index."""
    first = error.errors()[0]
    location = tuple(first.get("loc", ()))
    index = None
    if len(location) >= 2 and location[0] == "methodResponses" and isinstance(location[1], int):
        index = location[1]
    where = ".".join(str(part) for part in location) or "response"
    return MalformedResponseError(
        message=f"malformed response at {where}: {first.get('msg', 'invalid value')}",
        index=index,
    )
