"""Typed masked-address operations built on the batch core."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict, Field

from packages.jmap_sdk.capabilities import MASKED_EMAIL, MASKED_EMAIL_GET, MASKED_EMAIL_SET
from packages.jmap_sdk.client import JmapClient
from packages.jmap_sdk.errors import (
    InvalidArgumentError,
    JmapMethodError,
    JmapNotFoundError,
    JmapSetError,
)
from packages.jmap_sdk.router import MethodError, MethodOutcome, NotFound, Success

_CREATION_ID = "masked"


class MaskedEmailState(str, Enum):
    """Lifecycle state of one masked address."""

    ENABLED = "enabled"
    DISABLED = "disabled"
    PENDING = "pending"
    DELETED = "deleted"


class MaskedEmail(BaseModel):
    """One masked address record."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    id: str
    email: str
    state: MaskedEmailState
    for_domain: str | None = Field(default=None, alias="forDomain")
    description: str = ""
    url: str | None = None
    created_at: datetime | None = Field(default=None, alias="createdAt")
    last_message_at: datetime | None = Field(default=None, alias="lastMessageAt")
    created_by: str | None = Field(default=None, alias="createdBy")


def raise_for_outcome(operation: str, outcome: MethodOutcome) -> Success:
    """Return ``outcome`` when successful, else raise the matching domain error."""
    if isinstance(outcome, Success):
        return outcome
    if isinstance(outcome, NotFound):
        raise JmapNotFoundError(
            message=f"{operation}: not found: {', '.join(sorted(outcome.ids))}",
            operation=operation,
            call_id=outcome.call_id,
            ids=outcome.ids,
        )
    if isinstance(outcome, MethodError):
        detail = f": {outcome.description}" if outcome.description else ""
        raise JmapMethodError(
            message=f"{operation} failed ({outcome.type}){detail}",
            operation=operation,
            call_id=outcome.call_id,
            error_type=outcome.type,
            description=outcome.description,
        )
    raise TypeError(f"unsupported outcome type: {type(outcome).__name__}")


def get_masked_email(client: JmapClient, masked_email_id: str) -> MaskedEmail:
    """Return one masked address by id."""
    _require_id(masked_email_id)
    operation = "masked_email.get"
    success = raise_for_outcome(
        operation,
        client.call(MASKED_EMAIL_GET, {"ids": [masked_email_id]}, MASKED_EMAIL),
    )
    record = find_by_id(masked_email_id, _records(success.list))
    if record is None:
        raise JmapNotFoundError(
            message=f"{operation}: not found: {masked_email_id}",
            operation=operation,
            call_id=success.call_id,
            ids=frozenset({masked_email_id}),
        )
    return record


def list_masked_emails(client: JmapClient) -> list[MaskedEmail]:
    """Return every masked address in the account."""
    success = raise_for_outcome(
        "masked_email.list",
        client.call(MASKED_EMAIL_GET, {"ids": None}, MASKED_EMAIL),
    )
    return _records(success.list)


def create_masked_email(
    client: JmapClient,
    for_domain: str,
    *,
    description: str = "",
    state: MaskedEmailState | str = MaskedEmailState.ENABLED,
) -> MaskedEmail:
    """Create one masked address and return the server's record."""
    record = {
        "forDomain": for_domain,
        "description": description,
        "state": _state(state).value,
    }
    operation = "masked_email.create"
    success = raise_for_outcome(
        operation,
        client.call(MASKED_EMAIL_SET, {"create": {_CREATION_ID: record}}, MASKED_EMAIL),
    )
    failure = success.not_created.get(_CREATION_ID)
    if failure is not None:
        raise _set_error(operation, success.call_id, _CREATION_ID, failure)
    created = success.created.get(_CREATION_ID)
    if not isinstance(created, dict):
        raise JmapSetError(
            message=f"{operation}: server did not report the created record",
            operation=operation,
            call_id=success.call_id,
            object_id=_CREATION_ID,
        )
    return MaskedEmail.model_validate({**record, **created})


def set_description(
    client: JmapClient, masked_email_id: str | None, description: str
) -> dict[str, Any] | None:
    """Replace the description; returns the server's patch, if any."""
    return _update(
        client,
        masked_email_id,
        {"description": description},
        operation="masked_email.set_description",
    )


def set_state(
    client: JmapClient,
    masked_email_id: str | None,
    state: MaskedEmailState | str,
) -> dict[str, Any] | None:
    """Move one masked address to ``state``; returns the server's patch, if any."""
    return _update(
        client,
        masked_email_id,
        {"state": _state(state).value},
        operation="masked_email.set_state",
    )


def find_by_address(address: str, records: Iterable[MaskedEmail]) -> MaskedEmail | None:
    """Return the record whose address matches, ignoring case."""
    wanted = address.strip().lower()
    return next((item for item in records if item.email.lower() == wanted), None)


def find_by_id(masked_email_id: str, records: Iterable[MaskedEmail]) -> MaskedEmail | None:
    return next((item for item in records if item.id == masked_email_id), None)


def filter_by_state(
    state: MaskedEmailState | str, records: Iterable[MaskedEmail]
) -> list[MaskedEmail]:
    wanted = _state(state)
    return [item for item in records if item.state == wanted]


def _update(
    client: JmapClient,
    masked_email_id: str | None,
    patch: dict[str, Any],
    *,
    operation: str,
) -> dict[str, Any] | None:
    object_id = _require_id(masked_email_id)
    success = raise_for_outcome(
        operation,
        client.call(MASKED_EMAIL_SET, {"update": {object_id: patch}}, MASKED_EMAIL),
    )
    failure = success.not_updated.get(object_id)
    if failure is not None:
        raise _set_error(operation, success.call_id, object_id, failure)
    updated = success.updated
    if object_id not in updated:
        raise JmapSetError(
            message=f"{operation}: server did not report an update for {object_id}",
            operation=operation,
            call_id=success.call_id,
            object_id=object_id,
        )
    return updated[object_id]


def _set_error(
    operation: str, call_id: str, object_id: str, failure: Any
) -> JmapSetError:
    detail = failure if isinstance(failure, dict) else {}
    error_type = str(detail.get("type", ""))
    description = detail.get("description")
    suffix = f": {description}" if isinstance(description, str) and description else ""
    return JmapSetError(
        message=f"{operation} rejected {object_id} ({error_type}){suffix}",
        operation=operation,
        call_id=call_id,
        object_id=object_id,
        error_type=error_type,
        description=description if isinstance(description, str) else None,
    )


def _records(items: list[Any]) -> list[MaskedEmail]:
    return [MaskedEmail.model_validate(item) for item in items]


def _require_id(value: str | None) -> str:
    if value is None or value.strip() == "":
        raise InvalidArgumentError(message="No id provided", argument="id")
    return value


def _state(value: MaskedEmailState | str) -> MaskedEmailState:
    try:
        return MaskedEmailState(value)
    except ValueError:
        raise InvalidArgumentError(
            message=f"unknown masked email state {value!r}", argument="state"
        ) from None
