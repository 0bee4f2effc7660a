"""Error taxonomy for JMAP batch construction, routing and domain results."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class JmapSdkError(Exception):
    """Base error type for JMAP SDK failures."""

    message: str

    def __str__(self) -> str:
        """Return human-readable error message."""
        return self.message


@dataclass(frozen=True)
class InvalidArgumentError(JmapSdkError, ValueError):
    """Caller-supplied value is unusable; raised before any request."""

    argument: str = ""


@dataclass(frozen=True)
class BuilderError(JmapSdkError):
    """Batch construction failure detected before any network interaction."""


@dataclass(frozen=True)
class DuplicateCorrelationIdError(BuilderError):
    """Call id already used in this batch."""

    call_id: str = ""


@dataclass(frozen=True)
class EmptyMethodNameError(BuilderError):
    """Method name is blank."""


@dataclass(frozen=True)
class EmptyBatchError(BuilderError):
    """Batch has no calls."""


@dataclass(frozen=True)
class DanglingReferenceError(BuilderError):
    """Reference target is missing or not positioned before the referencing call."""

    call_id: str = ""
    target: str = ""


@dataclass(frozen=True)
class RouterError(JmapSdkError):
    """Structural protocol breach in a response; no partial results exist."""


@dataclass(frozen=True)
class ResponseCountMismatchError(RouterError):
    """Response carries a different number of entries than the request."""

    expected: int = 0
    actual: int = 0


@dataclass(frozen=True)
class CorrelationMismatchError(RouterError):
    """Response entry at ``index`` answers a different call id."""

    index: int = 0
    expected_id: str = ""
    actual_id: str = ""


@dataclass(frozen=True)
class MalformedResponseError(RouterError):
    """Response document or one of its entries cannot be decoded."""

    index: int | None = None


@dataclass(frozen=True)
class SessionError(JmapSdkError):
    """Session resource lacks a required URL or account."""


@dataclass(frozen=True)
class JmapDomainError(JmapSdkError):
    """Business-level failure reported for one call in a routed batch."""

    operation: str = ""
    call_id: str = ""


@dataclass(frozen=True)
class JmapNotFoundError(JmapDomainError):
    """Requested ids were reported as not found."""

    ids: frozenset[str] = frozenset()


@dataclass(frozen=True)
class JmapMethodError(JmapDomainError):
    """Server rejected the method call as a whole."""

    error_type: str = ""
    description: str | None = None


@dataclass(frozen=True)
class JmapSetError(JmapDomainError):
    """One object in a ``/set`` call was not created, updated or destroyed."""

    object_id: str = ""
    error_type: str = ""
    description: str | None = None
