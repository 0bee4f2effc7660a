"""Public JMAP SDK interface: batch builder, response router and clients."""

from packages.jmap_sdk.builder import (
    CreationReference,
    MethodCall,
    MethodCallBatch,
    MethodCallBuilder,
    Reference,
)
from packages.jmap_sdk.capabilities import (
    JMAP_CORE,
    JMAP_MAIL,
    JMAP_SUBMISSION,
    MASKED_EMAIL,
)
from packages.jmap_sdk.client import AsyncJmapClient, JmapClient
from packages.jmap_sdk.errors import (
    BuilderError,
    CorrelationMismatchError,
    DanglingReferenceError,
    DuplicateCorrelationIdError,
    EmptyBatchError,
    EmptyMethodNameError,
    InvalidArgumentError,
    JmapDomainError,
    JmapMethodError,
    JmapNotFoundError,
    JmapSdkError,
    JmapSetError,
    MalformedResponseError,
    ResponseCountMismatchError,
    RouterError,
    SessionError,
)
from packages.jmap_sdk.masked_email import (
    MaskedEmail,
    MaskedEmailState,
    create_masked_email,
    filter_by_state,
    find_by_address,
    find_by_id,
    get_masked_email,
    list_masked_emails,
    raise_for_outcome,
    set_description,
    set_state,
)
from packages.jmap_sdk.router import (
    MethodError,
    MethodOutcome,
    MethodResponseRouter,
    NotFound,
    ResponseEnvelope,
    Success,
    route,
)
from packages.jmap_sdk.session import Session
from packages.jmap_shared.http import HttpClientError

DomainError = JmapDomainError
TransportError = HttpClientError
ProtocolError = RouterError

__all__ = [
    "AsyncJmapClient",
    "BuilderError",
    "CorrelationMismatchError",
    "CreationReference",
    "DanglingReferenceError",
    "DomainError",
    "DuplicateCorrelationIdError",
    "EmptyBatchError",
    "EmptyMethodNameError",
    "InvalidArgumentError",
    "JMAP_CORE",
    "JMAP_MAIL",
    "JMAP_SUBMISSION",
    "JmapClient",
    "JmapDomainError",
    "JmapMethodError",
    "JmapNotFoundError",
    "JmapSdkError",
    "JmapSetError",
    "MASKED_EMAIL",
    "MalformedResponseError",
    "MaskedEmail",
    "MaskedEmailState",
    "MethodCall",
    "MethodCallBatch",
    "MethodCallBuilder",
    "MethodError",
    "MethodOutcome",
    "MethodResponseRouter",
    "NotFound",
    "ProtocolError",
    "Reference",
    "ResponseCountMismatchError",
    "ResponseEnvelope",
    "RouterError",
    "SessionError",
    "Success",
    "TransportError",
    "create_masked_email",
    "filter_by_state",
    "find_by_address",
    "find_by_id",
    "get_masked_email",
    "list_masked_emails",
    "raise_for_outcome",
    "route",
    "set_description",
    "set_state",
]
