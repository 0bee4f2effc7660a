"""Capability URIs and method names used by this client."""

from __future__ import annotations

JMAP_CORE = "urn:ietf:params:jmap:core"
JMAP_MAIL = "urn:ietf:params:jmap:mail"
JMAP_SUBMISSION = "urn:ietf:params:jmap:submission"
MASKED_EMAIL = "https://www.fastmail.com/dev/maskedemail"

# Standard /get; ``ids`` may be null to fetch every record at once.
MASKED_EMAIL_GET = "MaskedEmail/get"
# Standard /set; only addresses that never received mail may be destroyed.
MASKED_EMAIL_SET = "MaskedEmail/set"

ERROR_METHOD = "error"

# RFC 8620 section 3.6.2 method-level error types plus the /changes and
# /query additions from sections 5.2 and 5.5.
METHOD_ERROR_TYPES: frozenset[str] = frozenset(
    {
        "serverUnavailable",
        "serverFail",
        "serverPartialFail",
        "unknownMethod",
        "invalidArguments",
        "invalidResultReference",
        "forbidden",
        "accountNotFound",
        "accountNotSupportedByMethod",
        "accountReadOnly",
        "requestTooLarge",
        "stateMismatch",
        "cannotCalculateChanges",
        "tooManyChanges",
        "anchorNotFound",
        "unsupportedSort",
        "unsupportedFilter",
        "fromAccountNotFound",
        "fromAccountNotSupportedByMethod",
    }
)
