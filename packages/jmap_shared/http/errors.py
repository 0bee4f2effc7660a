"""Typed transport errors raised by the shared JMAP HTTP clients.

Everything here describes a failure of the HTTP exchange itself, so no method
call in the batch has an outcome when one of these is raised.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping

# RFC 8620 section 3.6.1 request-level problem types.
REQUEST_PROBLEM_PREFIX = "urn:ietf:params:jmap:error:"


@dataclass(frozen=True)
class HttpError(Exception):
    """Base error type for JMAP HTTP transport failures."""

    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class HttpClientError(HttpError):
    """Request to ``url`` failed; ``retryable`` marks outages and throttling."""

    method: str
    url: str
    retryable: bool = False


@dataclass(frozen=True)
class HttpRequestError(HttpClientError):
    """Network-level failure before any response was received."""

    cause: Exception | None = None


@dataclass(frozen=True)
class HttpStatusError(HttpClientError):
    """Server answered with a non-2xx status.

    JMAP request-level problems (unknown capability, malformed request,
    request over limits) arrive this way as an RFC 7807 problem document;
    ``problem_type`` and ``problem_detail`` read it from ``response_body``.
    """

    status_code: int = 0
    response_body: str = ""
    response_headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def problem_type(self) -> str | None:
        """Return the problem ``type`` URI, e.g. ``...:error:unknownCapability``."""
        value = _problem(self.response_body).get("type")
        return value if isinstance(value, str) and value else None

    @property
    def problem_detail(self) -> str | None:
        value = _problem(self.response_body).get("detail")
        return value if isinstance(value, str) and value else None

    @property
    def is_request_problem(self) -> bool:
        """True when the server rejected the JMAP request as a whole."""
        return (self.problem_type or "").startswith(REQUEST_PROBLEM_PREFIX)


@dataclass(frozen=True)
class HttpJsonDecodeError(HttpClientError):
    """Successful status whose body is not JSON."""

    status_code: int = 0
    response_body: str = ""
    cause: Exception | None = None


def _problem(body: str) -> dict[str, Any]:
    try:
        document = json.loads(body) if body else None
    except ValueError:
        return {}
    return document if isinstance(document, dict) else {}
