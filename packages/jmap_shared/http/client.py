"""Authenticated JSON transport wrappers over httpx for JMAP endpoints."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from typing import Any

import httpx

from .errors import HttpJsonDecodeError, HttpRequestError, HttpStatusError

JSON_CONTENT_TYPE = "application/json"


def auth_headers(
    token: str | None, extra: Mapping[str, str] | None = None
) -> dict[str, str]:
    """Return JSON request headers with an optional bearer token."""
    headers = {"Content-Type": JSON_CONTENT_TYPE, "Accept": JSON_CONTENT_TYPE}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    headers.update(extra or {})
    return headers


def _response_text(response: httpx.Response) -> str:
    """Return response text without raising secondary decode errors."""
    try:
        return response.text
    except Exception:
        return ""


def _request_error(exc: httpx.RequestError, *, method: str, url: str) -> HttpRequestError:
    """Map one httpx transport failure to a typed request error."""
    try:
        request = exc.request
    except RuntimeError:
        request = None
    request_url = str(request.url) if request is not None else url
    request_method = request.method if request is not None else method.upper()
    return HttpRequestError(
        message=f"HTTP request failed for {request_method} {request_url}",
        method=request_method,
        url=request_url,
        retryable=True,
        cause=exc,
    )


def _status_error(response: httpx.Response) -> HttpStatusError:
    """Build a typed status error from one HTTP response."""
    status_code = response.status_code
    error = HttpStatusError(
        message=f"HTTP {status_code} for {response.request.method} {response.request.url}",
        method=response.request.method,
        url=str(response.request.url),
        retryable=status_code >= 500 or status_code == 429,
        status_code=status_code,
        response_body=_response_text(response),
        response_headers=dict(response.headers.items()),
    )
    if error.problem_type is None:
        return error
    detail = f" ({error.problem_detail})" if error.problem_detail else ""
    return replace(error, message=f"{error.message}: {error.problem_type}{detail}")


def _decode_json(response: httpx.Response) -> Any:
    """Decode JSON from a successful response or raise a typed error."""
    try:
        return response.json()
    except ValueError as exc:
        raise HttpJsonDecodeError(
            message=f"Invalid JSON response for {response.request.method} {response.request.url}",
            method=response.request.method,
            url=str(response.request.url),
            retryable=False,
            status_code=response.status_code,
            response_body=_response_text(response),
            cause=exc,
        ) from exc


class HttpClient:
    """Synchronous JSON transport over ``httpx.Client``."""

    def __init__(
        self,
        *,
        token: str | None = None,
        timeout_seconds: float = 10.0,
        headers: Mapping[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        """Create a transport; an injected ``client`` is never closed here."""
        self._owns_client = client is None
        self._client = client or httpx.Client(
            timeout=timeout_seconds,
            headers=auth_headers(token, headers),
            follow_redirects=True,
            transport=transport,
        )

    def close(self) -> None:
        """Close underlying transport resources when owned."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> HttpClient:
        """Enter context manager scope."""
        return self

    def __exit__(self, *_: object) -> None:
        """Exit context manager scope and close client."""
        self.close()

    def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Issue one request and map transport/status failures to typed errors."""
        try:
            response = self._client.request(method=method, url=url, **kwargs)
        except httpx.RequestError as exc:
            raise _request_error(exc, method=method, url=url) from exc
        if response.is_error:
            raise _status_error(response)
        return response

    def get_json(self, url: str, **kwargs: Any) -> Any:
        """Issue one GET request and decode JSON."""
        return _decode_json(self.request("GET", url, **kwargs))

    def post_json(self, url: str, *, json: Any, **kwargs: Any) -> Any:
        """POST one JSON document and decode the JSON reply."""
        return _decode_json(self.request("POST", url, json=json, **kwargs))


class AsyncHttpClient:
    """Asynchronous JSON transport over ``httpx.AsyncClient``."""

    def __init__(
        self,
        *,
        token: str | None = None,
        timeout_seconds: float = 10.0,
        headers: Mapping[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Create a transport; an injected ``client`` is never closed here."""
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout_seconds,
            headers=auth_headers(token, headers),
            follow_redirects=True,
            transport=transport,
        )

    async def aclose(self) -> None:
        """Close underlying transport resources when owned."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> AsyncHttpClient:
        """Enter async context manager scope."""
        return self

    async def __aexit__(self, *_: object) -> None:
        """Exit async context manager scope and close client."""
        await self.aclose()

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Issue one request and map transport/status failures to typed errors."""
        try:
            response = await self._client.request(method=method, url=url, **kwargs)
        except httpx.RequestError as exc:
            raise _request_error(exc, method=method, url=url) from exc
        if response.is_error:
            raise _status_error(response)
        return response

    async def get_json(self, url: str, **kwargs: Any) -> Any:
        """Issue one GET request and decode JSON."""
        return _decode_json(await self.request("GET", url, **kwargs))

    async def post_json(self, url: str, *, json: Any, **kwargs: Any) -> Any:
        """POST one JSON document and decode the JSON reply."""
        return _decode_json(await self.request("POST", url, json=json, **kwargs))
