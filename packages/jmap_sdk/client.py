"""JMAP clients: one session fetch, then one POST per method-call batch."""

from __future__ import annotations

import time
from typing import Any, Mapping

from packages.jmap_sdk.builder import MethodCallBatch, MethodCallBuilder
from packages.jmap_sdk.capabilities import JMAP_CORE
from packages.jmap_sdk.router import MethodOutcome, MethodResponseRouter
from packages.jmap_sdk.session import Session
from packages.jmap_shared.config import JmapSettings, load_settings, require_token
from packages.jmap_shared.http import AsyncHttpClient, HttpClient
from packages.jmap_shared.logging import fields, get_logger, log_context

logger = get_logger(__name__)

_SINGLE_CALL_ID = "a"


class JmapClient:
    """Synchronous client over one authenticated account.

    Transport failures from ``packages.jmap_shared.http`` propagate unchanged;
    when one occurs no outcome exists for any call in the batch.
    """

    def __init__(
        self,
        *,
        settings: JmapSettings | None = None,
        http: HttpClient | None = None,
        session: Session | None = None,
        router: MethodResponseRouter | None = None,
    ) -> None:
        """Create a client; an injected ``http`` transport is not closed here."""
        self._settings = load_settings() if settings is None else settings
        self._owns_http = http is None
        self._http = self._new_http() if http is None else http
        self._session = session
        self._router = MethodResponseRouter() if router is None else router

    def close(self) -> None:
        """Close the HTTP transport when this client created it."""
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> JmapClient:
        """Enter context manager scope."""
        return self

    def __exit__(self, *_: object) -> None:
        """Exit context manager scope and close transport resources."""
        self.close()

    @property
    def settings(self) -> JmapSettings:
        return self._settings

    @property
    def session(self) -> Session:
        """Return the session resource, fetching it on first use."""
        if self._session is None:
            url = self._settings.session_endpoint
            self._session = Session.from_json(self._http.get_json(url))
            _log_session(url, self._session)
        return self._session

    def account_id(self, capability: str = JMAP_CORE) -> str:
        """Return the session's primary account for ``capability``."""
        return self.session.account_id(capability)

    def new_batch(self, *capabilities: str) -> MethodCallBuilder:
        """Return a builder declaring core plus ``capabilities``.

        Calls are bound to the primary account of the first capability given.
        """
        primary = capabilities[0] if capabilities else JMAP_CORE
        return MethodCallBuilder(
            account_id=self.account_id(primary),
            using=(JMAP_CORE, *capabilities),
        )

    def execute(self, batch: MethodCallBatch) -> dict[str, MethodOutcome]:
        """Send one batch and return one classified outcome per call id."""
        session = self.session
        with log_context(_batch_fields(session, batch)):
            started = time.perf_counter()
            data = self._http.post_json(session.api_url, json=batch.as_request())
            outcomes = self._router.route_json(data, batch)
            _log_batch(batch, outcomes, started)
        return outcomes

    def call(
        self,
        method_name: str,
        arguments: Mapping[str, Any] | None = None,
        *capabilities: str,
    ) -> MethodOutcome:
        """Send a single-call batch and return its outcome."""
        builder = self.new_batch(*capabilities)
        builder.add_call(method_name, arguments, _SINGLE_CALL_ID)
        return self.execute(builder.build())[_SINGLE_CALL_ID]

    def _new_http(self) -> HttpClient:
        return HttpClient(
            token=require_token(self._settings),
            timeout_seconds=self._settings.timeout_seconds,
        )


class AsyncJmapClient:
    """Asynchronous counterpart of ``JmapClient``."""

    def __init__(
        self,
        *,
        settings: JmapSettings | None = None,
        http: AsyncHttpClient | None = None,
        session: Session | None = None,
        router: MethodResponseRouter | None = None,
    ) -> None:
        """Create a client; an injected ``http`` transport is not closed here."""
        self._settings = load_settings() if settings is None else settings
        self._owns_http = http is None
        self._http = self._new_http() if http is None else http
        self._session = session
        self._router = MethodResponseRouter() if router is None else router

    async def aclose(self) -> None:
        """Close the HTTP transport when this client created it."""
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> AsyncJmapClient:
        """Enter async context manager scope."""
        return self

    async def __aexit__(self, *_: object) -> None:
        """Exit async context manager scope and close transport resources."""
        await self.aclose()

    async def get_session(self) -> Session:
        """Return the session resource, fetching it on first use."""
        if self._session is None:
            url = self._settings.session_endpoint
            self._session = Session.from_json(await self._http.get_json(url))
            _log_session(url, self._session)
        return self._session

    async def account_id(self, capability: str = JMAP_CORE) -> str:
        """Return the session's primary account for ``capability``."""
        return (await self.get_session()).account_id(capability)

    async def new_batch(self, *capabilities: str) -> MethodCallBuilder:
        """Return a builder declaring core plus ``capabilities``."""
        primary = capabilities[0] if capabilities else JMAP_CORE
        return MethodCallBuilder(
            account_id=await self.account_id(primary),
            using=(JMAP_CORE, *capabilities),
        )

    async def execute(self, batch: MethodCallBatch) -> dict[str, MethodOutcome]:
        """Send one batch and return one classified outcome per call id."""
        session = await self.get_session()
        with log_context(_batch_fields(session, batch)):
            started = time.perf_counter()
            data = await self._http.post_json(session.api_url, json=batch.as_request())
            outcomes = self._router.route_json(data, batch)
            _log_batch(batch, outcomes, started)
        return outcomes

    async def call(
        self,
        method_name: str,
        arguments: Mapping[str, Any] | None = None,
        *capabilities: str,
    ) -> MethodOutcome:
        """Send a single-call batch and return its outcome."""
        builder = await self.new_batch(*capabilities)
        builder.add_call(method_name, arguments, _SINGLE_CALL_ID)
        return (await self.execute(builder.build()))[_SINGLE_CALL_ID]

    def _new_http(self) -> AsyncHttpClient:
        return AsyncHttpClient(
            token=require_token(self._settings),
            timeout_seconds=self._settings.timeout_seconds,
        )


def _batch_fields(session: Session, batch: MethodCallBatch) -> dict[str, object]:
    account = batch.calls[0].arguments.get("accountId") if batch.calls else None
    return {fields.API_URL: session.api_url, fields.ACCOUNT_ID: account}


def _log_session(url: str, session: Session) -> None:
    logger.debug(
        "Fetched JMAP session",
        extra={
            "fields": {
                fields.EVENT: fields.SESSION_FETCHED_EVENT,
                fields.API_URL: session.api_url,
                fields.SESSION_STATE: session.state,
                "session_url": url,
            }
        },
    )


def _log_batch(
    batch: MethodCallBatch, outcomes: Mapping[str, MethodOutcome], started: float
) -> None:
    logger.debug(
        "Executed JMAP batch",
        extra={
            "fields": {
                fields.EVENT: fields.BATCH_EXECUTED_EVENT,
                fields.BATCH_CALLS: len(batch),
                fields.METHODS: ",".join(call.method_name for call in batch.calls),
                fields.OUTCOME: ",".join(
                    f"{call_id}:{type(outcome).__name__}"
                    for call_id, outcome in outcomes.items()
                ),
                fields.DURATION_MS: round((time.perf_counter() - started) * 1000, 1),
            }
        },
    )
