"""Shared fixtures: an in-memory JMAP server behind ``httpx.MockTransport``."""

from __future__ import annotations

import json
from collections.abc import Callable, Iterator
from typing import Any

import httpx
import pytest

from packages.jmap_sdk import JMAP_CORE, MASKED_EMAIL, JmapClient
from packages.jmap_shared.config import JmapSettings
from packages.jmap_shared.http import HttpClient

SESSION_URL = "https://jmap.test/.well-known/jmap"
API_URL = "https://jmap.test/api/"

SESSION_DOCUMENT: dict[str, Any] = {
    "apiUrl": API_URL,
    "username": "user@example.com",
    "state": "session-1",
    "primaryAccounts": {JMAP_CORE: "u1", MASKED_EMAIL: "u1"},
    "accounts": {"u1": {"name": "user@example.com", "isPersonal": True}},
    "capabilities": {JMAP_CORE: {}, MASKED_EMAIL: {}},
}

Responder = Callable[[dict[str, Any]], list[list[Any]]]


class FakeJmapServer:
    """Serve the session document and answer API posts with a responder."""

    def __init__(self) -> None:
        self.session: Any = SESSION_DOCUMENT
        self.responder: Responder = _echo_empty
        self.requests: list[httpx.Request] = []
        self.bodies: list[dict[str, Any]] = []
        self.status_code = 200

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code != 200:
            return httpx.Response(self.status_code, text="unavailable", request=request)
        if request.method == "GET" and str(request.url) == SESSION_URL:
            return httpx.Response(200, json=self.session, request=request)
        if request.method == "POST" and str(request.url) == API_URL:
            body = json.loads(request.read())
            self.bodies.append(body)
            return httpx.Response(
                200,
                json={"sessionState": "session-1", "methodResponses": self.responder(body)},
                request=request,
            )
        return httpx.Response(404, text="not found", request=request)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def reply(self, *results: dict[str, Any]) -> None:
        """Answer each call in order with one result, echoing name and call id."""

        def responder(body: dict[str, Any]) -> list[list[Any]]:
            return [
                [call[0], result, call[2]]
                for call, result in zip(body["methodCalls"], results)
            ]

        self.responder = responder


def _echo_empty(body: dict[str, Any]) -> list[list[Any]]:
    return [[name, {}, call_id] for name, _, call_id in body["methodCalls"]]


@pytest.fixture
def settings() -> JmapSettings:
    return JmapSettings(token="secret", session_url=SESSION_URL, _env_file=None)


@pytest.fixture
def server() -> FakeJmapServer:
    return FakeJmapServer()


@pytest.fixture
def client(settings: JmapSettings, server: FakeJmapServer) -> Iterator[JmapClient]:
    http = HttpClient(token="secret", transport=server.transport())
    with JmapClient(settings=settings, http=http) as jmap:
        yield jmap
    http.close()
