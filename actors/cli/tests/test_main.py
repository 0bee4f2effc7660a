"""CLI tests for the JMAP Typer commands."""

from __future__ import annotations

import importlib
import json
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

import httpx
from typer.testing import CliRunner

from packages.jmap_sdk import JMAP_CORE, MASKED_EMAIL, JmapClient, MaskedEmailState
from packages.jmap_shared.config import JmapSettings
from packages.jmap_shared.http import HttpClient

SESSION_URL = "https://jmap.test/.well-known/jmap"
API_URL = "https://jmap.test/api/"

RECORDS = [
    {
        "id": "m1",
        "email": "shop.abc@fastmail.com",
        "state": "enabled",
        "forDomain": "https://shop.example",
        "description": "Shop",
    },
    {
        "id": "m2",
        "email": "news.xyz@fastmail.com",
        "state": "disabled",
        "forDomain": "https://news.example",
        "description": "",
    },
]

Responder = Callable[[dict[str, Any]], list[list[Any]]]


def _list_responder(body: dict[str, Any]) -> list[list[Any]]:
    name, _, call_id = body["methodCalls"][0]
    return [[name, {"accountId": "u1", "list": RECORDS, "notFound": []}, call_id]]


def _handler(responder: Responder, status_code: int = 200) -> Callable[..., Any]:
    """Return a mock JMAP server handler."""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(
                200,
                json={
                    "apiUrl": API_URL,
                    "username": "user@example.com",
                    "primaryAccounts": {JMAP_CORE: "u1", MASKED_EMAIL: "u1"},
                },
                request=request,
            )
        if status_code != 200:
            return httpx.Response(status_code, text="unavailable", request=request)
        body = json.loads(request.read())
        return httpx.Response(
            200,
            json={"sessionState": "s1", "methodResponses": responder(body)},
            request=request,
        )

    return handler


def _load_cli_app(
    monkeypatch: Any, responder: Responder = _list_responder, status_code: int = 200
) -> tuple[Any, Any]:
    """Import the CLI with clients bound to a mock JMAP server."""
    cli_module = importlib.import_module("actors.cli.main")

    def with_client(cfg: Any) -> JmapClient:
        settings = JmapSettings(
            token=cfg.token or "secret", session_url=SESSION_URL, _env_file=None
        )
        http = HttpClient(
            token="secret",
            transport=httpx.MockTransport(_handler(responder, status_code)),
        )
        return JmapClient(settings=settings, http=http)

    monkeypatch.setattr(cli_module, "_with_client", with_client)
    return cli_module.app, cli_module


def test_masked_list_human_output(monkeypatch: Any) -> None:
    """List command should print one line per address and timing on stderr."""
    app, _ = _load_cli_app(monkeypatch)

    result = CliRunner().invoke(app, ["masked", "list"])

    assert result.exit_code == 0
    assert "- shop.abc@fastmail.com (enabled) https://shop.example: Shop" in result.output
    assert "- news.xyz@fastmail.com (disabled) https://news.example" in result.output
    assert "Got 2 masked emails in " in result.output


def test_masked_list_filters_by_state_as_json(monkeypatch: Any) -> None:
    """--json output should be a compact JSON array of filtered records."""
    app, _ = _load_cli_app(monkeypatch)

    result = CliRunner().invoke(app, ["--json", "masked", "list", "--state", "disabled"])

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert [item["id"] for item in payload] == ["m2"]
    assert payload[0]["forDomain"] == "https://news.example"


def test_masked_find_matches_address(monkeypatch: Any) -> None:
    """find should render the single matching record."""
    app, _ = _load_cli_app(monkeypatch)

    result = CliRunner().invoke(app, ["masked", "find", "NEWS.xyz@fastmail.com"])

    assert result.exit_code == 0
    assert "Email:        news.xyz@fastmail.com" in result.output
    assert "Id:           m2" in result.output


def test_session_command_renders_accounts(monkeypatch: Any) -> None:
    """session should show the API URL and primary accounts."""
    app, _ = _load_cli_app(monkeypatch)

    result = CliRunner().invoke(app, ["session"])

    assert result.exit_code == 0
    assert f"API URL: {API_URL}" in result.output
    assert f"  {MASKED_EMAIL}: u1" in result.output


def test_masked_set_state_sends_update(monkeypatch: Any) -> None:
    """set-state should send one MaskedEmail/set update."""
    sent: list[dict[str, Any]] = []

    def responder(body: dict[str, Any]) -> list[list[Any]]:
        sent.append(body)
        return [["MaskedEmail/set", {"updated": {"m1": None}}, "a"]]

    app, _ = _load_cli_app(monkeypatch, responder)

    result = CliRunner().invoke(app, ["masked", "set-state", "m1", "disabled"])

    assert result.exit_code == 0
    assert result.output.strip() == "ok"
    assert sent[0]["methodCalls"][0][1] == {
        "accountId": "u1",
        "update": {"m1": {"state": "disabled"}},
    }


def test_not_found_maps_to_exit_code_3(monkeypatch: Any) -> None:
    """Domain failures should exit with code 3."""
    app, _ = _load_cli_app(monkeypatch)

    result = CliRunner().invoke(app, ["masked", "find", "missing@fastmail.com"])

    assert result.exit_code == 3
    assert "error: no masked email with address missing@fastmail.com" in result.output


def test_method_error_maps_to_exit_code_3_as_json(monkeypatch: Any) -> None:
    """Method-level errors should render as JSON errors in --json mode."""
    app, _ = _load_cli_app(
        monkeypatch, lambda body: [["error", {"type": "forbidden"}, "a"]]
    )

    result = CliRunner().invoke(app, ["--json", "masked", "get", "m1"])

    assert result.exit_code == 3
    assert '"error": "masked_email.get failed (forbidden)"' in result.output


def test_transport_error_maps_to_exit_code_4(monkeypatch: Any) -> None:
    """HTTP failures should exit with code 4."""
    app, _ = _load_cli_app(monkeypatch, status_code=503)

    result = CliRunner().invoke(app, ["masked", "list"])

    assert result.exit_code == 4
    assert "HTTP 503" in result.output


def test_protocol_error_maps_to_exit_code_5(monkeypatch: Any) -> None:
    """Responses that cannot be correlated should exit with code 5."""
    app, _ = _load_cli_app(
        monkeypatch, lambda body: [["MaskedEmail/get", {"list": []}, "zz"]]
    )

    result = CliRunner().invoke(app, ["masked", "list"])

    assert result.exit_code == 5
    assert "expected 'a'" in result.output


def test_missing_token_maps_to_exit_code_2(monkeypatch: Any, tmp_path: Path) -> None:
    """Running without any configured token should exit with code 2."""
    cli_module = importlib.import_module("actors.cli.main")
    for key in list(os.environ):
        if key.startswith("JMAP_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(cli_module, "configure_logging", lambda **_: None)

    result = CliRunner().invoke(cli_module.app, ["masked", "list"])

    assert result.exit_code == 2
    assert "No API token configured" in result.output


def test_blank_id_maps_to_exit_code_2(monkeypatch: Any) -> None:
    """A blank id should be rejected with code 2 before anything is sent."""
    posted: list[dict[str, Any]] = []

    def responder(body: dict[str, Any]) -> list[list[Any]]:
        posted.append(body)
        return _list_responder(body)

    app, _ = _load_cli_app(monkeypatch, responder)

    result = CliRunner().invoke(app, ["masked", "set-state", " ", "disabled"])
    as_json = CliRunner().invoke(app, ["--json", "masked", "describe", "", "label"])

    assert result.exit_code == 2
    assert "error: No id provided" in result.output
    assert as_json.exit_code == 2
    assert '"error": "No id provided"' in as_json.output
    assert posted == []


def test_typer_usage_errors_are_unchanged(monkeypatch: Any) -> None:
    """Missing arguments should keep Typer's usage exit code."""
    app, _ = _load_cli_app(monkeypatch)

    result = CliRunner().invoke(app, ["masked", "get"])

    assert result.exit_code == 2


def test_serialize_handles_enums_datetimes_and_dataclasses(monkeypatch: Any) -> None:
    """_serialize should reduce result objects to JSON-compatible values."""
    _, cli_module = _load_cli_app(monkeypatch)

    @dataclass
    class Row:
        state: MaskedEmailState
        seen: datetime

    data = cli_module._serialize(
        {"rows": (Row(MaskedEmailState.ENABLED, datetime(2024, 1, 2, 3, 4, 5)),)}
    )

    assert json.dumps(data) == (
        '{"rows": [{"state": "enabled", "seen": "2024-01-02T03:04:05"}]}'
    )


def test_render_empty_list(monkeypatch: Any) -> None:
    """An empty record list should render a friendly message."""
    _, cli_module = _load_cli_app(monkeypatch)

    assert cli_module._render_masked_email_list([]) == "No masked emails found."
