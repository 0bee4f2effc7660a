"""JMAP masked-address CLI implemented with Typer."""

from __future__ import annotations

import dataclasses
import json
import time
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable

import typer
from packages.jmap_sdk import (
    DomainError,
    InvalidArgumentError,
    JmapClient,
    JmapNotFoundError,
    MaskedEmailState,
    ProtocolError,
    SessionError,
    TransportError,
    create_masked_email,
    filter_by_state,
    find_by_address,
    get_masked_email,
    list_masked_emails,
    set_description,
    set_state,
)
from packages.jmap_shared.config import ConfigurationError, JmapSettings, load_settings
from packages.jmap_shared.logging import configure_logging

SUCCESS_EXIT_CODE = 0
CONFIGURATION_ERROR_EXIT_CODE = 2
INVALID_ARGUMENT_EXIT_CODE = 2
DOMAIN_ERROR_EXIT_CODE = 3
TRANSPORT_ERROR_EXIT_CODE = 4
PROTOCOL_ERROR_EXIT_CODE = 5


@dataclass(frozen=True)
class CliConfig:
    """Global CLI runtime options; ``None`` defers to loaded settings."""

    hostname: str | None
    token: str | None
    timeout: float | None
    as_json: bool
    log_level: str | None


def _serialize(value: Any) -> Any:
    """Convert result objects to JSON-serializable structures."""

    if isinstance(value, Enum):
        return _serialize(value.value)
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _serialize(dataclasses.asdict(value))
    if isinstance(value, dict):
        return {str(key): _serialize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_serialize(item) for item in value]
    if hasattr(value, "model_dump"):
        return _serialize(value.model_dump(mode="json", by_alias=True))
    return str(value)


def _emit_output(result: Any, as_json: bool) -> None:
    """Render command output in requested format."""

    data = _serialize(result)
    if as_json:
        typer.echo(json.dumps(data, sort_keys=True, separators=(",", ":")))
        return
    rendered = _render_human(data)
    if rendered is not None:
        typer.echo(rendered)
        return
    if data is None:
        typer.echo("ok")
        return
    typer.echo(str(data))


def _emit_error(exc: Exception, as_json: bool) -> None:
    """Render mapped SDK errors to stderr."""

    if as_json:
        typer.echo(json.dumps({"error": str(exc)}), err=True)
        return
    typer.echo(f"error: {exc}", err=True)


def _render_human(data: Any) -> str | None:
    """Return human-oriented rendering for recognized response shapes."""
    if isinstance(data, dict):
        if _looks_like_session(data):
            return _render_session(data)
        if _looks_like_masked_email(data):
            return _render_masked_email(data)
    if isinstance(data, list) and all(_looks_like_masked_email(item) for item in data):
        return _render_masked_email_list(data)
    if isinstance(data, (dict, list)):
        return json.dumps(data, indent=2, sort_keys=True)
    return None


def _looks_like_session(value: dict[str, Any]) -> bool:
    """Return True for session payloads."""
    return "apiUrl" in value and isinstance(value.get("primaryAccounts"), dict)


def _looks_like_masked_email(value: Any) -> bool:
    """Return True for masked address records."""
    return isinstance(value, dict) and "email" in value and "state" in value


def _render_session(data: dict[str, Any]) -> str:
    """Render session endpoint and primary accounts."""
    lines = [f"API URL: {data.get('apiUrl', '')}"]
    username = data.get("username")
    if isinstance(username, str) and username != "":
        lines.append(f"Username: {username}")
    lines.append("Primary accounts:")
    accounts = data.get("primaryAccounts", {})
    for capability in sorted(accounts):
        lines.append(f"  {capability}: {accounts[capability]}")
    return "\n".join(lines)


def _render_masked_email(data: dict[str, Any]) -> str:
    """Render one masked address record as aligned key/value rows."""
    rows = [
        ("Email", data.get("email")),
        ("Id", data.get("id")),
        ("State", data.get("state")),
        ("Domain", data.get("forDomain")),
        ("Description", data.get("description")),
        ("Created", data.get("createdAt")),
        ("Last message", data.get("lastMessageAt")),
    ]
    return "\n".join(
        f"{label + ':':<14}{value}" for label, value in rows if value not in (None, "")
    )


def _render_masked_email_list(items: list[dict[str, Any]]) -> str:
    """Render masked address records one per line."""
    if len(items) == 0:
        return "No masked emails found."
    lines: list[str] = []
    for item in items:
        line = f"- {item.get('email', '<unknown>')} ({item.get('state', '')})"
        domain = str(item.get("forDomain") or "").strip()
        description = str(item.get("description") or "").strip()
        if domain != "":
            line = f"{line} {domain}"
        if description != "":
            line = f"{line}: {description}"
        lines.append(line)
    return "\n".join(lines)


def _settings(cfg: CliConfig) -> JmapSettings:
    """Load settings with CLI flags taking precedence."""
    overrides: dict[str, Any] = {
        "hostname": cfg.hostname,
        "token": cfg.token,
        "timeout_seconds": cfg.timeout,
    }
    if cfg.log_level is not None:
        overrides["logging"] = {"level": cfg.log_level.upper()}
    return load_settings(**overrides)


def _with_client(cfg: CliConfig) -> JmapClient:
    """Return one SDK client built from global CLI settings."""
    settings = _settings(cfg)
    configure_logging(
        level=settings.logging.level,
        json_output=settings.logging.json_output,
        service=settings.logging.service,
        environment=settings.logging.environment,
    )
    return JmapClient(settings=settings)


def _run_command(cfg: CliConfig, invoke: Callable[[JmapClient], Any]) -> None:
    """Execute one SDK call and map outputs/errors to process semantics."""
    try:
        with _with_client(cfg) as client:
            result = invoke(client)
    except ConfigurationError as exc:
        _emit_error(exc, cfg.as_json)
        raise typer.Exit(code=CONFIGURATION_ERROR_EXIT_CODE) from exc
    except InvalidArgumentError as exc:
        _emit_error(exc, cfg.as_json)
        raise typer.Exit(code=INVALID_ARGUMENT_EXIT_CODE) from exc
    except DomainError as exc:
        _emit_error(exc, cfg.as_json)
        raise typer.Exit(code=DOMAIN_ERROR_EXIT_CODE) from exc
    except TransportError as exc:
        _emit_error(exc, cfg.as_json)
        raise typer.Exit(code=TRANSPORT_ERROR_EXIT_CODE) from exc
    except (ProtocolError, SessionError) as exc:
        _emit_error(exc, cfg.as_json)
        raise typer.Exit(code=PROTOCOL_ERROR_EXIT_CODE) from exc

    _emit_output(result, cfg.as_json)
    raise typer.Exit(code=SUCCESS_EXIT_CODE)


def _require_config(ctx: typer.Context) -> CliConfig:
    """Return required CLI config from Typer context."""

    config = ctx.obj
    if not isinstance(config, CliConfig):
        raise RuntimeError("CLI configuration not initialized")
    return config


app = typer.Typer(no_args_is_help=True, help="JMAP command-line interface")
masked_app = typer.Typer(help="Masked email commands")


@app.callback()
def main(
    ctx: typer.Context,
    hostname: str | None = typer.Option(
        None, envvar="JMAP_HOSTNAME", help="JMAP server hostname"
    ),
    token: str | None = typer.Option(
        None, envvar="JMAP_TOKEN", help="API token", show_default=False
    ),
    timeout: float | None = typer.Option(
        None, min=0.001, help="Request timeout in seconds"
    ),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON output"),
    log_level: str | None = typer.Option(None, help="Log level for stderr logging"),
) -> None:
    """Store global options for all commands."""

    ctx.obj = CliConfig(
        hostname=hostname,
        token=token,
        timeout=timeout,
        as_json=as_json,
        log_level=log_level,
    )


@app.command("session")
def session_command(ctx: typer.Context) -> None:
    """Show the API endpoint and primary accounts."""
    cfg = _require_config(ctx)
    _run_command(cfg, lambda client: client.session)


@masked_app.command("list")
def masked_list_command(
    ctx: typer.Context,
    state: MaskedEmailState | None = typer.Option(
        None, help="Only show addresses in this state", case_sensitive=False
    ),
) -> None:
    """List masked email addresses."""
    cfg = _require_config(ctx)

    def invoke(client: JmapClient) -> Any:
        started = time.perf_counter()
        records = list_masked_emails(client)
        elapsed_ms = round((time.perf_counter() - started) * 1000)
        if not cfg.as_json:
            typer.echo(f"Got {len(records)} masked emails in {elapsed_ms}ms", err=True)
        return records if state is None else filter_by_state(state, records)

    _run_command(cfg, invoke)


@masked_app.command("get")
def masked_get_command(
    ctx: typer.Context, masked_email_id: str = typer.Argument(..., help="Masked email id")
) -> None:
    """Show one masked email by id."""
    cfg = _require_config(ctx)
    _run_command(cfg, lambda client: get_masked_email(client, masked_email_id))


@masked_app.command("find")
def masked_find_command(
    ctx: typer.Context, address: str = typer.Argument(..., help="Masked email address")
) -> None:
    """Show one masked email by address."""
    cfg = _require_config(ctx)

    def invoke(client: JmapClient) -> Any:
        record = find_by_address(address, list_masked_emails(client))
        if record is None:
            raise JmapNotFoundError(
                message=f"no masked email with address {address}",
                operation="masked_email.find",
            )
        return record

    _run_command(cfg, invoke)


@masked_app.command("create")
def masked_create_command(
    ctx: typer.Context,
    domain: str = typer.Argument(..., help="Domain the address is for"),
    description: str = typer.Option("", help="Human label"),
    state: MaskedEmailState = typer.Option(
        MaskedEmailState.ENABLED, help="Initial state", case_sensitive=False
    ),
) -> None:
    """Create a masked email address."""
    cfg = _require_config(ctx)
    _run_command(
        cfg,
        lambda client: create_masked_email(
            client, domain, description=description, state=state
        ),
    )


@masked_app.command("set-state")
def masked_set_state_command(
    ctx: typer.Context,
    masked_email_id: str = typer.Argument(..., help="Masked email id"),
    state: MaskedEmailState = typer.Argument(..., help="New state", case_sensitive=False),
) -> None:
    """Enable, disable or delete a masked email."""
    cfg = _require_config(ctx)
    _run_command(cfg, lambda client: set_state(client, masked_email_id, state))


@masked_app.command("describe")
def masked_describe_command(
    ctx: typer.Context,
    masked_email_id: str = typer.Argument(..., help="Masked email id"),
    description: str = typer.Argument(..., help="New description"),
) -> None:
    """Replace the description of a masked email."""
    cfg = _require_config(ctx)
    _run_command(
        cfg, lambda client: set_description(client, masked_email_id, description)
    )


app.add_typer(masked_app, name="masked")


if __name__ == "__main__":
    app()
