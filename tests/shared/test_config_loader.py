"""Tests for pydantic-settings-backed configuration loading."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from packages.jmap_shared.config import (
    DEFAULT_HOSTNAME,
    ConfigurationError,
    JmapSettings,
    load_settings,
    require_token,
)


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Run each test without ambient JMAP_ variables or a stray .env file."""
    for key in list(os.environ):
        if key.startswith("JMAP_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)


def _write_yaml(path: Path, *lines: str) -> Path:
    path.write_text("\n".join(lines), encoding="utf-8")
    return path


def test_load_settings_applies_precedence_cascade(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Overrides should beat env, env should beat .env, .env should beat YAML."""
    config_file = _write_yaml(
        tmp_path / "jmap.yaml",
        "hostname: yaml.example",
        "username: yaml-user",
        "timeout_seconds: 3",
        "logging:",
        "  level: ERROR",
        "  service: from-yaml",
    )
    env_file = tmp_path / "custom.env"
    env_file.write_text(
        "JMAP_USERNAME=dotenv-user\nJMAP_TIMEOUT_SECONDS=4\n", encoding="utf-8"
    )
    monkeypatch.setenv("JMAP_TIMEOUT_SECONDS", "5")
    monkeypatch.setenv("JMAP_LOGGING__LEVEL", "INFO")

    settings = load_settings(
        config_path=config_file,
        env_file=env_file,
        hostname="cli.example",
        logging={"level": "DEBUG"},
    )

    assert settings.hostname == "cli.example"
    assert settings.username == "dotenv-user"
    assert settings.timeout_seconds == 5.0
    assert settings.logging.level == "DEBUG"
    assert settings.logging.service == "from-yaml"


def test_load_settings_uses_defaults_when_sources_missing(tmp_path: Path) -> None:
    """Settings should fall back to model defaults when env and YAML are absent."""
    settings = load_settings(config_path=tmp_path / "missing.yaml", env_file=None)

    assert settings.hostname == DEFAULT_HOSTNAME
    assert settings.token is None
    assert settings.timeout_seconds == 10.0
    assert settings.logging.level == "WARNING"
    assert settings.session_endpoint == f"https://{DEFAULT_HOSTNAME}/.well-known/jmap"


def test_load_settings_drops_none_overrides(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """A None override should defer to lower-precedence sources."""
    monkeypatch.setenv("JMAP_HOSTNAME", "env.example")

    settings = load_settings(
        config_path=tmp_path / "missing.yaml", env_file=None, hostname=None
    )

    assert settings.hostname == "env.example"


def test_token_is_read_from_env_and_kept_secret(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """The token should load from JMAP_TOKEN and never appear in repr."""
    monkeypatch.setenv("JMAP_TOKEN", "fmu1-secret")

    settings = load_settings(config_path=tmp_path / "missing.yaml", env_file=None)

    assert require_token(settings) == "fmu1-secret"
    assert "fmu1-secret" not in repr(settings)


def test_explicit_session_url_wins_over_hostname() -> None:
    """session_url should replace the derived well-known endpoint."""
    settings = JmapSettings(
        hostname="ignored.example",
        session_url="https://jmap.test/session",
        _env_file=None,
    )

    assert settings.session_endpoint == "https://jmap.test/session"


@pytest.mark.parametrize("token", [None, "", "   "])
def test_require_token_rejects_missing_token(token: str | None) -> None:
    """require_token should raise ConfigurationError for absent or blank tokens."""
    settings = JmapSettings(token=token, _env_file=None)

    with pytest.raises(ConfigurationError) as exc_info:
        require_token(settings)

    assert exc_info.value.setting == "token"
    assert "JMAP_TOKEN" in str(exc_info.value)


def test_invalid_timeout_is_rejected(tmp_path: Path) -> None:
    """Non-positive timeouts should fail validation."""
    with pytest.raises(ValueError):
        load_settings(
            config_path=tmp_path / "missing.yaml", env_file=None, timeout_seconds=0
        )
