"""Typed runtime settings for JMAP clients."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "jmap" / "jmap.yaml"
DEFAULT_ENV_FILE = ".env"
DEFAULT_HOSTNAME = "api.fastmail.com"
SESSION_PATH = "/.well-known/jmap"


@dataclass(frozen=True)
class ConfigurationError(Exception):
    """Required setting is missing or unusable."""

    message: str
    setting: str = ""

    def __str__(self) -> str:
        """Return human-readable error message."""
        return self.message


class LoggingSettings(BaseModel):
    """Structured logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"
    json_output: bool = False
    service: str = "jmap"
    environment: str = "dev"


class JmapSettings(BaseSettings):
    """Connection and credential settings for one JMAP account."""

    model_config = SettingsConfigDict(
        env_prefix="JMAP_",
        env_nested_delimiter="__",
        env_file=DEFAULT_ENV_FILE,
        env_file_encoding="utf-8",
        yaml_file=DEFAULT_CONFIG_PATH,
        yaml_file_encoding="utf-8",
        extra="ignore",
        nested_model_default_partial_update=True,
    )

    hostname: str = DEFAULT_HOSTNAME
    username: str | None = None
    token: SecretStr | None = None
    session_url: str | None = None
    timeout_seconds: float = Field(default=10.0, gt=0)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @property
    def session_endpoint(self) -> str:
        """Return the session resource URL, derived from ``hostname`` if unset."""
        if self.session_url:
            return self.session_url
        return f"https://{self.hostname.strip().rstrip('/')}{SESSION_PATH}"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Apply precedence: init > env > .env > yaml > defaults."""
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
        )


def require_token(settings: JmapSettings) -> str:
    """Return the API token or raise when none is configured."""
    token = settings.token.get_secret_value().strip() if settings.token else ""
    if token == "":
        raise ConfigurationError(
            message="No API token configured; set JMAP_TOKEN",
            setting="token",
        )
    return token
