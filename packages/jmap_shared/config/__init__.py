"""Public API for JMAP configuration utilities."""

from .loader import load_settings
from .models import (
    DEFAULT_CONFIG_PATH,
    DEFAULT_HOSTNAME,
    ConfigurationError,
    JmapSettings,
    LoggingSettings,
    require_token,
)

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_HOSTNAME",
    "ConfigurationError",
    "JmapSettings",
    "LoggingSettings",
    "load_settings",
    "require_token",
]
