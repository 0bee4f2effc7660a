"""Settings loading with an overridable YAML and ``.env`` location.

Precedence is always:
1) explicit overrides (CLI params)
2) environment variables (``JMAP_`` prefix, ``__`` for nesting)
3) the ``.env`` file
4) ``~/.config/jmap/jmap.yaml``
5) built-in defaults
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic_settings import SettingsConfigDict

from .models import DEFAULT_CONFIG_PATH, DEFAULT_ENV_FILE, JmapSettings


def load_settings(
    *,
    config_path: str | Path | None = None,
    env_file: str | Path | None = DEFAULT_ENV_FILE,
    **overrides: Any,
) -> JmapSettings:
    """Load settings; ``None`` overrides are dropped so lower sources apply."""
    resolved = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    scoped = type(
        JmapSettings.__name__,
        (JmapSettings,),
        {
            "__module__": JmapSettings.__module__,
            "model_config": SettingsConfigDict(yaml_file=resolved),
        },
    )
    explicit = {key: value for key, value in overrides.items() if value is not None}
    return scoped(_env_file=env_file, **explicit)
