"""Configuration management.

Loads from TOML config files + environment variables.
Uses pydantic-settings for validation and env var overriding.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

from .enums import StatusRegressionPolicy
from .errors import ConfigError


# ---------------------------------------------------------------------------
# Sub-configs
# ---------------------------------------------------------------------------

class DatabaseConfig(BaseModel):
    url: str = "sqlite+aiosqlite:///:memory:"
    pool_size: int = 5
    max_overflow: int = 10
    echo: bool = False
    create_tables: bool = True  # CREATE TABLE IF NOT EXISTS on startup


class ObservabilityConfig(BaseModel):
    log_level: str = "INFO"
    log_format: str = "json"  # "json" or "console"


class ReconciliationConfig(BaseModel):
    status_regression_policy: StatusRegressionPolicy = StatusRegressionPolicy.REJECT
    suppress_replays: bool = True  # Drop records at or below the stored uts


# ---------------------------------------------------------------------------
# Top-level settings
# ---------------------------------------------------------------------------

class Settings(BaseSettings):
    """Top-level facilitator settings.

    Loaded from TOML config files, overridden by environment variables
    (``FACILITATOR_DATABASE__URL=...``).
    """

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)
    reconciliation: ReconciliationConfig = Field(default_factory=ReconciliationConfig)

    model_config = {"env_prefix": "FACILITATOR_", "env_nested_delimiter": "__"}


def load_settings(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> Settings:
    """Load settings from TOML file + env vars.

    Args:
        config_path: Path to TOML config file (optional).
        overrides: Dict of overrides to apply on top.

    Raises:
        ConfigError: If *config_path* is given but does not exist.
    """
    data: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")

        import tomli

        with open(path, "rb") as f:
            data = tomli.load(f)

    if overrides:
        _merge(data, overrides)

    return Settings(**data)


def _merge(base: dict[str, Any], overrides: dict[str, Any]) -> None:
    """Merge *overrides* into *base*, section by section."""
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
