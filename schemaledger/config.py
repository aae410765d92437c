from __future__ import annotations

import os
import re
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from schemaledger.migrations.recovery import LEGACY_RENAMES
from schemaledger.persistence.ledger_store import DEFAULT_LEDGER_TABLE

_ENV_PREFIX = "SCHEMALEDGER_"
_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class DatabaseConfig(BaseModel):
    path: Path = Path("./data/app.db")
    ledger_table: str = DEFAULT_LEDGER_TABLE

    @field_validator("ledger_table")
    @classmethod
    def _validate_ledger_table(cls, value: str) -> str:
        if not _IDENTIFIER.match(value):
            raise ValueError("database.ledger_table must be a plain SQL identifier")
        return value


class MigrationsConfig(BaseModel):
    directory: Path = Path("./migrations")
    legacy_renames: dict[str, str] = Field(default_factory=lambda: dict(LEGACY_RENAMES))
    """Ledger names recorded by older releases, mapped to the names scripts ship under now."""


class LoggingConfig(BaseModel):
    level: str = "INFO"
    json_output: bool = False

    @field_validator("level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        normalized = value.upper()
        if normalized not in _LOG_LEVELS:
            raise ValueError(f"logging.level must be one of {sorted(_LOG_LEVELS)}")
        return normalized


class SchemaLedgerSettings(BaseSettings):
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    migrations: MigrationsConfig = Field(default_factory=MigrationsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix=_ENV_PREFIX,
        env_nested_delimiter="__",
        extra="ignore",
    )


def _coerce_env_value(value: str) -> object:
    parsed = yaml.safe_load(value)
    return value if parsed is None else parsed


def _set_nested(mapping: dict[str, object], path: list[str], value: object) -> None:
    current = mapping
    for key in path[:-1]:
        existing = current.get(key)
        if not isinstance(existing, dict):
            existing = {}
            current[key] = existing
        current = existing
    current[path[-1]] = value


def _apply_env_overrides(data: dict[str, object]) -> dict[str, object]:
    merged = dict(data)
    for key, raw_value in os.environ.items():
        if not key.startswith(_ENV_PREFIX):
            continue
        path = key[len(_ENV_PREFIX) :].lower().split("__")
        _set_nested(merged, path, _coerce_env_value(raw_value))
    return merged


def load_config(path: str | Path | None = "config/schemaledger.yaml") -> SchemaLedgerSettings:
    """Load settings from YAML with ``SCHEMALEDGER_*`` environment overrides.

    ``path=None`` skips the file and builds settings from the environment alone.
    """

    if path is None:
        return SchemaLedgerSettings()

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"config file not found: {config_path}")

    loaded = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    if not isinstance(loaded, dict):
        raise ValueError("config file must contain a top-level mapping")

    raw = loaded.get("schemaledger", loaded)
    if not isinstance(raw, dict):
        raise ValueError("schemaledger config section must be a mapping")

    merged = _apply_env_overrides(raw)
    return SchemaLedgerSettings.model_validate(merged)


__all__ = [
    "DatabaseConfig",
    "LoggingConfig",
    "MigrationsConfig",
    "SchemaLedgerSettings",
    "load_config",
]
