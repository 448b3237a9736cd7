from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..contracts import CONFIG_SCHEMA_PATH
from ..models.row import DEFAULT_TEMPORARY_PREFIX
from ..services.validation import FieldRules, RuleSyntaxError, parse_rules

"""Config loader.

Responsibilities:
- Load the YAML config (default ``config/rowsync.yml``)
- Validate it against ``rowsync/contracts/config_schema.json``
- Parse every field's rule declaration (syntax errors surface here, at startup)
- Apply defaults and the ``ROWSYNC_SECRET_KEY`` override

Database connection settings are resolved later, when a connection is
opened, so environment variables set by ``.env`` still take precedence.
"""

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "ConfigError",
    "DatabaseConfig",
    "ServerConfig",
    "SyncConfig",
    "config_from_dict",
    "load_config",
]

DEFAULT_CONFIG_PATH = Path("config/rowsync.yml")


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class DatabaseConfig:
    """Fallback connection settings; environment variables win over these."""
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 5000
    secret_key: str | None = None


@dataclass(frozen=True)
class SyncConfig:
    """Root configuration: the synced table, its tracked fields and their rules."""
    table: str
    fields: dict[str, FieldRules]  # declaration order = column order on the wire
    id_column: str = "id"
    temporary_id_prefix: str = DEFAULT_TEMPORARY_PREFIX
    csrf_enabled: bool = True
    transactional: bool = False
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(self.fields)


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the bundled JSON schema.

    Raises:
        ConfigError: schema file missing or unreadable, or data not conforming
    """
    if not CONFIG_SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {CONFIG_SCHEMA_PATH}")
    try:
        schema = json.loads(CONFIG_SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def config_from_dict(data: dict[str, Any]) -> SyncConfig:
    """Build a SyncConfig from already-parsed data (validated here)."""
    _validate_config_schema(data)

    fields: dict[str, FieldRules] = {}
    for name, declaration in data["fields"].items():
        try:
            fields[name] = parse_rules(name, declaration)
        except RuleSyntaxError as e:
            raise ConfigError(f"fields.{name}: {e}") from e

    db_raw = data.get("database", {})
    srv_raw = data.get("server", {})
    secret = os.getenv("ROWSYNC_SECRET_KEY") or srv_raw.get("secret_key")
    return SyncConfig(
        table=data["table"],
        fields=fields,
        id_column=data.get("id_column", "id"),
        temporary_id_prefix=data.get("temporary_id_prefix", DEFAULT_TEMPORARY_PREFIX),
        csrf_enabled=data.get("csrf", {}).get("enabled", True),
        transactional=data.get("persistence", {}).get("transactional", False),
        database=DatabaseConfig(
            host=db_raw.get("host"),
            port=db_raw.get("port"),
            user=db_raw.get("user"),
            password=db_raw.get("password"),
            database=db_raw.get("database"),
            dsn=db_raw.get("dsn"),
        ),
        server=ServerConfig(
            host=srv_raw.get("host", "127.0.0.1"),
            port=srv_raw.get("port", 5000),
            secret_key=secret,
        ),
    )


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> SyncConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config root must be a mapping")
    return config_from_dict(data)
