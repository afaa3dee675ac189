from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

"""Config loader.

Responsibilities:
- Load the YAML config (config/distribute.yml by default)
- Validate it against the bundled config_schema.json
- Apply defaults (log_directory=./logs, max_upload_bytes=5 MiB)
- Resolve the PostgreSQL DSN (environment first, YAML as fallback)
"""

__all__ = [
    "ConfigError",
    "DatabaseConfig",
    "RosterAgentConfig",
    "DistributeConfig",
    "DEFAULT_CONFIG_PATH",
    "load_config",
    "resolve_dsn",
]

DEFAULT_CONFIG_PATH = Path("config/distribute.yml")
DEFAULT_LOG_DIRECTORY = "./logs"
DEFAULT_MAX_UPLOAD_BYTES = 5 * 1024 * 1024
SCHEMA_RESOURCE = "config_schema.json"


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class DatabaseConfig:
    """Fallback connection settings. Environment variables take precedence."""
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class RosterAgentConfig:
    """Agent declared in YAML (used by the config roster selector / mock mode)."""
    agent_id: str
    name: str
    active: bool = True


@dataclass(frozen=True)
class DistributeConfig:
    source_directory: str
    roster: tuple[RosterAgentConfig, ...] = ()
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    log_directory: str = DEFAULT_LOG_DIRECTORY
    database: DatabaseConfig = field(default_factory=DatabaseConfig)


def _load_schema() -> dict[str, Any]:
    try:
        text = resources.files(__package__).joinpath(SCHEMA_RESOURCE).read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ConfigError(f"config schema not found: {SCHEMA_RESOURCE}") from e
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e


def _validate_config_schema(data: Any) -> None:
    """Validate config data against the bundled JSON schema.

    Raises:
        ConfigError: schema file unreadable, or data violates the schema
            (missing required keys, wrong types, unknown keys)
    """
    schema = _load_schema()
    try:
        jsonschema.validate(data, schema)
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> DistributeConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e

    _validate_config_schema(data)

    db_raw = data.get("database") or {}
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )
    roster = tuple(
        RosterAgentConfig(
            agent_id=str(agent["id"]),
            name=agent["name"],
            active=agent.get("active", True),
        )
        for agent in data.get("roster", [])
    )
    return DistributeConfig(
        source_directory=data["source_directory"],
        roster=roster,
        max_upload_bytes=data.get("max_upload_bytes", DEFAULT_MAX_UPLOAD_BYTES),
        log_directory=data.get("log_directory", DEFAULT_LOG_DIRECTORY),
        database=db,
    )


def resolve_dsn(db_cfg: DatabaseConfig) -> str:
    """Build the libpq DSN.

    Priority:
        1. DATABASE_URL / PGDSN (environment, .env loaded with override)
        2. database.dsn in YAML
        3. PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE, each falling
           back to the matching YAML field and then to libpq-like defaults
    """
    direct = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if direct:
        return direct
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn
