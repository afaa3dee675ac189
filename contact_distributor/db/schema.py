from __future__ import annotations

from importlib import resources
from typing import Any

"""DDL bootstrap for the PostgreSQL collaborators (idempotent)."""


def load_schema_sql() -> str:
    return resources.files(__package__).joinpath("schema.sql").read_text(encoding="utf-8")


def ensure_schema(cursor: Any) -> None:
    """Create the agents / distributions tables if they do not exist yet."""
    cursor.execute(load_schema_sql())
