"""Utilities for loading application settings from YAML configuration files."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080
DEFAULT_RETURNING_COLUMN = "id"


@dataclass(slots=True)
class ServerSettings:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT


@dataclass(slots=True)
class DatabaseSettings:
    url_env: str = "DATABASE_URL"
    url: str | None = None
    returning_column: str | None = DEFAULT_RETURNING_COLUMN
    tables_without_key: list[str] = field(default_factory=list)
    serialize: bool = False
    echo: bool = False

    def resolve_url(self) -> str:
        value = os.getenv(self.url_env) if self.url_env else None
        if value:
            return value
        if self.url:
            return self.url
        raise OSError(
            f"Environment variable '{self.url_env}' is required when no database url is configured"
        )


@dataclass(slots=True)
class PathsSettings:
    audit_logs_dir: str | None = None


@dataclass(slots=True)
class Settings:
    server: ServerSettings
    database: DatabaseSettings
    paths: PathsSettings | None = None


def _load_yaml(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def load_settings(path: str | Path) -> Settings:
    """Read configuration from *path* and return structured settings."""

    config_path = Path(path)
    raw = _load_yaml(config_path)

    server_raw = raw.get("server") or {}
    server = ServerSettings(
        host=str(server_raw.get("host", DEFAULT_HOST)),
        port=int(server_raw.get("port", DEFAULT_PORT)),
    )

    database_raw = raw.get("database") or {}
    url = database_raw.get("url")
    returning = database_raw.get("returning_column", DEFAULT_RETURNING_COLUMN)
    database = DatabaseSettings(
        url_env=str(database_raw.get("url_env", "DATABASE_URL")),
        url=str(url) if url else None,
        returning_column=str(returning) if returning else None,
        tables_without_key=[str(name) for name in database_raw.get("tables_without_key") or []],
        serialize=bool(database_raw.get("serialize", False)),
        echo=bool(database_raw.get("echo", False)),
    )

    paths_raw: dict[str, Any] | None = raw.get("paths")
    paths = None
    if paths_raw:
        audit_dir = paths_raw.get("audit_logs_dir")
        paths = PathsSettings(audit_logs_dir=str(audit_dir) if audit_dir else None)

    return Settings(server=server, database=database, paths=paths)
