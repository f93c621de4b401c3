"""Shared fixtures backed by a temporary SQLite database."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

SCHEMA = (
    """
    CREATE TABLE items (
        id INTEGER PRIMARY KEY,
        name TEXT NOT NULL UNIQUE,
        qty INTEGER,
        note TEXT
    )
    """,
    """
    CREATE TABLE events (
        label TEXT NOT NULL,
        payload TEXT
    )
    """,
)


@pytest.fixture()
def sqlite_url(tmp_path: Path) -> str:
    url = f"sqlite:///{tmp_path / 'gateway.db'}"
    engine = create_engine(url)
    with engine.begin() as connection:
        for statement in SCHEMA:
            connection.execute(text(statement))
    engine.dispose()
    return url


@pytest.fixture()
def engine(sqlite_url: str) -> Iterator[Engine]:
    engine = create_engine(sqlite_url, connect_args={"check_same_thread": False})
    yield engine
    engine.dispose()


@pytest.fixture()
def fetch_rows(engine: Engine):
    def _fetch(statement: str) -> list[tuple]:
        with engine.connect() as connection:
            return [tuple(row) for row in connection.execute(text(statement))]

    return _fetch
