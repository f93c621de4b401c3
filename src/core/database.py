"""Engine construction for the relational backend."""

from __future__ import annotations

import logging

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError

from src.core.config import DatabaseSettings


LOGGER = logging.getLogger(__name__)


class DatabaseUnavailableError(RuntimeError):
    """Raised at startup when the backend cannot be reached."""


def open_engine(settings: DatabaseSettings) -> Engine:
    """Create an engine from *settings* and verify that it can connect.

    Raises :class:`DatabaseUnavailableError` when the backend cannot be reached.
    """

    url = make_url(settings.resolve_url())
    LOGGER.info("Opening database engine for %s", url.render_as_string(hide_password=True))
    connect_args: dict[str, object] = {}
    if url.get_backend_name() == "sqlite":
        # Sync endpoints run on FastAPI worker threads.
        connect_args["check_same_thread"] = False
    engine = create_engine(url, echo=settings.echo, connect_args=connect_args)
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        engine.dispose()
        LOGGER.error("Cannot open database connection: %s", exc)
        raise DatabaseUnavailableError("Cannot open database connection") from exc
    return engine
