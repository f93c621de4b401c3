"""Factory helpers for constructing gateway dependencies from settings."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from sqlalchemy.engine import Engine

from src.core.config import Settings
from src.core.database import open_engine
from src.core.observability import JSONLOperationLogger, OperationObservationSink
from src.integrations.sql_statement_executor import StatementExecutor


@dataclass(slots=True)
class GatewayDependencies:
    """Collection of long-lived objects shared by every request."""

    engine: Engine
    executor: StatementExecutor
    audit_logger: OperationObservationSink | None = None

    def close(self) -> None:
        self.engine.dispose()


def build_dependencies(settings: Settings, *, engine: Engine | None = None) -> GatewayDependencies:
    """Create dependency instances based on *settings*.

    An already-open *engine* may be supplied; otherwise one is opened from the
    database settings, which raises if the backend is unreachable.
    """

    if engine is None:
        engine = open_engine(settings.database)

    audit_logger = _build_audit_logger(settings)
    executor = StatementExecutor(
        engine=engine,
        returning_column=settings.database.returning_column,
        tables_without_key=settings.database.tables_without_key,
        serialize=settings.database.serialize,
        observer=audit_logger,
    )
    return GatewayDependencies(engine=engine, executor=executor, audit_logger=audit_logger)


def _build_audit_logger(settings: Settings) -> JSONLOperationLogger | None:
    if settings.paths is None or not settings.paths.audit_logs_dir:
        return None
    path = Path(settings.paths.audit_logs_dir).expanduser()
    path.mkdir(parents=True, exist_ok=True)
    return JSONLOperationLogger(base_dir=path)
