"""SQLAlchemy-backed executor translating table operations into SQL statements.

Three operations are supported:

    INSERT INTO <table> (<columns>) VALUES (<binds>) [RETURNING <key>]
    UPDATE <table> SET <column> = <bind>, ... WHERE <predicate>
    DELETE FROM <table> WHERE <predicate>

Every value is sent as a bound parameter. The table name, the column names and
the ``WHERE`` predicate are structural text and are placed in the statement
verbatim, so callers must only pass identifiers and predicates they trust.

Each call runs in its own transaction (``Engine.begin``). The transaction is
committed when the statement succeeds and rolled back otherwise; failures are
returned as :class:`~src.core.results.Failure` values rather than raised.
"""

from __future__ import annotations

import contextlib
import json
import logging
import threading
from collections.abc import Callable, Collection, Mapping
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import column, delete, insert, literal_column, table, update
from sqlalchemy.engine import CursorResult, Engine
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.sql.elements import ColumnClause, quoted_name
from sqlalchemy.sql.expression import Executable, TableClause

from src.core.observability import OperationObservationSink, describe_outcome
from src.core.results import Failure, OperationResult, Success


LOGGER = logging.getLogger(__name__)

def _identifier(name: str) -> quoted_name:
    # quote=False renders the name exactly as given.
    return quoted_name(name, False)


def render_value(value: Any) -> Any:
    """Return the value bound for a column.

    Scalars are bound as-is so the driver applies the backend's own conventions
    for strings, numbers, booleans and NULL. Nested structures are bound as
    compact JSON text.
    """

    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return value


def _target(table_name: str, columns: Collection[str] = ()) -> TableClause:
    return table(_identifier(table_name), *(column(_identifier(name)) for name in columns))


def _predicate(text_: str) -> ColumnClause:
    # Rendered verbatim: no bind-marker parsing, percent signs escaped per dialect.
    return literal_column(text_)


def _require_table(table_name: str) -> None:
    if not table_name or not table_name.strip():
        raise ValueError("Table name must not be empty")


def _require_values(values: Mapping[str, Any]) -> None:
    if not values:
        raise ValueError("At least one column value is required")


def build_insert(table_name: str, values: Mapping[str, Any], returning: str | None = None) -> Executable:
    """Build an INSERT statement with one bind parameter per column."""

    _require_table(table_name)
    _require_values(values)
    statement = insert(_target(table_name, values)).values(
        {name: render_value(value) for name, value in values.items()}
    )
    if returning:
        statement = statement.returning(literal_column(returning))
    return statement


def build_update(table_name: str, values: Mapping[str, Any], predicate: str) -> Executable:
    """Build an UPDATE statement; *predicate* is inserted verbatim."""

    _require_table(table_name)
    _require_values(values)
    return (
        update(_target(table_name, values))
        .values({name: render_value(value) for name, value in values.items()})
        .where(_predicate(predicate))
    )


def build_delete(table_name: str, predicate: str) -> Executable:
    """Build a DELETE statement; *predicate* is inserted verbatim."""

    _require_table(table_name)
    return delete(_target(table_name)).where(_predicate(predicate))


def backend_message(exc: BaseException) -> str:
    """Return the backend's own error text, unwrapping DBAPI errors."""

    if isinstance(exc, DBAPIError) and exc.orig is not None:
        return str(exc.orig).strip()
    return str(exc).strip()


def _coerce_key(value: Any) -> int | str:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    try:
        return int(value)
    except (TypeError, ValueError):
        return str(value)


@dataclass(slots=True)
class StatementExecutor:
    """Executes insert/update/delete requests against an injected engine."""

    engine: Engine
    returning_column: str | None = "id"
    tables_without_key: Collection[str] = field(default_factory=frozenset)
    serialize: bool = False
    observer: OperationObservationSink | None = None
    _lock: threading.Lock = field(init=False, default_factory=threading.Lock)

    def __post_init__(self) -> None:
        self.tables_without_key = frozenset(
            name.strip().lower() for name in self.tables_without_key if name
        )

    def insert(self, table: str, values: Mapping[str, Any]) -> OperationResult:
        """Insert one row, returning the generated key when the table has one."""

        returning = self._returning_for(table)

        def interpret(result: CursorResult) -> OperationResult:
            row = result.fetchone() if returning else None
            if row is None or row[0] is None:
                return Success(rows_affected=1)
            return Success(generated_id=_coerce_key(row[0]))

        return self._execute(
            "insert",
            table,
            lambda: build_insert(table, values, returning),
            interpret,
        )

    def update(self, table: str, values: Mapping[str, Any], predicate: str) -> OperationResult:
        """Update rows matching *predicate*; zero matches is still a success."""

        return self._execute(
            "update",
            table,
            lambda: build_update(table, values, predicate),
            _rows_affected,
        )

    def remove(self, table: str, predicate: str) -> OperationResult:
        """Delete rows matching *predicate*."""

        return self._execute(
            "delete",
            table,
            lambda: build_delete(table, predicate),
            _rows_affected,
        )

    def _returning_for(self, table: str) -> str | None:
        if (table or "").strip().lower() in self.tables_without_key:
            return None
        return self.returning_column

    def _guard(self) -> contextlib.AbstractContextManager[Any]:
        return self._lock if self.serialize else contextlib.nullcontext()

    def _execute(
        self,
        operation: str,
        table: str,
        build: Callable[[], Executable],
        interpret: Callable[[CursorResult], OperationResult],
    ) -> OperationResult:
        try:
            statement = build()
        except ValueError as exc:
            return self._finish(operation, table, Failure(message=str(exc)))

        if LOGGER.isEnabledFor(logging.DEBUG):
            LOGGER.debug(
                "Executing %s on table=%s: %s",
                operation,
                table,
                statement.compile(dialect=self.engine.dialect),
            )
        try:
            with self._guard():
                with self.engine.begin() as connection:
                    outcome = interpret(connection.execute(statement))
        except SQLAlchemyError as exc:
            outcome = Failure(message=backend_message(exc))
        except Exception as exc:  # pragma: no cover - defensive
            LOGGER.exception("Unexpected error during %s on table=%s", operation, table)
            outcome = Failure(message=str(exc))
        return self._finish(operation, table, outcome)

    def _finish(self, operation: str, table: str, outcome: OperationResult) -> OperationResult:
        if isinstance(outcome, Success):
            LOGGER.info(
                "%s committed table=%s id=%s rows=%s",
                operation,
                table,
                outcome.generated_id,
                outcome.rows_affected,
            )
            event = f"{operation}_committed"
        else:
            LOGGER.warning("%s aborted table=%s error=%s", operation, table, outcome.message)
            event = f"{operation}_aborted"
        if self.observer is not None:
            self.observer.log_event(table or "unknown", event, describe_outcome(operation, table, outcome))
        return outcome


def _rows_affected(result: CursorResult) -> OperationResult:
    return Success(rows_affected=max(result.rowcount, 0))
