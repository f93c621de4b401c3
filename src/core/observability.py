"""JSONL-backed audit trail for table operations."""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from src.core.logging_utils import day_slug, resolve_log_path, utc_now_iso
from src.core.results import OperationResult, Success


LOGGER = logging.getLogger(__name__)


class OperationObservationSink(Protocol):
    """Records the outcome of every executed table operation."""

    def log_event(self, table: str, event: str, payload: dict[str, Any]) -> None:  # pragma: no cover - interface
        ...


def _build_event(event: str, payload: dict[str, Any]) -> dict[str, Any]:
    enriched = {key: value for key, value in payload.items() if value is not None}
    enriched.setdefault("event", event)
    enriched.setdefault("timestamp", utc_now_iso())
    return enriched


def describe_outcome(operation: str, table: str, result: OperationResult) -> dict[str, Any]:
    """Flatten an operation result into an audit payload."""

    payload: dict[str, Any] = {"operation": operation, "table": table, "success": result.ok}
    if isinstance(result, Success):
        payload["id"] = result.generated_id
        payload["rows"] = result.rows_affected
    else:
        payload["error"] = result.message
    return payload


@dataclass(slots=True)
class JSONLOperationLogger(OperationObservationSink):
    """Appends every outcome to one ``<YYYYMMDD>-operations.jsonl`` file per UTC day.

    The table name is recorded as a field, never as part of a path.
    """

    base_dir: Path
    _lock: threading.Lock = field(init=False, default_factory=threading.Lock)

    def log_event(self, table: str, event: str, payload: dict[str, Any]) -> None:  # type: ignore[override]
        record = _build_event(event, {"table": table, **payload})
        try:
            target = resolve_log_path(str(self.base_dir), day_slug(record["timestamp"]))
            with self._lock, target.open("a", encoding="utf-8") as handle:
                json.dump(record, handle, ensure_ascii=False)
                handle.write("\n")
        except OSError:
            LOGGER.exception("Failed to append audit event for table=%s", table)
