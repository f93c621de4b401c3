"""Normalized outcomes returned by the statement executor."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union


@dataclass(slots=True, frozen=True)
class Success:
    """Statement committed.

    ``generated_id`` is set when an insert returned a key; otherwise
    ``rows_affected`` carries the backend's row count.
    """

    generated_id: int | str | None = None
    rows_affected: int | None = None

    @property
    def ok(self) -> bool:
        return True

    def to_payload(self) -> dict[str, Any]:
        if self.generated_id is not None:
            return {"success": True, "id": self.generated_id}
        return {"success": True, "rows_affected": self.rows_affected or 0}


@dataclass(slots=True, frozen=True)
class Failure:
    """Statement rolled back; ``message`` is the backend error text."""

    message: str

    @property
    def ok(self) -> bool:
        return False

    def to_payload(self) -> dict[str, Any]:
        return {"success": False, "error": self.message}


OperationResult = Union[Success, Failure]


def insert_payload(result: OperationResult) -> dict[str, Any]:
    """Render an insert outcome; keyless inserts report ``rows`` instead of ``rows_affected``."""

    if isinstance(result, Success) and result.generated_id is None:
        return {"success": True, "rows": result.rows_affected or 1}
    return result.to_payload()
