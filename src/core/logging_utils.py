"""Helpers for the daily JSONL audit trail."""

from __future__ import annotations

import functools
from datetime import UTC, datetime
from pathlib import Path

AUDIT_FILE_SUFFIX = "operations.jsonl"


def utc_now_iso() -> str:
    """Return the current UTC time in ISO-8601 with millisecond precision."""

    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def day_slug(timestamp: str | None = None) -> str:
    """Return the UTC day of *timestamp* as ``YYYYMMDD``; unparseable input means today."""

    candidate = (timestamp or "").strip()
    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(candidate) if candidate else None
    except ValueError:
        parsed = None
    if parsed is None:
        parsed = datetime.now(UTC)
    elif parsed.tzinfo is not None:
        parsed = parsed.astimezone(UTC)
    return parsed.strftime("%Y%m%d")


@functools.lru_cache(maxsize=32)
def resolve_log_path(base_dir: str, day: str) -> Path:
    """Return the audit file for *day* under *base_dir*, creating the directory once."""

    target = Path(base_dir).expanduser().resolve() / f"{day}-{AUDIT_FILE_SUFFIX}"
    target.parent.mkdir(parents=True, exist_ok=True)
    return target
