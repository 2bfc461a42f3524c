from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional


def iso_today() -> str:
    # UTC, the same calendar as iso_now() timestamps.
    return datetime.now(timezone.utc).date().isoformat()


def iso_now() -> str:
    # Use UTC ISO timestamps for consistency.
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


def new_id() -> str:
    return str(uuid.uuid4())


def day_of(ts: str) -> str:
    """Calendar date part of an ISO timestamp ("2025-01-31T10:00:00Z" -> "2025-01-31")."""
    return str(ts).split("T", 1)[0]


def to_float(v, default: float = 0.0) -> float:
    if v is None:
        return default
    try:
        f = float(v)
    except (TypeError, ValueError):
        return default
    # NaN from empty spreadsheet cells
    if f != f:
        return default
    return f


def clean_str(v) -> Optional[str]:
    if v is None:
        return None
    s = str(v).strip()
    if not s or s.lower() == "nan":
        return None
    return s
