"""Provide utility helpers for timestamps and short ids."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from .constants import SHORT_ID_LENGTH


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        if not isinstance(value, str):
            value = str(value)
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        dt = datetime.fromisoformat(value)
        # If a naive timestamp slips in, assume UTC to avoid crashes.
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt
    except ValueError:
        return None


def _new_id() -> str:
    """Fifteen lowercase hex characters, the width record ids use."""
    return uuid.uuid4().hex[:15]


def short_id(record_id: str) -> str:
    return record_id[:SHORT_ID_LENGTH] if len(record_id) > SHORT_ID_LENGTH else record_id
