"""Build history entries for task mutations."""

from __future__ import annotations

from typing import Any, Optional

from .constants import ACTOR_CLI
from .domain.models import HistoryEntry, Task


def change(before: Any, after: Any) -> dict[str, Any]:
    return {"from": before, "to": after}


def record(
    task: Task,
    action: str,
    changes: Optional[dict[str, Any]] = None,
    *,
    actor: str = ACTOR_CLI,
    actor_detail: str = "",
    metadata: Optional[dict[str, Any]] = None,
) -> HistoryEntry:
    """Append a new entry to ``task.history`` and return it."""
    entry = HistoryEntry(
        action=action,
        actor=actor,
        actor_detail=actor_detail,
        changes=dict(changes or {}),
        metadata=dict(metadata or {}),
    )
    return task.append_history(entry)
