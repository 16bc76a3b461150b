"""Blocking-dependency graph over a snapshot of tasks.

A :class:`DependencyGraph` is built from one read of the task collection and
never re-reads the store, so a single :meth:`DependencyGraph.add_block` call
traverses a stable view even while unrelated tasks change underneath it.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from .constants import (
    ACTIONABLE_COLUMNS,
    COLUMN_DONE,
    COLUMN_IN_PROGRESS,
    COLUMN_REVIEW,
    TERMINAL_COLUMN,
)
from .domain.models import Task
from .errors import CycleDetectedError, SelfBlockError, UnknownTaskError


@dataclass
class Suggestion:
    task: Task
    reason: str
    impact: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "task": {
                "id": self.task.id,
                "title": self.task.title,
                "type": self.task.type,
                "priority": self.task.priority,
                "column": self.task.column,
            },
            "reason": self.reason,
        }


class DependencyGraph:
    def __init__(self, tasks: Iterable[Task]) -> None:
        self._tasks: dict[str, Task] = {t.id: t for t in tasks}

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks

    def get(self, task_id: str) -> Optional[Task]:
        return self._tasks.get(task_id)

    def tasks(self) -> list[Task]:
        return sorted(self._tasks.values(), key=lambda t: t.id)

    # ------------------------------------------------------------------
    # Edge validation
    # ------------------------------------------------------------------

    def would_cycle(self, task_id: str, blocker_id: str) -> bool:
        """True if ``blocker_id`` already reaches ``task_id`` via ``blocked_by``."""
        visited: set[str] = set()
        queue: deque[str] = deque([blocker_id])
        while queue:
            current = queue.popleft()
            if current == task_id:
                return True
            if current in visited:
                continue
            visited.add(current)
            node = self._tasks.get(current)
            if node:
                queue.extend(node.blocked_by)
        return False

    def add_block(self, task_id: str, blocker_id: str) -> list[str]:
        """Record that ``blocker_id`` blocks ``task_id``; return the new blocker list.

        Raises:
            SelfBlockError: the two ids are equal.
            UnknownTaskError: either id is not in the snapshot.
            CycleDetectedError: the new edge would close a cycle.
        """
        if task_id == blocker_id:
            raise SelfBlockError(task_id)
        task = self._tasks.get(task_id)
        if task is None:
            raise UnknownTaskError(task_id)
        if blocker_id not in self._tasks:
            raise UnknownTaskError(blocker_id)
        if blocker_id in task.blocked_by:
            return list(task.blocked_by)
        if self.would_cycle(task_id, blocker_id):
            raise CycleDetectedError(task_id, blocker_id)
        task.blocked_by.append(blocker_id)
        return list(task.blocked_by)

    def remove_block(self, task_id: str, blocker_id: str) -> list[str]:
        task = self._tasks.get(task_id)
        if task is None:
            raise UnknownTaskError(task_id)
        if blocker_id in task.blocked_by:
            task.blocked_by.remove(blocker_id)
        return list(task.blocked_by)

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------

    def outstanding_blockers(self, task: Task) -> list[str]:
        """Blockers that exist and are not yet done. Dangling ids are ignored."""
        out: list[str] = []
        for blocker_id in task.blocked_by:
            blocker = self._tasks.get(blocker_id)
            if blocker is not None and blocker.column != TERMINAL_COLUMN:
                out.append(blocker_id)
        return out

    def is_blocked(self, task: Task) -> bool:
        return bool(self.outstanding_blockers(task))

    def is_ready(self, task: Task) -> bool:
        return task.column in ACTIONABLE_COLUMNS and not self.is_blocked(task)

    def dependents(self, task_id: str) -> list[Task]:
        return [t for t in self.tasks() if task_id in t.blocked_by]

    def unblock_impact(self, task: Task) -> int:
        """How many unfinished tasks would become unblocked once ``task`` is done."""
        count = 0
        for dependent in self.dependents(task.id):
            if dependent.column == TERMINAL_COLUMN:
                continue
            others = [b for b in self.outstanding_blockers(dependent) if b != task.id]
            if not others:
                count += 1
        return count

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def ready(self) -> list[Task]:
        return [t for t in self.tasks() if self.is_ready(t)]

    def blocked(self) -> list[Task]:
        return [t for t in self.tasks() if self.is_blocked(t)]

    def not_blocked(self) -> list[Task]:
        return [t for t in self.tasks() if not self.is_blocked(t)]

    def suggest(self, limit: int = 0) -> list[Suggestion]:
        """Rank what to work on next.

        In-progress work first, then urgent and high priority ready tasks,
        then unblocked tasks ordered by how many others they would release.
        """
        suggestions: list[Suggestion] = []
        seen: set[str] = set()

        def _add(task: Task, reason: str, impact: int = 0) -> None:
            if task.id not in seen:
                seen.add(task.id)
                suggestions.append(Suggestion(task=task, reason=reason, impact=impact))

        ordered = self.tasks()
        for t in ordered:
            if t.column == COLUMN_IN_PROGRESS:
                _add(t, "Continue current work")
        for t in ordered:
            if t.priority == "urgent" and self.is_ready(t):
                _add(t, "Urgent priority, unblocked")
        for t in ordered:
            if t.priority == "high" and self.is_ready(t):
                _add(t, "High priority, unblocked")

        unblocking: list[tuple[int, Task]] = []
        for t in ordered:
            if t.column in (COLUMN_DONE, COLUMN_REVIEW) or self.is_blocked(t):
                continue
            impact = self.unblock_impact(t)
            if impact > 0:
                unblocking.append((impact, t))
        unblocking.sort(key=lambda pair: (-pair[0], pair[1].id))
        for impact, t in unblocking:
            _add(t, f"Unblocks {impact} other task(s)", impact)

        if limit and limit > 0:
            suggestions = suggestions[:limit]
        return suggestions
