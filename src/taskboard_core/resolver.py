"""Resolve a human or agent supplied reference to exactly one task.

Resolution order, first hit wins:

1. exact id
2. id prefix (several hits are ambiguous; title matching is not attempted)
3. display id such as ``WRK-12`` (only when boards are supplied)
4. case-insensitive title substring
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from .domain.models import Board, Task
from .errors import AmbiguousTaskError, TaskNotFoundError

_DISPLAY_ID_RE = re.compile(r"^(?P<prefix>[A-Za-z0-9]+)-(?P<seq>\d+)$")


@dataclass
class Resolution:
    task: Optional[Task] = None
    matches: list[Task] = field(default_factory=list)

    @property
    def is_ambiguous(self) -> bool:
        return len(self.matches) > 1

    @property
    def is_not_found(self) -> bool:
        return self.task is None and not self.matches


def _settle(matches: list[Task]) -> Optional[Resolution]:
    if not matches:
        return None
    if len(matches) == 1:
        return Resolution(task=matches[0], matches=[matches[0]])
    return Resolution(matches=sorted(matches, key=lambda t: t.id))


def resolve_task(
    ref: str,
    tasks: Iterable[Task],
    boards: Optional[Sequence[Board]] = None,
) -> Resolution:
    """Match ``ref`` against ``tasks`` without side effects."""
    ref = (ref or "").strip()
    candidates = list(tasks)
    if not ref:
        return Resolution()

    for task in candidates:
        if task.id == ref:
            return Resolution(task=task, matches=[task])

    found = _settle([t for t in candidates if t.id.startswith(ref)])
    if found is not None:
        return found

    if boards:
        m = _DISPLAY_ID_RE.match(ref)
        if m:
            prefix = m.group("prefix").lower()
            seq = int(m.group("seq"))
            board_ids = {b.id for b in boards if b.prefix.lower() == prefix}
            found = _settle([t for t in candidates if t.board in board_ids and t.seq == seq])
            if found is not None:
                return found

    needle = ref.lower()
    found = _settle([t for t in candidates if needle in t.title.lower()])
    return found if found is not None else Resolution()


def must_resolve(
    ref: str,
    tasks: Iterable[Task],
    boards: Optional[Sequence[Board]] = None,
) -> Task:
    """Return the single task ``ref`` names or raise.

    Raises:
        TaskNotFoundError: nothing matched.
        AmbiguousTaskError: more than one task matched; ``matches`` lists them.
    """
    resolution = resolve_task(ref, tasks, boards)
    if resolution.is_ambiguous:
        raise AmbiguousTaskError(ref, resolution.matches)
    if resolution.task is None:
        raise TaskNotFoundError(ref)
    return resolution.task
