"""Fractional ordering keys for tasks within a column.

New tasks go to the bottom with a fixed gap. Inserting between two tasks
takes the mean of their positions, so siblings are never rewritten. When
repeated bisection crowds two keys together, :func:`needs_rebalance` tells
the caller to rewrite the column out of band with :func:`rebalance`.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from .constants import DEFAULT_POSITION_GAP, MIN_POSITION_GAP
from .domain.models import Task

# Positions are always positive, so zero is the floor for "top of column".
TOP_BOUND = 0.0


def next_position(positions: Iterable[float], gap: float = DEFAULT_POSITION_GAP) -> float:
    values = list(positions)
    if not values:
        return gap
    return max(values) + gap


def between(before: float, after: float) -> float:
    return (before + after) / 2.0


def top_position(positions: Iterable[float], gap: float = DEFAULT_POSITION_GAP) -> float:
    values = list(positions)
    if not values:
        return gap
    return between(TOP_BOUND, min(values))


def position_at_index(positions: Iterable[float], index: int, gap: float = DEFAULT_POSITION_GAP) -> float:
    """Position for slot ``index`` (0 = top, -1 or past the end = bottom)."""
    ordered = sorted(positions)
    if not ordered:
        return gap
    if index < 0 or index >= len(ordered):
        return ordered[-1] + gap
    if index == 0:
        return between(TOP_BOUND, ordered[0])
    return between(ordered[index - 1], ordered[index])


def position_after(target: float, positions: Iterable[float], gap: float = DEFAULT_POSITION_GAP) -> float:
    later = [p for p in positions if p > target]
    if not later:
        return target + gap
    return between(target, min(later))


def position_before(target: float, positions: Iterable[float]) -> float:
    earlier = [p for p in positions if p < target]
    if not earlier:
        return between(TOP_BOUND, target)
    return between(max(earlier), target)


def needs_rebalance(positions: Iterable[float], min_gap: float = MIN_POSITION_GAP) -> bool:
    ordered = sorted(positions)
    return any(b - a < min_gap for a, b in zip(ordered, ordered[1:]))


def sort_by_position(tasks: Iterable[Task]) -> list[Task]:
    # Ties fall back to id so ordering stays deterministic.
    return sorted(tasks, key=lambda t: (t.position, t.id))


def rebalance(tasks: Sequence[Task], gap: float = DEFAULT_POSITION_GAP) -> dict[str, float]:
    """Evenly re-spaced positions keyed by task id, preserving current order."""
    return {task.id: gap * (i + 1) for i, task in enumerate(sort_by_position(tasks))}
