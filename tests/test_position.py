"""Tests for fractional positions."""

from __future__ import annotations

import pytest

from taskboard_core.domain.models import Task
from taskboard_core.position import (
    between,
    needs_rebalance,
    next_position,
    position_after,
    position_at_index,
    position_before,
    rebalance,
    sort_by_position,
    top_position,
)


class TestNextPosition:
    def test_empty_column(self) -> None:
        assert next_position([]) == 1000.0

    def test_appends_after_max(self) -> None:
        assert next_position([2000.0, 1000.0]) == 3000.0

    def test_custom_gap(self) -> None:
        assert next_position([10.0], gap=5.0) == 15.0


class TestBetween:
    def test_mean(self) -> None:
        assert between(1000.0, 2000.0) == 1500.0

    def test_repeated_bisection_stays_inside(self) -> None:
        low, high = 1000.0, 2000.0
        for _ in range(40):
            mid = between(low, high)
            assert low < mid < high
            high = mid


class TestTopAndIndex:
    def test_top_is_half_of_first(self) -> None:
        assert top_position([1000.0, 2000.0]) == 500.0
        assert top_position([]) == 1000.0

    @pytest.mark.parametrize(
        "index,expected",
        [(0, 500.0), (1, 1500.0), (2, 2500.0), (-1, 4000.0), (10, 4000.0)],
    )
    def test_position_at_index(self, index: int, expected: float) -> None:
        assert position_at_index([3000.0, 1000.0, 2000.0], index) == expected

    def test_position_at_index_empty(self) -> None:
        assert position_at_index([], 0) == 1000.0


class TestRelative:
    def test_after_middle(self) -> None:
        assert position_after(1000.0, [1000.0, 2000.0, 3000.0]) == 1500.0

    def test_after_last(self) -> None:
        assert position_after(3000.0, [1000.0, 3000.0]) == 4000.0

    def test_before_middle(self) -> None:
        assert position_before(2000.0, [1000.0, 2000.0]) == 1500.0

    def test_before_first(self) -> None:
        assert position_before(1000.0, [1000.0, 2000.0]) == 500.0


class TestRebalance:
    def test_needs_rebalance(self) -> None:
        assert needs_rebalance([1.0, 1.0005])
        assert not needs_rebalance([1000.0, 2000.0])
        assert not needs_rebalance([])

    def test_rebalance_preserves_order(self) -> None:
        tasks = [
            Task(id="b", position=1.0005),
            Task(id="a", position=1.0),
            Task(id="c", position=1.0008),
        ]
        assert rebalance(tasks) == {"a": 1000.0, "b": 2000.0, "c": 3000.0}

    def test_sort_breaks_ties_by_id(self) -> None:
        tasks = [Task(id="b", position=1.0), Task(id="a", position=1.0)]
        assert [t.id for t in sort_by_position(tasks)] == ["a", "b"]
