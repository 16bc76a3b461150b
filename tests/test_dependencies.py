"""Tests for the blocking-dependency graph and suggestion ranking."""

from __future__ import annotations

import pytest

from taskboard_core.dependencies import DependencyGraph
from taskboard_core.domain.models import Task
from taskboard_core.errors import CycleDetectedError, SelfBlockError, UnknownTaskError


def _task(task_id: str, column: str = "todo", priority: str = "medium", blocked_by: list[str] | None = None) -> Task:
    return Task(id=task_id, title=task_id, column=column, priority=priority, blocked_by=list(blocked_by or []))


class TestAddBlock:
    def test_add_and_return_blockers(self) -> None:
        graph = DependencyGraph([_task("a"), _task("b")])
        assert graph.add_block("a", "b") == ["b"]
        assert graph.get("a").blocked_by == ["b"]

    def test_duplicate_edge_is_noop(self) -> None:
        graph = DependencyGraph([_task("a", blocked_by=["b"]), _task("b")])
        assert graph.add_block("a", "b") == ["b"]

    def test_self_block(self) -> None:
        graph = DependencyGraph([_task("a")])
        with pytest.raises(SelfBlockError):
            graph.add_block("a", "a")

    @pytest.mark.parametrize("task_id,blocker_id", [("missing", "a"), ("a", "missing")])
    def test_unknown_task(self, task_id: str, blocker_id: str) -> None:
        graph = DependencyGraph([_task("a")])
        with pytest.raises(UnknownTaskError):
            graph.add_block(task_id, blocker_id)

    def test_direct_cycle(self) -> None:
        graph = DependencyGraph([_task("a"), _task("b")])
        graph.add_block("a", "b")
        with pytest.raises(CycleDetectedError):
            graph.add_block("b", "a")

    def test_transitive_cycle(self) -> None:
        graph = DependencyGraph([_task("a", blocked_by=["b"]), _task("b", blocked_by=["c"]), _task("c")])
        with pytest.raises(CycleDetectedError) as excinfo:
            graph.add_block("c", "a")
        assert excinfo.value.task_id == "c"
        assert excinfo.value.blocker_id == "a"
        assert graph.get("c").blocked_by == []

    def test_diamond_is_not_a_cycle(self) -> None:
        graph = DependencyGraph([_task("a", blocked_by=["b", "c"]), _task("b", blocked_by=["d"]), _task("c"), _task("d")])
        assert graph.add_block("c", "d") == ["d"]

    def test_remove_block(self) -> None:
        graph = DependencyGraph([_task("a", blocked_by=["b"]), _task("b")])
        assert graph.remove_block("a", "b") == []
        assert graph.remove_block("a", "b") == []


class TestPredicates:
    def test_done_blockers_do_not_block(self) -> None:
        graph = DependencyGraph([_task("a", blocked_by=["b"]), _task("b", column="done")])
        assert not graph.is_blocked(graph.get("a"))
        assert graph.is_ready(graph.get("a"))

    def test_dangling_blocker_is_ignored(self) -> None:
        graph = DependencyGraph([_task("a", blocked_by=["ghost"])])
        assert not graph.is_blocked(graph.get("a"))

    def test_blocked_is_never_ready(self) -> None:
        graph = DependencyGraph([_task("a", blocked_by=["b"]), _task("b", column="in_progress")])
        task = graph.get("a")
        assert graph.is_blocked(task)
        assert not graph.is_ready(task)

    @pytest.mark.parametrize("column,ready", [("todo", True), ("backlog", True), ("in_progress", False), ("done", False)])
    def test_ready_columns(self, column: str, ready: bool) -> None:
        graph = DependencyGraph([_task("a", column=column)])
        assert graph.is_ready(graph.get("a")) is ready

    def test_listings(self) -> None:
        graph = DependencyGraph([
            _task("a", blocked_by=["b"]),
            _task("b", column="in_progress"),
            _task("c", column="backlog"),
        ])
        assert [t.id for t in graph.ready()] == ["c"]
        assert [t.id for t in graph.blocked()] == ["a"]
        assert [t.id for t in graph.not_blocked()] == ["b", "c"]

    def test_unblock_impact_counts_sole_blocker_only(self) -> None:
        graph = DependencyGraph([
            _task("a"),
            _task("b"),
            _task("x", blocked_by=["a"]),
            _task("y", blocked_by=["a", "b"]),
            _task("z", column="done", blocked_by=["a"]),
        ])
        assert graph.unblock_impact(graph.get("a")) == 1
        assert graph.unblock_impact(graph.get("b")) == 0


class TestSuggest:
    @pytest.fixture
    def graph(self) -> DependencyGraph:
        return DependencyGraph([
            _task("a", column="in_progress"),
            _task("b", priority="urgent", blocked_by=[]),
            _task("c", column="backlog", priority="high"),
            _task("d", priority="low"),
            _task("e", blocked_by=["d"]),
            _task("f", blocked_by=["d", "b"]),
            _task("g", blocked_by=["h"]),
            _task("h"),
            _task("r", column="review"),
            _task("s", blocked_by=["r"]),
        ])

    def test_ranking(self, graph: DependencyGraph) -> None:
        suggestions = graph.suggest()
        assert [(s.task.id, s.reason) for s in suggestions] == [
            ("a", "Continue current work"),
            ("b", "Urgent priority, unblocked"),
            ("c", "High priority, unblocked"),
            ("d", "Unblocks 1 other task(s)"),
            ("h", "Unblocks 1 other task(s)"),
        ]

    def test_no_task_twice(self, graph: DependencyGraph) -> None:
        ids = [s.task.id for s in graph.suggest()]
        assert len(ids) == len(set(ids))

    def test_impact_orders_unblockers(self) -> None:
        graph = DependencyGraph([
            _task("a"),
            _task("b"),
            _task("x", blocked_by=["b"]),
            _task("y", blocked_by=["b"]),
            _task("z", blocked_by=["a"]),
        ])
        suggestions = graph.suggest()
        assert [(s.task.id, s.impact) for s in suggestions] == [("b", 2), ("a", 1)]

    def test_limit(self, graph: DependencyGraph) -> None:
        assert [s.task.id for s in graph.suggest(limit=2)] == ["a", "b"]

    def test_to_dict(self, graph: DependencyGraph) -> None:
        data = graph.suggest(limit=1)[0].to_dict()
        assert data["reason"] == "Continue current work"
        assert data["task"]["id"] == "a"
        assert data["task"]["column"] == "in_progress"
