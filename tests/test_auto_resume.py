"""Tests for the auto-resume trigger."""

from __future__ import annotations

import json
from typing import Any, Optional
from unittest.mock import MagicMock

import pytest

from taskboard_core.config import CoreConfig
from taskboard_core.domain.models import Comment, Task
from taskboard_core.errors import InvalidSessionError, LookupFailedError, UnsupportedToolError
from taskboard_core.resume.executor import BackgroundLauncher, ProcessExecutor
from taskboard_core.resume.service import AutoResumeService
from taskboard_core.storage.memory import InMemoryRecordStore

SESSION = {"tool": "opencode", "ref": "ses_12345678", "working_dir": "/work"}


class FlakyStore(InMemoryRecordStore):
    """Fails lookups for one collection."""

    def __init__(self, failing: str) -> None:
        super().__init__()
        self.failing = failing

    def find_by_id(self, collection: str, record_id: str) -> Optional[dict[str, Any]]:
        if collection == self.failing:
            raise OSError("disk on fire")
        return super().find_by_id(collection, record_id)


def _seed(
    store: InMemoryRecordStore,
    *,
    column: str = "need_input",
    resume_mode: str = "auto",
    session: Any = SESSION,
    board: Optional[str] = "b1",
) -> None:
    store.save("boards", {"id": "b1", "name": "Work", "prefix": "WRK", "resume_mode": resume_mode, "next_seq": 2})
    store.save(
        "tasks",
        {
            "id": "t1",
            "title": "Add login",
            "column": column,
            "priority": "high",
            "board": board or "",
            "seq": 1,
            "agent_session": session,
            "history": [],
        },
    )


def _comment(
    content: str = "@agent use Google OAuth",
    *,
    author_type: str = "human",
    mentions: Optional[list[str]] = None,
    comment_id: str = "c1",
) -> Comment:
    return Comment(
        id=comment_id,
        task="t1",
        content=content,
        author_type=author_type,
        author_id="alice",
        mentions=["@agent"] if mentions is None else mentions,
    )


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def launcher() -> MagicMock:
    return MagicMock(spec=BackgroundLauncher)


@pytest.fixture
def service(store: InMemoryRecordStore, launcher: MagicMock) -> AutoResumeService:
    return AutoResumeService(store, CoreConfig(), launcher)


def _task(store: InMemoryRecordStore) -> Task:
    return Task.from_record(store.find_by_id("tasks", "t1"))


class TestConditions:
    def test_agent_author_is_ignored(self, store, service, launcher) -> None:
        _seed(store)
        outcome = service.check_and_resume(_comment(author_type="agent"))

        assert not outcome.triggered
        assert _task(store).column == "need_input"
        launcher.launch.assert_not_called()

    @pytest.mark.parametrize("mentions", [[], ["@bob"], ["@agents"], ["agent"]])
    def test_requires_exact_agent_mention(self, store, service, launcher, mentions) -> None:
        _seed(store)
        assert not service.check_and_resume(_comment(mentions=mentions)).triggered
        launcher.launch.assert_not_called()

    @pytest.mark.parametrize("column", ["backlog", "todo", "in_progress", "review", "done"])
    def test_wrong_column(self, store, service, launcher, column) -> None:
        _seed(store, column=column)
        outcome = service.check_and_resume(_comment())

        assert not outcome.triggered
        assert column in outcome.reason
        assert _task(store).column == column
        launcher.launch.assert_not_called()

    @pytest.mark.parametrize("session", [None, "", "null", "{}", b"{}", "garbage"])
    def test_missing_session(self, store, service, launcher, session) -> None:
        _seed(store, session=session)
        assert not service.check_and_resume(_comment()).triggered
        launcher.launch.assert_not_called()

    @pytest.mark.parametrize("mode", ["manual", "command"])
    def test_board_not_in_auto_mode(self, store, service, launcher, mode) -> None:
        _seed(store, resume_mode=mode)
        outcome = service.check_and_resume(_comment())

        assert not outcome.triggered
        assert _task(store).column == "need_input"
        assert _task(store).history == []
        launcher.launch.assert_not_called()

    def test_task_without_board(self, store, service, launcher) -> None:
        _seed(store, board=None)
        assert not service.check_and_resume(_comment()).triggered
        launcher.launch.assert_not_called()


class TestErrors:
    def test_missing_task(self, store, service) -> None:
        with pytest.raises(LookupFailedError):
            service.check_and_resume(_comment())

    def test_missing_board(self, store, service, launcher) -> None:
        _seed(store)
        store.delete("boards", "b1")
        with pytest.raises(LookupFailedError):
            service.check_and_resume(_comment())
        assert _task(store).column == "need_input"

    def test_store_failure_is_wrapped(self, launcher) -> None:
        store = FlakyStore("boards")
        _seed(store)
        service = AutoResumeService(store, CoreConfig(), launcher)
        with pytest.raises(LookupFailedError) as excinfo:
            service.check_and_resume(_comment())
        assert isinstance(excinfo.value.cause, OSError)
        launcher.launch.assert_not_called()

    @pytest.mark.parametrize("session", [{"tool": "", "ref": "ses_12345678"}, {"tool": "opencode", "ref": ""}])
    def test_invalid_session(self, store, service, launcher, session) -> None:
        _seed(store, session=session)
        with pytest.raises(InvalidSessionError):
            service.check_and_resume(_comment())
        assert _task(store).column == "need_input"
        launcher.launch.assert_not_called()

    def test_unsupported_tool_leaves_task_untouched(self, store, service, launcher) -> None:
        _seed(store, session={"tool": "vim", "ref": "ses_12345678"})
        with pytest.raises(UnsupportedToolError):
            service.check_and_resume(_comment())
        task = _task(store)
        assert task.column == "need_input"
        assert task.history == []
        launcher.launch.assert_not_called()


class TestTrigger:
    def test_happy_path(self, store, service, launcher) -> None:
        _seed(store)
        store.save("comments", _comment().to_record())
        outcome = service.check_and_resume(_comment())

        assert outcome.triggered
        assert outcome.task_id == "t1"
        task = _task(store)
        assert task.column == "in_progress"
        entry = task.history[-1].to_dict()
        entry.pop("timestamp")
        assert entry == {
            "action": "auto_resumed",
            "actor": "system",
            "actor_detail": "auto-resume",
            "changes": {"column": {"from": "need_input", "to": "in_progress"}},
            "metadata": {"trigger_comment": "c1"},
        }

        launcher.launch.assert_called_once()
        task_id, command = launcher.launch.call_args.args
        assert task_id == "t1"
        assert command.args[:2] == ["opencode", "run"]
        assert command.args[-2:] == ["--session", "ses_12345678"]
        assert command.working_dir == "/work"
        assert "**Task**: WRK-1 - Add login" in command.prompt
        assert "@agent use Google OAuth" in command.prompt

    def test_second_call_is_a_noop(self, store, service, launcher) -> None:
        _seed(store)
        assert service.check_and_resume(_comment()).triggered
        second = service.check_and_resume(_comment())

        assert not second.triggered
        assert len(_task(store).history) == 1
        assert launcher.launch.call_count == 1

    def test_session_as_json_string(self, store, service, launcher) -> None:
        _seed(store, session=json.dumps(SESSION))
        assert service.check_and_resume(_comment()).triggered

    def test_working_dir_defaults(self, store, launcher) -> None:
        _seed(store, session={"tool": "claude-code", "ref": "ses_12345678"})
        service = AutoResumeService(store, CoreConfig(default_working_dir="/srv/app"), launcher)
        outcome = service.check_and_resume(_comment())

        assert outcome.command is not None
        assert outcome.command.working_dir == "/srv/app"
        assert outcome.command.args[:3] == ["claude", "--resume", "ses_12345678"]

    def test_context_keeps_most_recent_comments(self, store, launcher) -> None:
        _seed(store)
        for i in range(4):
            comment = Comment(
                id=f"c{i}",
                task="t1",
                content=f"message {i}",
                author_id="alice",
                created=f"2026-01-01T10:0{i}:00+00:00",
            )
            store.save("comments", comment.to_record())
        service = AutoResumeService(store, CoreConfig(context_comment_limit=2), launcher)
        outcome = service.check_and_resume(_comment(comment_id="c3"))

        prompt = outcome.command.prompt
        assert "message 0" not in prompt
        assert "message 1" not in prompt
        assert prompt.index("message 2") < prompt.index("message 3")

    def test_legacy_comment_record(self, store, service) -> None:
        _seed(store)
        legacy = Comment.from_record(
            {"id": "c9", "task": "t1", "content": "@agent ok", "author_type": "human", "metadata": '{"mentions": ["@agent"]}'}
        )
        assert service.check_and_resume(legacy).triggered

    def test_launch_runs_the_command(self, store) -> None:
        _seed(store)
        executor = MagicMock(spec=ProcessExecutor)
        executor.spawn.return_value = 0
        launcher = BackgroundLauncher(executor)
        try:
            outcome = AutoResumeService(store, CoreConfig(), launcher).check_and_resume(_comment())
            assert outcome.future.result(timeout=5) == "completed"
        finally:
            launcher.shutdown(wait=True)
        args, working_dir = executor.spawn.call_args.args
        assert args[0] == "opencode"
        assert working_dir == "/work"

    def test_failed_command_does_not_roll_back(self, store) -> None:
        _seed(store)
        executor = MagicMock(spec=ProcessExecutor)
        executor.spawn.return_value = 1
        launcher = BackgroundLauncher(executor)
        try:
            outcome = AutoResumeService(store, CoreConfig(), launcher).check_and_resume(_comment())
            assert outcome.future.result(timeout=5) == "failed"
        finally:
            launcher.shutdown(wait=True)
        assert _task(store).column == "in_progress"
