"""Tests for the background resume launcher."""

from __future__ import annotations

import threading
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from loguru import logger

from taskboard_core.resume.command import ResumeCommand, build_resume_command
from taskboard_core.resume.executor import BackgroundLauncher, ProcessExecutor, SubprocessExecutor


@pytest.fixture
def log_records() -> Any:
    records: list[dict[str, Any]] = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    yield records
    logger.remove(handler_id)


@pytest.fixture
def executor() -> MagicMock:
    mock = MagicMock(spec=ProcessExecutor)
    mock.spawn.return_value = 0
    return mock


@pytest.fixture
def launcher(executor: MagicMock) -> Any:
    launcher = BackgroundLauncher(executor)
    yield launcher
    launcher.shutdown(wait=True)


def _statuses(records: list[dict[str, Any]]) -> list[str]:
    return [r["extra"]["status"] for r in records if r["extra"].get("component") == "auto-resume"]


class TestBackgroundLauncher:
    def test_completed(self, launcher: BackgroundLauncher, executor: MagicMock, log_records: list) -> None:
        command = build_resume_command("opencode", "ses_12345678", "/work", "go on")
        future = launcher.launch("t1", command)

        assert future.result(timeout=5) == "completed"
        executor.spawn.assert_called_once_with(command.args, "/work")
        assert _statuses(log_records) == ["started", "completed"]

    def test_nonzero_exit(self, launcher: BackgroundLauncher, executor: MagicMock, log_records: list) -> None:
        executor.spawn.return_value = 2
        future = launcher.launch("t1", build_resume_command("codex", "ses_12345678", ".", "p"))

        assert future.result(timeout=5) == "failed"
        failed = [r for r in log_records if r["extra"].get("status") == "failed"]
        assert failed[0]["extra"]["error"] == "exit status 2"
        assert failed[0]["extra"]["task_id"] == "t1"
        assert failed[0]["level"].name == "ERROR"

    def test_spawn_error(self, launcher: BackgroundLauncher, executor: MagicMock, log_records: list) -> None:
        executor.spawn.side_effect = FileNotFoundError("opencode not found")
        future = launcher.launch("t1", build_resume_command("opencode", "ses_12345678", ".", "p"))

        assert future.result(timeout=5) == "failed"
        assert _statuses(log_records) == ["started", "failed"]

    def test_empty_args(self, launcher: BackgroundLauncher, executor: MagicMock, log_records: list) -> None:
        command = ResumeCommand(tool="opencode", session_ref="s", working_dir=".", prompt="p", args=[])
        assert launcher.launch("t1", command).result(timeout=5) == "failed"
        executor.spawn.assert_not_called()

    def test_runs_off_the_caller_thread(self, launcher: BackgroundLauncher, executor: MagicMock) -> None:
        seen: list[str] = []
        executor.spawn.side_effect = lambda args, wd: seen.append(threading.current_thread().name) or 0
        launcher.launch("t1", build_resume_command("opencode", "ses_12345678", ".", "p")).result(timeout=5)
        assert seen and seen[0].startswith("auto-resume")

    def test_unexpected_error_is_logged(self, launcher: BackgroundLauncher, executor: MagicMock, log_records: list) -> None:
        executor.spawn.side_effect = RuntimeError("boom")
        future = launcher.launch("t1", build_resume_command("opencode", "ses_12345678", ".", "p"))

        with pytest.raises(RuntimeError):
            future.result(timeout=5)
        launcher.shutdown(wait=True)
        errors = [r for r in log_records if r["extra"].get("status") == "failed"]
        assert errors and "RuntimeError: boom" in errors[-1]["extra"]["error"]


class TestSubprocessExecutor:
    def test_returns_exit_status(self) -> None:
        completed = MagicMock(returncode=3, stderr="bad things")
        with patch("taskboard_core.resume.executor.subprocess.run", return_value=completed) as run:
            assert SubprocessExecutor().spawn(["opencode", "run"], "/work") == 3
        args, kwargs = run.call_args
        assert args[0] == ["opencode", "run"]
        assert kwargs["cwd"] == "/work"

    def test_missing_binary_raises(self) -> None:
        with patch("taskboard_core.resume.executor.subprocess.run", side_effect=FileNotFoundError("nope")):
            with pytest.raises(OSError):
                SubprocessExecutor().spawn(["nope"], ".")
