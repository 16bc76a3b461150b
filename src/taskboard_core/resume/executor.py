"""Run resume commands in the background.

The caller gets a :class:`~concurrent.futures.Future` back but is never
expected to wait on it: the command's outcome is reported to the auto-resume
log sink and nowhere else.
"""

from __future__ import annotations

import subprocess
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional, Sequence

from loguru import logger

from ..logging_utils import (
    AUTO_RESUME_COMPLETED,
    AUTO_RESUME_FAILED,
    AUTO_RESUME_STARTED,
    log_auto_resume,
)
from .command import ResumeCommand


class ProcessExecutor(ABC):
    @abstractmethod
    def spawn(self, args: Sequence[str], working_dir: str) -> int:
        """Run ``args`` in ``working_dir`` to completion and return the exit status.

        Raises ``OSError`` when the process cannot be started.
        """
        raise NotImplementedError


class SubprocessExecutor(ProcessExecutor):
    def spawn(self, args: Sequence[str], working_dir: str) -> int:
        result = subprocess.run(
            list(args),
            cwd=working_dir or None,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
        )
        if result.returncode != 0:
            tail = (result.stderr or "").strip()[-400:]
            if tail:
                logger.debug("Resume command stderr: {}", tail)
        return result.returncode


class BackgroundLauncher:
    """Fire-and-forget runner for :class:`ResumeCommand` objects."""

    def __init__(self, executor: Optional[ProcessExecutor] = None, *, max_workers: int = 4) -> None:
        self.executor = executor or SubprocessExecutor()
        self._max_workers = max_workers
        self._pool: Optional[ThreadPoolExecutor] = None
        self._pool_lock = threading.Lock()

    def _get_pool(self) -> ThreadPoolExecutor:
        with self._pool_lock:
            if self._pool is None:
                self._pool = ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="auto-resume")
            return self._pool

    def launch(self, task_id: str, command: ResumeCommand) -> Future:
        future = self._get_pool().submit(self._run, task_id, command)
        future.add_done_callback(lambda f: self._report_unexpected(task_id, f))
        return future

    def _run(self, task_id: str, command: ResumeCommand) -> str:
        log_auto_resume(task_id, AUTO_RESUME_STARTED)
        if not command.args:
            log_auto_resume(task_id, AUTO_RESUME_FAILED, "empty command args")
            return AUTO_RESUME_FAILED
        try:
            exit_status = self.executor.spawn(command.args, command.working_dir)
        except OSError as exc:
            log_auto_resume(task_id, AUTO_RESUME_FAILED, str(exc))
            return AUTO_RESUME_FAILED
        if exit_status != 0:
            log_auto_resume(task_id, AUTO_RESUME_FAILED, f"exit status {exit_status}")
            return AUTO_RESUME_FAILED
        log_auto_resume(task_id, AUTO_RESUME_COMPLETED)
        return AUTO_RESUME_COMPLETED

    @staticmethod
    def _report_unexpected(task_id: str, future: Future) -> None:
        exc = future.exception()
        if exc is not None:
            log_auto_resume(task_id, AUTO_RESUME_FAILED, f"{exc.__class__.__name__}: {exc}")

    def shutdown(self, *, wait: bool = False) -> None:
        with self._pool_lock:
            pool = self._pool
            self._pool = None
        if pool is not None:
            pool.shutdown(wait=wait, cancel_futures=False)
