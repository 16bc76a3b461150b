"""Run the auto-resume check after a comment is saved.

The check runs on a small worker pool so that creating a comment never waits
on store lookups or prompt building, and a failing check never reaches the
comment's author.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Optional

from loguru import logger

from .domain.models import Comment
from .resume.service import AutoResumeService, ResumeOutcome


class CommentHooks:
    def __init__(self, service: AutoResumeService, *, max_workers: int = 2) -> None:
        self.service = service
        self._max_workers = max_workers
        self._pool: Optional[ThreadPoolExecutor] = None
        self._pool_lock = threading.Lock()
        self._futures: set[Future] = set()

    def _get_pool(self) -> ThreadPoolExecutor:
        with self._pool_lock:
            if self._pool is None:
                self._pool = ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="comment-hook")
            return self._pool

    def on_comment_created(self, comment: Comment) -> Future:
        future = self._get_pool().submit(self._check, comment)
        with self._pool_lock:
            self._futures.add(future)
        future.add_done_callback(self._forget)
        return future

    def _forget(self, future: Future) -> None:
        with self._pool_lock:
            self._futures.discard(future)

    def _check(self, comment: Comment) -> Optional[ResumeOutcome]:
        try:
            return self.service.check_and_resume(comment)
        except Exception as exc:
            logger.error("Auto-resume check failed for comment {}: {}", comment.id, exc)
            return None

    def drain(self, timeout: float = 10.0) -> None:
        """Wait for checks still in flight. Intended for shutdown and tests."""
        with self._pool_lock:
            inflight = list(self._futures)
        if inflight:
            wait(inflight, timeout=timeout)

    def shutdown(self, *, timeout: float = 10.0) -> None:
        self.drain(timeout)
        with self._pool_lock:
            pool = self._pool
            self._pool = None
        if pool is not None:
            pool.shutdown(wait=False, cancel_futures=False)
