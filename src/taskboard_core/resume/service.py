"""Resume an agent session when a human answers it on a waiting task.

A new comment triggers a resume only when every condition holds, checked in
this order:

1. the comment was written by a human
2. it mentions ``@agent``
3. its task is in ``need_input``
4. the task has a linked agent session
5. the task's board has ``resume_mode == "auto"``

A condition that does not hold is not an error; the outcome simply reports
why nothing happened. Missing task or board records are errors.

Once the resume command has been built the task is moved to ``in_progress``
and saved, then the command is launched in the background. The move is not
undone if the command later fails.
"""

from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Optional

from loguru import logger

from ..config import CoreConfig
from ..constants import (
    ACTOR_SYSTEM,
    AGENT_MENTION,
    AUTHOR_HUMAN,
    BOARDS,
    COLUMN_IN_PROGRESS,
    COLUMN_NEED_INPUT,
    COMMENTS,
    RESUME_MODE_AUTO,
    TASKS,
)
from ..domain.models import Board, Comment, Task, display_id
from ..errors import InvalidSessionError, LookupFailedError
from ..history import change, record
from ..logging_utils import pretty
from ..storage.interfaces import Record, RecordStore
from .command import ResumeCommand, build_resume_command
from .context import build_context_prompt
from .executor import BackgroundLauncher

AUTO_RESUMED = "auto_resumed"
AUTO_RESUME_ACTOR_DETAIL = "auto-resume"


@dataclass
class ResumeOutcome:
    triggered: bool
    reason: str
    task_id: Optional[str] = None
    command: Optional[ResumeCommand] = None
    future: Optional[Future] = None


def _skip(reason: str, task_id: Optional[str] = None) -> ResumeOutcome:
    logger.debug("Auto-resume skipped: {} (task={})", reason, task_id)
    return ResumeOutcome(triggered=False, reason=reason, task_id=task_id)


class AutoResumeService:
    def __init__(
        self,
        store: RecordStore,
        config: CoreConfig,
        launcher: Optional[BackgroundLauncher] = None,
    ) -> None:
        self.store = store
        self.config = config
        self.launcher = launcher or BackgroundLauncher()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _find(self, collection: str, record_id: str) -> Record:
        try:
            found = self.store.find_by_id(collection, record_id)
        except LookupFailedError:
            raise
        except Exception as exc:
            raise LookupFailedError(collection, record_id, exc) from exc
        if found is None:
            raise LookupFailedError(collection, record_id)
        return found

    def fetch_comments(self, task_id: str) -> list[Comment]:
        """Most recent comments for ``task_id``, oldest first."""
        limit = self.config.context_comment_limit
        try:
            records = self.store.find_by_filter(
                COMMENTS,
                lambda r: r.get("task") == task_id,
                sort="-created",
                limit=limit,
            )
        except LookupFailedError:
            raise
        except Exception as exc:
            raise LookupFailedError(COMMENTS, f"task={task_id}", exc) from exc
        return [Comment.from_record(r) for r in reversed(records)]

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def check_and_resume(self, comment: Comment) -> ResumeOutcome:
        if comment.author_type != AUTHOR_HUMAN:
            return _skip("comment is not from a human")
        if AGENT_MENTION not in comment.mentions:
            return _skip("comment does not mention @agent")

        task = Task.from_record(self._find(TASKS, comment.task))
        if task.column != COLUMN_NEED_INPUT:
            return _skip(f"task is in {task.column}, not {COLUMN_NEED_INPUT}", task.id)
        if task.agent_session is None:
            return _skip("task has no linked agent session", task.id)
        if not task.board:
            return _skip("task has no board", task.id)

        board = Board.from_record(self._find(BOARDS, task.board))
        if board.resume_mode != RESUME_MODE_AUTO:
            return _skip(f"board resume_mode is {board.resume_mode}", task.id)

        return self._trigger(task, board, comment)

    def build_command(self, task: Task, board: Optional[Board], prompt: Optional[str] = None) -> ResumeCommand:
        """Build the resume command for ``task`` from its linked session.

        Raises:
            InvalidSessionError: the session is missing its tool or ref.
            UnsupportedToolError: the session names an unknown tool.
        """
        session = task.agent_session
        if session is None or not session.tool or not session.ref:
            raise InvalidSessionError("invalid agent_session: missing tool or ref")
        working_dir = session.working_dir or self.config.default_working_dir
        if prompt is None:
            prompt = build_context_prompt(
                task,
                display_id(task, board),
                self.fetch_comments(task.id),
                description_limit=self.config.description_truncate,
            )
        return build_resume_command(session.tool, session.ref, working_dir, prompt)

    def _trigger(self, task: Task, board: Board, comment: Comment) -> ResumeOutcome:
        command = self.build_command(task, board)

        state: dict[str, Any] = {"moved": False}

        def _apply(rec: Record) -> None:
            current = Task.from_record(rec)
            # Another trigger may have moved the task since it was read.
            if current.column != COLUMN_NEED_INPUT:
                return
            current.column = COLUMN_IN_PROGRESS
            record(
                current,
                AUTO_RESUMED,
                {"column": change(COLUMN_NEED_INPUT, COLUMN_IN_PROGRESS)},
                actor=ACTOR_SYSTEM,
                actor_detail=AUTO_RESUME_ACTOR_DETAIL,
                metadata={"trigger_comment": comment.id},
            )
            rec.update(current.to_record())
            state["moved"] = True

        try:
            updated = self.store.update(TASKS, task.id, _apply)
        except LookupFailedError:
            raise
        except Exception as exc:
            raise LookupFailedError(TASKS, task.id, exc) from exc
        if updated is None:
            raise LookupFailedError(TASKS, task.id)
        if not state["moved"]:
            return _skip("task left need_input before it could be resumed", task.id)

        logger.info("Auto-resumed task {} ({}) from comment {}", display_id(task, board), task.id, comment.id)
        logger.debug("Resume command for {}: {}", task.id, pretty(command.args))
        future = self.launcher.launch(task.id, command)
        return ResumeOutcome(
            triggered=True,
            reason="resumed",
            task_id=task.id,
            command=command,
            future=future,
        )
