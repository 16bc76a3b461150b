"""Task engine: board, task and comment operations over a record store.

This is the entry point the CLI-shaped callers use. It resolves references,
validates input, and applies each mutation through
:meth:`RecordStore.update` so that a concurrent auto-resume never loses a
history entry. Position, dependency and resume logic live in their own
modules; the engine only wires them to stored records.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Sequence

from loguru import logger

from .config import CoreConfig
from .constants import (
    ACTOR_CLI,
    AUTHOR_AGENT,
    AUTHOR_HUMAN,
    BOARDS,
    COLUMN_BACKLOG,
    COLUMN_DONE,
    COLUMN_IN_PROGRESS,
    COLUMN_NEED_INPUT,
    COMMENTS,
    TASKS,
    VALID_ACTORS,
    VALID_COLUMNS,
    VALID_PRIORITIES,
    VALID_RESUME_MODES,
    VALID_TYPES,
)
from .dependencies import DependencyGraph, Suggestion
from .domain.models import AgentSession, Board, Comment, Task, display_id
from .errors import InvalidSessionError, UnknownTaskError, UnsupportedToolError, ValidationError
from .history import change, record
from .hooks import CommentHooks
from .mentions import extract_mentions
from .position import (
    needs_rebalance,
    next_position,
    position_after,
    position_at_index,
    position_before,
    rebalance,
    sort_by_position,
)
from .resolver import must_resolve
from .resume.command import VALID_TOOLS, ResumeCommand, is_valid_tool, validate_session_ref
from .resume.context import build_minimal_prompt
from .resume.executor import BackgroundLauncher
from .resume.service import AutoResumeService
from .storage.container import Container
from .storage.interfaces import Record, RecordStore
from .utils import _now_iso

RESUMED = "resumed"
BLOCK_QUESTION = "block_question"


def _require(value: str, allowed: Sequence[str], label: str) -> None:
    if value not in allowed:
        raise ValidationError(f"invalid {label} '{value}', must be one of: {', '.join(allowed)}")


def _column_rank(column: str) -> int:
    return VALID_COLUMNS.index(column) if column in VALID_COLUMNS else len(VALID_COLUMNS)


class TaskEngine:
    """Manage tasks, boards and comments stored in a :class:`RecordStore`.

    Parameters
    ----------
    store:
        Backing record store.
    config:
        Core settings; defaults are used when omitted.
    launcher:
        Runs resume commands in the background. Shared by manual and
        automatic resumes.
    hooks:
        Receives every created comment. Defaults to :class:`CommentHooks`
        wired to this engine's :class:`AutoResumeService`.
    """

    def __init__(
        self,
        store: RecordStore,
        config: Optional[CoreConfig] = None,
        *,
        launcher: Optional[BackgroundLauncher] = None,
        hooks: Optional[CommentHooks] = None,
    ) -> None:
        self.store = store
        self.config = config or CoreConfig()
        self.resume_service = AutoResumeService(store, self.config, launcher)
        self.hooks = hooks if hooks is not None else CommentHooks(self.resume_service)

    @classmethod
    def from_container(cls, container: Container, **kwargs: Any) -> "TaskEngine":
        return cls(container.store, container.config, **kwargs)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _tasks(self) -> list[Task]:
        return [Task.from_record(r) for r in self.store.find_by_filter(TASKS)]

    def _boards(self) -> list[Board]:
        return [Board.from_record(r) for r in self.store.find_by_filter(BOARDS)]

    def resolve(self, ref: str) -> Task:
        return must_resolve(ref, self._tasks(), self._boards())

    def get_board(self, ref: str) -> Board:
        """Find a board by id, prefix or name (the last two case-insensitive)."""
        found = self.store.find_by_id(BOARDS, ref)
        if found is not None:
            return Board.from_record(found)
        needle = (ref or "").strip().lower()
        for board in self._boards():
            if board.prefix.lower() == needle or board.name.lower() == needle:
                return board
        raise ValidationError(f"board not found: {ref}")

    def board_of(self, task: Task) -> Optional[Board]:
        if not task.board:
            return None
        found = self.store.find_by_id(BOARDS, task.board)
        return Board.from_record(found) if found is not None else None

    def display_id(self, task: Task) -> str:
        return display_id(task, self.board_of(task))

    def _column_tasks(self, column: str, board_id: Optional[str], exclude: Optional[str] = None) -> list[Task]:
        return [
            t
            for t in self._tasks()
            if t.column == column and (board_id is None or t.board == board_id) and t.id != exclude
        ]

    def comments(self, ref: str) -> list[Comment]:
        task = self.resolve(ref)
        records = self.store.find_by_filter(COMMENTS, lambda r: r.get("task") == task.id, sort="+created")
        return [Comment.from_record(r) for r in records]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _mutate(self, task_id: str, apply: Callable[[Task], None]) -> Task:
        def _apply(rec: Record) -> None:
            task = Task.from_record(rec)
            apply(task)
            rec.update(task.to_record())

        updated = self.store.update(TASKS, task_id, _apply)
        if updated is None:
            raise UnknownTaskError(task_id)
        return Task.from_record(updated)

    def _save_comment(self, comment: Comment) -> Comment:
        self.store.save(COMMENTS, comment.to_record())
        self.hooks.on_comment_created(comment)
        return comment

    # ------------------------------------------------------------------
    # Boards
    # ------------------------------------------------------------------

    def create_board(
        self,
        name: str,
        prefix: str,
        *,
        resume_mode: Optional[str] = None,
        columns: Optional[Sequence[str]] = None,
    ) -> Board:
        name = (name or "").strip()
        prefix = (prefix or "").strip().upper()
        if not name:
            raise ValidationError("board name is required")
        if not prefix or not prefix.isalnum():
            raise ValidationError(f"invalid board prefix '{prefix}', use letters and digits only")
        if any(b.prefix.upper() == prefix for b in self._boards()):
            raise ValidationError(f"board prefix already in use: {prefix}")
        mode = resume_mode or self.config.default_resume_mode
        _require(mode, VALID_RESUME_MODES, "resume mode")
        board = Board(name=name, prefix=prefix, resume_mode=mode, next_seq=1)
        if columns:
            for column in columns:
                _require(column, VALID_COLUMNS, "column")
            board.columns = list(columns)
        self.store.save(BOARDS, board.to_record())
        logger.info("Created board {} ({})", board.prefix, board.id)
        return board

    def set_resume_mode(self, board_ref: str, mode: str) -> Board:
        _require(mode, VALID_RESUME_MODES, "resume mode")
        board = self.get_board(board_ref)
        updated = self.store.update(BOARDS, board.id, lambda rec: rec.__setitem__("resume_mode", mode))
        if updated is None:
            raise ValidationError(f"board not found: {board_ref}")
        return Board.from_record(updated)

    def _allocate_seq(self, board_id: str) -> int:
        allocated: dict[str, int] = {}

        def _apply(rec: Record) -> None:
            next_seq = int(rec.get("next_seq") or 0)
            if next_seq <= 0:
                # Boards created before sequencing continue after the highest issued seq.
                existing = self.store.find_by_filter(TASKS, lambda r: r.get("board") == board_id)
                next_seq = max((int(r.get("seq") or 0) for r in existing), default=0) + 1
            allocated["seq"] = next_seq
            rec["next_seq"] = next_seq + 1

        if self.store.update(BOARDS, board_id, _apply) is None:
            raise ValidationError(f"board not found: {board_id}")
        return allocated["seq"]

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def create_task(
        self,
        title: str,
        board_id: Optional[str] = None,
        *,
        description: str = "",
        task_type: str = "feature",
        priority: str = "medium",
        column: str = COLUMN_BACKLOG,
        blocked_by: Optional[Sequence[str]] = None,
        actor: str = ACTOR_CLI,
        actor_detail: str = "",
    ) -> Task:
        """Create and persist a new task, returning it."""
        title = (title or "").strip()
        if not title:
            raise ValidationError("task title is required")
        _require(task_type, VALID_TYPES, "type")
        _require(priority, VALID_PRIORITIES, "priority")
        _require(column, VALID_COLUMNS, "column")
        _require(actor, VALID_ACTORS, "actor")

        task = Task(title=title, description=description, type=task_type, priority=priority, column=column)
        if board_id:
            board = self.get_board(board_id)
            task.board = board.id
            task.seq = self._allocate_seq(board.id)

        if blocked_by:
            tasks = self._tasks()
            boards = self._boards()
            graph = DependencyGraph(tasks + [task])
            for ref in blocked_by:
                graph.add_block(task.id, must_resolve(ref, tasks, boards).id)

        siblings = [t.position for t in self._column_tasks(column, task.board)]
        task.position = next_position(siblings, self.config.position_gap)
        record(task, "created", actor=actor, actor_detail=actor_detail)
        self.store.save(TASKS, task.to_record())
        logger.info("Created task {}: {}", task.id, title)
        return task

    def move_task(
        self,
        ref: str,
        column: Optional[str] = None,
        *,
        index: Optional[int] = None,
        after: Optional[str] = None,
        before: Optional[str] = None,
        actor: str = ACTOR_CLI,
    ) -> Task:
        """Move a task to a column and/or a slot within it.

        ``index`` 0 is the top and -1 the bottom (the default). ``after`` and
        ``before`` name another task; without an explicit ``column`` the task
        joins that task's column.
        """
        if after and before:
            raise ValidationError("use either after or before, not both")
        task = self.resolve(ref)
        target_column = column or task.column
        _require(target_column, VALID_COLUMNS, "column")

        anchor: Optional[Task] = None
        if after or before:
            anchor = self.resolve(after or before or "")
            if anchor.id == task.id:
                raise ValidationError("cannot position a task relative to itself")
            if column is None:
                target_column = anchor.column
            elif anchor.column != target_column:
                raise ValidationError(f"task {self.display_id(anchor)} is not in {target_column}")

        siblings = [t.position for t in self._column_tasks(target_column, task.board, exclude=task.id)]
        gap = self.config.position_gap
        if anchor is not None and after:
            new_position = position_after(anchor.position, siblings, gap)
        elif anchor is not None:
            new_position = position_before(anchor.position, siblings)
        elif index is None or index == -1:
            new_position = next_position(siblings, gap)
        elif index < -1:
            raise ValidationError(f"invalid position {index}, use 0 for top or -1 for bottom")
        else:
            new_position = position_at_index(siblings, index, gap)

        def _apply(current: Task) -> None:
            changes = {
                "column": change(current.column, target_column),
                "position": change(current.position, new_position),
            }
            current.column = target_column
            current.position = new_position
            record(current, "moved", changes, actor=actor)

        moved = self._mutate(task.id, _apply)
        if needs_rebalance(siblings + [new_position], self.config.min_position_gap):
            logger.warning("Positions in column {} are crowded; rebalance_column will re-space them", target_column)
        return moved

    def update_blocked_by(
        self,
        ref: str,
        add: Optional[Sequence[str]] = None,
        remove: Optional[Sequence[str]] = None,
        *,
        actor: str = ACTOR_CLI,
    ) -> Task:
        tasks = self._tasks()
        boards = self._boards()
        task = must_resolve(ref, tasks, boards)
        graph = DependencyGraph(tasks)
        before = list(task.blocked_by)
        for blocker_ref in remove or []:
            graph.remove_block(task.id, must_resolve(blocker_ref, tasks, boards).id)
        for blocker_ref in add or []:
            graph.add_block(task.id, must_resolve(blocker_ref, tasks, boards).id)
        after = list(task.blocked_by)
        if after == before:
            return task

        def _apply(current: Task) -> None:
            current.blocked_by = list(after)
            record(current, "updated", {"blocked_by": change(before, after)}, actor=actor)

        return self._mutate(task.id, _apply)

    def set_priority(self, ref: str, priority: str, *, actor: str = ACTOR_CLI) -> Task:
        _require(priority, VALID_PRIORITIES, "priority")
        task = self.resolve(ref)
        if task.priority == priority:
            return task

        def _apply(current: Task) -> None:
            changes = {"priority": change(current.priority, priority)}
            current.priority = priority
            record(current, "updated", changes, actor=actor)

        return self._mutate(task.id, _apply)

    def list_tasks(
        self,
        *,
        column: Optional[str] = None,
        board: Optional[str] = None,
        ready: bool = False,
        is_blocked: bool = False,
        not_blocked: bool = False,
    ) -> list[Task]:
        if is_blocked and not_blocked:
            raise ValidationError("is_blocked and not_blocked cannot be combined")
        if column is not None:
            _require(column, VALID_COLUMNS, "column")
        board_id = self.get_board(board).id if board else None

        graph = DependencyGraph(self._tasks())
        out = [
            t
            for t in graph.tasks()
            if (column is None or t.column == column) and (board_id is None or t.board == board_id)
        ]
        if ready:
            out = [t for t in out if graph.is_ready(t)]
        if is_blocked:
            out = [t for t in out if graph.is_blocked(t)]
        if not_blocked:
            out = [t for t in out if not graph.is_blocked(t)]
        return sorted(out, key=lambda t: (_column_rank(t.column), t.position, t.id))

    def suggest(self, limit: Optional[int] = None) -> list[Suggestion]:
        if limit is None:
            limit = self.config.suggest_limit
        return DependencyGraph(self._tasks()).suggest(limit)

    def rebalance_column(self, column: str, board: Optional[str] = None, *, force: bool = False) -> dict[str, float]:
        """Re-space positions in ``column`` when neighbours have crowded together.

        Returns the new positions keyed by task id; empty when nothing changed.
        """
        _require(column, VALID_COLUMNS, "column")
        board_id = self.get_board(board).id if board else None
        tasks = sort_by_position(self._column_tasks(column, board_id))
        if not force and not needs_rebalance([t.position for t in tasks], self.config.min_position_gap):
            return {}
        positions = rebalance(tasks, self.config.position_gap)
        for task_id, position in positions.items():
            self.store.update(TASKS, task_id, lambda rec, position=position: rec.__setitem__("position", position))
        logger.info("Rebalanced {} task(s) in column {}", len(positions), column)
        return positions

    # ------------------------------------------------------------------
    # Human-in-the-loop
    # ------------------------------------------------------------------

    def block_task(self, ref: str, question: str, *, agent: Optional[str] = None) -> tuple[Task, Comment]:
        """Park a task in ``need_input`` and post the agent's question."""
        question = (question or "").strip()
        if not question:
            raise ValidationError("a question is required to block a task")
        task = self.resolve(ref)
        if task.column == COLUMN_NEED_INPUT:
            raise ValidationError(f"task {self.display_id(task)} is already awaiting input")
        if task.column == COLUMN_DONE:
            raise ValidationError(f"cannot block completed task {self.display_id(task)}")
        agent_name = agent or self.config.agent_name

        def _apply(current: Task) -> None:
            changes: dict[str, Any] = {
                "column": change(current.column, COLUMN_NEED_INPUT),
                "reason": question,
            }
            current.column = COLUMN_NEED_INPUT
            record(current, "blocked", changes, actor_detail=agent_name)

        blocked = self._mutate(task.id, _apply)
        comment = Comment(
            task=task.id,
            content=question,
            author_type=AUTHOR_AGENT,
            author_id=agent_name,
            mentions=extract_mentions(question),
            metadata={"action": BLOCK_QUESTION},
        )
        self._save_comment(comment)
        logger.info("Blocked task {} awaiting input", self.display_id(blocked))
        return blocked, comment

    def add_comment(
        self,
        ref: str,
        content: str,
        *,
        author_type: str = AUTHOR_HUMAN,
        author_id: str = "",
    ) -> Comment:
        content = (content or "").strip()
        if not content:
            raise ValidationError("comment content is required")
        _require(author_type, (AUTHOR_HUMAN, AUTHOR_AGENT), "author type")
        task = self.resolve(ref)
        if author_type == AUTHOR_AGENT and not author_id:
            author_id = self.config.agent_name
        mentions = extract_mentions(content)
        comment = Comment(
            task=task.id,
            content=content,
            author_type=author_type,
            author_id=author_id,
            mentions=mentions,
            metadata={"mentions": list(mentions)},
        )
        return self._save_comment(comment)

    def link_session(
        self,
        ref: str,
        tool: str,
        session_ref: str,
        working_dir: Optional[str] = None,
        *,
        ref_type: str = "uuid",
    ) -> Task:
        tool = (tool or "").strip()
        session_ref = (session_ref or "").strip()
        if not is_valid_tool(tool):
            raise UnsupportedToolError(tool, VALID_TOOLS)
        validate_session_ref(tool, session_ref)
        task = self.resolve(ref)
        session = AgentSession(
            tool=tool,
            ref=session_ref,
            working_dir=working_dir or self.config.default_working_dir,
            ref_type=ref_type,
            linked_at=_now_iso(),
        )

        def _apply(current: Task) -> None:
            previous = current.agent_session
            changes = {
                "tool": change(previous.tool if previous else None, tool),
                "session_ref": change(previous.ref if previous else None, session_ref),
            }
            current.agent_session = session
            record(current, "session_linked", changes, actor_detail=self.config.agent_name)

        return self._mutate(task.id, _apply)

    def unlink_session(self, ref: str) -> Task:
        task = self.resolve(ref)
        if task.agent_session is None:
            raise InvalidSessionError(f"task {self.display_id(task)} has no linked session")

        def _apply(current: Task) -> None:
            previous = current.agent_session
            changes = {"session_ref": change(previous.ref if previous else None, None)}
            current.agent_session = None
            record(current, "session_unlinked", changes)

        return self._mutate(task.id, _apply)

    def resume_task(
        self,
        ref: str,
        *,
        prompt: Optional[str] = None,
        minimal: bool = False,
        execute: bool = False,
    ) -> ResumeCommand:
        """Build, and optionally launch, the command that resumes a waiting task.

        With ``execute`` the task moves to ``in_progress`` before the command
        is launched in the background.
        """
        task = self.resolve(ref)
        if task.column != COLUMN_NEED_INPUT:
            raise ValidationError(f"task {self.display_id(task)} is in {task.column}, not {COLUMN_NEED_INPUT}")
        if task.agent_session is None:
            raise InvalidSessionError(f"task {self.display_id(task)} has no linked agent session")
        board = self.board_of(task)
        if prompt is None and minimal:
            prompt = build_minimal_prompt(task, display_id(task, board), self.resume_service.fetch_comments(task.id))
        command = self.resume_service.build_command(task, board, prompt)
        if not execute:
            return command

        def _apply(current: Task) -> None:
            if current.column != COLUMN_NEED_INPUT:
                raise ValidationError(f"task {current.id} left {COLUMN_NEED_INPUT} before it could be resumed")
            current.column = COLUMN_IN_PROGRESS
            record(current, RESUMED, {"column": change(COLUMN_NEED_INPUT, COLUMN_IN_PROGRESS)})

        self._mutate(task.id, _apply)
        self.resume_service.launcher.launch(task.id, command)
        logger.info("Resumed task {} with {}", display_id(task, board), command.tool)
        return command
