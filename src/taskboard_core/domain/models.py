"""Typed views over task, board and comment records.

Records travel through the store as plain dicts. The JSON-typed fields
(``agent_session``, ``history``, ``blocked_by``, ``mentions``) can arrive as
native containers, raw JSON bytes or stringified JSON depending on which
backend produced them; each has exactly one ``parse_*`` function below and
nothing else in the package inspects their shape.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Optional

from ..constants import (
    ACTOR_CLI,
    AUTHOR_HUMAN,
    COLUMN_BACKLOG,
    DEFAULT_BOARD_COLUMNS,
    RESUME_MODE_COMMAND,
)
from ..utils import _new_id, _now_iso, short_id

_EMPTY_JSON = {"", "null", "{}", "[]"}


def _decode_json(raw: Any) -> Any:
    """Turn bytes / JSON text into Python values; pass containers through."""
    if isinstance(raw, (bytes, bytearray, memoryview)):
        raw = bytes(raw).decode("utf-8", errors="replace")
    if isinstance(raw, str):
        text = raw.strip()
        if text in _EMPTY_JSON:
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            return None
    return raw


def _str_list(values: Any) -> list[str]:
    out: list[str] = []
    if not isinstance(values, (list, tuple, set, frozenset)):
        return out
    for value in values:
        if isinstance(value, str) and value and value not in out:
            out.append(value)
    return out


# ---------------------------------------------------------------------------
# Field parsers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AgentSession:
    tool: str = ""
    ref: str = ""
    working_dir: str = ""
    ref_type: Optional[str] = None
    linked_at: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"tool": self.tool, "ref": self.ref, "working_dir": self.working_dir}
        if self.ref_type:
            data["ref_type"] = self.ref_type
        if self.linked_at:
            data["linked_at"] = self.linked_at
        return data


def parse_agent_session(raw: Any) -> Optional[AgentSession]:
    """Return the linked session, or ``None`` when absent.

    ``None``, ``""``, ``"null"``, ``{}`` and anything that does not decode to
    a JSON object all count as absent. A present object with an empty
    ``tool`` or ``ref`` is still returned; deciding whether it is usable is
    up to the caller.
    """
    data = _decode_json(raw)
    if not isinstance(data, dict) or not data:
        return None
    return AgentSession(
        tool=str(data.get("tool") or "").strip(),
        ref=str(data.get("ref") or "").strip(),
        working_dir=str(data.get("working_dir") or "").strip(),
        ref_type=(str(data["ref_type"]) if data.get("ref_type") else None),
        linked_at=(str(data["linked_at"]) if data.get("linked_at") else None),
    )


def parse_blocked_by(raw: Any) -> list[str]:
    """Return blocker ids in stored order with duplicates and blanks removed."""
    return _str_list(_decode_json(raw))


def parse_mentions(raw: Any) -> list[str]:
    return _str_list(_decode_json(raw))


def parse_history(raw: Any) -> list["HistoryEntry"]:
    data = _decode_json(raw)
    if not isinstance(data, list):
        return []
    return [HistoryEntry.from_dict(item) for item in data if isinstance(item, dict)]


def parse_metadata(raw: Any) -> dict[str, Any]:
    data = _decode_json(raw)
    return dict(data) if isinstance(data, dict) else {}


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass
class HistoryEntry:
    action: str
    actor: str = ACTOR_CLI
    actor_detail: str = ""
    changes: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=_now_iso)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "timestamp": self.timestamp,
            "action": self.action,
            "actor": self.actor,
            "actor_detail": self.actor_detail,
            "changes": dict(self.changes),
        }
        if self.metadata:
            data["metadata"] = dict(self.metadata)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HistoryEntry":
        return cls(
            action=str(data.get("action") or ""),
            actor=str(data.get("actor") or ""),
            actor_detail=str(data.get("actor_detail") or ""),
            changes=dict(data.get("changes") or {}),
            metadata=dict(data.get("metadata") or {}),
            timestamp=str(data.get("timestamp") or ""),
        )


@dataclass
class Task:
    id: str = field(default_factory=_new_id)
    title: str = ""
    description: str = ""
    type: str = "feature"
    priority: str = "medium"
    column: str = COLUMN_BACKLOG
    position: float = 0.0
    blocked_by: list[str] = field(default_factory=list)
    board: str = ""
    seq: int = 0
    agent_session: Optional[AgentSession] = None
    history: list[HistoryEntry] = field(default_factory=list)
    created: str = field(default_factory=_now_iso)

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "type": self.type,
            "priority": self.priority,
            "column": self.column,
            "position": self.position,
            "blocked_by": list(self.blocked_by),
            "board": self.board,
            "seq": self.seq,
            "agent_session": self.agent_session.to_dict() if self.agent_session else None,
            "history": [entry.to_dict() for entry in self.history],
            "created": self.created,
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> "Task":
        task_id = str(data.get("id") or _new_id())
        return cls(
            id=task_id,
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            type=str(data.get("type") or "feature"),
            priority=str(data.get("priority") or "medium"),
            column=str(data.get("column") or COLUMN_BACKLOG),
            position=float(data.get("position") or 0.0),
            blocked_by=[b for b in parse_blocked_by(data.get("blocked_by")) if b != task_id],
            board=str(data.get("board") or ""),
            seq=int(data.get("seq") or 0),
            agent_session=parse_agent_session(data.get("agent_session")),
            history=parse_history(data.get("history")),
            created=str(data.get("created") or _now_iso()),
        )

    def append_history(self, entry: HistoryEntry) -> HistoryEntry:
        self.history.append(entry)
        return entry

    @property
    def last_history(self) -> Optional[HistoryEntry]:
        return self.history[-1] if self.history else None


@dataclass
class Board:
    id: str = field(default_factory=_new_id)
    name: str = ""
    prefix: str = ""
    resume_mode: str = RESUME_MODE_COMMAND
    columns: list[str] = field(default_factory=lambda: list(DEFAULT_BOARD_COLUMNS))
    next_seq: int = 1

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "prefix": self.prefix,
            "resume_mode": self.resume_mode,
            "columns": list(self.columns),
            "next_seq": self.next_seq,
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> "Board":
        columns = _str_list(_decode_json(data.get("columns")))
        return cls(
            id=str(data.get("id") or _new_id()),
            name=str(data.get("name") or ""),
            prefix=str(data.get("prefix") or ""),
            resume_mode=str(data.get("resume_mode") or RESUME_MODE_COMMAND),
            columns=columns or list(DEFAULT_BOARD_COLUMNS),
            next_seq=int(data.get("next_seq") or 0),
        )


@dataclass
class Comment:
    id: str = field(default_factory=_new_id)
    task: str = ""
    content: str = ""
    author_type: str = AUTHOR_HUMAN
    author_id: str = ""
    mentions: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    created: str = field(default_factory=_now_iso)

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "task": self.task,
            "content": self.content,
            "author_type": self.author_type,
            "author_id": self.author_id,
            "mentions": list(self.mentions),
            "metadata": dict(self.metadata),
            "created": self.created,
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> "Comment":
        metadata = parse_metadata(data.get("metadata"))
        # Older comments only carry mentions inside metadata.
        mentions = parse_mentions(data.get("mentions"))
        if not mentions:
            mentions = parse_mentions(metadata.get("mentions"))
        return cls(
            id=str(data.get("id") or _new_id()),
            task=str(data.get("task") or ""),
            content=str(data.get("content") or ""),
            author_type=str(data.get("author_type") or ""),
            author_id=str(data.get("author_id") or ""),
            mentions=mentions,
            metadata=metadata,
            created=str(data.get("created") or _now_iso()),
        )


def display_id(task: Task, board: Optional[Board]) -> str:
    """Return ``PREFIX-SEQ`` when possible, otherwise the short record id."""
    if board is not None and board.prefix and task.seq > 0:
        return f"{board.prefix}-{task.seq}"
    return short_id(task.id)
