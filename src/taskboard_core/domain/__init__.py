from .models import (
    AgentSession,
    Board,
    Comment,
    HistoryEntry,
    Task,
    display_id,
    parse_agent_session,
    parse_blocked_by,
    parse_history,
    parse_mentions,
    parse_metadata,
)

__all__ = [
    "Task",
    "Board",
    "Comment",
    "HistoryEntry",
    "AgentSession",
    "display_id",
    "parse_agent_session",
    "parse_blocked_by",
    "parse_history",
    "parse_mentions",
    "parse_metadata",
]
