"""Render the task and its conversation as a prompt for a resumed agent."""

from __future__ import annotations

from typing import Sequence

from ..constants import DEFAULT_DESCRIPTION_TRUNCATE
from ..domain.models import Comment, Task
from ..utils import _parse_iso

MINIMAL_COMMENT_COUNT = 3
MINIMAL_COMMENT_TRUNCATE = 200


def _author_label(comment: Comment) -> str:
    return comment.author_id or comment.author_type


def _time_label(comment: Comment) -> str:
    created = _parse_iso(comment.created)
    return created.strftime("%H:%M") if created else "--:--"


def build_context_prompt(
    task: Task,
    display_id: str,
    comments: Sequence[Comment],
    description_limit: int = DEFAULT_DESCRIPTION_TRUNCATE,
) -> str:
    """Build the full resume prompt: task summary, thread, and instructions."""
    lines: list[str] = ["## Task Context", ""]
    lines.append(f"**Task**: {display_id} - {task.title}")
    lines.append("**Status**: need_input -> in_progress")
    lines.append(f"**Priority**: {task.priority}")
    if task.description:
        lines.append("**Description**:")
        if len(task.description) > description_limit:
            lines.append(task.description[:description_limit] + "...")
        else:
            lines.append(task.description)
    lines.append("")

    lines.extend(["## Conversation Thread", ""])
    if not comments:
        lines.extend(["_No comments yet_", ""])
    for comment in comments:
        lines.append(f"[{_author_label(comment)} @ {_time_label(comment)}]: {comment.content}")
        lines.append("")

    lines.extend(["## Instructions", ""])
    lines.append(
        "Continue working on the task based on the human's response above. "
        "The conversation context should help you understand what was discussed. "
        "If you need more clarification, you can block the task again with a new question."
    )
    return "\n".join(lines) + "\n"


def build_minimal_prompt(task: Task, display_id: str, comments: Sequence[Comment]) -> str:
    """Shorter prompt: the last few comments, each truncated."""
    lines = [f"Task {display_id}: {task.title}", "", "Recent comments:"]
    if not comments:
        lines.append("_No comments yet_")
    for comment in list(comments)[-MINIMAL_COMMENT_COUNT:]:
        content = comment.content
        if len(content) > MINIMAL_COMMENT_TRUNCATE:
            content = content[:MINIMAL_COMMENT_TRUNCATE] + "..."
        lines.append(f"- {_author_label(comment)}: {content}")
    lines.extend(["", "Continue based on the above context."])
    return "\n".join(lines) + "\n"
