"""Configure loguru and emit structured auto-resume records."""

from __future__ import annotations

import json
import sys
from typing import Any, Optional

from loguru import logger

AUTO_RESUME_STARTED = "started"
AUTO_RESUME_COMPLETED = "completed"
AUTO_RESUME_FAILED = "failed"


def configure_logging(level: str = "INFO") -> None:
    """Configure loguru logger with the specified level."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{module}</cyan>:<cyan>{line}</cyan>\n"
            "{message}"
        ),
    )


def log_auto_resume(task_id: str, status: str, error: Optional[str] = None) -> None:
    """Record the outcome of a background resume command.

    This is the only place a spawned command's result is reported; it never
    flows back into task state.

    Args:
        task_id: Task whose session was resumed.
        status: One of ``started``, ``completed`` or ``failed``.
        error: Failure detail when ``status`` is ``failed``.
    """
    bound = logger.bind(component="auto-resume", task_id=task_id, status=status, error=error)
    if error:
        bound.error("[auto-resume] task={} status={} error={}", task_id, status, error)
    else:
        bound.info("[auto-resume] task={} status={}", task_id, status)


def pretty(obj: Any, *, indent: int = 2) -> str:
    """Serialize an object as JSON for readable logs.

    Args:
        obj: Object to serialize.
        indent: Indentation level for JSON output.

    Returns:
        A JSON string when possible; otherwise `str(obj)`.
    """
    try:
        return json.dumps(obj, indent=indent, default=str)
    except (TypeError, ValueError):
        return str(obj)
