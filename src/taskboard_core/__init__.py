"""Provide the public `taskboard_core` package exports."""

from __future__ import annotations

from .config import CoreConfig, load_core_config
from .dependencies import DependencyGraph, Suggestion
from .domain import Board, Comment, HistoryEntry, Task, display_id
from .engine import TaskEngine
from .errors import (
    AmbiguousTaskError,
    CycleDetectedError,
    InvalidSessionError,
    LookupFailedError,
    SelfBlockError,
    TaskboardError,
    TaskNotFoundError,
    UnknownTaskError,
    UnsupportedToolError,
    ValidationError,
)
from .hooks import CommentHooks
from .resolver import must_resolve, resolve_task
from .resume import AutoResumeService, BackgroundLauncher, ResumeOutcome
from .storage import Container, InMemoryRecordStore, RecordStore, YamlRecordStore

__all__ = [
    "CoreConfig",
    "load_core_config",
    "DependencyGraph",
    "Suggestion",
    "Board",
    "Comment",
    "HistoryEntry",
    "Task",
    "display_id",
    "TaskEngine",
    "TaskboardError",
    "TaskNotFoundError",
    "AmbiguousTaskError",
    "SelfBlockError",
    "UnknownTaskError",
    "CycleDetectedError",
    "InvalidSessionError",
    "UnsupportedToolError",
    "LookupFailedError",
    "ValidationError",
    "CommentHooks",
    "resolve_task",
    "must_resolve",
    "AutoResumeService",
    "BackgroundLauncher",
    "ResumeOutcome",
    "Container",
    "RecordStore",
    "InMemoryRecordStore",
    "YamlRecordStore",
]
