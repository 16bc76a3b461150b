"""Exception taxonomy for the orchestration core.

Every error derives from :class:`TaskboardError`, itself a ``ValueError`` so
callers written against the engine's older ``ValueError`` contract keep
working. Trigger conditions that simply do not apply are never reported
through these types.
"""

from __future__ import annotations

from typing import Any, Sequence


class TaskboardError(ValueError):
    """Base class for orchestration-core failures."""


class ValidationError(TaskboardError):
    """A field value is outside its allowed set."""


class TaskNotFoundError(TaskboardError):
    def __init__(self, reference: str) -> None:
        self.reference = reference
        super().__init__(f"no task found matching: {reference}")


class AmbiguousTaskError(TaskboardError):
    def __init__(self, reference: str, matches: Sequence[Any]) -> None:
        self.reference = reference
        self.matches = list(matches)
        super().__init__(
            f"ambiguous task reference: '{reference}' matches {len(self.matches)} tasks"
        )


class SelfBlockError(TaskboardError):
    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__("task cannot block itself")


class UnknownTaskError(TaskboardError):
    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f"task not found: {task_id}")


class CycleDetectedError(TaskboardError):
    def __init__(self, task_id: str, blocker_id: str) -> None:
        self.task_id = task_id
        self.blocker_id = blocker_id
        super().__init__(
            f"circular dependency detected: {blocker_id} is already blocked by "
            f"{task_id} (directly or indirectly)"
        )


class InvalidSessionError(TaskboardError):
    """The linked agent session cannot be used to resume."""


class UnsupportedToolError(TaskboardError):
    def __init__(self, tool: str, supported: Sequence[str]) -> None:
        self.tool = tool
        self.supported = list(supported)
        super().__init__(f"unsupported tool: {tool} (supported: {', '.join(self.supported)})")


class LookupFailedError(TaskboardError):
    """The record store could not produce a record the caller depends on."""

    def __init__(self, collection: str, record_id: str, cause: BaseException | None = None) -> None:
        self.collection = collection
        self.record_id = record_id
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"failed to find {collection} record {record_id!r}{detail}")
