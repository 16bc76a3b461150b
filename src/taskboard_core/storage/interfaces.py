from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Iterable, Optional

Record = dict[str, Any]
Predicate = Callable[[Record], bool]


def _sort_value(value: Any) -> tuple[int, Any]:
    # Missing values sort first; mixed types compare by their string form.
    if value is None:
        return (0, "")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (1, float(value))
    return (2, str(value))


def apply_query(
    records: Iterable[Record],
    predicate: Optional[Predicate] = None,
    sort: Optional[str] = None,
    limit: int = 0,
) -> list[Record]:
    """Filter, order and bound a sequence of records.

    ``sort`` is a comma separated list of field names, each optionally
    prefixed with ``+`` (ascending, the default) or ``-`` (descending).
    ``limit`` of zero or less means unbounded.
    """
    out = [r for r in records if predicate is None or predicate(r)]
    if sort:
        keys = [k.strip() for k in sort.split(",") if k.strip()]
        # Stable sorts applied from the least significant key.
        for key in reversed(keys):
            descending = key.startswith("-")
            name = key.lstrip("+-")
            out.sort(key=lambda r: _sort_value(r.get(name)), reverse=descending)
    if limit and limit > 0:
        out = out[:limit]
    return out


class RecordStore(ABC):
    """Narrow persistence contract consumed by the orchestration core.

    Records are plain dicts keyed by ``id``. Implementations must make each
    single-record operation, including :meth:`update`, atomic.
    """

    @abstractmethod
    def find_by_id(self, collection: str, record_id: str) -> Optional[Record]:
        raise NotImplementedError

    @abstractmethod
    def find_by_filter(
        self,
        collection: str,
        predicate: Optional[Predicate] = None,
        sort: Optional[str] = None,
        limit: int = 0,
    ) -> list[Record]:
        raise NotImplementedError

    @abstractmethod
    def save(self, collection: str, record: Record) -> Record:
        raise NotImplementedError

    @abstractmethod
    def delete(self, collection: str, record_id: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def update(self, collection: str, record_id: str, mutate: Callable[[Record], None]) -> Optional[Record]:
        """Apply ``mutate`` to the stored record atomically and persist it."""
        raise NotImplementedError
