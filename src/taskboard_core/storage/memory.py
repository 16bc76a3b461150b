from __future__ import annotations

import copy
import threading
from typing import Callable, Optional

from ..utils import _new_id
from .interfaces import Predicate, Record, RecordStore, apply_query


class InMemoryRecordStore(RecordStore):
    """Process-local store; every operation copies records in and out."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._collections: dict[str, dict[str, Record]] = {}

    def _bucket(self, collection: str) -> dict[str, Record]:
        return self._collections.setdefault(collection, {})

    def find_by_id(self, collection: str, record_id: str) -> Optional[Record]:
        with self._lock:
            record = self._bucket(collection).get(record_id)
            return copy.deepcopy(record) if record is not None else None

    def find_by_filter(
        self,
        collection: str,
        predicate: Optional[Predicate] = None,
        sort: Optional[str] = None,
        limit: int = 0,
    ) -> list[Record]:
        with self._lock:
            records = [copy.deepcopy(r) for r in self._bucket(collection).values()]
        return apply_query(records, predicate, sort, limit)

    def save(self, collection: str, record: Record) -> Record:
        stored = copy.deepcopy(record)
        stored["id"] = str(stored.get("id") or _new_id())
        with self._lock:
            self._bucket(collection)[stored["id"]] = stored
        record["id"] = stored["id"]
        return record

    def delete(self, collection: str, record_id: str) -> bool:
        with self._lock:
            return self._bucket(collection).pop(record_id, None) is not None

    def update(self, collection: str, record_id: str, mutate: Callable[[Record], None]) -> Optional[Record]:
        with self._lock:
            bucket = self._bucket(collection)
            current = bucket.get(record_id)
            if current is None:
                return None
            working = copy.deepcopy(current)
            mutate(working)
            working["id"] = record_id
            bucket[record_id] = working
            return copy.deepcopy(working)
