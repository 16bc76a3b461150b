"""YAML-backed record store.

Each collection lives in ``<root>/<collection>.yaml`` guarded by a sibling
``.lock`` file, so separate processes sharing a project directory still get
single-record atomicity.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Callable, Optional

import yaml

from ..errors import LookupFailedError
from ..io_utils import FileLock, _atomic_write_yaml
from ..utils import _new_id
from .interfaces import Predicate, Record, RecordStore, apply_query

STORE_VERSION = 1


class _YamlCollection:
    def __init__(self, path: Path, lock_path: Path, key: str) -> None:
        self._path = path
        self._lock = FileLock(lock_path)
        self._thread_lock = threading.RLock()
        self._key = key

    def load(self) -> list[Record]:
        if not self._path.exists():
            return []
        try:
            raw = yaml.safe_load(self._path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as exc:
            raise LookupFailedError(self._key, "*", exc) from exc
        if not isinstance(raw, dict):
            return []
        items = raw.get(self._key, [])
        if not isinstance(items, list):
            return []
        return [item for item in items if isinstance(item, dict)]

    def save(self, items: list[Record]) -> None:
        _atomic_write_yaml(self._path, {"version": STORE_VERSION, self._key: items})

    def locked(self):
        return _Both(self._thread_lock, self._lock)


class _Both:
    """Hold the thread lock and the file lock together."""

    def __init__(self, thread_lock: threading.RLock, file_lock: FileLock) -> None:
        self._thread_lock = thread_lock
        self._file_lock = file_lock

    def __enter__(self) -> "_Both":
        self._thread_lock.acquire()
        try:
            self._file_lock.__enter__()
        except BaseException:
            self._thread_lock.release()
            raise
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            self._file_lock.__exit__(exc_type, exc, tb)
        finally:
            self._thread_lock.release()


class YamlRecordStore(RecordStore):
    def __init__(self, root: Path) -> None:
        self._root = root
        self._collections: dict[str, _YamlCollection] = {}
        self._registry_lock = threading.Lock()

    def _collection(self, name: str) -> _YamlCollection:
        with self._registry_lock:
            coll = self._collections.get(name)
            if coll is None:
                coll = _YamlCollection(self._root / f"{name}.yaml", self._root / f"{name}.lock", name)
                self._collections[name] = coll
            return coll

    def find_by_id(self, collection: str, record_id: str) -> Optional[Record]:
        coll = self._collection(collection)
        with coll.locked():
            for record in coll.load():
                if record.get("id") == record_id:
                    return record
        return None

    def find_by_filter(
        self,
        collection: str,
        predicate: Optional[Predicate] = None,
        sort: Optional[str] = None,
        limit: int = 0,
    ) -> list[Record]:
        coll = self._collection(collection)
        with coll.locked():
            records = coll.load()
        return apply_query(records, predicate, sort, limit)

    def save(self, collection: str, record: Record) -> Record:
        record["id"] = str(record.get("id") or _new_id())
        coll = self._collection(collection)
        with coll.locked():
            records = coll.load()
            for idx, existing in enumerate(records):
                if existing.get("id") == record["id"]:
                    records[idx] = dict(record)
                    break
            else:
                records.append(dict(record))
            coll.save(records)
        return record

    def delete(self, collection: str, record_id: str) -> bool:
        coll = self._collection(collection)
        with coll.locked():
            records = coll.load()
            keep = [r for r in records if r.get("id") != record_id]
            if len(keep) == len(records):
                return False
            coll.save(keep)
        return True

    def update(self, collection: str, record_id: str, mutate: Callable[[Record], None]) -> Optional[Record]:
        coll = self._collection(collection)
        with coll.locked():
            records = coll.load()
            for idx, existing in enumerate(records):
                if existing.get("id") == record_id:
                    mutate(existing)
                    existing["id"] = record_id
                    records[idx] = existing
                    coll.save(records)
                    return dict(existing)
        return None
