from .container import Container, ensure_state_root
from .file_store import YamlRecordStore
from .interfaces import Predicate, Record, RecordStore, apply_query
from .memory import InMemoryRecordStore

__all__ = [
    "Container",
    "ensure_state_root",
    "RecordStore",
    "Record",
    "Predicate",
    "apply_query",
    "InMemoryRecordStore",
    "YamlRecordStore",
]
