from __future__ import annotations

from .backend import ThreadedStorageBackend, create_backend
from .collection_mutator import CollectionMutator
from .disk_store import DiskJsonDocumentStore
from .errors import BackendUnavailable, CorruptData, IndexOutOfRange, StoreError
from .interfaces import KeyValueDocumentStore, StorageBackend
from .repositories import ScheduleRepository
from .sql_store import SqlDocumentStore

__all__ = [
    "BackendUnavailable",
    "CollectionMutator",
    "CorruptData",
    "DiskJsonDocumentStore",
    "IndexOutOfRange",
    "KeyValueDocumentStore",
    "ScheduleRepository",
    "SqlDocumentStore",
    "StorageBackend",
    "StoreError",
    "ThreadedStorageBackend",
    "create_backend",
]
