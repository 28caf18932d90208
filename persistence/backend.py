from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, TypeVar

from settings import Settings

from .disk_store import DiskJsonDocumentStore
from .errors import BackendUnavailable, StoreError
from .interfaces import HealthStatus, KeyValueDocumentStore, StorageBackend
from .sql_store import SqlDocumentStore, create_store_engine

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ThreadedStorageBackend(StorageBackend):
    """
    Async wrapper around a blocking KeyValueDocumentStore.

    Uses asyncio.to_thread to avoid blocking the event loop on file or
    database I/O. Reads are bounded by ``timeout_seconds`` so an unreachable
    medium surfaces as BackendUnavailable instead of hanging; an abandoned
    read changes nothing.

    Writes are never abandoned: a worker thread cannot be cancelled, so a
    write given up on here could still land after being reported as failed.
    They wait for the thread and report what actually happened, and the
    medium bounds them itself (SQLite busy timeout, PostgreSQL
    connect_timeout and statement_timeout).
    """

    def __init__(self, store: KeyValueDocumentStore, *, timeout_seconds: float = 5.0) -> None:
        self._store = store
        self._timeout = timeout_seconds
        self.kind = store.kind

    @property
    def store(self) -> KeyValueDocumentStore:
        return self._store

    async def _run(self, fn: Callable[..., T], *args: Any) -> T:
        try:
            return await asyncio.wait_for(asyncio.to_thread(fn, *args), timeout=self._timeout)
        except asyncio.TimeoutError as e:
            raise BackendUnavailable(f"{self.kind} backend did not answer within {self._timeout}s") from e

    async def _write(self, fn: Callable[..., T], *args: Any) -> T:
        return await asyncio.to_thread(fn, *args)

    async def initialize(self) -> None:
        await self._write(self._store.initialize)

    async def get(self, key: str) -> Any | None:
        return await self._run(self._store.get, key)

    async def put(self, key: str, value: Any) -> bool:
        try:
            await self._write(self._store.put, key, value)
        except BackendUnavailable as e:
            logger.error("Write failed for %s: %s", key, e)
            return False
        return True

    async def delete(self, key: str) -> None:
        await self._write(self._store.delete, key)

    async def entries(self) -> dict[str, Any]:
        return await self._run(self._store.entries)

    async def health_check(self) -> HealthStatus:
        try:
            await self._run(self._store.ping)
        except StoreError as e:
            logger.warning("Health check degraded (%s): %s", self.kind, e)
            return "degraded"
        return "ok"

    async def close(self) -> None:
        await asyncio.to_thread(self._store.close)


def create_backend(settings: Settings) -> ThreadedStorageBackend:
    """Build the backend selected by ``settings.storage_backend``."""
    store: KeyValueDocumentStore
    if settings.storage_backend == "relational":
        engine = create_store_engine(settings.database_url, timeout_seconds=settings.backend_timeout_seconds)
        store = SqlDocumentStore(engine)
    elif settings.storage_backend == "flatfile":
        store = DiskJsonDocumentStore(settings.data_file)
    else:
        raise ValueError(f"unknown storage backend {settings.storage_backend!r}")
    return ThreadedStorageBackend(store, timeout_seconds=settings.backend_timeout_seconds)
