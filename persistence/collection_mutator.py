from __future__ import annotations

import logging
from typing import Any

from .errors import BackendUnavailable, CorruptData, IndexOutOfRange
from .interfaces import StorageBackend
from .locks import KeyLockRegistry

logger = logging.getLogger(__name__)


class CollectionMutator:
    """
    List append / remove-by-index on top of single-key get and put.

    Each call re-reads the stored list, changes it in memory and writes the
    whole list back. The key's lock is held from the read to the write, so
    concurrent mutations of one list within this process are applied one
    after the other.
    """

    def __init__(self, backend: StorageBackend, locks: KeyLockRegistry | None = None) -> None:
        self._backend = backend
        self._locks = locks or KeyLockRegistry()

    async def read_list(self, key: str) -> list[Any]:
        value = await self._backend.get(key)
        if value is None:
            return []
        if not isinstance(value, list):
            raise CorruptData(f"value under {key!r} is not a list")
        return value

    async def append(self, key: str, item: Any) -> Any:
        async with self._locks.lock_for(key):
            items = await self.read_list(key)
            items.append(item)
            if not await self._backend.put(key, items):
                raise BackendUnavailable(f"append to {key!r} was not applied")
        return item

    async def remove_at(self, key: str, index: int) -> Any:
        async with self._locks.lock_for(key):
            items = await self.read_list(key)
            if index < 0 or index >= len(items):
                raise IndexOutOfRange(key, index, len(items))
            removed = items.pop(index)
            if not await self._backend.put(key, items):
                raise BackendUnavailable(f"removal from {key!r} was not applied")
        return removed
