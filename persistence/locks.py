from __future__ import annotations

import asyncio
import threading
from pathlib import Path


class PathLockRegistry:
    """
    Provides a stable lock per normalized file path to avoid global contention.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def lock_for(self, path: Path) -> threading.Lock:
        key = str(path.resolve())
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock


class KeyLockRegistry:
    """
    One asyncio.Lock per store key, held across a read-modify-write sequence.

    Serializes writers inside one process only; separate worker processes
    sharing a database or data file still race.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def lock_for(self, key: str) -> asyncio.Lock:
        # Only touched from the event loop thread, so no guard is needed.
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock


GLOBAL_PATH_LOCKS = PathLockRegistry()
