from __future__ import annotations

from typing import Any, Literal, Protocol

HealthStatus = Literal["ok", "degraded"]


class KeyValueDocumentStore(Protocol):
    """
    Blocking, medium-specific store: one JSON document value per string key.

    Implementations raise BackendUnavailable when the medium fails and
    CorruptData when stored content does not parse. A missing key is not an
    error: get() returns None.
    """

    kind: str

    def initialize(self) -> None:
        """Create whatever the medium needs; a no-op when it already exists."""
        ...

    def get(self, key: str) -> Any | None:
        ...

    def put(self, key: str, value: Any) -> None:
        """Insert or replace the value under key."""
        ...

    def delete(self, key: str) -> None:
        ...

    def entries(self) -> dict[str, Any]:
        """Return every stored key with its value."""
        ...

    def ping(self) -> None:
        """Issue a trivial read against the medium."""
        ...

    def close(self) -> None:
        ...


class StorageBackend(Protocol):
    """
    Async store contract used by the HTTP layer, identical across media.
    """

    kind: str

    async def initialize(self) -> None: ...
    async def get(self, key: str) -> Any | None: ...
    async def put(self, key: str, value: Any) -> bool: ...
    async def delete(self, key: str) -> None: ...
    async def entries(self) -> dict[str, Any]: ...
    async def health_check(self) -> HealthStatus: ...
    async def close(self) -> None: ...
