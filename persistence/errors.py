from __future__ import annotations


class StoreError(Exception):
    """Base class for failures raised by the keyed document store."""


class BackendUnavailable(StoreError):
    """The backing medium could not be reached or errored; nothing was applied."""


class CorruptData(StoreError):
    """Stored content could not be parsed as a JSON document."""


class IndexOutOfRange(StoreError):
    def __init__(self, key: str, index: object, length: int | None = None) -> None:
        detail = "" if length is None else f" (length {length})"
        super().__init__(f"Invalid index {index!r} for {key!r}{detail}")
        self.key = key
        self.index = index
        self.length = length
