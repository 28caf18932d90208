from __future__ import annotations

import asyncio
import json
import threading
import time

import pytest

from persistence import BackendUnavailable, CollectionMutator, CorruptData, DiskJsonDocumentStore, ThreadedStorageBackend
from persistence.disk_store import empty_document
from persistence.keys import availability_key, current_user_key


def test_missing_keys_read_as_absent(backend):
    async def _run():
        assert await backend.get(current_user_key("nobody")) is None
        assert await backend.get(availability_key("Bass", "2030", "01")) is None
        assert await backend.get("some_other_key") is None

    asyncio.run(_run())


def test_put_then_get_roundtrip(backend):
    async def _run():
        key = availability_key("Bass", "2025", "05")
        value = {"2025-05-01": "yes", "2025-05-02": {"note": "late", "ok": False}}
        assert await backend.put(key, value) is True
        assert await backend.get(key) == value

        assert await backend.put("concerts", [{"location": "Venue A"}]) is True
        assert await backend.get("concerts") == [{"location": "Venue A"}]

        assert await backend.put(current_user_key("u1"), "Drums") is True
        assert await backend.get(current_user_key("u1")) == "Drums"

    asyncio.run(_run())


def test_put_replaces_and_is_idempotent(backend):
    async def _run():
        key = current_user_key("u1")
        await backend.put(key, "Bass")
        await backend.put(key, "Keys")
        await backend.put(key, "Keys")
        assert await backend.get(key) == "Keys"
        entries = await backend.entries()
        assert [k for k in entries if k == key] == [key]
        assert entries[key] == "Keys"

    asyncio.run(_run())


def test_delete_makes_key_absent(backend):
    async def _run():
        key = availability_key("Keys", "2025", "06")
        await backend.put(key, {"2025-06-01": "no"})
        await backend.delete(key)
        assert await backend.get(key) is None
        # deleting again is harmless
        await backend.delete(key)

        await backend.put("links", [{"name": "Drive"}])
        await backend.delete("links")
        assert await backend.get("links") is None

    asyncio.run(_run())


def test_entries_lists_every_key(backend):
    async def _run():
        await backend.put(availability_key("Lead Guitar", "2025", "05"), {"d": 1})
        await backend.put(current_user_key("u1"), {"name": "Vocals"})
        await backend.put("links", [{"name": "Setlist"}])
        entries = await backend.entries()
        assert entries[availability_key("Lead Guitar", "2025", "05")] == {"d": 1}
        assert entries[current_user_key("u1")] == {"name": "Vocals"}
        assert entries["links"] == [{"name": "Setlist"}]

    asyncio.run(_run())


def test_health_check_ok(backend):
    assert asyncio.run(backend.health_check()) == "ok"


def test_initialize_is_idempotent(backend):
    async def _run():
        await backend.put(current_user_key("u1"), "Sax")
        await backend.initialize()
        assert await backend.get(current_user_key("u1")) == "Sax"

    asyncio.run(_run())


def test_flatfile_document_layout(tmp_path):
    path = tmp_path / "data.json"
    store = DiskJsonDocumentStore(path)
    store.initialize()
    assert json.loads(path.read_text(encoding="utf-8")) == empty_document()

    store.put(availability_key("Lead%20Guitar", "2025", "05"), {"2025-05-01": "yes"})
    store.put(current_user_key("u1"), "Bass")
    doc = json.loads(path.read_text(encoding="utf-8"))
    assert doc["availabilities"] == {"Lead Guitar_2025_05": {"2025-05-01": "yes"}}
    assert doc["currentUsers"] == {"u1": "Bass"}
    assert doc["concerts"] == []


def test_flatfile_initialize_never_overwrites(tmp_path):
    path = tmp_path / "data.json"
    existing = {"availabilities": {}, "concerts": [{"location": "Old"}], "links": [], "currentUsers": {}}
    path.write_text(json.dumps(existing), encoding="utf-8")

    DiskJsonDocumentStore(path).initialize()

    assert json.loads(path.read_text(encoding="utf-8")) == existing


def test_flatfile_corrupt_document_fails_without_rewriting(tmp_path):
    path = tmp_path / "data.json"
    path.write_text("{not json", encoding="utf-8")
    backend = ThreadedStorageBackend(DiskJsonDocumentStore(path))

    async def _run():
        with pytest.raises(CorruptData):
            await backend.get("concerts")
        with pytest.raises(CorruptData):
            await backend.put("concerts", [])
        assert await backend.health_check() == "degraded"

    asyncio.run(_run())
    assert path.read_text(encoding="utf-8") == "{not json"


def test_flatfile_concurrent_puts_on_different_keys_keep_both(tmp_path):
    backend = ThreadedStorageBackend(DiskJsonDocumentStore(tmp_path / "data.json"))

    async def _run():
        await backend.initialize()
        keys = [current_user_key(f"u{i}") for i in range(20)]
        results = await asyncio.gather(*(backend.put(k, i) for i, k in enumerate(keys)))
        assert all(results)
        entries = await backend.entries()
        assert {k: entries[k] for k in keys} == {k: i for i, k in enumerate(keys)}

    asyncio.run(_run())


def test_put_reports_failure_instead_of_raising(tmp_path):
    # The data file path is a directory, so the medium errors on every access.
    target = tmp_path / "data.json"
    target.mkdir()
    backend = ThreadedStorageBackend(DiskJsonDocumentStore(target))

    async def _run():
        assert await backend.put(current_user_key("u1"), "Bass") is False

    asyncio.run(_run())


class _SlowStore:
    """In-memory store whose calls take ``delay`` seconds."""

    kind = "slow"

    def __init__(self, delay: float, *, fail_writes: bool = False) -> None:
        self.delay = delay
        self.fail_writes = fail_writes
        self.values: dict[str, object] = {}
        self._guard = threading.Lock()

    def get(self, key):
        time.sleep(self.delay)
        with self._guard:
            value = self.values.get(key)
        return list(value) if isinstance(value, list) else value

    def put(self, key, value):
        time.sleep(self.delay)
        if self.fail_writes:
            raise BackendUnavailable("disk full")
        with self._guard:
            self.values[key] = value

    def ping(self):
        time.sleep(self.delay)


def test_slow_read_surfaces_as_backend_unavailable():
    backend = ThreadedStorageBackend(_SlowStore(0.3), timeout_seconds=0.1)

    async def _run():
        with pytest.raises(BackendUnavailable):
            await backend.get(current_user_key("u1"))
        assert await backend.health_check() == "degraded"

    asyncio.run(_run())


def test_slow_write_reports_what_actually_happened():
    store = _SlowStore(0.3)
    backend = ThreadedStorageBackend(store, timeout_seconds=0.1)

    async def _run():
        applied = await backend.put(current_user_key("u1"), "Bass")
        # the reported outcome matches the store right away and later on
        assert applied is True
        assert store.values == {current_user_key("u1"): "Bass"}
        await asyncio.sleep(0.4)
        assert store.values == {current_user_key("u1"): "Bass"}

    asyncio.run(_run())


def test_failed_slow_write_never_lands():
    store = _SlowStore(0.3, fail_writes=True)
    backend = ThreadedStorageBackend(store, timeout_seconds=0.1)

    async def _run():
        assert await backend.put(current_user_key("u1"), "Bass") is False
        await asyncio.sleep(0.4)
        assert store.values == {}

    asyncio.run(_run())


def test_slow_writes_keep_list_appends_consistent():
    # Reads answer within the timeout, writes take longer than it.
    store = _SlowStore(0.05)
    backend = ThreadedStorageBackend(store, timeout_seconds=0.1)
    original_put = store.put

    def slow_put(key, value):
        time.sleep(0.2)
        original_put(key, value)

    store.put = slow_put

    async def _run():
        lists = CollectionMutator(backend)
        await asyncio.gather(*(lists.append("links", {"name": str(i)}) for i in range(4)))
        assert sorted(item["name"] for item in store.values["links"]) == ["0", "1", "2", "3"]

    asyncio.run(_run())
