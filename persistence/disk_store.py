from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from json_store import atomic_write_json, read_json

from .errors import BackendUnavailable, CorruptData
from .interfaces import KeyValueDocumentStore
from .keys import AVAILABILITY_PREFIX, CURRENT_USER_PREFIX, parse_key
from .locks import GLOBAL_PATH_LOCKS

logger = logging.getLogger(__name__)

# Top-level fields of the data file. Map-valued fields hold many keys each.
AVAILABILITIES_FIELD = "availabilities"
CONCERTS_FIELD = "concerts"
LINKS_FIELD = "links"
CURRENT_USERS_FIELD = "currentUsers"
OTHER_FIELD = "other"

_MAP_FIELDS = {
    AVAILABILITIES_FIELD: AVAILABILITY_PREFIX,
    CURRENT_USERS_FIELD: CURRENT_USER_PREFIX,
    OTHER_FIELD: "",
}


def empty_document() -> dict[str, Any]:
    return {
        AVAILABILITIES_FIELD: {},
        CONCERTS_FIELD: [],
        LINKS_FIELD: [],
        CURRENT_USERS_FIELD: {},
    }


def _locate(key: str) -> tuple[str, str | None]:
    """Return (top-level field, entry name inside that field or None)."""
    parsed = parse_key(key)
    if parsed.kind == "concerts":
        return CONCERTS_FIELD, None
    if parsed.kind == "links":
        return LINKS_FIELD, None
    if parsed.kind == "current_user":
        return CURRENT_USERS_FIELD, parsed.name
    if parsed.kind == "availability":
        return AVAILABILITIES_FIELD, parsed.name
    return OTHER_FIELD, key


class DiskJsonDocumentStore(KeyValueDocumentStore):
    """
    The whole keyspace as a single JSON document on disk:

      {
        "availabilities": { "<member>_<year>_<month>": {...} },
        "concerts": [...],
        "links": [...],
        "currentUsers": { "<userId>": ... }
      }

    Every get/put/delete reads and parses the entire file, and every change
    rewrites it. Each cycle runs under a per-path lock so writers inside this
    process cannot drop each other's changes; other processes writing the
    same file are not coordinated.

    Unparseable content raises CorruptData and the file is left untouched.
    """

    kind = "flatfile"

    def __init__(self, path: Path):
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def _lock(self):
        return GLOBAL_PATH_LOCKS.lock_for(self._path)

    def _load(self) -> dict[str, Any]:
        try:
            raw = read_json(self._path)
        except json.JSONDecodeError as e:
            raise CorruptData(f"{self._path} is not valid JSON: {e}") from e
        except OSError as e:
            raise BackendUnavailable(f"cannot read {self._path}: {e}") from e
        if raw is None:
            return empty_document()
        if not isinstance(raw, dict):
            raise CorruptData(f"{self._path} does not hold a JSON object")
        return raw

    def _save(self, doc: dict[str, Any]) -> None:
        try:
            atomic_write_json(self._path, doc)
        except (OSError, TypeError, ValueError) as e:
            raise BackendUnavailable(f"cannot write {self._path}: {e}") from e

    def _section(self, doc: dict[str, Any], field: str, *, create: bool = False) -> dict[str, Any]:
        section = doc.get(field)
        if section is None:
            section = {}
            if create:
                doc[field] = section
        if not isinstance(section, dict):
            raise CorruptData(f"{self._path}: field {field!r} is not an object")
        return section

    def initialize(self) -> None:
        with self._lock():
            if self._path.exists():
                logger.info("Data file found: %s", self._path)
                return
            self._save(empty_document())
            logger.info("Data file initialized: %s", self._path)

    def get(self, key: str) -> Any | None:
        field, name = _locate(key)
        with self._lock():
            doc = self._load()
        if name is None:
            return doc.get(field)
        return self._section(doc, field).get(name)

    def put(self, key: str, value: Any) -> None:
        field, name = _locate(key)
        with self._lock():
            doc = self._load()
            if name is None:
                doc[field] = value
            else:
                self._section(doc, field, create=True)[name] = value
            self._save(doc)

    def delete(self, key: str) -> None:
        field, name = _locate(key)
        with self._lock():
            doc = self._load()
            if name is None:
                if field not in doc:
                    return
                del doc[field]
            else:
                section = self._section(doc, field)
                if name not in section:
                    return
                del section[name]
            self._save(doc)

    def entries(self) -> dict[str, Any]:
        with self._lock():
            doc = self._load()
        out: dict[str, Any] = {}
        for field in (CONCERTS_FIELD, LINKS_FIELD):
            if field in doc:
                out[field] = doc[field]
        for field, prefix in _MAP_FIELDS.items():
            for name, value in self._section(doc, field).items():
                out[f"{prefix}{name}"] = value
        return out

    def ping(self) -> None:
        with self._lock():
            self._load()

    def close(self) -> None:
        return None
