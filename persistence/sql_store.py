from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from sqlalchemy import JSON, Column, DateTime, Index, MetaData, String, Table, create_engine, delete, select, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError

from .errors import BackendUnavailable, CorruptData
from .interfaces import KeyValueDocumentStore

logger = logging.getLogger(__name__)

metadata = MetaData()

store_entries = Table(
    "store_entries",
    metadata,
    Column("key", String(512), primary_key=True),
    Column("value", JSON().with_variant(JSONB(), "postgresql"), nullable=True),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    Index("ix_store_entries_key", "key"),
)

_UPSERT_DIALECTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def create_store_engine(database_url: str, *, timeout_seconds: float) -> Engine:
    url = make_url(database_url)
    backend = url.get_backend_name()
    if backend not in _UPSERT_DIALECTS:
        raise ValueError(f"unsupported database backend {backend!r}; use postgresql or sqlite")

    connect_args: dict[str, Any] = {}
    if backend == "sqlite":
        # Calls run on worker threads.
        connect_args = {"timeout": timeout_seconds, "check_same_thread": False}
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    elif backend == "postgresql":
        connect_args = {
            "connect_timeout": max(1, int(timeout_seconds)),
            "options": f"-c statement_timeout={int(timeout_seconds * 1000)}",
        }

    return create_engine(url, pool_pre_ping=True, connect_args=connect_args)


class SqlDocumentStore(KeyValueDocumentStore):
    """
    One row per key in ``store_entries(key, value, updated_at)``.

    put() is a single INSERT ... ON CONFLICT (key) DO UPDATE statement, so
    concurrent writes to the same key never leave a torn value: the last
    commit wins.
    """

    kind = "relational"

    def __init__(self, engine: Engine):
        self._engine = engine
        self._insert = _UPSERT_DIALECTS[engine.dialect.name]

    @property
    def engine(self) -> Engine:
        return self._engine

    def initialize(self) -> None:
        try:
            metadata.create_all(self._engine, checkfirst=True)
        except SQLAlchemyError as e:
            raise BackendUnavailable(f"cannot initialize store_entries: {e}") from e
        logger.info("Table store_entries ready on %s", self._engine.url.render_as_string(hide_password=True))

    def get(self, key: str) -> Any | None:
        try:
            with self._engine.connect() as conn:
                row = conn.execute(select(store_entries.c.value).where(store_entries.c.key == key)).first()
        except SQLAlchemyError as e:
            raise BackendUnavailable(f"get {key!r} failed: {e}") from e
        except ValueError as e:
            raise CorruptData(f"value under {key!r} is not valid JSON: {e}") from e
        return None if row is None else row.value

    def put(self, key: str, value: Any) -> None:
        stmt = self._insert(store_entries).values(key=key, value=value, updated_at=datetime.now(timezone.utc))
        stmt = stmt.on_conflict_do_update(
            index_elements=[store_entries.c.key],
            set_={"value": stmt.excluded.value, "updated_at": stmt.excluded.updated_at},
        )
        try:
            with self._engine.begin() as conn:
                conn.execute(stmt)
        except SQLAlchemyError as e:
            raise BackendUnavailable(f"put {key!r} failed: {e}") from e

    def delete(self, key: str) -> None:
        try:
            with self._engine.begin() as conn:
                conn.execute(delete(store_entries).where(store_entries.c.key == key))
        except SQLAlchemyError as e:
            raise BackendUnavailable(f"delete {key!r} failed: {e}") from e

    def entries(self) -> dict[str, Any]:
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(select(store_entries.c.key, store_entries.c.value).order_by(store_entries.c.key)).all()
        except SQLAlchemyError as e:
            raise BackendUnavailable(f"listing entries failed: {e}") from e
        except ValueError as e:
            raise CorruptData(f"stored value is not valid JSON: {e}") from e
        return {row.key: row.value for row in rows}

    def ping(self) -> None:
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise BackendUnavailable(f"database unreachable: {e}") from e

    def close(self) -> None:
        self._engine.dispose()
