from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Iterable

from settings import BAND_MEMBERS

from .collection_mutator import CollectionMutator
from .interfaces import StorageBackend
from .keys import CONCERTS_KEY, LINKS_KEY, availability_key, current_user_key, parse_key
from .locks import KeyLockRegistry
from .records import ConcertRecord, LinkRecord

logger = logging.getLogger(__name__)


class ScheduleRepository:
    """
    Domain-level access to the band's shared scheduling state.

    Every method derives its store key through persistence.keys and goes
    straight to the backend; nothing is cached between calls. Absent values
    come back empty-shaped (None, {} or []) rather than as errors.
    """

    def __init__(
        self,
        backend: StorageBackend,
        *,
        members: Iterable[str] = BAND_MEMBERS,
        locks: KeyLockRegistry | None = None,
    ) -> None:
        self._backend = backend
        self._members = tuple(members)
        self._lists = CollectionMutator(backend, locks)

    @property
    def backend(self) -> StorageBackend:
        return self._backend

    @property
    def members(self) -> tuple[str, ...]:
        return self._members

    # current user pointers

    async def get_current_user(self, user_id: str) -> Any:
        user = await self._backend.get(current_user_key(user_id))
        logger.info("Get current user: %s -> %r", user_id, user)
        return user

    async def set_current_user(self, user_id: str, user: Any) -> bool:
        success = await self._backend.put(current_user_key(user_id), user)
        logger.info("Set current user: %s -> %r (success=%s)", user_id, user, success)
        return success

    # availability

    async def get_availability(self, member: str, year: str, month: str) -> dict[str, Any]:
        key = availability_key(member, year, month)
        days = await self._backend.get(key)
        if days is None:
            days = {}
        logger.info("Get availability: %s -> %d days", key, len(days))
        return days

    async def set_availability(self, member: str, year: str, month: str, days: dict[str, Any]) -> bool:
        key = availability_key(member, year, month)
        success = await self._backend.put(key, days)
        logger.info("Set availability: %s -> %d days (success=%s)", key, len(days), success)
        return success

    async def get_all_availability(self, year: str, month: str) -> dict[str, dict[str, Any]]:
        values = await asyncio.gather(
            *(self._backend.get(availability_key(member, year, month)) for member in self._members)
        )
        result = {member: (days if days is not None else {}) for member, days in zip(self._members, values)}
        logger.info(
            "Get all availabilities for %s/%s: %s",
            year,
            month,
            ", ".join(f"{m}={len(d)}" for m, d in result.items()),
        )
        return result

    # concerts

    async def list_concerts(self) -> list[Any]:
        return await self._lists.read_list(CONCERTS_KEY)

    async def add_concert(self, concert: ConcertRecord) -> dict[str, Any]:
        record = concert.stamped().model_dump(mode="json")
        await self._lists.append(CONCERTS_KEY, record)
        logger.info("Add concert: %s %s", record.get("location"), record.get("date"))
        return record

    async def delete_concert(self, index: int) -> Any:
        removed = await self._lists.remove_at(CONCERTS_KEY, index)
        logger.info("Delete concert #%d: %s", index, removed.get("location") if isinstance(removed, dict) else removed)
        return removed

    # links

    async def list_links(self) -> list[Any]:
        return await self._lists.read_list(LINKS_KEY)

    async def add_link(self, link: LinkRecord) -> dict[str, Any]:
        record = link.model_dump(mode="json")
        await self._lists.append(LINKS_KEY, record)
        logger.info("Add link: %s", record.get("name"))
        return record

    async def delete_link(self, index: int) -> Any:
        removed = await self._lists.remove_at(LINKS_KEY, index)
        logger.info("Delete link #%d: %s", index, removed.get("name") if isinstance(removed, dict) else removed)
        return removed

    # whole state

    async def dump(self) -> dict[str, Any]:
        """
        Every entry regrouped into the data-file layout the frontend loads at
        start-up: availabilities, concerts, links, currentUsers.
        """
        state: dict[str, Any] = {"availabilities": {}, "concerts": [], "links": [], "currentUsers": {}}
        for key, value in (await self._backend.entries()).items():
            parsed = parse_key(key)
            if parsed.kind == "concerts":
                state["concerts"] = value if value is not None else []
            elif parsed.kind == "links":
                state["links"] = value if value is not None else []
            elif parsed.kind == "current_user":
                state["currentUsers"][parsed.name] = value
            elif parsed.kind == "availability":
                state["availabilities"][parsed.name] = value
        return state

    async def health(self) -> dict[str, Any]:
        status = await self._backend.health_check()
        body: dict[str, Any] = {
            "status": status,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if self._backend.kind == "relational":
            body["database"] = "connected" if status == "ok" else "disconnected"
        return body