from __future__ import annotations

import time
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def now_millis() -> int:
    return int(time.time() * 1000)


class ConcertRecord(BaseModel):
    """A concert as posted by the client; unknown fields are kept as-is."""

    model_config = ConfigDict(extra="allow")

    location: str
    date: str
    addedAt: int | None = None

    def stamped(self, added_at: int | None = None) -> "ConcertRecord":
        return self.model_copy(update={"addedAt": now_millis() if added_at is None else added_at})


class LinkRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str


class CurrentUserBody(BaseModel):
    user: Any = Field(default=None)
