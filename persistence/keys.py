"""
Store key namespace.

Every logical entity lives under exactly one string key:

    current_user_<userId>
    availability_<member>_<year>_<month>
    concerts
    links

Year and month are kept in their literal string form ("05" and "5" are
different keys), so writers and readers must agree on a representation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal
from urllib.parse import unquote

CURRENT_USER_PREFIX = "current_user_"
AVAILABILITY_PREFIX = "availability_"

CONCERTS_KEY = "concerts"
LINKS_KEY = "links"

KeyKind = Literal["current_user", "availability", "concerts", "links", "other"]


@dataclass(frozen=True)
class ParsedKey:
    kind: KeyKind
    # User id for current_user keys, "<member>_<year>_<month>" for availability keys.
    name: str | None = None

    @property
    def availability_parts(self) -> tuple[str, str, str]:
        if self.kind != "availability" or self.name is None:
            raise ValueError(f"not an availability key: {self!r}")
        member, year, month = self.name.rsplit("_", 2)
        return member, year, month


def current_user_key(user_id: str) -> str:
    return f"{CURRENT_USER_PREFIX}{user_id}"


def decode_member(member: str) -> str:
    return unquote(member)


def availability_name(member: str, year: str, month: str) -> str:
    return f"{decode_member(member)}_{year}_{month}"


def availability_key(member: str, year: str, month: str) -> str:
    """
    Key for one member's availability in one month.

    The member name is percent-decoded here so that "Lead%20Guitar" and
    "Lead Guitar" address the same entry no matter which caller built the key.
    """
    return f"{AVAILABILITY_PREFIX}{availability_name(member, year, month)}"


def parse_key(key: str) -> ParsedKey:
    if key == CONCERTS_KEY:
        return ParsedKey("concerts")
    if key == LINKS_KEY:
        return ParsedKey("links")
    if key.startswith(CURRENT_USER_PREFIX):
        return ParsedKey("current_user", key[len(CURRENT_USER_PREFIX):])
    if key.startswith(AVAILABILITY_PREFIX):
        name = key[len(AVAILABILITY_PREFIX):]
        # member may itself contain underscores; year and month never do
        if name.count("_") >= 2:
            return ParsedKey("availability", name)
    return ParsedKey("other", key)
