from __future__ import annotations

import re
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from persistence import IndexOutOfRange, ScheduleRepository
from persistence.keys import CONCERTS_KEY, LINKS_KEY
from persistence.records import ConcertRecord, CurrentUserBody, LinkRecord

router = APIRouter(prefix="/api", tags=["schedule"])

INDEX_RE = re.compile(r"-?[0-9]+")


def get_repository(request: Request) -> ScheduleRepository:
    return request.app.state.repository


def _parse_index(key: str, raw: str) -> int:
    # A non-numeric index is reported exactly like an out-of-range one.
    if not INDEX_RE.fullmatch(raw):
        raise IndexOutOfRange(key, raw)
    return int(raw)


def _write_result(success: bool, **extra: Any) -> JSONResponse:
    return JSONResponse({"success": success, **extra}, status_code=200 if success else 503)


# -------------------------------------------------------------------
# HEALTH / FULL STATE
# -------------------------------------------------------------------
@router.get("/health")
async def health(repo: ScheduleRepository = Depends(get_repository)):
    return await repo.health()


@router.get("/data")
async def all_data(repo: ScheduleRepository = Depends(get_repository)):
    return await repo.dump()


# -------------------------------------------------------------------
# CURRENT USER
# -------------------------------------------------------------------
@router.get("/current-user/{user_id}")
async def get_current_user(user_id: str, repo: ScheduleRepository = Depends(get_repository)):
    return {"user": await repo.get_current_user(user_id)}


@router.post("/current-user/{user_id}")
async def set_current_user(
    user_id: str,
    body: CurrentUserBody,
    repo: ScheduleRepository = Depends(get_repository),
):
    success = await repo.set_current_user(user_id, body.user)
    return _write_result(success, user=body.user)


# -------------------------------------------------------------------
# AVAILABILITY
# ("all" is registered first so it is not taken for a member name)
# -------------------------------------------------------------------
@router.get("/availability/all/{year}/{month}")
async def get_all_availability(year: str, month: str, repo: ScheduleRepository = Depends(get_repository)):
    return await repo.get_all_availability(year, month)


@router.get("/availability/{member}/{year}/{month}")
async def get_availability(member: str, year: str, month: str, repo: ScheduleRepository = Depends(get_repository)):
    return await repo.get_availability(member, year, month)


@router.post("/availability/{member}/{year}/{month}")
async def set_availability(
    member: str,
    year: str,
    month: str,
    body: dict[str, Any],
    repo: ScheduleRepository = Depends(get_repository),
):
    success = await repo.set_availability(member, year, month, body)
    return _write_result(success)


# -------------------------------------------------------------------
# CONCERTS
# -------------------------------------------------------------------
@router.get("/concerts")
async def list_concerts(repo: ScheduleRepository = Depends(get_repository)):
    return await repo.list_concerts()


@router.post("/concerts")
async def add_concert(concert: ConcertRecord, repo: ScheduleRepository = Depends(get_repository)):
    record = await repo.add_concert(concert)
    return {"success": True, "concert": record}


@router.delete("/concerts/{index}")
async def delete_concert(index: str, repo: ScheduleRepository = Depends(get_repository)):
    await repo.delete_concert(_parse_index(CONCERTS_KEY, index))
    return {"success": True}


# -------------------------------------------------------------------
# LINKS
# -------------------------------------------------------------------
@router.get("/links")
async def list_links(repo: ScheduleRepository = Depends(get_repository)):
    return await repo.list_links()


@router.post("/links")
async def add_link(link: LinkRecord, repo: ScheduleRepository = Depends(get_repository)):
    record = await repo.add_link(link)
    return {"success": True, "link": record}


@router.delete("/links/{index}")
async def delete_link(index: str, repo: ScheduleRepository = Depends(get_repository)):
    await repo.delete_link(_parse_index(LINKS_KEY, index))
    return {"success": True}
