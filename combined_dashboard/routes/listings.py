from __future__ import annotations

from fastapi import APIRouter, Query

from combined_dashboard.application import get_dashboard_service

router = APIRouter(tags=["listings"])


@router.get("/jobs")
async def list_jobs(
    status: str | None = Query(default=None),
    database: str | None = Query(default=None),
) -> dict:
    return await get_dashboard_service().list_jobs(status, database)


@router.get("/workspaces")
async def list_workspaces(
    status: str | None = Query(default=None),
    database: str | None = Query(default=None),
) -> dict:
    return await get_dashboard_service().list_workspaces(status, database)
