from __future__ import annotations

from fastapi import APIRouter, Query

from combined_dashboard.application import get_dashboard_service

router = APIRouter(prefix="/workspace", tags=["workspace"])


@router.get("/{workspace_id}/details")
async def get_workspace_details(workspace_id: str, database: str | None = Query(default=None)) -> dict:
    """File, hyperlink and permission status counts for one workspace."""
    return await get_dashboard_service().workspace_details(workspace_id, database)


@router.get("/{workspace_id}/files")
async def get_workspace_files(
    workspace_id: str,
    database: str | None = Query(default=None),
    status: str | None = Query(default=None),
) -> dict:
    return await get_dashboard_service().workspace_files(workspace_id, database, status)


@router.get("/{workspace_id}/hyperlinks")
async def get_workspace_hyperlinks(
    workspace_id: str,
    database: str | None = Query(default=None),
    status: str | None = Query(default=None),
) -> dict:
    return await get_dashboard_service().workspace_hyperlinks(workspace_id, database, status)


@router.get("/{workspace_id}/permissions")
async def get_workspace_permissions(
    workspace_id: str,
    database: str | None = Query(default=None),
    status: str | None = Query(default=None),
) -> dict:
    return await get_dashboard_service().workspace_permissions(workspace_id, database, status)
