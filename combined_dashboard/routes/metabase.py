from __future__ import annotations

from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from combined_dashboard.application import get_dashboard_service
from combined_dashboard.core.schema import CardQueryRequest
from combined_dashboard.infrastructure import MetabaseError

router = APIRouter(tags=["metabase"])


@router.get("/health")
async def metabase_health():
    """Check that Metabase accepts our credentials."""
    service = get_dashboard_service()
    try:
        return await service.health()
    except MetabaseError as exc:
        return JSONResponse(status_code=500, content={"status": "disconnected", "error": exc.detail})


@router.get("/config")
async def get_config() -> dict:
    return get_dashboard_service().config_summary()


@router.get("/dashboards")
async def list_dashboards() -> list[dict[str, Any]]:
    return await get_dashboard_service().list_dashboards()


@router.get("/dashboard/{dashboard_id}")
async def get_dashboard(dashboard_id: str) -> dict[str, Any]:
    return await get_dashboard_service().client.get_dashboard(dashboard_id)


@router.get("/card/{card_id}/query")
async def query_card(card_id: str) -> dict[str, Any]:
    return await get_dashboard_service().client.run_card_query(card_id)


@router.post("/card/{card_id}/query")
async def query_card_with_parameters(card_id: str, payload: CardQueryRequest | None = None) -> dict[str, Any]:
    parameters = [item.model_dump() for item in payload.parameters] if payload else []
    return await get_dashboard_service().client.run_card_query(card_id, parameters)
