from __future__ import annotations

from fastapi import APIRouter

from combined_dashboard.application import get_dashboard_service

router = APIRouter(tags=["combined"])


@router.get("/combined-data")
async def get_combined_data() -> dict:
    """Totals and status breakdowns summed over every main dashboard."""
    return await get_dashboard_service().combined_data()
