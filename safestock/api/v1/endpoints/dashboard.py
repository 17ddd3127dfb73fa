# safestock/api/v1/endpoints/dashboard.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from safestock.core.runtime import ClientRuntime
from safestock.dependencies.runtime import get_runtime
from safestock.services.dashboard_service import DashboardStats, build_dashboard
from safestock.services.insight_service import get_inventory_insights

router = APIRouter()


class InsightResponse(BaseModel):
    text: str


@router.get("/stats", response_model=DashboardStats, tags=["dashboard"])
def get_dashboard_stats(
    year: Optional[int] = Query(None, description="Calendar year, defaults to the current one"),
    dept: Optional[str] = Query(None, description="Only count issuances to this department"),
    runtime: ClientRuntime = Depends(get_runtime),
) -> DashboardStats:
    snapshot = runtime.store.snapshot()
    return build_dashboard(
        snapshot.items,
        snapshot.logs,
        year=year or datetime.now().year,
        dept=dept or None,
    )


@router.post("/insights", response_model=InsightResponse, tags=["dashboard"])
def get_insights(runtime: ClientRuntime = Depends(get_runtime)) -> InsightResponse:
    """
    Ask the AI assistant for procurement suggestions. Always answers; a
    missing key or failed call yields a fixed fallback text.
    """
    items = runtime.store.snapshot().items
    return InsightResponse(text=get_inventory_insights(items))
