from fastapi import APIRouter

from safestock.api.v1.endpoints import (
    basket,
    dashboard,
    items,
    snapshot,
    sync,
    transactions,
)

api_router = APIRouter()

api_router.include_router(items.router, prefix="/items", tags=["items"])
api_router.include_router(basket.router, prefix="/basket", tags=["basket"])
api_router.include_router(transactions.router, prefix="/transactions", tags=["transactions"])
api_router.include_router(sync.router, prefix="/sync", tags=["sync"])
api_router.include_router(snapshot.router, prefix="/snapshot", tags=["snapshot"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])
