# safestock/api/v1/endpoints/sync.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from safestock.core.runtime import ClientRuntime
from safestock.dependencies.runtime import get_runtime
from safestock.schemas.sync import EndpointRequest, SyncState

router = APIRouter()


@router.get("/status", response_model=SyncState, tags=["sync"])
def get_sync_status(runtime: ClientRuntime = Depends(get_runtime)) -> SyncState:
    return runtime.synchronizer.state()


@router.post("/pull", response_model=SyncState, tags=["sync"])
def pull_now(runtime: ClientRuntime = Depends(get_runtime)) -> SyncState:
    """
    Manual refresh. Waits for a commit in flight to finish its push first.
    A failure is reported through the returned status and the local replica
    is kept as it was.
    """
    runtime.synchronizer.refresh()
    return runtime.synchronizer.state()


@router.put("/endpoint", response_model=SyncState, tags=["sync"])
def set_endpoint(
    payload: EndpointRequest,
    runtime: ClientRuntime = Depends(get_runtime),
) -> SyncState:
    runtime.synchronizer.configure_endpoint(payload.url)
    return runtime.synchronizer.state()
