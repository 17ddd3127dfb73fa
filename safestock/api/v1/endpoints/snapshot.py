# safestock/api/v1/endpoints/snapshot.py
from __future__ import annotations

import json
import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse

from safestock.core.exceptions import CommitInProgressError
from safestock.core.runtime import ClientRuntime
from safestock.dependencies.runtime import get_runtime
from safestock.schemas.inventory import Snapshot
from safestock.schemas.sync import SyncState

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/export", tags=["snapshot"])
def export_snapshot(runtime: ClientRuntime = Depends(get_runtime)):
    """
    Download the local replica as a backup file in the shared snapshot
    format.
    """
    snapshot = runtime.processor.export_snapshot()
    body = json.dumps(snapshot.to_wire(), ensure_ascii=False, indent=2)
    filename = f"inventory_backup_{date.today().isoformat()}.json"
    logger.info(
        "Snapshot exported items=%d logs=%d", len(snapshot.items), len(snapshot.logs)
    )
    return StreamingResponse(
        iter([body.encode("utf-8")]),
        media_type="application/json",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.post("/import", response_model=SyncState, tags=["snapshot"])
def import_snapshot(
    payload: Snapshot,
    runtime: ClientRuntime = Depends(get_runtime),
) -> SyncState:
    """
    Replace both the local replica and the remote with an uploaded backup.
    """
    try:
        runtime.processor.import_snapshot(payload)
    except CommitInProgressError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return runtime.synchronizer.state()
