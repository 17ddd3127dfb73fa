# safestock/api/v1/endpoints/transactions.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse

from safestock.core.exceptions import CommitInProgressError, EmptyBasketError
from safestock.core.runtime import ClientRuntime
from safestock.dependencies.runtime import get_runtime
from safestock.schemas.basket import CommitRequest, CommitResult, IssuanceBatch
from safestock.schemas.inventory import ItemType, LogEntry, TransactionType
from safestock.utils.issuance_slip_pdf import batch_from_log, generate_issuance_slip_pdf

router = APIRouter()
logger = logging.getLogger(__name__)


def _pdf_response(batch: IssuanceBatch, runtime: ClientRuntime) -> StreamingResponse:
    pdf_buffer = generate_issuance_slip_pdf(
        batch, organization_name=runtime.settings.organization_name
    )
    filename = f"issuance_slip_{batch.id}.pdf"
    return StreamingResponse(
        iter([pdf_buffer.getvalue()]),
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("", response_model=list[LogEntry], tags=["transactions"])
def list_logs(
    type: Optional[TransactionType] = Query(None, description="IN or OUT"),
    item_id: Optional[str] = Query(None),
    runtime: ClientRuntime = Depends(get_runtime),
) -> list[LogEntry]:
    """
    Movement history from the local replica, newest first.
    """
    logs = runtime.store.snapshot().logs
    if type:
        logs = [log for log in logs if log.type == type]
    if item_id:
        logs = [log for log in logs if log.item_id == item_id]
    return logs


@router.post("/commit", response_model=CommitResult, tags=["transactions"])
def commit_basket(
    payload: CommitRequest,
    runtime: ClientRuntime = Depends(get_runtime),
) -> CommitResult:
    """
    Commit the basket: refresh from the remote, apply every entry, prepend
    the new log entries and push.

    A failed push does not fail the request. The local commit stands and
    `syncStatus` comes back as `error`.
    """
    try:
        return runtime.processor.commit(
            person=payload.person,
            dept=payload.dept,
            reason=payload.reason,
        )
    except EmptyBasketError as exc:
        logger.info("Commit requested with an empty basket")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except CommitInProgressError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))


@router.get("/last-batch", response_model=IssuanceBatch, tags=["transactions"])
def get_last_batch(runtime: ClientRuntime = Depends(get_runtime)) -> IssuanceBatch:
    batch = runtime.processor.last_batch
    if batch is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No issuance has been committed yet.",
        )
    return batch


@router.get("/last-batch/slip", tags=["transactions"])
def download_last_batch_slip(runtime: ClientRuntime = Depends(get_runtime)):
    """
    Printable slip for the most recent OUT commit of this client.
    """
    batch = runtime.processor.last_batch
    if batch is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No issuance has been committed yet.",
        )
    return _pdf_response(batch, runtime)


@router.get("/{log_id}/slip", tags=["transactions"])
def download_log_slip(
    log_id: str,
    runtime: ClientRuntime = Depends(get_runtime),
):
    """
    Reprint a slip for a single historical OUT entry.
    """
    snapshot = runtime.store.snapshot()
    log = next((entry for entry in snapshot.logs if entry.id == log_id), None)
    if log is None:
        logger.info("Slip requested for unknown log_id=%s", log_id)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Log entry not found.")
    if log.type != TransactionType.OUT:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Slips are only printed for OUT movements.",
        )

    item = snapshot.find_item(log.item_id)
    item_type = item.item_type if item is not None else ItemType.CONSUMABLE
    return _pdf_response(batch_from_log(log, item_type), runtime)
