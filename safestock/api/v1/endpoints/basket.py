# safestock/api/v1/endpoints/basket.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from safestock.core.exceptions import BasketEntryNotFoundError
from safestock.core.runtime import ClientRuntime
from safestock.dependencies.runtime import get_runtime
from safestock.schemas.basket import BasketView, ModeRequest, ReserveRequest

router = APIRouter()
logger = logging.getLogger(__name__)


def _view(runtime: ClientRuntime) -> BasketView:
    return BasketView(mode=runtime.tracker.mode, entries=runtime.tracker.entries())


@router.get("", response_model=BasketView, tags=["basket"])
def get_basket(runtime: ClientRuntime = Depends(get_runtime)) -> BasketView:
    return _view(runtime)


@router.put("/mode", response_model=BasketView, tags=["basket"])
def set_mode(
    payload: ModeRequest,
    runtime: ClientRuntime = Depends(get_runtime),
) -> BasketView:
    """
    Switch between issuance (OUT) and restock (IN). Changing mode empties
    the basket.
    """
    runtime.tracker.set_mode(payload.mode)
    return _view(runtime)


@router.get("/availability/{item_id}", tags=["basket"])
def get_availability(
    item_id: str,
    runtime: ClientRuntime = Depends(get_runtime),
) -> dict:
    if runtime.store.get_item(item_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found.")
    return {
        "itemId": item_id,
        "reserved": runtime.tracker.reserved_quantity(item_id),
        "available": runtime.tracker.available(item_id),
    }


@router.post(
    "/entries",
    response_model=BasketView,
    status_code=status.HTTP_201_CREATED,
    tags=["basket"],
)
def reserve(
    payload: ReserveRequest,
    runtime: ClientRuntime = Depends(get_runtime),
) -> BasketView:
    """
    Add a provisional claim. In OUT mode the claim must fit within the
    item's current quantity minus what is already in the basket.
    """
    outcome = runtime.tracker.reserve(payload.item_id, payload.quantity)
    if not outcome.accepted:
        logger.info(
            "Reservation rejected item_id=%s qty=%s outcome=%s",
            payload.item_id,
            payload.quantity,
            outcome.value,
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "outcome": outcome.value,
                "available": runtime.tracker.available(payload.item_id),
            },
        )
    return _view(runtime)


@router.delete("/entries/{index}", response_model=BasketView, tags=["basket"])
def release(
    index: int,
    runtime: ClientRuntime = Depends(get_runtime),
) -> BasketView:
    try:
        runtime.tracker.release(index)
    except BasketEntryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return _view(runtime)


@router.delete("", response_model=BasketView, tags=["basket"])
def abort(runtime: ClientRuntime = Depends(get_runtime)) -> BasketView:
    """Abort: drop every pending claim without committing."""
    runtime.processor.abort()
    return _view(runtime)
