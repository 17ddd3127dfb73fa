# safestock/api/v1/endpoints/items.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from safestock.core.exceptions import (
    CommitInProgressError,
    InvalidItemError,
    ItemNotFoundError,
)
from safestock.core.runtime import ClientRuntime
from safestock.dependencies.runtime import get_runtime
from safestock.schemas.inventory import InventoryItem, ItemCreate, ItemGroup, ItemUpdate

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("", response_model=list[InventoryItem], tags=["items"])
def list_items(
    group: Optional[ItemGroup] = Query(
        None, description="Filter by group (INVENTORY or MEDICINE)"
    ),
    search: Optional[str] = Query(None, description="Search by name (case-insensitive)"),
    low_stock: bool = Query(False, description="Only items at or below min stock"),
    runtime: ClientRuntime = Depends(get_runtime),
) -> list[InventoryItem]:
    """
    List items from the local replica. Never touches the network.
    """
    items = runtime.store.snapshot().items

    if group:
        items = [i for i in items if i.item_group == group]
    if search and search.strip():
        term = search.strip().lower()
        items = [i for i in items if term in i.name.lower()]
    if low_stock:
        items = [i for i in items if i.is_low_stock]
    return items


@router.post(
    "",
    response_model=InventoryItem,
    status_code=status.HTTP_201_CREATED,
    tags=["items"],
)
def create_item(
    payload: ItemCreate,
    runtime: ClientRuntime = Depends(get_runtime),
) -> InventoryItem:
    """
    Add an item against the freshest remote list and push the result.
    """
    try:
        return runtime.processor.create_item(payload)
    except CommitInProgressError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))


@router.patch("/{item_id}", response_model=InventoryItem, tags=["items"])
def update_item(
    item_id: str,
    payload: ItemUpdate,
    runtime: ClientRuntime = Depends(get_runtime),
) -> InventoryItem:
    """
    Edit an item. The edit is applied to the freshest remote copy, so an
    item deleted by another client is reported as not found.
    """
    try:
        return runtime.processor.update_item(item_id, payload)
    except ItemNotFoundError as exc:
        logger.info("Edit of unknown item item_id=%s", item_id)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except InvalidItemError as exc:
        logger.info("Edit rejected item_id=%s: %s", item_id, exc)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except CommitInProgressError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))


@router.delete(
    "/{item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["items"],
)
def delete_item(
    item_id: str,
    runtime: ClientRuntime = Depends(get_runtime),
) -> Response:
    try:
        runtime.processor.delete_item(item_id)
    except ItemNotFoundError as exc:
        logger.info("Delete of unknown item item_id=%s", item_id)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except CommitInProgressError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
