# safestock/schemas/basket.py
from __future__ import annotations

from typing import Literal

from pydantic import Field

from safestock.schemas.inventory import (
    ApiModel,
    ItemType,
    LogEntry,
    TransactionType,
)
from safestock.schemas.sync import SyncStatus
from safestock.utils.id_generators import generate_entry_id


class BasketEntry(ApiModel):
    """A provisional quantity claim; never persisted, never in a snapshot."""

    item_id: str
    entry_id: str = Field(default_factory=generate_entry_id)
    quantity: int
    name: str = ""
    unit: str = ""
    spec: str = ""
    item_type: ItemType = ItemType.CONSUMABLE


class ReserveRequest(ApiModel):
    item_id: str
    quantity: int


class ModeRequest(ApiModel):
    mode: TransactionType


class BasketView(ApiModel):
    mode: TransactionType
    entries: list[BasketEntry]


class CommitRequest(ApiModel):
    person: str = ""
    dept: str | None = None
    reason: str = ""


class IssuanceBatch(ApiModel):
    """The finalized basket of one commit, as printed on the issuance slip."""

    id: str
    mode: TransactionType
    dept: str
    person: str
    reason: str = ""
    entries: list[BasketEntry] = Field(default_factory=list)
    timestamp: int


class CommitResult(ApiModel):
    batch: IssuanceBatch
    logs: list[LogEntry]
    # "remote" when the refresh pull succeeded, "local" when it fell back
    basis: Literal["remote", "local"]
    pushed: bool
    sync_status: SyncStatus
