# safestock/services/transaction_service.py
"""
Turns a committed basket (or a single item add/edit/delete, or an imported
snapshot) into a new ledger state and pushes it.

Every mutation follows refresh-then-apply-then-push:

1. take the commit guard (a second attempt while it is held is a no-op),
   then wait for any periodic or manual pull already in flight;
2. pull the freshest remote snapshot, falling back to the local replica if
   the pull fails;
3. apply the change to that basis;
4. replace the local replica and push the result;
5. release both.

Refreshing first narrows the window in which two clients compute updates
from a stale basis. It does not close it: the remote keeps whichever push
lands last.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from safestock.core.config import Settings
from safestock.core.exceptions import (
    CommitInProgressError,
    EmptyBasketError,
    InvalidItemError,
    ItemNotFoundError,
)
from safestock.schemas.basket import CommitResult, IssuanceBatch
from safestock.schemas.inventory import (
    InventoryItem,
    ItemCreate,
    ItemGroup,
    ItemUpdate,
    LogEntry,
    Snapshot,
    TransactionType,
)
from safestock.services.ledger_store import LedgerStore
from safestock.services.reservation_service import ReservationTracker
from safestock.services.sync_service import Synchronizer
from safestock.utils.datetime_utils import now_ms
from safestock.utils.id_generators import (
    generate_batch_id,
    generate_item_id,
    generate_transaction_id,
)

logger = logging.getLogger(__name__)

# Optional item fields an edit may clear by sending null.
_DATE_FIELDS = ("purchase_date", "expiry_date")


def apply_movement(quantity: int, delta: int, mode: TransactionType) -> int:
    """New on-hand quantity after one movement. OUT never goes below zero."""
    if mode == TransactionType.IN:
        return quantity + delta
    return max(0, quantity - delta)


class TransactionProcessor:
    def __init__(
        self,
        store: LedgerStore,
        tracker: ReservationTracker,
        synchronizer: Synchronizer,
        commit_guard: threading.Lock,
        settings: Settings,
    ):
        self._store = store
        self._tracker = tracker
        self._synchronizer = synchronizer
        self._guard = commit_guard
        self._settings = settings
        self.last_batch: Optional[IssuanceBatch] = None

    @property
    def in_progress(self) -> bool:
        return self._guard.locked()

    @contextmanager
    def _exclusive(self, action: str) -> Iterator[None]:
        # Non-blocking: only one commit may be in flight per process.
        if not self._guard.acquire(blocking=False):
            logger.warning("%s rejected: another commit is in progress", action)
            raise CommitInProgressError(action)
        try:
            # Blocking: a background pull only delays the commit.
            with self._synchronizer.serialized():
                yield
        finally:
            self._guard.release()

    def _refresh(self) -> tuple[Snapshot, str]:
        latest = self._synchronizer.pull()
        if latest is not None:
            return latest, "remote"
        logger.warning("Refresh failed, applying against the local replica")
        return self._store.snapshot(), "local"

    def _apply_and_push(self, snapshot: Snapshot) -> tuple[Snapshot, bool]:
        committed = self._store.replace(snapshot)
        pushed = self._synchronizer.push(committed)
        return committed, pushed

    # ------------------------------------------------------------------
    # Issuance / restock
    # ------------------------------------------------------------------

    def commit(
        self,
        person: str = "",
        dept: Optional[str] = None,
        reason: str = "",
    ) -> CommitResult:
        """
        Commit the basket. The local commit always happens; a failed push
        only shows up as sync status `error` and is not rolled back.
        """
        with self._exclusive("commit"):
            mode = self._tracker.mode
            basket = self._tracker.entries()
            if not basket:
                raise EmptyBasketError()

            latest, basis = self._refresh()

            timestamp = now_ms()
            person = person.strip() or self._settings.unnamed_person
            if mode == TransactionType.IN:
                dept = self._settings.restock_department
            else:
                dept = (dept or "").strip() or self._settings.departments[0]

            new_logs: list[LogEntry] = []
            for entry in basket:
                item = latest.find_item(entry.item_id)
                if item is not None:
                    item.quantity = apply_movement(item.quantity, entry.quantity, mode)
                    item.last_updated = timestamp
                else:
                    # Deleted by another client since it was reserved.
                    logger.warning(
                        "Item %s missing from basis, logging movement only",
                        entry.item_id,
                    )
                new_logs.append(
                    LogEntry(
                        id=generate_transaction_id(),
                        item_id=entry.item_id,
                        item_name=item.name if item else entry.name,
                        spec=item.spec if item else entry.spec,
                        unit=item.unit if item else entry.unit,
                        type=mode,
                        quantity=entry.quantity,
                        person=person,
                        dept=dept,
                        reason=reason,
                        timestamp=timestamp,
                    )
                )
            latest.logs = new_logs + latest.logs

            _, pushed = self._apply_and_push(latest)
            # Entries reserved while this commit was in flight stay in the basket.
            self._tracker.discard([entry.entry_id for entry in basket])

            batch = IssuanceBatch(
                id=generate_batch_id(),
                mode=mode,
                dept=dept,
                person=person,
                reason=reason,
                entries=basket,
                timestamp=timestamp,
            )
            if mode == TransactionType.OUT:
                self.last_batch = batch

            logger.info(
                "Committed %s batch=%s entries=%d basis=%s pushed=%s",
                mode.value,
                batch.id,
                len(basket),
                basis,
                pushed,
            )
            return CommitResult(
                batch=batch,
                logs=new_logs,
                basis=basis,
                pushed=pushed,
                sync_status=self._synchronizer.status,
            )

    def abort(self) -> None:
        """Drop the basket without committing anything."""
        self._tracker.clear()

    # ------------------------------------------------------------------
    # Item add / edit / delete
    # ------------------------------------------------------------------

    def create_item(self, payload: ItemCreate) -> InventoryItem:
        with self._exclusive("add item"):
            latest, _ = self._refresh()
            item = InventoryItem(
                id=generate_item_id(),
                last_updated=now_ms(),
                **payload.model_dump(),
            )
            latest.items.append(item)
            self._apply_and_push(latest)
            logger.info("Item added id=%s name=%s", item.id, item.name)
            return item

    def update_item(self, item_id: str, payload: ItemUpdate) -> InventoryItem:
        with self._exclusive("edit item"):
            latest, _ = self._refresh()
            existing = latest.find_item(item_id)
            if existing is None:
                raise ItemNotFoundError(item_id)

            changes = {
                field: value
                for field, value in payload.model_dump(exclude_unset=True).items()
                if value is not None or field in _DATE_FIELDS
            }

            effective_group = changes.get("item_group", existing.item_group)
            if effective_group != ItemGroup.MEDICINE:
                if any(changes.get(f) for f in _DATE_FIELDS):
                    raise InvalidItemError(
                        "Purchase and expiry dates are only kept for MEDICINE items"
                    )
                changes.update({f: None for f in _DATE_FIELDS})

            changes["last_updated"] = now_ms()
            updated = existing.model_copy(update=changes)
            latest.items = [updated if i.id == item_id else i for i in latest.items]

            self._apply_and_push(latest)
            logger.info("Item edited id=%s fields=%s", item_id, sorted(changes))
            return updated

    def delete_item(self, item_id: str) -> None:
        """
        Hard delete. Log entries for the item stay as they are; they carry
        their own copy of the name and spec.
        """
        with self._exclusive("delete item"):
            latest, _ = self._refresh()
            if latest.find_item(item_id) is None:
                raise ItemNotFoundError(item_id)
            latest.items = [i for i in latest.items if i.id != item_id]
            self._apply_and_push(latest)
            logger.info("Item deleted id=%s", item_id)

    # ------------------------------------------------------------------
    # Export / import
    # ------------------------------------------------------------------

    def export_snapshot(self) -> Snapshot:
        snapshot = self._store.snapshot()
        snapshot.timestamp = now_ms()
        return snapshot

    def import_snapshot(self, snapshot: Snapshot) -> bool:
        """
        Replace the replica with an imported file and push it straight away.
        Nothing is pulled first: the import is meant to win.
        """
        with self._exclusive("import"):
            _, pushed = self._apply_and_push(snapshot)
            logger.info(
                "Snapshot imported items=%d logs=%d pushed=%s",
                len(snapshot.items),
                len(snapshot.logs),
                pushed,
            )
            return pushed
