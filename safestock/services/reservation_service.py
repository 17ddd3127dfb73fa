# safestock/services/reservation_service.py
"""
The basket: quantities provisionally claimed by this client before a commit.

Reservations only stop one client from queuing more OUT movements than its
last-known stock supports. They are invisible to other clients.
"""

import enum
import logging
import threading

from safestock.core.exceptions import BasketEntryNotFoundError
from safestock.schemas.basket import BasketEntry
from safestock.schemas.inventory import TransactionType
from safestock.services.ledger_store import LedgerStore

logger = logging.getLogger(__name__)


class ReservationOutcome(str, enum.Enum):
    ACCEPTED = "accepted"
    INVALID_QUANTITY = "invalid_quantity"
    UNKNOWN_ITEM = "unknown_item"
    INSUFFICIENT_STOCK = "insufficient_stock"

    @property
    def accepted(self) -> bool:
        return self is ReservationOutcome.ACCEPTED


class ReservationTracker:
    def __init__(self, store: LedgerStore, mode: TransactionType = TransactionType.OUT):
        self._store = store
        self._mode = mode
        self._entries: list[BasketEntry] = []
        self._lock = threading.RLock()

    @property
    def mode(self) -> TransactionType:
        return self._mode

    def set_mode(self, mode: TransactionType) -> None:
        """Switching between OUT and IN drops every pending entry."""
        with self._lock:
            if mode != self._mode:
                logger.info(
                    "Basket mode %s -> %s, clearing %d entries",
                    self._mode.value,
                    mode.value,
                    len(self._entries),
                )
                self._entries = []
            self._mode = mode

    def entries(self) -> list[BasketEntry]:
        with self._lock:
            return [e.model_copy() for e in self._entries]

    def is_empty(self) -> bool:
        with self._lock:
            return not self._entries

    def reserved_quantity(self, item_id: str) -> int:
        with self._lock:
            return sum(e.quantity for e in self._entries if e.item_id == item_id)

    def available(self, item_id: str) -> int:
        """
        On-hand quantity of the freshest known item minus what is already
        in the basket. Unknown items have nothing available.
        """
        item = self._store.get_item(item_id)
        if item is None:
            return 0
        return item.quantity - self.reserved_quantity(item_id)

    def reserve(self, item_id: str, quantity: int) -> ReservationOutcome:
        with self._lock:
            if quantity <= 0:
                return ReservationOutcome.INVALID_QUANTITY

            # Read from the store on every call, never from a cached copy.
            item = self._store.get_item(item_id)
            if item is None:
                return ReservationOutcome.UNKNOWN_ITEM

            if self._mode == TransactionType.OUT:
                available = item.quantity - self.reserved_quantity(item_id)
                if quantity > available:
                    return ReservationOutcome.INSUFFICIENT_STOCK

            self._entries.append(
                BasketEntry(
                    item_id=item.id,
                    quantity=quantity,
                    name=item.name,
                    unit=item.unit,
                    spec=item.spec,
                    item_type=item.item_type,
                )
            )
            return ReservationOutcome.ACCEPTED

    def release(self, index: int) -> BasketEntry:
        with self._lock:
            if index < 0 or index >= len(self._entries):
                raise BasketEntryNotFoundError(index)
            return self._entries.pop(index)

    def discard(self, entry_ids: list[str]) -> None:
        """
        Drop the given entries, keeping any that were added after they were
        read. Ids no longer in the basket are ignored.
        """
        with self._lock:
            drop = set(entry_ids)
            self._entries = [e for e in self._entries if e.entry_id not in drop]

    def clear(self) -> None:
        with self._lock:
            self._entries = []
