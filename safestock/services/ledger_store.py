# safestock/services/ledger_store.py
"""
In-memory replica of the shared inventory (items + transaction log) with a
durable local mirror.

The store starts empty, is seeded from the mirror by `load()`, and mirrors
itself back after every mutation once loading has completed. Items and logs
are written as two independent durable writes.
"""

import json
import logging
import threading
from typing import Callable, Optional

from pydantic import BaseModel, TypeAdapter
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from safestock.schemas.inventory import InventoryItem, LogEntry, Snapshot
from safestock.services import mirror_service
from safestock.services.mirror_service import ITEMS_KEY, LOGS_KEY

logger = logging.getLogger(__name__)

Mutation = Callable[[Snapshot], Optional[Snapshot]]

_items_adapter = TypeAdapter(list[InventoryItem])
_logs_adapter = TypeAdapter(list[LogEntry])


def _dump_list(models: list[BaseModel]) -> str:
    return json.dumps(
        [m.model_dump(mode="json", by_alias=True, exclude_none=True) for m in models],
        ensure_ascii=False,
    )


class LedgerStore:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory
        self._lock = threading.RLock()
        self._snapshot = Snapshot.empty()
        self._loaded = False

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def load(self) -> Snapshot:
        """
        Seed the replica from the durable mirror.

        A missing or unparsable key yields an empty list for that key; a
        corrupt mirror never blocks startup.
        """
        with self._lock:
            try:
                with self._session_factory() as db:
                    items = self._read_list(db, ITEMS_KEY, _items_adapter)
                    logs = self._read_list(db, LOGS_KEY, _logs_adapter)
            except SQLAlchemyError:
                logger.exception("Local mirror unreadable, starting with an empty replica")
                items, logs = [], []

            self._snapshot = Snapshot(items=items, logs=logs, timestamp=0)
            self._loaded = True
            logger.info(
                "Ledger loaded from mirror items=%d logs=%d", len(items), len(logs)
            )
            return self._snapshot.model_copy(deep=True)

    @staticmethod
    def _read_list(db: Session, key: str, adapter: TypeAdapter) -> list:
        raw = mirror_service.get_value(db, key)
        if raw is None:
            return []
        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                raise ValueError(f"expected a JSON array, got {type(data).__name__}")
            return adapter.validate_python(data)
        except ValueError as exc:
            logger.warning("Ignoring corrupt mirror key=%s: %s", key, exc)
            return []

    def save(self, snapshot: Snapshot) -> None:
        """
        Persist items and logs to the mirror.

        Skipped until `load()` has completed so that the empty initial state
        never overwrites a mirror that has not been read yet.
        """
        if not self._loaded:
            logger.debug("Mirror write skipped: ledger not loaded yet")
            return

        for key, models in ((ITEMS_KEY, snapshot.items), (LOGS_KEY, snapshot.logs)):
            try:
                with self._session_factory() as db:
                    mirror_service.set_value(db, key, _dump_list(models))
            except SQLAlchemyError:
                # Logged by mirror_service; in-memory state stays authoritative.
                continue

    def apply(self, mutation: Mutation) -> Snapshot:
        """
        Run mutation against a copy of the current snapshot, swap the result
        in and mirror it. The mutation may return a new snapshot or edit the
        copy in place and return None.
        """
        with self._lock:
            working = self._snapshot.model_copy(deep=True)
            result = mutation(working)
            if result is None:
                result = working
            self._snapshot = result
            self.save(result)
            return result.model_copy(deep=True)

    def replace(self, snapshot: Snapshot) -> Snapshot:
        return self.apply(lambda _current: snapshot.model_copy(deep=True))

    def snapshot(self) -> Snapshot:
        with self._lock:
            return self._snapshot.model_copy(deep=True)

    def get_item(self, item_id: str) -> Optional[InventoryItem]:
        with self._lock:
            item = self._snapshot.find_item(item_id)
            return item.model_copy(deep=True) if item else None
