# safestock/core/runtime.py
"""
The single owner of one client replica: ledger store, basket, remote client,
synchronizer and transaction processor, wired around one commit guard.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Optional

import httpx
from sqlalchemy.orm import sessionmaker

from safestock.core.config import Settings
from safestock.core.database import build_engine, build_session_factory
from safestock.services.ledger_store import LedgerStore
from safestock.services.remote_client import RemoteSnapshotClient
from safestock.services.reservation_service import ReservationTracker
from safestock.services.sync_service import Synchronizer
from safestock.services.transaction_service import TransactionProcessor

logger = logging.getLogger(__name__)


@dataclass
class ClientRuntime:
    settings: Settings
    store: LedgerStore
    tracker: ReservationTracker
    remote: RemoteSnapshotClient
    synchronizer: Synchronizer
    processor: TransactionProcessor

    def startup(self, start_periodic: bool = True) -> None:
        """
        Load the mirror, restore the endpoint, pull once if one is set and
        start the periodic pull.
        """
        self.store.load()
        self.synchronizer.restore(default_url=self.settings.remote_url)
        if self.synchronizer.remote_url:
            self.synchronizer.pull()
        if start_periodic:
            self.synchronizer.start()

    def shutdown(self) -> None:
        self.synchronizer.stop()
        self.remote.close()


def build_runtime(
    settings: Settings,
    *,
    session_factory: Optional[sessionmaker] = None,
    http_client: Optional[httpx.Client] = None,
) -> ClientRuntime:
    if session_factory is None:
        session_factory = build_session_factory(build_engine(settings.mirror_database_url))

    commit_guard = threading.Lock()
    store = LedgerStore(session_factory)
    tracker = ReservationTracker(store)
    remote = RemoteSnapshotClient(
        timeout=settings.remote_timeout_seconds,
        http_client=http_client,
    )
    synchronizer = Synchronizer(
        store,
        remote,
        session_factory,
        commit_guard,
        interval_seconds=settings.sync_interval_seconds,
    )
    processor = TransactionProcessor(store, tracker, synchronizer, commit_guard, settings)

    return ClientRuntime(
        settings=settings,
        store=store,
        tracker=tracker,
        remote=remote,
        synchronizer=synchronizer,
        processor=processor,
    )
