# safestock/services/sync_service.py
"""
Keeps the local replica aligned with the remote snapshot and owns the sync
status state machine:

    local    no remote endpoint configured
    syncing  a pull or push is in flight
    synced   the most recent pull or push succeeded
    error    the most recent pull or push failed

Pulls happen on a fixed interval, on demand, on every commit path and when
the endpoint changes. Every pull replaces the local replica wholesale.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from safestock.schemas.inventory import Snapshot
from safestock.schemas.sync import SyncState, SyncStatus
from safestock.services import mirror_service
from safestock.services.ledger_store import LedgerStore
from safestock.services.mirror_service import LAST_SYNC_KEY, REMOTE_URL_KEY
from safestock.services.remote_client import RemoteSnapshotClient
from safestock.utils.datetime_utils import format_sync_time

logger = logging.getLogger(__name__)

NEVER_SYNCED = "never"


class Synchronizer:
    def __init__(
        self,
        store: LedgerStore,
        client: RemoteSnapshotClient,
        session_factory: sessionmaker,
        commit_guard: threading.Lock,
        *,
        interval_seconds: float = 15.0,
    ):
        self._store = store
        self._client = client
        self._session_factory = session_factory
        self._commit_guard = commit_guard
        self._interval = interval_seconds
        # Held for the whole of a commit and for every periodic or manual pull.
        self._sync_lock = threading.Lock()

        self._state_lock = threading.Lock()
        self._status = SyncStatus.LOCAL
        self._last_sync_time = NEVER_SYNCED

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def status(self) -> SyncStatus:
        with self._state_lock:
            return self._status

    @property
    def last_sync_time(self) -> str:
        with self._state_lock:
            return self._last_sync_time

    @property
    def remote_url(self) -> str:
        return self._client.url

    def state(self) -> SyncState:
        with self._state_lock:
            return SyncState(
                status=self._status,
                last_sync_time=self._last_sync_time,
                remote_url=self._client.url,
                commit_in_progress=self._commit_guard.locked(),
            )

    def _set_status(self, status: SyncStatus) -> None:
        with self._state_lock:
            if status != self._status:
                logger.info("Sync status %s -> %s", self._status.value, status.value)
            self._status = status

    def _mark_synced(self) -> None:
        stamp = format_sync_time()
        with self._state_lock:
            if self._status != SyncStatus.SYNCED:
                logger.info("Sync status %s -> synced", self._status.value)
            self._status = SyncStatus.SYNCED
            self._last_sync_time = stamp
        self._write_mirror(LAST_SYNC_KEY, stamp)

    def _write_mirror(self, key: str, value: str) -> None:
        try:
            with self._session_factory() as db:
                mirror_service.set_value(db, key, value)
        except SQLAlchemyError:
            # Already logged; the in-memory value is still correct.
            pass

    def restore(self, default_url: Optional[str] = None) -> None:
        """
        Read the configured endpoint and last sync stamp from the mirror.
        `default_url` is only used when no endpoint was ever saved.
        """
        try:
            with self._session_factory() as db:
                saved_url = mirror_service.get_value(db, REMOTE_URL_KEY)
                saved_stamp = mirror_service.get_value(db, LAST_SYNC_KEY)
        except SQLAlchemyError:
            logger.exception("Could not read sync settings from the local mirror")
            saved_url, saved_stamp = None, None

        url = saved_url if saved_url is not None else (default_url or "")
        self._client.url = url.strip()
        with self._state_lock:
            self._last_sync_time = saved_stamp or NEVER_SYNCED
            self._status = SyncStatus.LOCAL

    # ------------------------------------------------------------------
    # Network operations
    # ------------------------------------------------------------------

    def configure_endpoint(self, url: str) -> SyncStatus:
        """
        Save a new endpoint. Clearing it drops back to `local`; setting it
        pulls immediately.
        """
        clean_url = (url or "").strip()
        self._client.url = clean_url
        self._write_mirror(REMOTE_URL_KEY, clean_url)
        logger.info("Remote endpoint %s", "configured" if clean_url else "cleared")

        if clean_url:
            self.refresh()
        else:
            self._set_status(SyncStatus.LOCAL)
        return self.status

    @contextmanager
    def serialized(self) -> Iterator[None]:
        """
        Hold off every other pull for the duration of the block. Commits wrap
        their refresh-apply-push sequence in this, waiting for a pull that is
        already in flight.
        """
        with self._sync_lock:
            yield

    def refresh(self) -> Optional[Snapshot]:
        """
        On-demand pull. Waits for a commit in flight to finish its push, so
        it never overwrites the replica with the pre-push remote document.
        """
        with self._sync_lock:
            return self.pull()

    def pull(self) -> Optional[Snapshot]:
        """
        Pull the remote snapshot and replace the local replica with it.

        Returns the pulled snapshot, or None when no endpoint is configured
        or the pull failed. On failure the local replica is left untouched.
        """
        if not self._client.url:
            self._set_status(SyncStatus.LOCAL)
            return None

        self._set_status(SyncStatus.SYNCING)
        snapshot = self._client.pull()
        if snapshot is None:
            self._set_status(SyncStatus.ERROR)
            return None

        self._store.replace(snapshot)
        self._mark_synced()
        return snapshot

    def push(self, snapshot: Snapshot) -> bool:
        if not self._client.url:
            self._set_status(SyncStatus.LOCAL)
            return False

        self._set_status(SyncStatus.SYNCING)
        if not self._client.push(snapshot):
            self._set_status(SyncStatus.ERROR)
            return False

        self._mark_synced()
        return True

    # ------------------------------------------------------------------
    # Periodic pull
    # ------------------------------------------------------------------

    def tick(self) -> bool:
        """
        One periodic pull. Never waits: it is skipped while a commit is in
        progress and while any other pull holds the sync lock. Returns True
        if a pull was made.
        """
        if not self._client.url:
            return False
        if self._commit_guard.locked():
            logger.debug("Periodic pull skipped: commit in progress")
            return False
        if not self._sync_lock.acquire(blocking=False):
            logger.debug("Periodic pull skipped: another pull is in flight")
            return False
        try:
            self.pull()
            return True
        finally:
            self._sync_lock.release()

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval):
            try:
                self.tick()
            except Exception:
                logger.exception("Periodic pull failed unexpectedly")

    def start(self) -> None:
        if self._interval <= 0 or self._thread is not None:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, name="safestock-sync", daemon=True
        )
        self._thread.start()
        logger.info("Periodic pull started interval=%ss", self._interval)

    def stop(self) -> None:
        if self._thread is None:
            return
        self._stop_event.set()
        self._thread.join(timeout=self._interval + 1)
        self._thread = None
        logger.info("Periodic pull stopped")
