# safestock/services/remote_client.py
"""
Whole-snapshot exchange with the remote store.

GET <url>  -> {"items": [...], "logs": [...], "timestamp": <ms>}
POST <url> <- the same document, replacing whatever the remote held.

There are no deltas, no auth and no retries. Failures are logged and reported
as return values; nothing here raises to the caller.
"""

import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from safestock.schemas.inventory import Snapshot
from safestock.utils.datetime_utils import now_ms

logger = logging.getLogger(__name__)


class RemoteSnapshotClient:
    def __init__(
        self,
        url: str = "",
        *,
        timeout: float = 10.0,
        http_client: Optional[httpx.Client] = None,
    ):
        self.url = url
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(timeout=timeout, follow_redirects=True)

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    def pull(self) -> Optional[Snapshot]:
        """
        Fetch the full remote snapshot.

        Returns None on transport errors, non-JSON bodies and documents
        without an `items` array. A bad payload is never partially applied.
        """
        if not self.url:
            return None

        try:
            response = self._http.get(self.url)
            data = response.json()
        except httpx.HTTPError as exc:
            logger.warning("Remote pull failed url=%s: %s", self.url, exc)
            return None
        except ValueError:
            logger.warning(
                "Remote pull returned a non-JSON body url=%s status=%s",
                self.url,
                response.status_code,
            )
            return None

        if not isinstance(data, dict) or not isinstance(data.get("items"), list):
            logger.warning("Remote pull payload has no items array url=%s", self.url)
            return None

        try:
            return Snapshot.model_validate(data)
        except ValidationError as exc:
            logger.warning(
                "Remote pull payload failed validation url=%s errors=%d",
                self.url,
                exc.error_count(),
            )
            return None

    def push(self, snapshot: Snapshot) -> bool:
        """
        Replace the remote document with snapshot, stamped with the current
        time.

        Fire-and-forget: the response status and body are not inspected, so
        a rejection by the remote looks like success. Only transport errors
        (connect failures, timeouts) return False.
        """
        if not self.url:
            return False

        payload = snapshot.model_copy(update={"timestamp": now_ms()}).to_wire()
        try:
            response = self._http.post(self.url, json=payload)
        except httpx.HTTPError as exc:
            logger.warning("Remote push failed url=%s: %s", self.url, exc)
            return False

        logger.debug(
            "Remote push sent url=%s items=%d logs=%d status=%s",
            self.url,
            len(snapshot.items),
            len(snapshot.logs),
            response.status_code,
        )
        return True
