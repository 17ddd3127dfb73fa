# safestock/services/mirror_service.py
"""
Key/value access to a durable document mirror.

Each `set_value` is its own transaction; callers that write several keys get
several independent durable writes, with nothing tying them together.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from safestock.models.mirror import MirrorEntry

logger = logging.getLogger(__name__)

ITEMS_KEY = "items"
LOGS_KEY = "logs"
REMOTE_URL_KEY = "remote_url"
LAST_SYNC_KEY = "last_sync"


def get_value(db: Session, key: str) -> Optional[str]:
    """Return the stored value for key, or None if it was never written."""
    entry = db.query(MirrorEntry).filter(MirrorEntry.key == key).first()
    return entry.value if entry else None


def set_value(db: Session, key: str, value: str) -> None:
    """
    Insert or overwrite one key and commit.
    """
    try:
        entry = db.query(MirrorEntry).filter(MirrorEntry.key == key).first()
        if entry:
            entry.value = value
        else:
            db.add(MirrorEntry(key=key, value=value))
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Failed to write mirror key=%s", key)
        raise

