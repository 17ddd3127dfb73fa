# safestock/hub/app.py
"""
Reference remote store: one shared snapshot document behind a single URL.

GET /   returns the stored document, or an empty ledger if nothing was ever
        pushed.
POST /  replaces the stored document with the request body. The last push
        wins; nothing is merged or versioned.
"""

import json
import logging
from typing import Any, Optional

from fastapi import Body, Depends, FastAPI
from sqlalchemy.orm import Session, sessionmaker

from safestock.core.config import get_settings
from safestock.core.database import build_engine, build_session_factory, get_db
from safestock.services import mirror_service

logger = logging.getLogger(__name__)

SNAPSHOT_KEY = "snapshot"
EMPTY_DOCUMENT = {"items": [], "logs": [], "timestamp": 0}


def create_hub_app(
    database_url: Optional[str] = None,
    session_factory: Optional[sessionmaker] = None,
) -> FastAPI:
    if session_factory is None:
        url = database_url or get_settings().hub_database_url
        session_factory = build_session_factory(build_engine(url))

    app = FastAPI(title="SafeStock Snapshot Hub")

    def get_hub_db():
        yield from get_db(session_factory)

    @app.get("/", tags=["hub"])
    def read_snapshot(db: Session = Depends(get_hub_db)) -> dict[str, Any]:
        raw = mirror_service.get_value(db, SNAPSHOT_KEY)
        if raw is None:
            return dict(EMPTY_DOCUMENT)
        return json.loads(raw)

    @app.post("/", tags=["hub"])
    def write_snapshot(
        document: dict[str, Any] = Body(...),
        db: Session = Depends(get_hub_db),
    ) -> dict[str, Any]:
        mirror_service.set_value(db, SNAPSHOT_KEY, json.dumps(document, ensure_ascii=False))
        logger.info(
            "Snapshot stored items=%d logs=%d",
            len(document.get("items") or []),
            len(document.get("logs") or []),
        )
        return {"status": "ok"}

    @app.get("/health", tags=["health"])
    def health() -> dict:
        return {"status": "ok"}

    return app
