# safestock/schemas/sync.py
from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class SyncStatus(str, enum.Enum):
    LOCAL = "local"
    SYNCING = "syncing"
    SYNCED = "synced"
    ERROR = "error"


class SyncState(BaseModel):
    status: SyncStatus
    last_sync_time: str
    remote_url: str
    commit_in_progress: bool

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EndpointRequest(BaseModel):
    url: str = ""
