# safestock/models/mirror.py
from datetime import datetime

from sqlalchemy import DateTime, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from safestock.models.base import Base
from safestock.utils.datetime_utils import utc_now


class MirrorEntry(Base):
    """
    One key/value pair of a durable document mirror.

    The client replica keeps `items`, `logs`, `remote_url` and `last_sync`
    here; the hub keeps its single shared `snapshot` document. Values are
    opaque text (JSON for the snapshot parts).
    """

    __tablename__ = "mirror_entries"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=utc_now,
    )
