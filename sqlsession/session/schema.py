"""The ``sessions`` table and its row mapping."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, MetaData, Table, Text, TypeDecorator
from sqlalchemy.engine import Engine
from sqlalchemy.sql import func

TABLE_NAME = "sessions"

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetimes, stored naive.

    SQLite has no timezone support, so values are normalized to UTC and
    stored without tzinfo; UTC is re-attached on the way out.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError("naive datetime passed to UTCDateTime column")
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


metadata = MetaData()

# created_on/expires_on defaults are placeholders; the store always writes both.
sessions_table = Table(
    TABLE_NAME,
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("session_data", Text, nullable=True),
    Column("created_on", UTCDateTime, nullable=False, default=EPOCH),
    Column("modified_on", UTCDateTime, nullable=False, server_default=func.current_timestamp()),
    Column("expires_on", UTCDateTime, nullable=False, default=EPOCH),
)


@dataclass(frozen=True)
class SessionRecord:
    """One persisted session row."""

    id: int
    data: str
    created_on: datetime
    modified_on: datetime
    expires_on: datetime


def create_schema(engine: Engine) -> None:
    """Create the sessions table if it does not exist."""
    metadata.create_all(bind=engine, tables=[sessions_table], checkfirst=True)
