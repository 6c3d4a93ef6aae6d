"""Statement executors: the store's only path to the database."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from sqlalchemy import bindparam, create_engine
from sqlalchemy.engine import Engine

from .schema import SessionRecord, UTCDateTime, create_schema, sessions_table

logger = logging.getLogger(__name__)


@runtime_checkable
class StatementExecutor(Protocol):
    """Prepared operations against the sessions table.

    Parameters are positional and order-sensitive. Each call is a single
    statement; no transaction spans two calls.
    """

    def insert(
        self,
        data: str,
        created_on: datetime,
        modified_on: datetime,
        expires_on: datetime,
    ) -> int:
        """Insert a row and return the generated id."""
        ...

    def update(
        self, data: str, created_on: datetime, expires_on: datetime, id: int
    ) -> None:
        """Overwrite data, created_on and expires_on. modified_on is left alone."""
        ...

    def delete(self, id: int) -> None:
        ...

    def select(self, id: int) -> SessionRecord | None:
        """Return the row, or None if there is none."""
        ...

    def delete_expired(self, now: datetime) -> int:
        """Remove rows whose expires_on is before ``now``. Returns the count."""
        ...

    def close(self) -> None:
        ...


def get_connect_args(database_url: str) -> dict[str, Any]:
    """Driver arguments for ``database_url``."""
    if database_url.startswith("sqlite"):
        # Connections are shared across request threads
        return {"check_same_thread": False}
    return {}


class SQLAlchemyExecutor:
    """StatementExecutor over a SQLAlchemy engine.

    The table is created on construction if missing. Statements are built
    once and reused with bound parameters.
    """

    def __init__(self, engine: Engine, *, create_table: bool = True) -> None:
        self._engine = engine
        if create_table:
            create_schema(engine)

        t = sessions_table
        self._insert = t.insert().values(
            session_data=bindparam("b_data"),
            created_on=bindparam("b_created_on", type_=UTCDateTime),
            modified_on=bindparam("b_modified_on", type_=UTCDateTime),
            expires_on=bindparam("b_expires_on", type_=UTCDateTime),
        )
        self._update = (
            t.update()
            .where(t.c.id == bindparam("row_id"))
            .values(
                session_data=bindparam("b_data"),
                created_on=bindparam("b_created_on", type_=UTCDateTime),
                expires_on=bindparam("b_expires_on", type_=UTCDateTime),
            )
        )
        self._delete = t.delete().where(t.c.id == bindparam("row_id"))
        self._select = t.select().where(t.c.id == bindparam("row_id"))
        self._delete_expired = t.delete().where(
            t.c.expires_on < bindparam("now", type_=UTCDateTime)
        )

    @classmethod
    def from_url(cls, database_url: str, **engine_kwargs: Any) -> "SQLAlchemyExecutor":
        engine = create_engine(
            database_url,
            connect_args=get_connect_args(database_url),
            **engine_kwargs,
        )
        return cls(engine)

    @property
    def engine(self) -> Engine:
        return self._engine

    def insert(self, data, created_on, modified_on, expires_on) -> int:
        with self._engine.begin() as conn:
            result = conn.execute(
                self._insert,
                {
                    "b_data": data,
                    "b_created_on": created_on,
                    "b_modified_on": modified_on,
                    "b_expires_on": expires_on,
                },
            )
            return int(result.inserted_primary_key[0])

    def update(self, data, created_on, expires_on, id) -> None:
        with self._engine.begin() as conn:
            conn.execute(
                self._update,
                {
                    "b_data": data,
                    "b_created_on": created_on,
                    "b_expires_on": expires_on,
                    "row_id": id,
                },
            )

    def delete(self, id) -> None:
        with self._engine.begin() as conn:
            conn.execute(self._delete, {"row_id": id})

    def select(self, id) -> SessionRecord | None:
        with self._engine.connect() as conn:
            row = conn.execute(self._select, {"row_id": id}).first()
        if row is None:
            return None
        return SessionRecord(
            id=row.id,
            data=row.session_data,
            created_on=row.created_on,
            modified_on=row.modified_on,
            expires_on=row.expires_on,
        )

    def delete_expired(self, now) -> int:
        with self._engine.begin() as conn:
            result = conn.execute(self._delete_expired, {"now": now})
        logger.info("Pruned %d expired sessions", result.rowcount)
        return result.rowcount

    def close(self) -> None:
        self._engine.dispose()
