import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Union

from sqlalchemy import (
    create_engine,
    MetaData,
    Table,
    Column,
    Integer,
    String,
    Boolean,
    DateTime,
    select,
)
from sqlalchemy.engine import URL, Engine

from .query import FilterField, Page

logger = logging.getLogger("incidentq.storage")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Storage:
    """Read access to the ``incidents`` table through SQLAlchemy Core.

    The engine owns the connection pool and is safe to share between request
    threads. The table is created on construction when it does not exist yet,
    so building a ``Storage`` also proves the database is reachable; connection
    and DDL errors propagate to the caller.
    """

    def __init__(self, db_url: Union[str, URL]) -> None:
        connect_args: Dict[str, Any] = {}
        if str(db_url).startswith("sqlite:"):
            connect_args = {"check_same_thread": False}
        self.engine: Engine = create_engine(
            db_url, future=True, pool_pre_ping=True, connect_args=connect_args
        )
        self.metadata = MetaData()

        self.incidents = Table(
            "incidents",
            self.metadata,
            Column("id", Integer, primary_key=True),
            Column("created_at", DateTime, default=_utcnow),
            Column("updated_at", DateTime, default=_utcnow, onupdate=_utcnow),
            # rows with deleted_at set are hidden from every query
            Column("deleted_at", DateTime, index=True),
            Column("number", String(64), index=True),
            Column("incident_state", String(64), index=True),
            Column("active", Boolean, index=True, default=False),
            Column("caller_id", String(255)),
            Column("opened_by", String(255), index=True),
            Column("opened_at", DateTime, index=True),
            Column("contact_type", String(255)),
            Column("location", String(255)),
            Column("category", String(255), index=True),
            Column("urgency", String(64), index=True),
            Column("assignment_group", String(255), index=True),
            Column("closed_code", String(255)),
            Column("closed_at", DateTime, index=True),
        )

        self.metadata.create_all(self.engine)
        logger.info("incidents schema ready on %s", self.engine.url.render_as_string(hide_password=True))

    def _conn(self):
        return self.engine.connect()

    def _visible(self):
        return select(self.incidents).where(self.incidents.c.deleted_at.is_(None))

    def _fetch(self, stmt, page: Page) -> List[Dict[str, Any]]:
        stmt = stmt.order_by(self.incidents.c.id).offset(page.offset).limit(page.limit)
        with self._conn() as conn:
            rows = conn.execute(stmt).fetchall()
        return [self._row_to_dict(row) for row in rows]

    @staticmethod
    def _row_to_dict(row) -> Dict[str, Any]:
        out = dict(row._mapping)
        out.pop("deleted_at", None)
        return out

    def list_incidents(self, filters: Mapping[FilterField, str], page: Page) -> List[Dict[str, Any]]:
        """Return one page of incidents matching every filter."""
        stmt = self._visible()
        for field, value in filters.items():
            stmt = stmt.where(field.column(self.incidents) == value)
        return self._fetch(stmt, page)

    def find_by_number(self, number: str, page: Page) -> List[Dict[str, Any]]:
        """Return one page of incidents whose number equals ``number``.

        Numbers are not unique, so this may return several rows.
        """
        stmt = self._visible().where(self.incidents.c.number == number)
        return self._fetch(stmt, page)

    def close(self) -> None:
        self.engine.dispose()


__all__ = ["Storage"]
