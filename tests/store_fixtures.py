"""Write helpers for seeding the incidents table in tests.

The service itself only reads; rows normally arrive from the upstream sync.
"""
from datetime import datetime, timezone

from sqlalchemy import insert, update


def insert_incident(storage, **fields):
    with storage.engine.begin() as conn:
        result = conn.execute(insert(storage.incidents).values(**fields))
        return int(result.inserted_primary_key[0])


def soft_delete(storage, id):
    with storage.engine.begin() as conn:
        conn.execute(
            update(storage.incidents)
            .where(storage.incidents.c.id == id)
            .values(deleted_at=datetime.now(timezone.utc))
        )
