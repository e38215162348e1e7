import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import func, insert, select, text
from sqlalchemy.engine import Engine

from .db_layer import qrs

DEFAULT_LIMIT = 3


class MissingFields(ValueError):
    """vatin, firstName and lastName are all required."""


class LimitReached(Exception):
    def __init__(self, vatin: str, limit: int):
        super().__init__(f"limit of {limit} records reached for vatin {vatin}")
        self.vatin = vatin
        self.limit = limit


@dataclass(frozen=True)
class Record:
    id: str
    vatin: str
    first_name: str
    last_name: str
    created_at: datetime

    @classmethod
    def from_row(cls, row) -> "Record":
        return cls(
            id=row.id,
            vatin=row.vatin,
            first_name=row.first_name,
            last_name=row.last_name,
            created_at=row.created_at,
        )

    def to_view(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "vatin": self.vatin,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "createdAt": self.created_at,
        }


def count_all(engine: Engine) -> int:
    with engine.connect() as conn:
        return conn.execute(select(func.count()).select_from(qrs)).scalar_one()


def count_for_vatin(engine: Engine, vatin: str) -> int:
    with engine.connect() as conn:
        return conn.execute(
            select(func.count()).select_from(qrs).where(qrs.c.vatin == vatin)
        ).scalar_one()


def _lock_vatin(conn, vatin: str) -> None:
    """Serialize creations for one vatin until the transaction ends.

    Must run before the count. PostgreSQL takes an advisory lock keyed by the
    vatin; SQLite takes the database write lock up front, since pysqlite would
    otherwise only BEGIN at the INSERT, after the count was read.
    """
    if conn.dialect.name == "postgresql":
        conn.execute(text("SELECT pg_advisory_xact_lock(hashtext(:vatin))"), {"vatin": vatin})
    elif conn.dialect.name == "sqlite":
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_record(engine: Engine, vatin: str, first_name: str, last_name: str,
                  *, limit: int = DEFAULT_LIMIT) -> Record:
    vatin = (vatin or "").strip()
    first_name = (first_name or "").strip()
    last_name = (last_name or "").strip()
    if not vatin or not first_name or not last_name:
        raise MissingFields("vatin, firstName and lastName are required")

    record = Record(
        id=str(uuid.uuid4()),
        vatin=vatin,
        first_name=first_name,
        last_name=last_name,
        created_at=datetime.now(timezone.utc),
    )
    with engine.begin() as conn:
        _lock_vatin(conn, vatin)
        existing = conn.execute(
            select(func.count()).select_from(qrs).where(qrs.c.vatin == vatin)
        ).scalar_one()
        if existing >= limit:
            raise LimitReached(vatin, limit)
        conn.execute(insert(qrs).values(
            id=record.id,
            vatin=record.vatin,
            first_name=record.first_name,
            last_name=record.last_name,
            created_at=record.created_at,
        ))
    return record


def get_record(engine: Engine, record_id: str) -> Optional[Record]:
    try:
        record_id = str(uuid.UUID(record_id))
    except (TypeError, ValueError):
        return None
    with engine.connect() as conn:
        row = conn.execute(select(qrs).where(qrs.c.id == record_id)).first()
    return Record.from_row(row) if row else None
