"""Appointment repository - Database operations for slot rows"""

import logging

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from ...config import READ_MAX_ROWS, READ_PAGE_SIZE
from ...errors import ConflictFallback
from ...models import Appointment
from .policy import SlotRecord

logger = logging.getLogger(__name__)

# Dialects whose insert() supports ON CONFLICT DO UPDATE
UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def list_records(
        db: Session, page_size: int = READ_PAGE_SIZE, max_rows: int = READ_MAX_ROWS
    ) -> list[SlotRecord]:
        """
        Read every row in id order, one page at a time.

        Stops after max_rows as a guard against runaway paging.
        """
        records: list[SlotRecord] = []
        offset = 0

        while True:
            rows = (
                db.query(Appointment.id, Appointment.day, Appointment.time, Appointment.name)
                .order_by(Appointment.id.asc())
                .offset(offset)
                .limit(page_size)
                .all()
            )
            records.extend(SlotRecord(r.id, r.day, r.time, r.name) for r in rows)

            if len(rows) < page_size:
                break
            offset += page_size
            if offset >= max_rows:
                logger.warning(f"⚠️ Stopped reading appointments after {offset} rows")
                break

        return records

    @staticmethod
    def delete_slot(db: Session, day: str, time: str) -> int:
        """Delete every row for a (day, time) key, returns the number removed"""
        deleted = (
            db.query(Appointment)
            .filter(Appointment.day == day, Appointment.time == time)
            .delete(synchronize_session=False)
        )
        db.commit()
        return deleted

    @staticmethod
    def upsert_slot(db: Session, day: str, time: str, name: str) -> None:
        """
        Insert or update the row for (day, time) in one statement.

        Raises:
            ConflictFallback: If the dialect has no native upsert
        """
        dialect = db.get_bind().dialect.name
        insert = UPSERT_DIALECTS.get(dialect)
        if insert is None:
            raise ConflictFallback(f"No native upsert for dialect {dialect}")

        stmt = insert(Appointment).values(day=day, time=time, name=name)
        stmt = stmt.on_conflict_do_update(
            index_elements=["day", "time"],
            set_={"name": stmt.excluded.name, "updated_at": func.now()},
        )
        db.execute(stmt)
        db.commit()

    @staticmethod
    def insert_slot(db: Session, day: str, time: str, name: str) -> Appointment:
        appointment = Appointment(day=day, time=time, name=name)
        db.add(appointment)
        db.commit()
        return appointment

    @staticmethod
    def delete_all(db: Session) -> int:
        deleted = db.query(Appointment).delete(synchronize_session=False)
        db.commit()
        return deleted

    @staticmethod
    def insert_many(db: Session, rows: list[tuple[str, str, str]]) -> int:
        """Insert (day, time, name) rows as a single batch"""
        if not rows:
            return 0
        db.add_all([Appointment(day=day, time=time, name=name) for day, time, name in rows])
        db.commit()
        return len(rows)
