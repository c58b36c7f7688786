"""
Collapse duplicate appointment rows and add the (day, time) unique index

Tables created before the unique constraint can hold several rows for one
slot. Reads already fold them, this makes the fold permanent:
- keeps the newest row carrying each slot's reconciled name
- deletes every other row, including slots that reconcile to blank
- creates uq_appointments_day_time if it doesn't exist

Safe to run more than once.

Run with: python migrations/dedupe_appointments.py
"""

import logging
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import text

from barber_calendar.database import SessionLocal, engine
from barber_calendar.domain.appointments.policy import losing_record_ids
from barber_calendar.domain.appointments.repository import AppointmentRepository
from barber_calendar.models import Appointment

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)

BATCH_SIZE = 500


def upgrade():
    """Delete duplicate rows, then enforce uniqueness"""
    db = SessionLocal()
    try:
        records = AppointmentRepository.list_records(db, max_rows=sys.maxsize)
        losers = losing_record_ids(records)
        logger.info(f"Found {len(records)} rows, {len(losers)} to remove")

        for start in range(0, len(losers), BATCH_SIZE):
            batch = losers[start : start + BATCH_SIZE]
            db.query(Appointment).filter(Appointment.id.in_(batch)).delete(
                synchronize_session=False
            )
        db.commit()
        if losers:
            logger.info(f"✅ Removed {len(losers)} duplicate or blank rows")
        else:
            logger.info("ℹ️  No duplicate rows")
    finally:
        db.close()

    with engine.connect() as conn:
        conn.execute(
            text(
                "CREATE UNIQUE INDEX IF NOT EXISTS uq_appointments_day_time "
                "ON appointments (day, time)"
            )
        )
        conn.commit()
    logger.info("✅ Unique index uq_appointments_day_time in place")


if __name__ == "__main__":
    try:
        upgrade()
    except Exception as e:
        logger.error(f"❌ Migration failed: {e}")
        sys.exit(1)
