"""Appointment service - Business logic for the shared slot store"""

import logging
from typing import Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...config import STRICT_SCHEDULE_TIMES
from ...errors import BackendError, ConflictFallback, ValidationError
from ...shared.validators import normalize_name, validate_slot_key
from .policy import reconcile
from .repository import AppointmentRepository
from .schemas import BulkOverwriteRequest, SlotOperation
from .store import DAY_SLOTS, Store, iter_rows, normalize_store

logger = logging.getLogger(__name__)


class AppointmentService:
    """Service layer for reading and mutating the appointment store"""

    def __init__(
        self,
        db: Session,
        schedule: Sequence[str] = DAY_SLOTS,
        strict_schedule: bool = STRICT_SCHEDULE_TIMES,
    ):
        self.db = db
        self.repo = AppointmentRepository()
        self.schedule = schedule
        self.strict_schedule = strict_schedule

    @property
    def _allowed_times(self) -> Optional[Sequence[str]]:
        return self.schedule if self.strict_schedule else None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def read_store(self) -> Store:
        """
        Return the reconciled store.

        Backend failures degrade to an empty store; clients treat "no data"
        as a safe state and the next poll retries.
        """
        try:
            records = self.repo.list_records(self.db)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to read appointments, serving empty store: {e}")
            return {}
        except Exception as e:
            logger.exception(f"❌ Unexpected error reading appointments, serving empty store: {e}")
            return {}

        return reconcile(records)

    # ------------------------------------------------------------------
    # Single-slot writes
    # ------------------------------------------------------------------

    def apply_operation(self, data: SlotOperation) -> None:
        """Apply a set/clear operation on one slot"""
        validate_slot_key(data.day, data.time, self._allowed_times)

        if data.op == "clear":
            self.clear_slot(data.day, data.time)
            return

        name = normalize_name(data.name)
        if not name:
            # Setting a blank name is a clear
            self.clear_slot(data.day, data.time)
            return

        self.set_slot(data.day, data.time, name)

    def clear_slot(self, day: str, time: str) -> None:
        try:
            deleted = self.repo.delete_slot(self.db, day, time)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to clear slot {day} {time}: {e}")
            raise BackendError("Failed to clear slot") from e

        logger.info(f"🧹 Cleared slot {day} {time} ({deleted} row(s))")

    def set_slot(self, day: str, time: str, name: str) -> None:
        """
        Upsert a slot, falling back to delete + insert.

        The fallback leaves a short window where the slot reads as free.
        """
        try:
            self.repo.upsert_slot(self.db, day, time, name)
            logger.info(f"✅ Set slot {day} {time}")
            return
        except (ConflictFallback, SQLAlchemyError) as e:
            self.db.rollback()
            logger.warning(f"⚠️ Upsert failed for {day} {time}, falling back to delete+insert: {e}")

        try:
            self.repo.delete_slot(self.db, day, time)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Fallback delete failed for {day} {time}: {e}")
            raise BackendError("Failed to set slot (fallback delete)") from e

        try:
            self.repo.insert_slot(self.db, day, time, name)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Fallback insert failed for {day} {time}: {e}")
            raise BackendError("Failed to set slot (fallback insert)") from e

        logger.info(f"✅ Set slot {day} {time} via delete+insert")

    # ------------------------------------------------------------------
    # Bulk overwrite
    # ------------------------------------------------------------------

    def overwrite_all(self, data: BulkOverwriteRequest) -> int:
        """
        Replace every stored appointment with a snapshot.

        Only runs when confirmFlag is exactly true, so stale clients that
        still push whole snapshots can't wipe other writers' data. Delete and
        insert are committed separately; a concurrent reader can observe an
        empty store in between.

        Returns:
            Number of rows written
        """
        if data.confirmFlag is not True or data.store is None:
            logger.warning("🚫 Rejected bulk overwrite without confirmation flag")
            raise ValidationError(
                "Bulk overwrite is disabled. Use PATCH for single-slot updates."
            )

        snapshot = normalize_store(data.store)
        rows = [
            (day, time, name)
            for day, time, name in iter_rows(snapshot)
            if not self.strict_schedule or time in self.schedule
        ]

        try:
            removed = self.repo.delete_all(self.db)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Bulk overwrite delete-all failed: {e}")
            raise BackendError("Failed to clear existing data") from e

        try:
            written = self.repo.insert_many(self.db, rows)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Bulk overwrite insert failed after removing {removed} row(s): {e}")
            raise BackendError("Failed to insert new data") from e

        logger.info(f"📦 Bulk overwrite replaced {removed} row(s) with {written}")
        return written
