"""Appointment router - FastAPI endpoints for the shared slot store"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...config import EARLIEST_FREE_HORIZON_DAYS, SCHEDULE_SLOT_MINUTES
from ...database import get_db
from ...shared.validators import validate_day
from . import store as views
from .schemas import (
    AckResponse,
    BulkOverwriteRequest,
    DaySlot,
    DaySummaryResponse,
    FreeSlotResponse,
    ScheduleResponse,
    SlotEntryResponse,
    SlotOperation,
)
from .service import AppointmentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])
schedule_router = APIRouter(tags=["Schedule"])


def get_appointment_service(db: Session = Depends(get_db)) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db)


# ============================================================================
# STORE SYNC
# ============================================================================


@router.get("", response_model=dict[str, dict[str, str]])
async def get_appointments(service: AppointmentService = Depends(get_appointment_service)):
    """Full calendar as {day: {time: name}}. Backend errors return {}"""
    return service.read_store()


@router.patch("", response_model=AckResponse)
async def patch_appointment(
    data: SlotOperation,
    service: AppointmentService = Depends(get_appointment_service),
):
    """Set or clear a single slot"""
    service.apply_operation(data)
    return AckResponse()


@router.post("", response_model=AckResponse)
async def overwrite_appointments(
    data: BulkOverwriteRequest,
    service: AppointmentService = Depends(get_appointment_service),
):
    """Replace the whole store. Requires confirmFlag: true"""
    service.overwrite_all(data)
    return AckResponse()


# ============================================================================
# DERIVED VIEWS
# ============================================================================


@router.get("/search", response_model=list[SlotEntryResponse])
async def search_appointments(
    q: str = Query("", description="Case-insensitive name fragment"),
    since: Optional[str] = Query(None, description="Only days on or after this YYYY-MM-DD"),
    service: AppointmentService = Depends(get_appointment_service),
):
    if since is not None:
        validate_day(since)
    results = views.search(service.read_store(), q, since)
    return [SlotEntryResponse(day=r.day, time=r.time, name=r.name) for r in results]


@router.get("/earliest-free", response_model=Optional[FreeSlotResponse])
async def get_earliest_free(
    from_day: Optional[str] = Query(None, description="First day to scan, defaults to today"),
    horizon_days: int = Query(EARLIEST_FREE_HORIZON_DAYS, ge=1, le=3660),
    service: AppointmentService = Depends(get_appointment_service),
):
    start = validate_day(from_day) if from_day is not None else date.today().isoformat()
    slot = views.earliest_free(
        service.read_store(), start, horizon_days=horizon_days, schedule=service.schedule
    )
    if slot is None:
        logger.info(f"📅 No free slot within {horizon_days} day(s) of {start}")
        return None
    return FreeSlotResponse(day=slot.day, time=slot.time)


@router.get("/days/{day}", response_model=DaySummaryResponse)
async def get_day_summary(
    day: str,
    service: AppointmentService = Depends(get_appointment_service),
):
    """Every schedule label for one day, with fullness"""
    validate_day(day)
    current = service.read_store()
    booked = current.get(day, {})
    return DaySummaryResponse(
        day=day,
        slots=[DaySlot(time=t, name=booked.get(t, "")) for t in service.schedule],
        full=views.is_day_full(day, current, service.schedule),
        fillRatio=views.fill_ratio(day, current, service.schedule),
    )


@schedule_router.get("/schedule", response_model=ScheduleResponse)
async def get_schedule():
    """The daily slot labels shared by every day"""
    return ScheduleResponse(slots=list(views.DAY_SLOTS), slotMinutes=SCHEDULE_SLOT_MINUTES)
