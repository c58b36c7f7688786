"""Appointment domain schemas - Pydantic models for request/response shapes"""

from typing import Any, Literal, Optional

from pydantic import AliasChoices, BaseModel, Field, StrictBool


class SlotOperation(BaseModel):
    """Single-slot PATCH body"""

    op: Literal["set", "clear"]
    day: str
    time: str
    name: Optional[str] = None


class BulkOverwriteRequest(BaseModel):
    """
    Full-store POST body.

    confirmFlag must be the JSON literal true; older clients sent the flag as
    _dangerouslyOverwriteAll, which is still accepted.
    """

    confirmFlag: Optional[StrictBool] = Field(
        default=None,
        validation_alias=AliasChoices("confirmFlag", "_dangerouslyOverwriteAll"),
    )
    store: Optional[dict[str, Any]] = None


class AckResponse(BaseModel):
    ok: bool = True


class SlotEntryResponse(BaseModel):
    day: str
    time: str
    name: str


class FreeSlotResponse(BaseModel):
    day: str
    time: str


class DaySlot(BaseModel):
    time: str
    name: str


class DaySummaryResponse(BaseModel):
    day: str
    slots: list[DaySlot]
    full: bool
    fillRatio: float


class ScheduleResponse(BaseModel):
    slots: list[str]
    slotMinutes: int
