"""Shared validation utilities"""

import re
from datetime import date
from typing import Any, Optional, Sequence

from ..errors import ValidationError

DAY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_RE = re.compile(r"^\d{2}:\d{2}$")


def is_valid_day(value: Any) -> bool:
    """Check a day key is in YYYY-MM-DD form"""
    return isinstance(value, str) and DAY_RE.fullmatch(value) is not None


def is_valid_time(value: Any) -> bool:
    """Check a time key is in HH:MM form"""
    return isinstance(value, str) and TIME_RE.fullmatch(value) is not None


def normalize_name(value: Any) -> str:
    """Trim an occupant name; anything that isn't a string counts as blank"""
    if not isinstance(value, str):
        return ""
    return value.strip()


def validate_slot_key(day: Any, time: Any, schedule: Optional[Sequence[str]] = None) -> None:
    """
    Reject a malformed (day, time) key.

    Args:
        day: Day key, YYYY-MM-DD
        time: Time key, HH:MM
        schedule: When given, time must also be one of these labels

    Raises:
        ValidationError: If either key is malformed
    """
    if not is_valid_day(day) or not is_valid_time(time):
        raise ValidationError("Invalid day/time format")
    if schedule is not None and time not in schedule:
        raise ValidationError(f"Time {time} is not on the daily schedule")


def validate_day(day: Any) -> str:
    """Return the day unchanged, or raise ValidationError unless it is a real YYYY-MM-DD date"""
    if not is_valid_day(day):
        raise ValidationError("Invalid day format, expected YYYY-MM-DD")
    try:
        date.fromisoformat(day)
    except ValueError as e:
        raise ValidationError(f"Invalid calendar date {day}") from e
    return day
