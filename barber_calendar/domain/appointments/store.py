"""
Store representation and derived views.

A store maps day -> time -> occupant name:

    {"2025-06-10": {"09:00": "Ivan", "09:30": "Petar"}}

Only non-blank names are ever kept and a day with no names is not a key.
Every function here takes the store explicitly and never caches anything, so
results always reflect the store passed in.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Optional, Sequence

from ...config import (
    EARLIEST_FREE_HORIZON_DAYS,
    SCHEDULE_END_HOUR,
    SCHEDULE_SLOT_MINUTES,
    SCHEDULE_START_HOUR,
)
from ...shared.validators import is_valid_day, is_valid_time, normalize_name

Store = dict[str, dict[str, str]]


@dataclass(frozen=True)
class SlotEntry:
    day: str
    time: str
    name: str


@dataclass(frozen=True)
class FreeSlot:
    day: str
    time: str


def build_day_slots(
    start_hour: int = SCHEDULE_START_HOUR,
    end_hour: int = SCHEDULE_END_HOUR,
    slot_minutes: int = SCHEDULE_SLOT_MINUTES,
) -> tuple[str, ...]:
    """Build the ordered HH:MM labels from start_hour up to (not including) end_hour"""
    if slot_minutes <= 0 or 60 % slot_minutes != 0:
        raise ValueError(f"slot_minutes must divide an hour evenly, got {slot_minutes}")
    if not 0 <= start_hour < end_hour <= 24:
        raise ValueError(f"Invalid schedule window {start_hour}..{end_hour}")

    return tuple(
        f"{hour:02d}:{minute:02d}"
        for hour in range(start_hour, end_hour)
        for minute in range(0, 60, slot_minutes)
    )


DAY_SLOTS = build_day_slots()


def is_day_full(day: str, store: Store, schedule: Sequence[str] = DAY_SLOTS) -> bool:
    slots = store.get(day)
    if not slots:
        return False
    return all(normalize_name(slots.get(label)) for label in schedule)


def fill_ratio(day: str, store: Store, schedule: Sequence[str] = DAY_SLOTS) -> float:
    slots = store.get(day)
    if not slots or not schedule:
        return 0.0
    taken = sum(1 for label in schedule if normalize_name(slots.get(label)))
    return taken / len(schedule)


def day_has_appointments(day: str, store: Store) -> bool:
    """True if the day has at least one booked slot, on or off the schedule"""
    return any(normalize_name(name) for name in store.get(day, {}).values())


def search(store: Store, query: str, since_day: Optional[str] = None) -> list[SlotEntry]:
    """
    Case-insensitive substring search over occupant names.

    Days before since_day are skipped; YYYY-MM-DD keys compare
    chronologically as plain strings. Results are sorted by (day, time).
    A blank query matches nothing.
    """
    needle = normalize_name(query).lower()
    if not needle:
        return []

    results = []
    for day, slots in store.items():
        if since_day is not None and day < since_day:
            continue
        for time, name in slots.items():
            clean = normalize_name(name)
            if clean and needle in clean.lower():
                results.append(SlotEntry(day=day, time=time, name=clean))

    results.sort(key=lambda e: (e.day, e.time))
    return results


def earliest_free(
    store: Store,
    from_day: str,
    horizon_days: int = EARLIEST_FREE_HORIZON_DAYS,
    schedule: Sequence[str] = DAY_SLOTS,
) -> Optional[FreeSlot]:
    """
    First blank or absent slot scanning forward from from_day.

    Scans horizon_days days (from_day included), each in schedule order.
    Returns None when every slot in the horizon is taken.
    """
    start = date.fromisoformat(from_day)
    for offset in range(max(horizon_days, 0)):
        day = (start + timedelta(days=offset)).isoformat()
        slots = store.get(day, {})
        for label in schedule:
            if not normalize_name(slots.get(label)):
                return FreeSlot(day=day, time=label)
    return None


def normalize_store(raw: Any) -> Store:
    """
    Coerce an untrusted mapping into a well-formed store.

    Drops malformed day/time keys, non-string or blank names and days left
    empty. Names come back trimmed.
    """
    store: Store = {}
    if not isinstance(raw, dict):
        return store

    for day, slots in raw.items():
        if not is_valid_day(day) or not isinstance(slots, dict):
            continue
        clean = {}
        for time, name in slots.items():
            name = normalize_name(name)
            if is_valid_time(time) and name:
                clean[time] = name
        if clean:
            store[day] = clean
    return store


def apply_slot(store: Store, day: str, time: str, name: Optional[str]) -> Store:
    """Return a copy of store with one slot set, or cleared when name is blank"""
    updated = {d: dict(slots) for d, slots in store.items()}
    name = normalize_name(name)
    day_slots = updated.setdefault(day, {})

    if name:
        day_slots[time] = name
    else:
        day_slots.pop(time, None)

    if not day_slots:
        del updated[day]
    return updated


def iter_rows(store: Store) -> list[tuple[str, str, str]]:
    """Flatten a store into sorted (day, time, name) rows"""
    return sorted(
        (day, time, name) for day, slots in store.items() for time, name in slots.items()
    )
