"""
Read-side reconciliation of duplicate slot records.

The unique (day, time) constraint normally keeps one row per slot, but legacy
tables and racing writers can leave several. Rows are folded oldest to newest
(by backend id) and the newest value wins, except that a blank value never
replaces a name already seen. Nothing here deletes rows.
"""

from collections import defaultdict
from typing import Iterable, NamedTuple, Optional

from ...shared.validators import normalize_name
from .store import Store


class SlotRecord(NamedTuple):
    id: int
    day: str
    time: str
    name: Optional[str]


def fold_names(names: Iterable[Optional[str]]) -> str:
    """Fold candidate names in recency order into one effective name"""
    current = ""
    for candidate in names:
        candidate = normalize_name(candidate)
        if current and not candidate:
            continue
        current = candidate
    return current


def reconcile(records: Iterable[SlotRecord]) -> Store:
    """Collapse records into a store, one effective name per (day, time)"""
    grouped: dict[tuple[str, str], list[SlotRecord]] = defaultdict(list)
    for record in records:
        if not record.day or not record.time:
            continue
        grouped[(record.day, record.time)].append(record)

    store: Store = {}
    for (day, time), group in grouped.items():
        group.sort(key=lambda r: r.id)
        name = fold_names(r.name for r in group)
        if name:
            store.setdefault(day, {})[time] = name
    return store


def losing_record_ids(records: Iterable[SlotRecord]) -> list[int]:
    """
    Ids of rows that don't carry their slot's reconciled value.

    For each (day, time) the newest row holding the winning name survives;
    every other row is a loser. Slots that reconcile to blank lose all rows.
    """
    grouped: dict[tuple[str, str], list[SlotRecord]] = defaultdict(list)
    for record in records:
        grouped[(record.day, record.time)].append(record)

    losers = []
    for group in grouped.values():
        group.sort(key=lambda r: r.id)
        winner = fold_names(r.name for r in group)
        keep_id = None
        if winner:
            keep_id = max(r.id for r in group if normalize_name(r.name) == winner)
        losers.extend(r.id for r in group if r.id != keep_id)
    return sorted(losers)
