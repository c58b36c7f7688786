"""
Appointments Domain

The shared slot store: one row per booked (day, time) half-hour, read and
written by every device showing the calendar.

- store.py       Daily schedule, store shape and derived views
- policy.py      Folding duplicate rows into one value per slot
- repository.py  Queries against the appointments table
- service.py     Validation, upsert fallback, guarded bulk overwrite
- router.py      /appointments and /schedule endpoints
"""
