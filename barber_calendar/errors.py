"""Error hierarchy for the appointment store.

The HTTP layer maps these onto status codes:
    ValidationError -> 400, raised before any I/O
    BackendError    -> 500 on writes; reads swallow it and serve an empty store
    ConflictFallback never leaves the service layer
"""


class SlotStoreError(Exception):
    """Base exception for all appointment store errors."""

    pass


class ValidationError(SlotStoreError):
    """Malformed day/time key or request payload. Nothing was mutated."""

    pass


class BackendError(SlotStoreError):
    """The persistence layer failed while reading or writing."""

    pass


class ConflictFallback(SlotStoreError):
    """Native upsert is unavailable or failed; caller retries as delete + insert."""

    pass
