"""
Client-side sync engine.

Keeps a process-local copy of the appointment store in step with the API:

- pulls the full store every poll_interval seconds
- pulls when the client becomes visible again
- applies local edits optimistically, pushes them, then pulls once

The API is the source of truth. A pull replaces the local store wholesale, so
an optimistic edit can be overwritten if another device's write landed
first. Convergence across devices lags by up to one polling interval.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

import httpx

from ..config import POLL_INTERVAL_SECONDS
from ..domain.appointments.store import Store, apply_slot
from ..shared.validators import normalize_name, validate_slot_key
from .client import AppointmentsClient

logger = logging.getLogger(__name__)

StoreListener = Callable[[Store], None]
ErrorListener = Callable[[Exception], None]


class SyncEngine:
    def __init__(self, client: AppointmentsClient, poll_interval: float = POLL_INTERVAL_SECONDS):
        self.client = client
        self.poll_interval = poll_interval
        self.store: Store = {}
        self.last_synced_at: Optional[datetime] = None
        self.last_error: Optional[Exception] = None

        self._pulling = False
        self._closed = False
        # Bumped on every local write; a pull started under an older value is stale
        self._write_generation = 0
        self._poll_task: Optional[asyncio.Task] = None
        self._listeners: list[StoreListener] = []
        self._error_listeners: list[ErrorListener] = []

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pulling(self) -> bool:
        return self._pulling

    def add_listener(self, listener: StoreListener) -> None:
        """Call listener with the new store whenever it changes"""
        self._listeners.append(listener)

    def add_error_listener(self, listener: ErrorListener) -> None:
        """Call listener when a local write fails to reach the API"""
        self._error_listeners.append(listener)

    async def start(self) -> None:
        """Pull once, then keep polling until close()"""
        if self._closed:
            raise RuntimeError("SyncEngine is closed")
        await self.refresh()
        if self._poll_task is None:
            self._poll_task = asyncio.create_task(self._poll_loop())

    async def _poll_loop(self) -> None:
        while not self._closed:
            await asyncio.sleep(self.poll_interval)
            try:
                await self.refresh()
            except Exception:
                logger.exception("❌ Unexpected error during poll, will retry next interval")

    async def refresh(self) -> bool:
        """
        Pull the full store and replace the local copy.

        Returns False without doing anything while another pull is in flight
        or after close(). Pull failures keep the previous store. If a local
        write happens while the pull is in flight, its result is dropped and
        the store is pulled again.
        """
        if self._closed or self._pulling:
            return False

        self._pulling = True
        try:
            while True:
                generation = self._write_generation
                try:
                    fetched = await self.client.fetch_store()
                except (httpx.HTTPError, ValueError) as e:
                    logger.warning(f"⚠️ Failed to pull appointments, keeping last store: {e}")
                    return False

                # Torn down while the request was in flight
                if self._closed:
                    return False
                if generation == self._write_generation:
                    break
                logger.info("🔁 Local write landed during pull, pulling again")
        finally:
            self._pulling = False

        self.last_synced_at = datetime.now(timezone.utc)
        self._replace(fetched)
        return True

    async def on_visibility_change(self, visible: bool) -> bool:
        if not visible:
            return False
        return await self.refresh()

    async def save_slot(self, day: str, time: str, name: Optional[str]) -> bool:
        """
        Set or clear one slot.

        The edit shows up locally right away. If the push fails it stays in
        place until the next poll replaces it, and error listeners are told.
        After a successful push the store is pulled once; when a pull is
        already in flight, that pull repeats itself instead.

        Raises:
            ValidationError: If day or time is malformed
        """
        validate_slot_key(day, time)
        name = normalize_name(name)

        self._write_generation += 1
        self._replace(apply_slot(self.store, day, time, name))

        try:
            if name:
                await self.client.set_slot(day, time, name)
            else:
                await self.client.clear_slot(day, time)
        except httpx.HTTPError as e:
            logger.error(f"❌ Failed to save slot {day} {time}: {e}")
            self.last_error = e
            self._notify(self._error_listeners, e)
            return False

        self.last_error = None
        # Pulls that started while the push was in flight may predate it
        self._write_generation += 1
        await self.refresh()
        return True

    async def close(self) -> None:
        """Stop polling; a pull still in flight won't apply its result"""
        self._closed = True
        task, self._poll_task = self._poll_task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception:
                logger.exception("❌ Poll task failed before shutdown")

    def _replace(self, store: Store) -> None:
        if store == self.store:
            return
        self.store = store
        self._notify(self._listeners, store)

    @staticmethod
    def _notify(listeners: list, payload) -> None:
        for listener in listeners:
            try:
                listener(payload)
            except Exception:
                logger.exception(f"❌ Listener {listener!r} raised")
