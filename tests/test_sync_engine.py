from __future__ import annotations

import asyncio
import copy

import httpx
import pytest

from barber_calendar.errors import ValidationError
from barber_calendar.sync.client import AppointmentsClient
from barber_calendar.sync.engine import SyncEngine

DAY = "2025-06-10"


class GatedClient:
    """Stands in for AppointmentsClient; fetch_store blocks until released."""

    def __init__(self, store: dict) -> None:
        self.store = store
        self.fetches = 0
        self.gate: asyncio.Event | None = None

    async def fetch_store(self) -> dict:
        self.fetches += 1
        # What the server held when the request went out
        snapshot = copy.deepcopy(self.store)
        if self.gate is not None:
            await self.gate.wait()
        return snapshot

    async def set_slot(self, day: str, time: str, name: str) -> None:
        self.store.setdefault(day, {})[time] = name

    async def clear_slot(self, day: str, time: str) -> None:
        self.store.get(day, {}).pop(time, None)


class ChangingClient(GatedClient):
    """Returns a different store on every fetch; fetch numbers in fail_on raise."""

    def __init__(self, fail_on: tuple = ()) -> None:
        super().__init__({})
        self.fail_on = fail_on

    async def fetch_store(self) -> dict:
        self.fetches += 1
        if self.fetches in self.fail_on:
            raise RuntimeError("unexpected payload")
        return {DAY: {"09:00": f"C{self.fetches}"}}


def _asgi_client(app) -> AppointmentsClient:
    return AppointmentsClient(base_url="http://testserver", transport=httpx.ASGITransport(app=app))


def test_write_on_one_device_shows_up_on_another(api) -> None:
    async def scenario() -> None:
        phone = SyncEngine(_asgi_client(api), poll_interval=60)
        tablet = SyncEngine(_asgi_client(api), poll_interval=60)

        assert await phone.save_slot(DAY, "09:00", " Ivan ")
        assert phone.store == {DAY: {"09:00": "Ivan"}}
        assert phone.last_synced_at is not None

        assert await tablet.refresh()
        assert tablet.store == {DAY: {"09:00": "Ivan"}}

        assert await tablet.save_slot(DAY, "09:00", "")
        assert await phone.on_visibility_change(True)
        assert phone.store == {}

    asyncio.run(scenario())


def test_overwrite_all_sends_confirmation(api) -> None:
    async def scenario() -> None:
        client = _asgi_client(api)
        await client.overwrite_all({DAY: {"10:00": "Maria"}})
        assert await client.fetch_store() == {DAY: {"10:00": "Maria"}}

    asyncio.run(scenario())


def test_hidden_client_does_not_refresh() -> None:
    async def scenario() -> None:
        client = GatedClient({})
        engine = SyncEngine(client)
        assert await engine.on_visibility_change(False) is False
        assert client.fetches == 0

    asyncio.run(scenario())


def test_overlapping_pull_is_suppressed() -> None:
    async def scenario() -> None:
        client = GatedClient({DAY: {"09:00": "Ivan"}})
        client.gate = asyncio.Event()
        engine = SyncEngine(client, poll_interval=60)

        first = asyncio.create_task(engine.refresh())
        await asyncio.sleep(0)
        assert engine.pulling

        assert await engine.refresh() is False
        client.gate.set()
        assert await first is True

        assert client.fetches == 1
        assert not engine.pulling
        assert engine.store == {DAY: {"09:00": "Ivan"}}

    asyncio.run(scenario())


def test_failed_pull_clears_in_flight_flag_and_keeps_store() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) == 1:
            return httpx.Response(200, json={DAY: {"09:00": "Ivan"}})
        return httpx.Response(503, text="unavailable")

    async def scenario() -> None:
        client = AppointmentsClient(base_url="http://test", transport=httpx.MockTransport(handler))
        engine = SyncEngine(client, poll_interval=60)

        assert await engine.refresh()
        assert await engine.refresh() is False
        assert not engine.pulling
        assert engine.store == {DAY: {"09:00": "Ivan"}}

    asyncio.run(scenario())


def test_pull_finishing_after_close_is_discarded() -> None:
    async def scenario() -> None:
        client = GatedClient({DAY: {"09:00": "Ivan"}})
        client.gate = asyncio.Event()
        engine = SyncEngine(client, poll_interval=60)
        seen = []
        engine.add_listener(seen.append)

        pending = asyncio.create_task(engine.refresh())
        await asyncio.sleep(0)
        await engine.close()
        client.gate.set()

        assert await pending is False
        assert engine.store == {}
        assert seen == []
        assert await engine.refresh() is False

    asyncio.run(scenario())


def test_poll_loop_runs_until_closed() -> None:
    async def scenario() -> None:
        client = GatedClient({})
        engine = SyncEngine(client, poll_interval=0.01)

        await engine.start()
        await asyncio.sleep(0.1)
        await engine.close()
        polled = client.fetches
        assert polled >= 3

        await asyncio.sleep(0.05)
        assert client.fetches == polled
        with pytest.raises(RuntimeError):
            await engine.start()

    asyncio.run(scenario())


def test_failed_write_keeps_optimistic_edit_and_reports() -> None:
    remote = {"2025-06-11": {"08:00": "Maria"}}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "PATCH":
            return httpx.Response(500, json={"error": "Failed to set slot (fallback insert)"})
        return httpx.Response(200, json=remote)

    async def scenario() -> None:
        client = AppointmentsClient(base_url="http://test", transport=httpx.MockTransport(handler))
        engine = SyncEngine(client, poll_interval=60)
        errors = []
        engine.add_error_listener(errors.append)

        assert await engine.save_slot(DAY, "09:00", "Ivan") is False
        assert engine.store == {DAY: {"09:00": "Ivan"}}
        assert isinstance(engine.last_error, httpx.HTTPStatusError)
        assert len(errors) == 1

        # Next poll replaces the optimistic edit with what the backend holds
        assert await engine.refresh()
        assert engine.store == remote

    asyncio.run(scenario())


def test_save_slot_rejects_bad_keys_before_touching_anything() -> None:
    async def scenario() -> None:
        client = GatedClient({})
        engine = SyncEngine(client)
        with pytest.raises(ValidationError):
            await engine.save_slot("10/06/2025", "09:00", "Ivan")
        assert engine.store == {}
        assert client.fetches == 0

    asyncio.run(scenario())


def test_listeners_see_each_new_store() -> None:
    async def scenario() -> None:
        client = GatedClient({DAY: {"09:00": "Ivan"}})
        engine = SyncEngine(client)
        seen = []
        engine.add_listener(seen.append)

        await engine.refresh()
        await engine.refresh()  # unchanged, no second notification
        assert seen == [{DAY: {"09:00": "Ivan"}}]

    asyncio.run(scenario())


def test_write_during_pull_is_not_reverted_by_stale_result() -> None:
    async def scenario() -> None:
        client = GatedClient({})
        client.gate = asyncio.Event()
        engine = SyncEngine(client, poll_interval=60)

        # Pull goes out before the write reaches the server
        pending = asyncio.create_task(engine.refresh())
        await asyncio.sleep(0)
        assert engine.pulling

        assert await engine.save_slot(DAY, "09:00", "Ivan")
        assert engine.store == {DAY: {"09:00": "Ivan"}}

        client.gate.set()
        assert await pending is True

        assert engine.store == {DAY: {"09:00": "Ivan"}}
        assert client.fetches == 2
        assert not engine.pulling

    asyncio.run(scenario())


def test_clear_during_pull_is_not_reverted_by_stale_result() -> None:
    async def scenario() -> None:
        client = GatedClient({DAY: {"09:00": "Ivan", "09:30": "Petar"}})
        engine = SyncEngine(client, poll_interval=60)
        assert await engine.refresh()

        client.gate = asyncio.Event()
        pending = asyncio.create_task(engine.refresh())
        await asyncio.sleep(0)

        assert await engine.save_slot(DAY, "09:00", "")
        client.gate.set()
        assert await pending is True
        assert engine.store == {DAY: {"09:30": "Petar"}}

    asyncio.run(scenario())


def test_raising_listener_does_not_stop_polling() -> None:
    async def scenario() -> None:
        client = ChangingClient()
        engine = SyncEngine(client, poll_interval=0.01)
        seen = []

        def broken(store: dict) -> None:
            raise RuntimeError("render failed")

        engine.add_listener(broken)
        engine.add_listener(seen.append)

        await engine.start()
        await asyncio.sleep(0.1)
        await engine.close()

        assert client.fetches >= 3
        assert engine.store == {DAY: {"09:00": f"C{client.fetches}"}}
        # Listeners after the broken one still hear about every change
        assert len(seen) == client.fetches

    asyncio.run(scenario())


def test_poll_loop_survives_unexpected_refresh_error() -> None:
    async def scenario() -> None:
        client = ChangingClient(fail_on=(2,))
        engine = SyncEngine(client, poll_interval=0.01)

        await engine.start()
        await asyncio.sleep(0.1)
        await engine.close()

        assert client.fetches >= 3
        assert not engine.pulling

    asyncio.run(scenario())


def test_raising_error_listener_does_not_break_save() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "PATCH":
            return httpx.Response(500, json={"error": "Failed to clear slot"})
        return httpx.Response(200, json={})

    async def scenario() -> None:
        client = AppointmentsClient(base_url="http://test", transport=httpx.MockTransport(handler))
        engine = SyncEngine(client, poll_interval=60)
        errors = []

        def broken(error: Exception) -> None:
            raise RuntimeError("toast failed")

        engine.add_error_listener(broken)
        engine.add_error_listener(errors.append)

        assert await engine.save_slot(DAY, "09:00", "Ivan") is False
        assert isinstance(engine.last_error, httpx.HTTPStatusError)
        assert len(errors) == 1

    asyncio.run(scenario())
