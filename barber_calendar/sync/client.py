import logging
from typing import Any, Optional

import httpx

from ..config import API_BASE_URL, API_TIMEOUT_SECONDS
from ..domain.appointments.store import Store, normalize_store

logger = logging.getLogger(__name__)


class AppointmentsClient:
    """Async HTTP client for the appointment store API"""

    HEADERS = {"Cache-Control": "no-cache", "Pragma": "no-cache"}

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        timeout: float = API_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=self.HEADERS,
            transport=self.transport,
        )

    async def fetch_store(self) -> Store:
        """GET the full store; the payload is normalized before it is returned"""
        async with self._client() as client:
            response = await client.get("/appointments")
            response.raise_for_status()
            return normalize_store(response.json())

    async def patch_slot(self, payload: dict[str, Any]) -> None:
        async with self._client() as client:
            response = await client.patch("/appointments", json=payload)
            if response.status_code != 200:
                logger.error(
                    f"❌ Slot update failed: {response.status_code} {response.text[:200]}"
                )
            response.raise_for_status()

    async def set_slot(self, day: str, time: str, name: str) -> None:
        await self.patch_slot({"op": "set", "day": day, "time": time, "name": name})

    async def clear_slot(self, day: str, time: str) -> None:
        await self.patch_slot({"op": "clear", "day": day, "time": time})

    async def overwrite_all(self, store: Store) -> None:
        """Replace the whole remote store. Wipes anything other devices wrote"""
        async with self._client() as client:
            response = await client.post(
                "/appointments", json={"confirmFlag": True, "store": store}
            )
            if response.status_code != 200:
                logger.error(
                    f"❌ Bulk overwrite failed: {response.status_code} {response.text[:200]}"
                )
            response.raise_for_status()
