"""
Response Headers Middleware for FastAPI

Every response from the appointment API must be fetched fresh: devices poll
the same URL every few seconds and a cached copy would show stale bookings.

Headers added:
- Cache-Control: no-store, no-cache, must-revalidate, proxy-revalidate
- Pragma: no-cache (HTTP/1.0 proxies)
- Expires: 0
- X-Content-Type-Options: nosniff
- Referrer-Policy: strict-origin-when-cross-origin
"""

import logging
from typing import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

logger = logging.getLogger(__name__)

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


class NoCacheHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware that marks every response as uncacheable"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        # Overwrite unconditionally; no endpoint here is safe to cache
        for header, value in NO_CACHE_HEADERS.items():
            response.headers[header] = value

        # X-Content-Type-Options: Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"

        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        return response
