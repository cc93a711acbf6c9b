"""Per-IP sliding-window rate limiting for every route."""
from __future__ import annotations

import logging
import time
from collections import deque
from typing import Callable, Deque, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

from tripbook.core.config import settings
from tripbook.core.errors import RateLimitedError

logger = logging.getLogger(__name__)


class InMemoryRateLimiter:
    """
    Remembers request times per client IP and refuses a request once
    `max_requests` have been seen within the last `window_seconds`.

    Clients whose requests have all left the window are dropped, at most
    once per window, so the table only holds recently active IPs.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self.requests: Dict[str, Deque[float]] = {}
        self._last_sweep = clock()

    def _sweep(self, now: float, cutoff: float, window_seconds: float) -> None:
        if now - self._last_sweep < window_seconds:
            return
        self._last_sweep = now
        stale = [ip for ip, seen in self.requests.items() if not seen or seen[-1] <= cutoff]
        for ip in stale:
            del self.requests[ip]
        if stale:
            logger.debug("Dropped %d idle clients from the rate limiter", len(stale))

    def is_allowed(self, client_ip: str, max_requests: int, window_seconds: float) -> bool:
        if max_requests <= 0:
            return True

        now = self._clock()
        cutoff = now - window_seconds
        self._sweep(now, cutoff, window_seconds)

        seen = self.requests.setdefault(client_ip, deque())
        while seen and seen[0] <= cutoff:
            seen.popleft()

        if len(seen) >= max_requests:
            return False
        seen.append(now)
        return True

    def retry_after(self, client_ip: str, window_seconds: float) -> int:
        seen = self.requests.get(client_ip)
        if not seen:
            return 0
        return max(0, int(seen[0] + window_seconds - self._clock()) + 1)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Answer 429 with the standard error envelope when a client is over its budget."""

    def __init__(self, app, limiter: Optional[InMemoryRateLimiter] = None):
        super().__init__(app)
        self.limiter = limiter or InMemoryRateLimiter()

    async def dispatch(self, request: Request, call_next) -> Response:
        client_ip = request.client.host if request.client else "unknown"
        window = settings.RATE_LIMIT_WINDOW_SECONDS
        if not self.limiter.is_allowed(client_ip, settings.RATE_LIMIT_REQUESTS, window):
            logger.warning("Rate limit exceeded for %s on %s", client_ip, request.url.path)
            exc = RateLimitedError()
            return JSONResponse(
                status_code=exc.http_status,
                content=exc.to_dict(),
                headers={"Retry-After": str(self.limiter.retry_after(client_ip, window))},
            )
        return await call_next(request)
