"""
CodeVault Backend — Rate Limiting Middleware
==============================================

What:  Per-IP sliding window rate limiter.
Why:   Login and register are password-guessing targets; every endpoint is
       a scraping target.
How:   Tracks request timestamps per IP in memory.

Algorithm: Sliding Window Log
    1. Each IP gets a list of request timestamps
    2. On each request, drop timestamps older than the window
    3. If remaining count >= limit, reject with 429
    4. Otherwise, record the current timestamp and let it through

Limits come from Settings (RATE_LIMIT_REQUESTS / RATE_LIMIT_WINDOW) and are
passed in by create_app().

Scope:
    Single process only. Multiple workers each keep their own counts.
"""

import logging
import time
from collections import defaultdict
from typing import Callable, Dict, List

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from codevault.exceptions import RateLimitExceededError
from codevault.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding window rate limiter.

    Excluded paths:
        - /health: Health checks should never be rate-limited
        - /docs, /openapi.json, /redoc: API documentation
    """

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    # Prune idle IPs after this many recorded requests
    CLEANUP_INTERVAL = 1000

    def __init__(
        self,
        app,
        max_requests: int = 1000,
        window_seconds: int = 3600,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__(app)
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._requests: Dict[str, List[float]] = defaultdict(list)
        self._since_cleanup = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        # Behind a proxy this is the proxy's IP; run uvicorn with
        # --proxy-headers so request.client reflects X-Forwarded-For
        client_ip = request.client.host if request.client else "unknown"

        now = self._clock()
        window_start = now - self.window_seconds

        recent = [ts for ts in self._requests[client_ip] if ts > window_start]
        self._requests[client_ip] = recent

        if len(recent) >= self.max_requests:
            retry_after = int(recent[0] + self.window_seconds - now) + 1
            logger.warning(
                "Rate limit exceeded for IP %s: %d requests in %ds window",
                client_ip,
                len(recent),
                self.window_seconds,
            )
            # Runs outside the app's exception handlers, so the error is rendered here
            exc = RateLimitExceededError(retry_after=retry_after)
            return JSONResponse(
                status_code=exc.status_code,
                content={
                    "error": exc.message,
                    "code": exc.code,
                    "details": exc.context,
                    "request_id": getattr(request.state, "request_id", "") or request_id_var.get(""),
                },
                headers={"Retry-After": str(exc.retry_after)},
            )

        recent.append(now)

        self._since_cleanup += 1
        if self._since_cleanup >= self.CLEANUP_INTERVAL:
            self._since_cleanup = 0
            self._cleanup_inactive_ips(window_start)

        return await call_next(request)

    def _cleanup_inactive_ips(self, window_start: float) -> None:
        """Remove IPs that have no requests within the current window."""
        inactive_ips = [
            ip for ip, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] < window_start
        ]
        for ip in inactive_ips:
            del self._requests[ip]

        if inactive_ips:
            logger.debug("Cleaned up %d inactive IP entries", len(inactive_ips))
