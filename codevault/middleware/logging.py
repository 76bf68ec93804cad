"""
CodeVault Backend — Request Logging Middleware
================================================

What:  One access-log line per HTTP request on the `codevault.access` logger.
Why:   Monitoring, debugging and spotting brute-force login attempts.
How:   Measures duration around call_next. The path is reported as the
       matched route template (`/api/snippets/{snippet_id}`) so lines for
       different snippets aggregate; the concrete path goes in `extra`.

Log line:
    GET /api/snippets/{snippet_id} 404 3.2ms [a1b2c3d4] from 10.0.0.7

Privacy:
    ✅ Log: method, route, status, duration, IP, request ID
    ❌ Never: request bodies (passwords), Authorization headers (tokens)
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from codevault.middleware.request_id import request_id_var

logger = logging.getLogger("codevault.access")

LOGIN_PATH = "/api/auth/login"
QUIET_PATHS = {"/health"}


def _route_template(request: Request) -> str:
    # The router stores the matched route in the shared scope
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log level follows the status: 5xx → ERROR, 4xx → WARNING, else INFO.
    A 401 from the login endpoint gets its own line so failed logins can be
    alerted on per IP.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        client_ip = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")
        status = response.status_code
        route = _route_template(request)

        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            route,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "route": route,
                "path": request.url.path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )

        if status == 401 and request.url.path == LOGIN_PATH:
            logger.warning("Failed login from %s [%s]", client_ip, rid)

        return response
