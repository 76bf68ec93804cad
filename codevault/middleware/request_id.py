"""
CodeVault Backend — Request ID Middleware
===========================================

What:  Assigns a correlation ID to each request and echoes it in the response.
Why:   Every log line and every error body of one request share the same ID,
       so a user-reported error can be found in the logs directly.
How:   Reuses the client's X-Request-ID header if present, else generates a
       short UUID; stores it in a ContextVar and in request.state.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

MAX_CLIENT_ID_LENGTH = 64


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware that assigns a unique ID to each request for tracing.

    Client-supplied IDs longer than MAX_CLIENT_ID_LENGTH are replaced, so a
    client cannot stuff arbitrary payloads into every log line.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID", "")
        if not rid or len(rid) > MAX_CLIENT_ID_LENGTH:
            # 8 chars is plenty for correlation and readable in logs
            rid = str(uuid.uuid4())[:8]

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
