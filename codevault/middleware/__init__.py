# Middleware package init
"""
CodeVault Backend — Middleware Package
========================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters!):
    Request → [Request ID] → [Rate Limit] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Request ID FIRST: every response, 429s included, carries a correlation ID
    2. Rate Limit: Reject abusive requests before any route processing
    3. Logging: Log request details with the generated request ID
    4. CORS: Applied by FastAPI's CORSMiddleware (handles preflight)

    Starlette runs the LAST added middleware first; main.py adds them in
    reverse of the order above.
"""
