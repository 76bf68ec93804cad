"""
CodeVault Backend — Custom Exception Hierarchy
================================================

What:  Defines application-specific exceptions for different error scenarios.
Why:   Custom exceptions enable targeted error handling with appropriate HTTP
       status codes and user-friendly messages, without leaking internals.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by services, dependencies and middleware; caught by global handlers.

Exception Hierarchy:
    CodeVaultError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── ConflictError            → 400 Bad Request (duplicate username)
    ├── AuthError                → 401 Unauthorized
    ├── ForbiddenError           → 403 Forbidden (not the owner)
    ├── NotFoundError            → 404 Not Found
    ├── RateLimitExceededError   → 429 Too Many Requests
    └── DatabaseError            → 500 Internal Server Error

    ConfigurationError is deliberately outside the hierarchy: it is never
    turned into an HTTP response, it stops the process from starting.
"""

from typing import Any, Dict, List, Optional


class CodeVaultError(Exception):
    """
    Base exception for all CodeVault application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, returned only as `details`
                  by handlers that choose to)
    """

    status_code = 500
    code = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(CodeVaultError):
    """
    Raised when client input fails a business rule.

    When:    Blank title, code over the size limit, bad username characters.
    HTTP:    400 Bad Request

    Schema-level problems (wrong JSON types, missing fields) are reported by
    FastAPI's RequestValidationError, which main.py also maps to 400.
    """

    status_code = 400
    code = "validation_error"

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class ConflictError(CodeVaultError):
    """
    Raised when a create would violate a uniqueness rule.

    When:    Registering a username that already exists (exact match).
    HTTP:    400 Bad Request, body {"error": "Username already exists"}
    """

    status_code = 400
    code = "conflict"

    def __init__(
        self,
        message: str = "Resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AuthError(CodeVaultError):
    """
    Raised when the caller cannot be authenticated.

    When:    Bad credentials at login; missing, malformed, expired or
             tampered bearer token; token for a user that no longer exists.
    HTTP:    401 Unauthorized with `WWW-Authenticate: Bearer`

    The message never says WHICH part was wrong (unknown user vs bad
    password) to avoid username enumeration.
    """

    status_code = 401
    code = "unauthorized"

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(CodeVaultError):
    """
    Raised when an authenticated caller mutates something they do not own.

    When:    PUT/PATCH/DELETE /api/snippets/{id} by a user other than the owner.
    HTTP:    403 Forbidden
    """

    status_code = 403
    code = "forbidden"

    def __init__(
        self,
        message: str = "You do not have permission to modify this resource",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(CodeVaultError):
    """
    Raised when a requested resource does not exist (or is not visible).

    When:    Unknown snippet id, or a private snippet requested by someone
             other than its owner.
    HTTP:    404 Not Found
    """

    status_code = 404
    code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class DatabaseError(CodeVaultError):
    """
    Raised when database operations fail unexpectedly.

    HTTP:    500 Internal Server Error

    Security Note:
        The message returned to the client is always generic.
        SQL text and constraint names are logged server-side only.
    """

    status_code = 500
    code = "server_error"

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(CodeVaultError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests, with a Retry-After header
    """

    status_code = 429
    code = "rate_limit_exceeded"

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class ConfigurationError(Exception):
    """
    Raised at startup when the configuration is unusable.

    What:    Missing/short JWT_SECRET, or no database connection info.
    Effect:  create_app() propagates it and the process exits.
    """

    def __init__(self, message: str, problems: Optional[List[str]] = None):
        super().__init__(message)
        self.problems = problems or []
