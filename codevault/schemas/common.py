"""
CodeVault Backend — Shared Schema Pieces
==========================================

What:  Base model for the camelCase JSON contract, plus error/health shapes.
Why:   The frontend speaks camelCase (`displayName`, `isPublic`); Python code
       speaks snake_case. An alias generator bridges the two in one place.
How:   Responses serialize by alias (FastAPI default); requests accept either
       spelling (populate_by_name).
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for every request/response schema."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Fields:
        error:      Human-readable description, e.g. "Username already exists"
        code:       Machine-readable code (validation_error, conflict, ...)
        details:    Optional extra context (e.g. which field failed)
        request_id: Correlation ID for tracing this error in server logs
    """
    error: str = Field(description="Human-readable error description")
    code: str = Field(description="Machine-readable error code")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """
    What:  Health check response showing service and dependency status.
    Who:   Returned by GET /health for monitoring and load balancer probes.
    """
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
