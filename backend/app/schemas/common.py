"""
QPaperHub Backend — Shared Response Envelopes
===============================================

What:  The success envelope every route returns, the error envelope every
       exception handler returns, and the health report.
How:   ApiResponse is generic over its `data` payload so OpenAPI documents the
       concrete shape per route, e.g. ApiResponse[SavedRecordResponse].

Success:  {"success": true, "message": "...", "data": ...}
Error:    {"success": false, "error": "not_found", "message": "...",
           "details": {...}, "request_id": "a1b2c3d4"}
"""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field

DataT = TypeVar("DataT")


class ApiResponse(BaseModel, Generic[DataT]):
    success: bool = Field(default=True, description="Always true for 2xx responses")
    message: Optional[str] = Field(default=None, description="Human-readable outcome")
    data: Optional[DataT] = Field(default=None, description="Response payload")


class ErrorResponse(BaseModel):
    """
    Standardized error body for all API errors.

    Fields:
        error: Machine-readable error code (e.g., "validation_error", "not_found")
        message: Human-readable description for display to users
        details: Optional extra context (e.g., which field failed validation)
        request_id: Correlation ID for tracing this error in server logs
    """
    success: bool = Field(default=False)
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Health check response showing service and dependency status."""
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    object_store: str = Field(
        description="Object store status: available, unavailable, circuit_open"
    )
    object_store_backend: str = Field(description="Configured backend: drive or local")
    uptime_seconds: float = Field(description="Seconds since service started")
