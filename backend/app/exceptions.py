"""
QPaperHub Backend — Custom Exception Hierarchy
================================================

What:  Application-specific exceptions for the failure modes of the service.
How:   Each exception carries a client-safe message and an optional context dict.
       Global exception handlers (registered in main.py) map them to HTTP status
       codes and the `{success: false, ...}` error envelope.
Who:   Raised by services and middleware; caught by global handlers.

Exception Hierarchy:
    QPaperHubError (base)
    ├── ValidationError              → 400 Bad Request
    ├── AuthenticationError          → 401 Unauthorized
    ├── NotFoundError                → 404 Not Found
    ├── RateLimitExceededError       → 429 Too Many Requests
    ├── PersistenceError             → 500 (database call failed or timed out)
    └── UpstreamServiceError         → 500 (object store failed)
        └── CircuitBreakerOpenError  → 503 (object store calls suspended)
"""

from typing import Any, Dict, Optional


class QPaperHubError(Exception):
    """
    Base exception for all QPaperHub application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but not returned for 5xx errors)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(QPaperHubError):
    """
    Raised when client input fails validation.

    When:    Missing or blank fields, unsupported file type, oversize upload,
             username already taken, no update fields supplied.
    HTTP:    400 Bad Request
    """

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


class AuthenticationError(QPaperHubError):
    """
    Raised when a username/password pair does not verify.

    The message is identical for unknown usernames and wrong passwords.
    HTTP:    401 Unauthorized
    """

    def __init__(
        self,
        message: str = "Invalid username or password.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(QPaperHubError):
    """
    Raised when a requested resource does not exist.

    When:    Unknown saved-papers record or collection, paper id, subject list.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"The requested {resource} was not found"
            if resource_id:
                message = f"{resource} '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource = resource
        self.resource_id = resource_id


class RateLimitExceededError(QPaperHubError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests, with a Retry-After header.
    """

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


class PersistenceError(QPaperHubError):
    """
    Raised when a database operation fails or times out.

    HTTP:    500 Internal Server Error

    `retryable` is True for timeouts: the operation may not have reached the
    database and the client can safely repeat an idempotent request. Nothing
    in the service retries automatically.

    The client always receives a generic message; `context` is logged only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        retryable: bool = False,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["retryable"] = retryable
        super().__init__(message=message, context=ctx)
        self.retryable = retryable


class UpstreamServiceError(QPaperHubError):
    """
    Raised when the object store (Google Drive) fails after all retries.

    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "The file storage service failed. Please try again later.",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class CircuitBreakerOpenError(UpstreamServiceError):
    """
    Raised while the object-store circuit breaker is OPEN.

    How circuit breaker works:
        CLOSED (normal) → failures increment counter
        → After N failures → OPEN (reject all calls for M seconds)
        → After M seconds → HALF-OPEN (allow one test call)
        → If test succeeds → CLOSED
        → If test fails → OPEN again (timer reset)

    HTTP:    503 Service Unavailable, with a Retry-After header.
    """

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            "File storage is temporarily unavailable due to repeated failures. "
            f"Please retry in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, retry_after=recovery_time, context=ctx)
        self.recovery_time = recovery_time
