"""
Notes Keyset API — Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions for the error scenarios of the API.
Why:   Custom exceptions enable targeted error handling with appropriate HTTP
       status codes and user-friendly messages, without leaking internals.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by services; caught by global handlers.

Exception Hierarchy:
    NotesApiError (base)              → 500 Internal Server Error
    ├── ValidationError               → 400 Bad Request (client can fix)
    │   ├── InvalidCursorError        → 400 (token failed to decode)
    │   └── InvalidPageSizeError      → 400 (limit outside the allowed range)
    ├── NotFoundError                 → 404 Not Found
    └── StorageUnavailableError       → 503 Service Unavailable (retry later)

Pagination guarantees:
    InvalidCursorError and InvalidPageSizeError are raised before any query
    is issued. StorageUnavailableError is raised instead of returning a
    partial page; retrying the identical request repeats the identical scan.
"""

from typing import Any, Dict, Optional


class NotesApiError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged; returned only for client errors)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(NotesApiError):
    """
    Raised when client input fails business validation.

    HTTP:    400 Bad Request

    Why 400 (not 422):
        FastAPI already answers 422 for schema-level problems (a non-integer
        `limit`, a malformed UUID). Business rules such as the page size bound
        are reported as 400 so clients can tell the two apart.
    """

    error_code = "validation_error"

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


class InvalidCursorError(ValidationError):
    """
    Raised when a pagination cursor cannot be decoded.

    When:    Bad base64, non-JSON payload, missing/extra/mistyped fields,
             naive timestamps, blank tokens, or a failed signature check.
    HTTP:    400 Bad Request

    The reason is kept in context for logging. It is deliberately coarse in
    the response so clients do not learn how tokens are built.
    """

    error_code = "invalid_cursor"

    def __init__(
        self,
        reason: str = "malformed",
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["reason"] = reason
        super().__init__(
            message="Invalid cursor. Restart pagination without a cursor.",
            field="cursor",
            context=ctx,
        )
        self.reason = reason


class InvalidPageSizeError(ValidationError):
    """
    Raised when `limit` falls outside [1, max_page_size].

    HTTP:    400 Bad Request
    Policy:  Strict. Out-of-range values are never clamped silently.
    """

    error_code = "invalid_page_size"

    def __init__(
        self,
        limit: int,
        max_page_size: int,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx.update(limit=limit, min=1, max=max_page_size)
        super().__init__(
            message=f"limit must be between 1 and {max_page_size}, got {limit}",
            field="limit",
            context=ctx,
        )
        self.limit = limit
        self.max_page_size = max_page_size


class NotFoundError(NotesApiError):
    """
    Raised when a requested resource does not exist.

    When:    GET/PUT/DELETE /api/notes/{id} with an unknown UUID.
    HTTP:    404 Not Found

    SQLAlchemy returns None for missing records; the service layer converts
    None into this exception. Pagination never raises it: a cursor pointing at
    a deleted row is still a valid seek position.
    """

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


class StorageUnavailableError(NotesApiError):
    """
    Raised when a database operation fails for transport/infra reasons.

    HTTP:    503 Service Unavailable, with Retry-After

    Security Note:
        The message returned to the client is always generic. The driver
        error is logged server-side only.
    """

    def __init__(
        self,
        message: str = "The note store is temporarily unavailable. Please retry.",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
