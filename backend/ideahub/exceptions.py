"""
IdeaHub Backend — Custom Exception Hierarchy
=============================================

What:  Application-specific exceptions for every way a gateway request can fail.
Why:   Each pipeline stage raises a typed error; global handlers registered in
       main.py turn it into the `{"error": ..., "details"?: [...]}` body with the
       right status code. No stage builds responses by hand.
How:   Each exception carries a client-safe message and an optional context
       dict. Context is logged server-side and never returned to the caller.

Exception Hierarchy:
    IdeaHubError (base)
    ├── AuthenticationError        → 401 Unauthorized
    ├── PermissionDeniedError      → 403 Forbidden
    ├── ValidationError            → 400 Bad Request (details: list of messages)
    │   └── ContentTooLargeError   → 400 Bad Request
    ├── NotFoundError              → 404 Not Found
    ├── MethodNotAllowedError      → 405 Method Not Allowed
    ├── RateLimitExceededError     → 429 Too Many Requests
    ├── DatabaseError              → 500 Internal Server Error
    └── InternalServerError        → 500 Internal Server Error

All errors are terminal for the request. Nothing in the gateway retries on the
caller's behalf; clients own their retry policy (notably on 429).
"""

from typing import Any, Dict, List, Optional


class IdeaHubError(Exception):
    """
    Base exception for all IdeaHub application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class AuthenticationError(IdeaHubError):
    """
    The request could not be tied to a valid API key.

    When:    Header missing, wrong prefix, unknown key, inactive/expired key,
             or the credential store itself failed.
    HTTP:    401 Unauthorized
    """

    def __init__(
        self,
        message: str = "Authentication failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PermissionDeniedError(IdeaHubError):
    """
    The key is valid but lacks the capability the HTTP verb requires.

    HTTP:    403 Forbidden
    """

    def __init__(
        self,
        required: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["required"] = required
        super().__init__(
            message=f"Insufficient permissions. Required: {required}",
            context=ctx,
        )
        self.required = required


class ValidationError(IdeaHubError):
    """
    Raised when client input fails validation.

    What:    The client sent data it can correct and resend.
    HTTP:    400 Bad Request

    `details` holds every violated rule (the validator never stops at the
    first failure), and is returned to the client verbatim.

    Example response:
        {
            "error": "Validation failed",
            "details": ["Status must be one of: idea, research, progress, launched, archived"]
        }
    """

    def __init__(
        self,
        message: str = "Validation failed",
        details: Optional[List[str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.details = list(details) if details else []


class ContentTooLargeError(ValidationError):
    """
    Sanitized text exceeded the configured byte ceiling.

    This is a hard failure, never a silent truncation. Reported as 400 so the
    client learns it sent too much, like any other validation failure.
    """

    def __init__(self, limit_bytes: int, actual_bytes: Optional[int] = None):
        limit_mb = limit_bytes // (1024 * 1024)
        label = f"{limit_mb}MB" if limit_mb else f"{limit_bytes} bytes"
        ctx: Dict[str, Any] = {"limit_bytes": limit_bytes}
        if actual_bytes is not None:
            ctx["actual_bytes"] = actual_bytes
        super().__init__(message=f"Content too large (max {label})", context=ctx)
        self.limit_bytes = limit_bytes


class NotFoundError(IdeaHubError):
    """
    The record does not exist OR belongs to another owner.

    Both cases produce the same response on purpose, so a caller cannot probe
    for ids owned by somebody else.

    HTTP:    404 Not Found
    """

    def __init__(
        self,
        message: str = "Idea not found",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class MethodNotAllowedError(IdeaHubError):
    """HTTP 405. Raised after authentication, when no handler serves the verb."""

    def __init__(self, method: str = "", context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        if method:
            ctx["method"] = method
        super().__init__(message="Method not allowed", context=ctx)


class RateLimitExceededError(IdeaHubError):
    """
    Raised when an API key used up its hourly quota.

    HTTP:    429 Too Many Requests
    Response includes a Retry-After header: seconds until the next window opens.
    """

    def __init__(
        self,
        retry_after: int = 3600,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message="Rate limit exceeded", context=ctx)
        self.retry_after = retry_after


class DatabaseError(IdeaHubError):
    """
    Raised when a store operation fails unexpectedly.

    HTTP:    500 Internal Server Error

    The message is a fixed, per-operation string ("Failed to fetch ideas").
    The driver error (SQL, constraint names) goes to the logs via `context`.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class InternalServerError(IdeaHubError):
    """HTTP 500 for failures outside the store layer (e.g. the rate limiter backend)."""

    def __init__(
        self,
        message: str = "Internal server error",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
