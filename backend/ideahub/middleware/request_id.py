"""
IdeaHub Backend — Request ID Middleware
========================================

What:  Assigns an ID to each incoming request and returns it in X-Request-ID.
Why:   Every log line written while serving one request carries the same ID,
       so a client reporting an error can hand over a single string.
How:   Stores the ID in a ContextVar; RequestIDLogFilter copies it onto every
       log record as `%(request_id)s`.

A client-provided X-Request-ID is reused, so a caller can correlate its own
logs with ours.
"""

import logging
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDLogFilter(logging.Filter):
    """
    Adds `request_id` to every log record ("-" outside a request).

    Installed on the root handler by setup_logging(), so third-party loggers
    get the attribute too and the format string never raises KeyError.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("") or "-"
        return True


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Behavior:
        1. Use the client's X-Request-ID header if present
        2. Otherwise generate a short UUID (8 chars is enough for correlation)
        3. Expose it through request_id_var and request.state.request_id
        4. Echo it in the X-Request-ID response header
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]

        token = request_id_var.set(rid)
        request.state.request_id = rid
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers["X-Request-ID"] = rid
        return response
