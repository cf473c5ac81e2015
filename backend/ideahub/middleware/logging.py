"""
IdeaHub Backend — Request Logging Middleware
=============================================

What:  One access log line per request.
Why:   Enables monitoring, debugging, alerting, and performance analysis.
How:   Measures the time spent in the rest of the stack and logs the result
       with a level chosen by status class.

Logged fields:
    method, path, status, duration_ms, client_ip, api_key_id (when the
    gateway resolved one), request_id (via RequestIDLogFilter)

Never logged: the x-api-key header, request bodies, idea content.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("ideahub.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log level by status:
        5xx → ERROR    4xx → WARNING    everything else → INFO

    /health is skipped; probes hit it every few seconds.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path == "/health":
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        key_id = getattr(request.state, "api_key_id", None) or "-"
        logger.log(
            log_level,
            "%s %s %d %.1fms key=%s from %s",
            request.method,
            path,
            status,
            duration_ms,
            key_id,
            client_ip,
            extra={
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
                "api_key_id": key_id,
            },
        )

        return response
