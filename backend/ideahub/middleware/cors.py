"""
IdeaHub Backend — Fixed CORS Headers Middleware
================================================

What:  Answers every OPTIONS request with an empty 200 and adds the same three
       CORS headers to every other response.
Why:   The API is called from arbitrary browser front-ends with a wildcard
       origin and a fixed header/method list. Starlette's CORSMiddleware
       echoes per-request values and only answers "real" preflights (with an
       Origin and Access-Control-Request-Method); clients here expect the
       fixed set on any OPTIONS request and on every response.
How:   Header values come from settings.cors_headers.

    OPTIONS /anything          → 200, empty body, CORS headers (no auth)
    GET /ideas (401, 200, ...) → original response + CORS headers
"""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from ideahub.config import settings


class FixedCORSMiddleware(BaseHTTPMiddleware):
    """Outermost middleware: preflight short-circuit plus header stamping."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        headers = settings.cors_headers

        if request.method == "OPTIONS":
            return Response(status_code=200, headers=headers)

        response = await call_next(request)
        response.headers.update(headers)
        return response
