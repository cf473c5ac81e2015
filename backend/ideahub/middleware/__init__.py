# Middleware package init
"""
IdeaHub Backend — Middleware Package
=====================================

What:  Cross-cutting concerns applied to every request.
Why:   Headers and logging needed by every route, written once.

Middleware Chain (outermost first):
    Request → [CORS] → [Request ID] → [Logging] → [GZip] → Route Handler

    1. CORS first: answers OPTIONS preflights before anything else runs and
       stamps the fixed CORS headers on every response, errors included
    2. Request ID: correlation ID for logs and the X-Request-ID header
    3. Logging: method, path, status, duration with the request ID

    API key checks are NOT middleware. They are a route dependency
    (ideahub.auth), so /health and unknown paths never touch the key store.
"""
