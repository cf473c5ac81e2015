# Routes package init
"""
IdeaHub Backend — API Routes Package
=====================================

What:  HTTP route handlers that accept requests and return responses.
How:   Each route module handles one logical endpoint.

Route Inventory:
    - ideas.py:    GET/POST /ideas, GET/PUT/DELETE /ideas/{id}   (endpoint "ai-ideas")
    - profile.py:  GET /profile                                   (endpoint "ai-profile")
    - health.py:   GET /health                                    (no API key)

Design Principle:
    Routes are THIN. Authentication, permission and quota checks come from
    the ApiKeyAuth dependency; validation, sanitization and store calls come
    from IdeaService. A handler only unpacks the request and builds the
    response envelope.
"""
