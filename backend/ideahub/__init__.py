"""
IdeaHub Backend — Application Package Initializer
==================================================

What: Marks the `ideahub` directory as a Python package.
Why:  Enables module imports like `from ideahub.config import settings`.
Who:  Used implicitly by Python's import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    The service is a thin API gateway in front of a user's idea records:

    ┌─────────────────────────────────────┐
    │     Middleware (CORS, ID, logs)     │  ← preflight, correlation, access log
    ├─────────────────────────────────────┤
    │     Routes + ApiKeyAuth (API Layer) │  ← key → permission → rate limit
    ├─────────────────────────────────────┤
    │   Services (validation, sanitizing) │  ← IdeaService business rules
    ├─────────────────────────────────────┤
    │ Stores (credentials, limits, ideas) │  ← abstract contracts + SQL impls
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Every store is handed to the routes through FastAPI dependencies, so tests
    swap in fakes with `app.dependency_overrides` and never touch a database.
"""

__version__ = "1.0.0"
