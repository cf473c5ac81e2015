"""
IdeaHub Backend — Dependency Wiring
====================================

What:  FastAPI dependencies that build the stores and services for a request.
Why:   Routes and the auth dependency only ask for interfaces. Tests swap any
       of these out through `app.dependency_overrides` without touching
       module state.

Dependency graph:
    get_session_factory ─┬─→ get_credential_store → SqlCredentialStore
                         ├─→ get_rate_limiter     → SqlRateLimiter | InMemoryRateLimiter
                         └─→ get_idea_store       → SqlIdeaStore
                                                      └─→ get_idea_service → IdeaService
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ideahub.config import settings
from ideahub.database import get_session_factory
from ideahub.services.idea_service import IdeaService
from ideahub.stores.base import CredentialStore, IdeaStore, RateLimiter
from ideahub.stores.credentials import SqlCredentialStore
from ideahub.stores.ideas import SqlIdeaStore
from ideahub.stores.rate_limit import InMemoryRateLimiter, SqlRateLimiter

# Shared by every request in this process when RATE_LIMIT_BACKEND=memory
_memory_limiter = InMemoryRateLimiter()


def get_credential_store(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> CredentialStore:
    return SqlCredentialStore(session_factory)


def get_rate_limiter(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> RateLimiter:
    if settings.rate_limit_backend == "memory":
        return _memory_limiter
    return SqlRateLimiter(session_factory)


def get_idea_store(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> IdeaStore:
    return SqlIdeaStore(session_factory)


def get_idea_service(store: IdeaStore = Depends(get_idea_store)) -> IdeaService:
    return IdeaService(store, default_color=settings.default_idea_color)
