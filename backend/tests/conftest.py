"""
IdeaHub Backend — Test Configuration (conftest.py)
===================================================

What:  Shared pytest fixtures for the entire test suite.
Why:   Gateway tests run against the real FastAPI app with in-memory
       collaborators; store tests run against a throwaway SQLite database.
How:   Environment is set BEFORE any ideahub import (settings are read at
       import time). Collaborators are swapped through app.dependency_overrides.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── clock:           FakeClock pinned to a fixed UTC instant
    ├── credentials:     FakeCredentialStore with one key per test persona
    ├── idea_store:      FakeIdeaStore (dict-backed, owner-scoped)
    ├── limiter:         InMemoryRateLimiter driven by `clock`
    ├── app:             create_app() with the three collaborators overridden
    ├── client:          HTTPX AsyncClient over ASGITransport
    └── session_factory: async_sessionmaker on in-memory SQLite with all tables
"""

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["API_KEY_HMAC_SECRET"] = "test-hmac-secret-not-for-production"
os.environ["RATE_LIMIT_BACKEND"] = "memory"
os.environ["LOG_LEVEL"] = "WARNING"

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from ideahub.auth.api_key_auth import drain_usage_tasks
from ideahub.database import Base
from ideahub.dependencies import get_credential_store, get_idea_store, get_rate_limiter
from ideahub.main import create_app
from ideahub.models import api_key as _api_key_models  # noqa: F401
from ideahub.models import idea as _idea_models  # noqa: F401
from ideahub.schemas.api_key import KeyRecord
from ideahub.schemas.idea import IdeaRecord
from ideahub.stores.base import CredentialStore, IdeaQuery, IdeaStore, RateLimiter
from ideahub.stores.rate_limit import InMemoryRateLimiter


# ══════════════════════════════════════════════════════════════════════════
# Test Personas
# ══════════════════════════════════════════════════════════════════════════

READ_KEY = "iah_read-only-test-key"
WRITE_KEY = "iah_read-write-test-key"
ADMIN_KEY = "iah_admin-test-key"
OTHER_KEY = "iah_other-user-test-key"
INACTIVE_KEY = "iah_inactive-test-key"
LIMITED_KEY = "iah_limited-test-key"

OWNER = "user-alice"
OTHER_OWNER = "user-bob"

LIMITED_QUOTA = 3


def headers(key: str) -> Dict[str, str]:
    return {"x-api-key": key}


# ══════════════════════════════════════════════════════════════════════════
# In-Memory Collaborators
# ══════════════════════════════════════════════════════════════════════════

class FakeClock:
    """Callable clock; tests move time with advance()."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeCredentialStore(CredentialStore):
    """Raw key → KeyRecord map. `fail=True` makes validate() raise."""

    def __init__(self):
        self.keys: Dict[str, KeyRecord] = {}
        self.usage: List[uuid.UUID] = []
        self.fail = False

    def add(self, raw_key: str, user_id: str, permissions: List[str], limit: int = 1000,
            is_valid: bool = True) -> KeyRecord:
        record = KeyRecord(
            key_id=uuid.uuid4(),
            user_id=user_id,
            permissions=permissions,
            rate_limit_per_hour=limit,
            is_valid=is_valid,
        )
        self.keys[raw_key] = record
        return record

    async def validate(self, raw_key: str) -> Optional[KeyRecord]:
        if self.fail:
            raise ConnectionError("credential store unreachable")
        return self.keys.get(raw_key)

    async def record_usage(self, key_id: uuid.UUID) -> None:
        self.usage.append(key_id)


class FakeIdeaStore(IdeaStore):
    """
    Dict-backed IdeaStore with the same owner scoping as SqlIdeaStore.

    Each mutation moves an internal clock forward one second, so updated_at
    ordering is deterministic. `mutations` counts insert/update calls.
    """

    def __init__(self):
        self.records: Dict[uuid.UUID, IdeaRecord] = {}
        self.mutations = 0
        self._now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def _tick(self) -> datetime:
        self._now += timedelta(seconds=1)
        return self._now

    async def insert(self, owner_id: str, fields: Mapping[str, Any]) -> IdeaRecord:
        self.mutations += 1
        now = self._tick()
        record = IdeaRecord(
            id=uuid.uuid4(),
            user_id=owner_id,
            created_at=now,
            updated_at=now,
            **fields,
        )
        self.records[record.id] = record
        return record

    async def get(self, idea_id: uuid.UUID, owner_id: str) -> Optional[IdeaRecord]:
        record = self.records.get(idea_id)
        if record is None or record.user_id != owner_id:
            return None
        return record

    async def query(self, query: IdeaQuery) -> List[IdeaRecord]:
        matches = [r for r in self.records.values() if r.user_id == query.owner_id]
        if query.status:
            matches = [r for r in matches if r.status == query.status]
        if query.search:
            needle = query.search.lower()
            matches = [
                r for r in matches
                if needle in r.title.lower() or needle in (r.description or "").lower()
            ]
        matches.sort(key=lambda r: r.updated_at, reverse=True)
        return matches[query.offset:query.offset + query.limit]

    async def update(self, idea_id: uuid.UUID, owner_id: str,
                     patch: Mapping[str, Any]) -> Optional[IdeaRecord]:
        self.mutations += 1
        record = await self.get(idea_id, owner_id)
        if record is None:
            return None
        updated = record.model_copy(update={**patch, "updated_at": self._tick()})
        self.records[idea_id] = updated
        return updated

    async def count_by_status(self, owner_id: str) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for record in self.records.values():
            if record.user_id == owner_id:
                counts[record.status] = counts.get(record.status, 0) + 1
        return counts


class FailingRateLimiter(RateLimiter):
    async def consume(self, key_id: uuid.UUID, endpoint: str, limit: int) -> bool:
        raise ConnectionError("rate limit store unreachable")


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 14, 15, 20, 0, tzinfo=timezone.utc))


@pytest.fixture
def credentials() -> FakeCredentialStore:
    store = FakeCredentialStore()
    store.add(READ_KEY, OWNER, ["read"])
    store.add(WRITE_KEY, OWNER, ["read", "write"])
    store.add(ADMIN_KEY, OWNER, ["admin"])
    store.add(OTHER_KEY, OTHER_OWNER, ["read", "write"])
    store.add(INACTIVE_KEY, OWNER, ["read", "write"], is_valid=False)
    store.add(LIMITED_KEY, OWNER, ["read", "write"], limit=LIMITED_QUOTA)
    return store


@pytest.fixture
def idea_store() -> FakeIdeaStore:
    return FakeIdeaStore()


@pytest.fixture
def limiter(clock) -> InMemoryRateLimiter:
    return InMemoryRateLimiter(clock=clock)


@pytest.fixture
def app(credentials, idea_store, limiter):
    """
    A fresh app per test with every collaborator replaced.

    Tests that need a different limiter (e.g. a failing one) reassign
    app.dependency_overrides[get_rate_limiter] themselves.
    """
    application = create_app()
    application.dependency_overrides[get_credential_store] = lambda: credentials
    application.dependency_overrides[get_idea_store] = lambda: idea_store
    application.dependency_overrides[get_rate_limiter] = lambda: limiter
    return application


@pytest_asyncio.fixture
async def client(app):
    """
    HTTPX AsyncClient talking to the app in-process.

    raise_app_exceptions=False: unexpected errors come back as the 500
    response the catch-all handler builds instead of propagating into the test.
    """
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client
    # Usage updates are detached tasks; finish them before the loop closes
    await drain_usage_tasks()


@pytest_asyncio.fixture
async def session_factory():
    """In-memory SQLite shared by every session of one test (StaticPool)."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    await engine.dispose()
