"""
IdeaHub Backend — Store Interfaces
===================================

What:  Abstract contracts for the three collaborators the gateway depends on.
Why:   The gateway never knows which backend it is talking to. The SQL
       implementations ship with the service; tests substitute in-memory
       fakes through FastAPI dependency overrides; a Redis limiter or a
       managed credential service would slot in the same way.

Contracts:
    CredentialStore.validate(raw_key)       → KeyRecord | None
    CredentialStore.record_usage(key_id)    → bump usage_count / last_used_at
    RateLimiter.consume(key_id, endpoint, limit) → bool (one unit, atomically)
    IdeaStore.insert / get / query / update / count_by_status

Owner scoping is part of every IdeaStore signature: an implementation must
never return or modify a record whose user_id differs from `owner_id`.
"""

import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, Field

from ideahub.schemas.api_key import KeyRecord
from ideahub.schemas.idea import IdeaRecord


# Largest OFFSET a signed 64-bit SQL integer can carry
MAX_OFFSET = 2**63 - 1


class IdeaQuery(BaseModel):
    """Filters and slice for IdeaStore.query(). Ordering is always updated_at DESC."""

    owner_id: str
    status: Optional[str] = None
    search: Optional[str] = Field(default=None, description="Case-insensitive substring of title or description")
    limit: int = Field(default=50, ge=1, le=100)
    offset: int = Field(default=0, ge=0, le=MAX_OFFSET)


class CredentialStore(ABC):
    """Resolves raw API keys and tracks their usage."""

    @abstractmethod
    async def validate(self, raw_key: str) -> Optional[KeyRecord]:
        """
        Resolve a raw key.

        Returns:
            KeyRecord (with `is_valid` computed) when a key with this hash exists,
            None when no such key exists.
        Raises:
            Any backend failure; the gateway reports it as a 401.
        """
        ...

    @abstractmethod
    async def record_usage(self, key_id: uuid.UUID) -> None:
        """Increment usage_count and set last_used_at. Called off the request path."""
        ...


class RateLimiter(ABC):
    """Fixed one-hour window counters per (key, endpoint)."""

    @abstractmethod
    async def consume(self, key_id: uuid.UUID, endpoint: str, limit: int) -> bool:
        """
        Count one request against the current window.

        Concurrent calls for the same key and window must each be counted
        exactly once. Returns True while the count is ≤ limit.
        """
        ...


class IdeaStore(ABC):
    """Owner-scoped persistence for idea records."""

    @abstractmethod
    async def insert(self, owner_id: str, fields: Mapping[str, Any]) -> IdeaRecord:
        ...

    @abstractmethod
    async def get(self, idea_id: uuid.UUID, owner_id: str) -> Optional[IdeaRecord]:
        ...

    @abstractmethod
    async def query(self, query: IdeaQuery) -> List[IdeaRecord]:
        ...

    @abstractmethod
    async def update(
        self, idea_id: uuid.UUID, owner_id: str, patch: Mapping[str, Any]
    ) -> Optional[IdeaRecord]:
        """Apply `patch` and refresh updated_at. None when missing or not owned."""
        ...

    @abstractmethod
    async def count_by_status(self, owner_id: str) -> Dict[str, int]:
        ...
