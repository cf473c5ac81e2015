"""
IdeaHub Backend — Per-Key Hourly Rate Limiters
===============================================

What:  Fixed-window counters keyed by (api key, endpoint, UTC hour).
Why:   Each key carries its own `rate_limit_per_hour`; the Nth request in an
       hour succeeds, the N+1th is refused, and the next hour starts from zero.

Algorithm: Fixed Window Counter
    window_start = now truncated to the hour (UTC)
    count = increment(key, endpoint, window_start)   ← atomic
    allowed = count ≤ limit

    Refused requests still increment the counter. They are counted, just not
    served, and the decision for the rest of the window stays "refused".

Implementations:
    SqlRateLimiter       INSERT ... ON CONFLICT DO UPDATE ... RETURNING, so the
                         database performs read-increment-write as one statement.
                         Safe across workers and instances.
    InMemoryRateLimiter  Dict of counters under an asyncio.Lock. Single process
                         only; counts reset when the process restarts.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timedelta
from typing import Callable, Dict, Tuple

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ideahub.database import session_scope
from ideahub.models.api_key import ApiRateLimit
from ideahub.models.idea import utcnow
from ideahub.stores.base import RateLimiter

logger = logging.getLogger(__name__)

WINDOW = timedelta(hours=1)


def window_start(now: datetime) -> datetime:
    return now.replace(minute=0, second=0, microsecond=0)


def seconds_until_next_window(now: datetime) -> int:
    """Value for the Retry-After header; at least 1."""
    remaining = window_start(now) + WINDOW - now
    return max(1, int(remaining.total_seconds()) + (1 if remaining.microseconds else 0))


class SqlRateLimiter(RateLimiter):
    """
    RateLimiter backed by `api_rate_limits` (PostgreSQL or SQLite ≥ 3.35).

    The dialect is resolved from the session factory bind at construction, so
    an unsupported database fails when the limiter is built, not on the first
    request.
    """

    _INSERTS = {
        "postgresql": pg_insert,
        "sqlite": sqlite_insert,
    }

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Callable[[], datetime] = utcnow,
    ):
        bind = session_factory.kw.get("bind")
        dialect = bind.dialect.name if bind is not None else None
        if dialect not in self._INSERTS:
            raise ValueError(f"SqlRateLimiter does not support dialect '{dialect}'")

        self._session_factory = session_factory
        self._insert = self._INSERTS[dialect]
        self._clock = clock

    async def consume(self, key_id: uuid.UUID, endpoint: str, limit: int) -> bool:
        window = window_start(self._clock())
        async with session_scope(self._session_factory) as session:
            stmt = (
                self._insert(ApiRateLimit)
                .values(
                    api_key_id=key_id,
                    endpoint=endpoint,
                    window_start=window,
                    requests_count=1,
                )
                .on_conflict_do_update(
                    index_elements=["api_key_id", "endpoint", "window_start"],
                    set_={"requests_count": ApiRateLimit.requests_count + 1},
                )
                .returning(ApiRateLimit.requests_count)
            )
            count = (await session.execute(stmt)).scalar_one()

        if count > limit:
            logger.warning(
                "Rate limit exceeded for key %s on %s: %d/%d in window %s",
                key_id, endpoint, count, limit, window.isoformat(),
            )
            return False
        return True


class InMemoryRateLimiter(RateLimiter):
    """
    Process-local limiter for single-worker deployments and local development.

    Old windows are pruned every `cleanup_every` calls so the dict only holds
    counters for the current hour (plus whatever arrived since the last prune).
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = utcnow,
        cleanup_every: int = 1000,
    ):
        self._clock = clock
        self._cleanup_every = cleanup_every
        self._counts: Dict[Tuple[uuid.UUID, str, datetime], int] = {}
        self._calls = 0
        self._lock = asyncio.Lock()

    async def consume(self, key_id: uuid.UUID, endpoint: str, limit: int) -> bool:
        window = window_start(self._clock())
        bucket = (key_id, endpoint, window)
        async with self._lock:
            count = self._counts.get(bucket, 0) + 1
            self._counts[bucket] = count
            self._calls += 1
            if self._calls % self._cleanup_every == 0:
                self._prune(window)

        if count > limit:
            logger.warning(
                "Rate limit exceeded for key %s on %s: %d/%d", key_id, endpoint, count, limit
            )
            return False
        return True

    def _prune(self, current_window: datetime) -> None:
        stale = [bucket for bucket in self._counts if bucket[2] < current_window]
        for bucket in stale:
            del self._counts[bucket]
        if stale:
            logger.debug("Pruned %d expired rate limit windows", len(stale))
