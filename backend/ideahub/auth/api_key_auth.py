"""
IdeaHub Backend — API Key Gateway Dependency
=============================================

What:  Authenticates, authorizes and rate-limits one request.
How:   `ApiKeyAuth(endpoint)` is a callable FastAPI dependency. Every route
       that serves idea data declares it; the handler only runs once all
       checks pass and receives the resolved KeyRecord.

Pipeline (strict order, first failure ends the request):
    1. x-api-key header present            else 401 "API key required in x-api-key header"
    2. key starts with API_KEY_PREFIX      else 401 "Invalid API key format"
    3. CredentialStore.validate(key)
         store raised                      → 401 "Authentication failed"
         no such key                       → 401 "Invalid API key"
         inactive or expired               → 401 "API key is expired or inactive"
    4. schedule usage tracking (detached task, independent of the outcome)
    5. capability for the verb             else 403 "Insufficient permissions. Required: X"
         GET → read, anything else → write, admin → everything
    6. RateLimiter.consume(key, endpoint)
         limiter raised                    → 500 "Rate limiting failed"
         over quota                        → 429 "Rate limit exceeded" + Retry-After

A request refused at step 5 is not counted against the quota; a request
refused at step 6 is.

The raw key never reaches a log line. Logs carry the key id only.
"""

import asyncio
import logging
import uuid
from typing import Set

from fastapi import Depends, Request

from ideahub.config import settings
from ideahub.dependencies import get_credential_store, get_rate_limiter
from ideahub.exceptions import (
    AuthenticationError,
    InternalServerError,
    PermissionDeniedError,
    RateLimitExceededError,
)
from ideahub.models.idea import utcnow
from ideahub.schemas.api_key import KeyRecord
from ideahub.stores.base import CredentialStore, RateLimiter
from ideahub.stores.rate_limit import seconds_until_next_window

logger = logging.getLogger(__name__)

API_KEY_HEADER = "x-api-key"

# Strong references to in-flight usage updates; the event loop only keeps weak ones
_usage_tasks: Set[asyncio.Task] = set()


def required_capability(method: str) -> str:
    return "read" if method.upper() == "GET" else "write"


async def track_usage(credentials: CredentialStore, key_id: uuid.UUID) -> None:
    """
    Detached task: bump usage_count and last_used_at for a key.

    Best effort. The store retries transient errors itself; a final failure
    is logged and dropped so it can never affect a response.
    """
    try:
        await credentials.record_usage(key_id)
    except Exception as e:
        logger.warning("Failed to record usage for API key %s: %s", key_id, e)


def schedule_usage_tracking(credentials: CredentialStore, key_id: uuid.UUID) -> None:
    """
    Start a usage update that outlives the request.

    A key that authenticated is counted whether the request then ends in
    200, 403, 429 or any other outcome.
    """
    task = asyncio.create_task(track_usage(credentials, key_id))
    _usage_tasks.add(task)
    task.add_done_callback(_usage_tasks.discard)


async def drain_usage_tasks() -> None:
    """Wait for every pending usage update. Called on shutdown."""
    if _usage_tasks:
        await asyncio.gather(*list(_usage_tasks), return_exceptions=True)


class ApiKeyAuth:
    """
    Gateway dependency bound to one logical endpoint name.

    The endpoint name partitions rate-limit counters, so `ai-ideas` and
    `ai-profile` each get the key's full hourly quota.

    Usage::

        require_api_key = ApiKeyAuth("ai-ideas")

        @router.get("/ideas")
        async def list_ideas(key: KeyRecord = Depends(require_api_key)):
            ...
    """

    def __init__(self, endpoint: str):
        self.endpoint = endpoint

    async def __call__(
        self,
        request: Request,
        credentials: CredentialStore = Depends(get_credential_store),
        limiter: RateLimiter = Depends(get_rate_limiter),
    ) -> KeyRecord:
        raw_key = request.headers.get(API_KEY_HEADER)
        if not raw_key:
            raise AuthenticationError("API key required in x-api-key header")

        if not raw_key.startswith(settings.api_key_prefix):
            raise AuthenticationError("Invalid API key format")

        try:
            key = await credentials.validate(raw_key)
        except Exception as e:
            logger.error("Credential store failed during key validation: %s", e, exc_info=True)
            raise AuthenticationError("Authentication failed", context={"error_type": type(e).__name__})

        if key is None:
            raise AuthenticationError("Invalid API key")
        if not key.is_valid:
            raise AuthenticationError(
                "API key is expired or inactive", context={"key_id": str(key.key_id)}
            )

        request.state.api_key_id = str(key.key_id)
        schedule_usage_tracking(credentials, key.key_id)

        capability = required_capability(request.method)
        if not key.allows(capability):
            logger.info(
                "API key %s lacks '%s' for %s %s",
                key.key_id, capability, request.method, request.url.path,
            )
            raise PermissionDeniedError(capability, context={"key_id": str(key.key_id)})

        try:
            allowed = await limiter.consume(key.key_id, self.endpoint, key.rate_limit_per_hour)
        except Exception as e:
            logger.error("Rate limiter failed for API key %s: %s", key.key_id, e, exc_info=True)
            raise InternalServerError("Rate limiting failed", context={"error_type": type(e).__name__})

        if not allowed:
            raise RateLimitExceededError(
                retry_after=seconds_until_next_window(utcnow()),
                context={"key_id": str(key.key_id), "endpoint": self.endpoint},
            )

        return key
