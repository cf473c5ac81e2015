"""
IdeaHub Backend — SQL Credential Store
=======================================

What:  Issues, hashes, validates and usage-tracks API keys in `api_keys`.
How:   Keys look like `iah_<43 url-safe chars>`. The full raw key is hashed
       with HMAC-SHA256 under API_KEY_HMAC_SECRET; validation hashes the
       presented key and does one indexed lookup on `key_hash`.

Why HMAC (not bcrypt/argon2):
    Keys carry 256 bits of randomness, so a slow KDF buys nothing against
    brute force, and a deterministic digest allows the O(1) indexed lookup.
    The server secret keeps a leaked table from being checked offline.
"""

import hashlib
import hmac
import logging
import secrets
import uuid
from datetime import datetime
from typing import Callable, Iterable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from ideahub.config import settings
from ideahub.database import session_scope
from ideahub.exceptions import DatabaseError, ValidationError
from ideahub.models.api_key import PERMISSIONS, ApiKey
from ideahub.models.idea import utcnow
from ideahub.schemas.api_key import IssuedApiKey, KeyRecord
from ideahub.stores.base import CredentialStore

logger = logging.getLogger(__name__)

MAX_KEY_NAME_LENGTH = 100


def generate_api_key(prefix: Optional[str] = None) -> str:
    return (prefix or settings.api_key_prefix) + secrets.token_urlsafe(32)


def hash_api_key(raw_key: str, secret: Optional[str] = None) -> str:
    """HMAC-SHA256 hex digest of a raw key."""
    key = (secret or settings.api_key_hmac_secret).encode()
    return hmac.new(key, raw_key.encode(), hashlib.sha256).hexdigest()


def validate_key_request(
    name: str,
    permissions: Iterable[str],
    rate_limit_per_hour: int,
    expires_at: Optional[datetime],
    now: datetime,
) -> List[str]:
    """Rules for issuing a key; returns every violated rule."""
    errors: List[str] = []
    if not isinstance(name, str) or not name.strip():
        errors.append("Name is required and must be a non-empty string")
    elif len(name) > MAX_KEY_NAME_LENGTH:
        errors.append(f"Name must be at most {MAX_KEY_NAME_LENGTH} characters")
    perms = list(permissions)
    if not perms or not all(p in PERMISSIONS for p in perms):
        errors.append("Permissions must be an array containing: " + ", ".join(PERMISSIONS))
    if isinstance(rate_limit_per_hour, bool) or not isinstance(rate_limit_per_hour, int) \
            or not 1 <= rate_limit_per_hour <= 10000:
        errors.append("Rate limit must be a number between 1 and 10000")
    if expires_at is not None and (expires_at.tzinfo is None or expires_at <= now):
        errors.append("Expiry date must be a valid future date")
    return errors


class SqlCredentialStore(CredentialStore):
    """CredentialStore backed by the `api_keys` table."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        hmac_secret: Optional[str] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._session_factory = session_factory
        self._secret = hmac_secret or settings.api_key_hmac_secret
        self._clock = clock

    async def issue_key(
        self,
        user_id: str,
        name: str,
        permissions: Iterable[str] = ("read",),
        rate_limit_per_hour: Optional[int] = None,
        expires_at: Optional[datetime] = None,
    ) -> IssuedApiKey:
        """
        Create a key and return the raw secret. This is the only time it is visible.

        Raises:
            ValidationError: bad name, permissions, rate limit or expiry.
            DatabaseError: the insert failed.
        """
        perms = list(dict.fromkeys(permissions))
        limit = settings.default_rate_limit_per_hour if rate_limit_per_hour is None else rate_limit_per_hour
        errors = validate_key_request(name, perms, limit, expires_at, self._clock())
        if errors:
            raise ValidationError(details=errors)

        raw_key = generate_api_key()
        record = ApiKey(
            user_id=user_id,
            name=name.strip(),
            key_hash=hash_api_key(raw_key, self._secret),
            permissions=perms,
            rate_limit_per_hour=limit,
            expires_at=expires_at,
        )
        try:
            async with session_scope(self._session_factory) as session:
                session.add(record)
                await session.flush()
                key_id = record.id
        except SQLAlchemyError as e:
            logger.error("Failed to create API key for user %s: %s", user_id, e)
            raise DatabaseError(
                message="Failed to create API key",
                context={"error_type": type(e).__name__},
            ) from e

        logger.info("Issued API key %s for user %s (permissions=%s)", key_id, user_id, perms)
        return IssuedApiKey(
            key_id=key_id,
            user_id=user_id,
            name=record.name,
            api_key=raw_key,
            permissions=perms,
            rate_limit_per_hour=limit,
            expires_at=expires_at,
        )

    async def validate(self, raw_key: str) -> Optional[KeyRecord]:
        key_hash = hash_api_key(raw_key, self._secret)
        async with session_scope(self._session_factory) as session:
            result = await session.execute(select(ApiKey).where(ApiKey.key_hash == key_hash))
            record = result.scalar_one_or_none()

        if record is None:
            return None

        return KeyRecord(
            key_id=record.id,
            user_id=record.user_id,
            permissions=list(record.permissions or []),
            rate_limit_per_hour=record.rate_limit_per_hour,
            is_valid=record.is_valid(self._clock()),
        )

    @retry(
        retry=retry_if_exception_type(OperationalError),
        stop=stop_after_attempt(settings.usage_retry_max_attempts),
        # Exponential backoff from min_wait, capped at max_wait, plus up to min_wait of jitter
        wait=(
            wait_exponential(multiplier=settings.usage_retry_min_wait, max=settings.usage_retry_max_wait)
            + wait_random(0, settings.usage_retry_min_wait)
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def record_usage(self, key_id: uuid.UUID) -> None:
        # Single UPDATE with an in-database increment: concurrent requests never lose a count
        async with session_scope(self._session_factory) as session:
            await session.execute(
                update(ApiKey)
                .where(ApiKey.id == key_id)
                .values(usage_count=ApiKey.usage_count + 1, last_used_at=self._clock())
            )
