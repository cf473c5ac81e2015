"""
IdeaHub Backend — API Key and Rate Limit Models
================================================

What:  ORM models for `api_keys` and `api_rate_limits`.
Who:   SqlCredentialStore (keys) and SqlRateLimiter (hourly counters).

Security:
    Raw keys are never stored. `key_hash` is an HMAC-SHA256 hex digest of the
    full raw key under API_KEY_HMAC_SECRET, unique-indexed so validation is a
    single indexed lookup.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from ideahub.database import Base
from ideahub.models.idea import utcnow

PERMISSIONS = ("read", "write", "admin")


class ApiKey(Base):
    """
    An issued API key.

    Validity is computed, never stored: a key is valid iff `is_active` and
    (`expires_at` is NULL or in the future). See ApiKey.is_valid().
    """

    __tablename__ = "api_keys"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    key_hash: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    permissions: Mapped[List[str]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
        default=lambda: ["read"],
    )
    rate_limit_per_hour: Mapped[int] = mapped_column(Integer, nullable=False, default=1000)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    usage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_used_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    def is_valid(self, now: datetime) -> bool:
        if not self.is_active:
            return False
        if self.expires_at is None:
            return True
        expires_at = self.expires_at
        # SQLite hands back naive datetimes; everything is stored in UTC
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=now.tzinfo)
        return expires_at > now

    def __repr__(self) -> str:
        return f"<ApiKey(id={self.id}, user_id='{self.user_id}', active={self.is_active})>"


class ApiRateLimit(Base):
    """
    One counter per (key, endpoint, UTC hour).

    The unique constraint is what makes the upsert-increment in
    SqlRateLimiter atomic: concurrent first requests in a window collide on it
    and fall into the DO UPDATE branch instead of creating two rows.
    """

    __tablename__ = "api_rate_limits"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    api_key_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("api_keys.id", ondelete="CASCADE"),
        nullable=False,
    )
    endpoint: Mapped[str] = mapped_column(String(100), nullable=False)
    window_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    requests_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint(
            "api_key_id", "endpoint", "window_start",
            name="uq_api_rate_limits_key_endpoint_window",
        ),
    )
