"""
IdeaHub Backend — Idea SQLAlchemy Model
========================================

What:  ORM model for the `ideas` table.
Who:   Used by SqlIdeaStore for CRUD operations and by Alembic for schema management.

Table Design Rationale:
    - UUID primary key: Non-sequential, so ids cannot be enumerated
    - user_id: Owning principal; every query filters on it (row-level isolation
      lives in the store, not in the database)
    - tags: JSON list (JSONB on PostgreSQL) — order kept for display only
    - status: Short enum-like string; 'archived' doubles as the logical delete

    Index on (user_id, updated_at DESC):
        The list endpoint is always "this owner's ideas, most recently touched first".
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import JSON, DateTime, Index, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from ideahub.database import Base

IDEA_STATUSES = ("idea", "research", "progress", "launched", "archived")
ARCHIVED_STATUS = "archived"
DEFAULT_STATUS = "idea"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Idea(Base):
    """
    A single idea record owned by one user.

    Lifecycle:
        1. Created through POST /ideas (status defaults to 'idea')
        2. Edited through PUT /ideas/{id}; updated_at refreshed each time
        3. DELETE moves it to 'archived' — the row is never removed
    """

    __tablename__ = "ideas"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    user_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Owning principal; immutable after insert",
    )

    title: Mapped[str] = mapped_column(String(500), nullable=False)

    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Sanitized markdown",
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=DEFAULT_STATUS,
        comment="idea, research, progress, launched, archived",
    )

    tags: Mapped[List[str]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
        default=list,
    )

    color: Mapped[str] = mapped_column(String(7), nullable=False)

    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    def __repr__(self) -> str:
        return f"<Idea(id={self.id}, user_id='{self.user_id}', status='{self.status}')>"


# Serves every list query: one owner, most recently updated first
Index("idx_ideas_user_updated_at", Idea.user_id, Idea.updated_at.desc())
