"""
IdeaHub Backend — SQL Idea Store
=================================

What:  Owner-scoped CRUD over the `ideas` table.
How:   Every statement carries `WHERE user_id = :owner_id`, so a record owned by
       someone else is indistinguishable from a missing one.

Query plan (list):
    SELECT * FROM ideas
    WHERE user_id = :owner [AND status = :status]
          [AND (title ILIKE :pattern OR description ILIKE :pattern)]
    ORDER BY updated_at DESC, id
    LIMIT :limit OFFSET :offset
    → idx_ideas_user_updated_at serves the filter and the ordering

Error Handling:
    SQLAlchemy failures are logged with their driver detail and re-raised as
    DatabaseError with a fixed per-operation message (500, nothing leaked).
"""

import logging
import uuid
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ideahub.database import session_scope
from ideahub.exceptions import DatabaseError
from ideahub.models.idea import Idea, utcnow
from ideahub.schemas.idea import IdeaRecord
from ideahub.stores.base import IdeaQuery, IdeaStore

logger = logging.getLogger(__name__)

# Columns a patch may touch; id, user_id and created_at are immutable
MUTABLE_FIELDS = frozenset({"title", "description", "status", "tags", "color", "image_url"})


class SqlIdeaStore(IdeaStore):
    """IdeaStore backed by SQLAlchemy async sessions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def insert(self, owner_id: str, fields: Mapping[str, Any]) -> IdeaRecord:
        values = {k: v for k, v in fields.items() if k in MUTABLE_FIELDS}
        try:
            async with session_scope(self._session_factory) as session:
                idea = Idea(user_id=owner_id, **values)
                session.add(idea)
                await session.flush()
                record = IdeaRecord.model_validate(idea)
        except SQLAlchemyError as e:
            raise self._wrap("Failed to create idea", e, owner_id=owner_id)

        logger.info("Idea %s created for user %s", record.id, owner_id)
        return record

    async def get(self, idea_id: uuid.UUID, owner_id: str) -> Optional[IdeaRecord]:
        try:
            async with session_scope(self._session_factory) as session:
                idea = await self._fetch_owned(session, idea_id, owner_id)
                return IdeaRecord.model_validate(idea) if idea else None
        except SQLAlchemyError as e:
            raise self._wrap("Failed to fetch idea", e, idea_id=str(idea_id))

    async def query(self, query: IdeaQuery) -> List[IdeaRecord]:
        stmt = select(Idea).where(Idea.user_id == query.owner_id)
        if query.status:
            stmt = stmt.where(Idea.status == query.status)
        if query.search:
            stmt = stmt.where(
                or_(
                    Idea.title.icontains(query.search, autoescape=True),
                    Idea.description.icontains(query.search, autoescape=True),
                )
            )
        stmt = (
            stmt.order_by(Idea.updated_at.desc(), Idea.id)
            .offset(query.offset)
            .limit(query.limit)
        )

        try:
            async with session_scope(self._session_factory) as session:
                result = await session.execute(stmt)
                return [IdeaRecord.model_validate(idea) for idea in result.scalars().all()]
        except SQLAlchemyError as e:
            raise self._wrap("Failed to fetch ideas", e, owner_id=query.owner_id)

    async def update(
        self, idea_id: uuid.UUID, owner_id: str, patch: Mapping[str, Any]
    ) -> Optional[IdeaRecord]:
        try:
            async with session_scope(self._session_factory) as session:
                idea = await self._fetch_owned(session, idea_id, owner_id, for_update=True)
                if idea is None:
                    return None
                for field, value in patch.items():
                    if field in MUTABLE_FIELDS:
                        setattr(idea, field, value)
                # Explicit so an idempotent patch still counts as a mutation
                idea.updated_at = utcnow()
                await session.flush()
                record = IdeaRecord.model_validate(idea)
        except SQLAlchemyError as e:
            raise self._wrap("Failed to update idea", e, idea_id=str(idea_id))

        logger.info("Idea %s updated (%s)", idea_id, ", ".join(sorted(patch)) or "no fields")
        return record

    async def count_by_status(self, owner_id: str) -> Dict[str, int]:
        stmt = (
            select(Idea.status, func.count(Idea.id))
            .where(Idea.user_id == owner_id)
            .group_by(Idea.status)
        )
        try:
            async with session_scope(self._session_factory) as session:
                result = await session.execute(stmt)
                return {status: count for status, count in result.all()}
        except SQLAlchemyError as e:
            raise self._wrap("Failed to fetch idea statistics", e, owner_id=owner_id)

    @staticmethod
    async def _fetch_owned(
        session: AsyncSession,
        idea_id: uuid.UUID,
        owner_id: str,
        for_update: bool = False,
    ) -> Optional[Idea]:
        stmt = select(Idea).where(Idea.id == idea_id, Idea.user_id == owner_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    def _wrap(message: str, error: SQLAlchemyError, **context: Any) -> DatabaseError:
        logger.error("%s: %s | Context: %s", message, error, context, exc_info=True)
        context["error_type"] = type(error).__name__
        return DatabaseError(message=message, context=context)
