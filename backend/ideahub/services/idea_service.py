"""
IdeaHub Backend — Idea Service (Business Logic)
================================================

What:  Turns already-authenticated requests into store calls.
Why:   Routes stay thin (HTTP in, envelope out); everything that decides what
       gets written lives here and is testable without HTTP.
How:   Stateless over an injected IdeaStore. Every method takes the owner id
       from the resolved API key, never from the request body.

Write path (create / update):
    raw JSON body
      → must be an object                  else ValidationError
      → validate_idea_payload(partial=?)   every violated rule in `details`
      → keep whitelisted fields only       id, user_id, timestamps dropped
      → sanitize title / description       may raise ContentTooLargeError
      → store.insert / store.update        owner-scoped

Delete is logical: status → 'archived', the row stays.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

from ideahub.exceptions import NotFoundError, ValidationError
from ideahub.models.idea import ARCHIVED_STATUS, DEFAULT_STATUS, IDEA_STATUSES
from ideahub.schemas.idea import IdeaRecord
from ideahub.services.sanitizer import sanitize_markdown
from ideahub.services.validation import (
    STATUS_INVALID,
    TITLE_REQUIRED,
    validate_idea_payload,
)
from ideahub.stores.base import MAX_OFFSET, IdeaQuery, IdeaStore

logger = logging.getLogger(__name__)

WRITABLE_FIELDS = ("title", "description", "status", "tags", "color", "image_url")

DEFAULT_LIMIT = 50
MAX_LIMIT = 100


def _parse_int(raw: Optional[str], name: str, default: int) -> int:
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw.strip())
    except ValueError:
        raise ValidationError(
            message="Invalid query parameters",
            details=[f"{name.capitalize()} must be an integer"],
        )


def _parse_idea_id(raw: str) -> uuid.UUID:
    # A malformed id can never match a record, so it reads as "not found"
    try:
        return uuid.UUID(raw)
    except (ValueError, AttributeError, TypeError):
        raise NotFoundError(resource_id=str(raw))


class IdeaService:
    """
    Idea operations for one owner at a time.

    Methods:
        list_ideas()          GET /ideas
        get_idea()            GET /ideas/{id}
        create_idea()         POST /ideas
        update_idea()         PUT /ideas/{id}
        archive_idea()        DELETE /ideas/{id}
        profile_statistics()  GET /profile
    """

    def __init__(self, store: IdeaStore, default_color: str):
        self.store = store
        self.default_color = default_color

    async def list_ideas(
        self,
        owner_id: str,
        status: Optional[str] = None,
        limit: Optional[str] = None,
        offset: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[IdeaRecord], IdeaQuery]:
        """
        Fetch one page of the owner's ideas from raw query-string values.

        `limit` is clamped to [1, 100] and `offset` to [0, MAX_OFFSET]; an
        empty `status` or `search` means "no filter".

        Returns:
            (records, effective query); the route echoes the query in `meta`.
        """
        if status and status not in IDEA_STATUSES:
            raise ValidationError(message="Invalid query parameters", details=[STATUS_INVALID])

        query = IdeaQuery(
            owner_id=owner_id,
            status=status or None,
            search=search or None,
            limit=min(max(_parse_int(limit, "limit", DEFAULT_LIMIT), 1), MAX_LIMIT),
            offset=min(max(_parse_int(offset, "offset", 0), 0), MAX_OFFSET),
        )
        return await self.store.query(query), query

    async def get_idea(self, owner_id: str, idea_id: str) -> IdeaRecord:
        record = await self.store.get(_parse_idea_id(idea_id), owner_id)
        if record is None:
            raise NotFoundError(resource_id=idea_id)
        return record

    async def create_idea(self, owner_id: str, payload: Any) -> IdeaRecord:
        body = self._require_object(payload)
        errors = validate_idea_payload(body)
        if errors:
            raise ValidationError(details=errors)

        fields = self._clean_fields(body)
        fields.setdefault("status", DEFAULT_STATUS)
        fields.setdefault("color", self.default_color)
        fields.setdefault("tags", [])
        return await self.store.insert(owner_id, fields)

    async def update_idea(self, owner_id: str, idea_id: str, payload: Any) -> IdeaRecord:
        body = self._require_object(payload)
        errors = validate_idea_payload(body, partial=True)
        if errors:
            raise ValidationError(details=errors)

        try:
            key = _parse_idea_id(idea_id)
        except NotFoundError:
            raise NotFoundError(
                message="Failed to update idea or idea not found", resource_id=idea_id
            )

        patch = self._clean_fields(body, partial=True)
        record = await self.store.update(key, owner_id, patch)
        if record is None:
            raise NotFoundError(
                message="Failed to update idea or idea not found", resource_id=idea_id
            )
        return record

    async def archive_idea(self, owner_id: str, idea_id: str) -> IdeaRecord:
        record = await self.store.update(
            _parse_idea_id(idea_id), owner_id, {"status": ARCHIVED_STATUS}
        )
        if record is None:
            raise NotFoundError(resource_id=idea_id)
        logger.info("Idea %s archived", idea_id)
        return record

    async def profile_statistics(self, owner_id: str) -> Dict[str, int]:
        """Count per status (every status present, zero when unused) plus 'total'."""
        counts = await self.store.count_by_status(owner_id)
        stats = {status: counts.get(status, 0) for status in IDEA_STATUSES}
        stats["total"] = sum(counts.values())
        return stats

    @staticmethod
    def _require_object(payload: Any) -> Dict[str, Any]:
        if not isinstance(payload, dict):
            raise ValidationError(details=["Request body must be a JSON object"])
        return payload

    def _clean_fields(self, body: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
        """
        Whitelist and sanitize a validated body.

        On create, JSON null means "use the default". On update, null clears
        the nullable fields (description, image_url) and is ignored elsewhere.
        """
        fields: Dict[str, Any] = {}
        for name in WRITABLE_FIELDS:
            if name not in body:
                continue
            value = body[name]
            if value is None and not (partial and name in ("description", "image_url")):
                continue
            fields[name] = value

        if "title" in fields:
            title = sanitize_markdown(fields["title"])
            if not title:
                raise ValidationError(details=[TITLE_REQUIRED])
            fields["title"] = title

        if "description" in fields:
            description = fields["description"]
            fields["description"] = sanitize_markdown(description) if description else None

        return fields
