"""
IdeaHub Backend — Idea Route Handlers
======================================

What:  The `ai-ideas` endpoint: list, read, create, update and archive ideas.
How:   Every handler depends on `require_api_key`, so by the time a handler
       body runs the key is valid, allowed to use the verb and within its
       hourly quota. Handlers then delegate to IdeaService and wrap the
       result in the response envelope.
Who:   AI assistants and other API clients holding an `iah_` key.

Routes:
    GET    /ideas         list (status, limit, offset, search)
    GET    /ideas/{id}    one idea
    POST   /ideas         create                        → 201
    PUT    /ideas/{id}    partial update
    DELETE /ideas/{id}    archive (logical delete)
    PUT    /ideas         400 "Idea ID required for updates"
    DELETE /ideas         400 "Idea ID required for deletion"
    other verbs           405 "Method not allowed" (after authentication)

Bodies are read as raw JSON instead of a Pydantic model so that the
validator can report every rule violation with a 400.
"""

import json
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request

from ideahub.auth.api_key_auth import ApiKeyAuth
from ideahub.dependencies import get_idea_service
from ideahub.exceptions import MethodNotAllowedError, ValidationError
from ideahub.schemas.api_key import KeyRecord
from ideahub.schemas.idea import (
    ArchivedIdeaEnvelope,
    ErrorResponse,
    IdeaEnvelope,
    IdeaListResponse,
    ListMeta,
)
from ideahub.services.idea_service import IdeaService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Ideas"])

require_api_key = ApiKeyAuth("ai-ideas")

_GATEWAY_ERRORS = {
    401: {"description": "Missing, malformed, unknown or inactive API key", "model": ErrorResponse},
    403: {"description": "Key lacks the required capability", "model": ErrorResponse},
    429: {"description": "Hourly quota used up (see Retry-After)", "model": ErrorResponse},
}


async def _read_json(request: Request) -> Any:
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError(message="Invalid JSON body")


@router.get(
    "/ideas",
    response_model=IdeaListResponse,
    responses={400: {"model": ErrorResponse}, **_GATEWAY_ERRORS},
    summary="List the caller's ideas",
    description=(
        "Most recently updated first. `limit` is clamped to 1..100 (default 50); "
        "`search` matches title or description, case-insensitively."
    ),
)
async def list_ideas(
    status: Optional[str] = Query(default=None, description="idea, research, progress, launched or archived"),
    limit: Optional[str] = Query(default=None, description="Page size, 1..100"),
    offset: Optional[str] = Query(default=None, description="Records to skip"),
    search: Optional[str] = Query(default=None, description="Substring of title or description"),
    key: KeyRecord = Depends(require_api_key),
    service: IdeaService = Depends(get_idea_service),
) -> IdeaListResponse:
    # limit/offset arrive as raw strings so a non-integer is a 400, not a 422
    records, query = await service.list_ideas(
        key.user_id, status=status, limit=limit, offset=offset, search=search
    )
    return IdeaListResponse(
        data=records,
        meta=ListMeta(limit=query.limit, offset=query.offset, count=len(records)),
    )


@router.get(
    "/ideas/{idea_id}",
    response_model=IdeaEnvelope,
    responses={404: {"model": ErrorResponse}, **_GATEWAY_ERRORS},
    summary="Get one idea",
)
async def get_idea(
    idea_id: str,
    key: KeyRecord = Depends(require_api_key),
    service: IdeaService = Depends(get_idea_service),
) -> IdeaEnvelope:
    return IdeaEnvelope(data=await service.get_idea(key.user_id, idea_id))


@router.post(
    "/ideas",
    status_code=201,
    response_model=IdeaEnvelope,
    responses={400: {"model": ErrorResponse}, **_GATEWAY_ERRORS},
    summary="Create an idea",
    description=(
        "Body: {title, description?, status?, tags?, color?, image_url?}. "
        "Title and description are sanitized before storage."
    ),
)
async def create_idea(
    request: Request,
    key: KeyRecord = Depends(require_api_key),
    service: IdeaService = Depends(get_idea_service),
) -> IdeaEnvelope:
    payload = await _read_json(request)
    record = await service.create_idea(key.user_id, payload)
    return IdeaEnvelope(data=record)


@router.put(
    "/ideas/{idea_id}",
    response_model=IdeaEnvelope,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, **_GATEWAY_ERRORS},
    summary="Update an idea",
    description="Only the fields present in the body are validated and changed.",
)
async def update_idea(
    idea_id: str,
    request: Request,
    key: KeyRecord = Depends(require_api_key),
    service: IdeaService = Depends(get_idea_service),
) -> IdeaEnvelope:
    payload = await _read_json(request)
    record = await service.update_idea(key.user_id, idea_id, payload)
    return IdeaEnvelope(data=record)


@router.delete(
    "/ideas/{idea_id}",
    response_model=ArchivedIdeaEnvelope,
    responses={404: {"model": ErrorResponse}, **_GATEWAY_ERRORS},
    summary="Archive an idea",
    description="Logical delete: the status becomes 'archived' and the record is returned.",
)
async def archive_idea(
    idea_id: str,
    key: KeyRecord = Depends(require_api_key),
    service: IdeaService = Depends(get_idea_service),
) -> ArchivedIdeaEnvelope:
    record = await service.archive_idea(key.user_id, idea_id)
    return ArchivedIdeaEnvelope(data=record)


# ── Fallbacks ─────────────────────────────────────────────────────────────
# Authenticated like every other route, so an anonymous caller gets a 401
# rather than learning which verbs exist.

@router.api_route("/ideas", methods=["PUT", "DELETE", "PATCH"], include_in_schema=False)
async def ideas_collection_fallback(
    request: Request,
    key: KeyRecord = Depends(require_api_key),
) -> None:
    if request.method == "PUT":
        raise ValidationError(message="Idea ID required for updates")
    if request.method == "DELETE":
        raise ValidationError(message="Idea ID required for deletion")
    raise MethodNotAllowedError(request.method)


@router.api_route("/ideas/{idea_id}", methods=["POST", "PATCH"], include_in_schema=False)
async def ideas_item_fallback(
    idea_id: str,
    request: Request,
    key: KeyRecord = Depends(require_api_key),
) -> None:
    raise MethodNotAllowedError(request.method)
