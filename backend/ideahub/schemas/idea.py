"""
IdeaHub Backend — Pydantic Response Schemas
============================================

What:  Pydantic models defining what the API returns.
Why:   Automatic serialization and OpenAPI doc generation. They are also the
       record type every IdeaStore implementation returns, so SQL stores and
       in-memory fakes are interchangeable.

Request bodies are deliberately NOT Pydantic models: the validator must report
every violated rule as a plain message list with a 400, which FastAPI's
automatic 422 would not do. See services/validation.py.
"""

import uuid
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class IdeaRecord(BaseModel):
    """Full representation of one idea, as stored and as returned."""

    id: uuid.UUID = Field(description="Unique idea identifier (UUID)")
    user_id: str = Field(description="Owning principal")
    title: str = Field(description="Sanitized title (max 500 chars)")
    description: Optional[str] = Field(default=None, description="Sanitized markdown description")
    status: str = Field(description="idea, research, progress, launched or archived")
    tags: List[str] = Field(default_factory=list)
    color: str = Field(description="Hex color #RRGGBB")
    image_url: Optional[str] = Field(default=None)
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class IdeaEnvelope(BaseModel):
    """Single-record response: GET/PUT /ideas/{id}, POST /ideas."""
    data: IdeaRecord


class ArchivedIdeaEnvelope(BaseModel):
    """DELETE /ideas/{id} response: the archived record plus a confirmation."""
    data: IdeaRecord
    message: str = "Idea archived successfully"


class ListMeta(BaseModel):
    limit: int = Field(description="Effective page size after clamping to [1, 100]")
    offset: int = Field(description="Number of records skipped")
    count: int = Field(description="Number of records in this page")


class IdeaListResponse(BaseModel):
    """
    Response for GET /ideas.

    `meta.count` is the size of this page, not a total: the store is asked for
    one slice only and no COUNT query is issued.
    """
    data: List[IdeaRecord]
    meta: ListMeta


class ProfileStatistics(BaseModel):
    ideas: Dict[str, int] = Field(description="Idea count per status, plus 'total'")


class ApiInfo(BaseModel):
    permissions: List[str]
    rate_limit_per_hour: int


class Profile(BaseModel):
    user_id: str
    statistics: ProfileStatistics
    api_info: ApiInfo


class ProfileResponse(BaseModel):
    data: Profile


class ErrorResponse(BaseModel):
    """
    Error body shared by every endpoint.

    Example:
        {"error": "Validation failed", "details": ["Title is required and must be a non-empty string"]}
    """
    error: str = Field(description="Human-readable error description")
    details: Optional[List[str]] = Field(default=None, description="Every violated validation rule")


class HealthResponse(BaseModel):
    status: str = Field(description="healthy or unhealthy")
    version: str
    database: str = Field(description="connected or disconnected")
    uptime_seconds: float
