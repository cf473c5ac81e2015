"""
IdeaHub Backend — Profile Route
================================

What:  The `ai-profile` endpoint: who the key belongs to, how many ideas they
       have per status, and what the key itself may do.
How:   Same gateway as /ideas with its own rate-limit counter.
"""

import logging

from fastapi import APIRouter, Depends, Request

from ideahub.auth.api_key_auth import ApiKeyAuth
from ideahub.dependencies import get_idea_service
from ideahub.exceptions import MethodNotAllowedError
from ideahub.schemas.api_key import KeyRecord
from ideahub.schemas.idea import (
    ApiInfo,
    ErrorResponse,
    Profile,
    ProfileResponse,
    ProfileStatistics,
)
from ideahub.services.idea_service import IdeaService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Profile"])

require_api_key = ApiKeyAuth("ai-profile")


@router.get(
    "/profile",
    response_model=ProfileResponse,
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 429: {"model": ErrorResponse}},
    summary="Owner profile and idea statistics",
)
async def get_profile(
    key: KeyRecord = Depends(require_api_key),
    service: IdeaService = Depends(get_idea_service),
) -> ProfileResponse:
    """
    Example response:
        {
            "data": {
                "user_id": "user-123",
                "statistics": {"ideas": {"idea": 3, "research": 1, ..., "total": 4}},
                "api_info": {"permissions": ["read"], "rate_limit_per_hour": 1000}
            }
        }
    """
    stats = await service.profile_statistics(key.user_id)
    return ProfileResponse(
        data=Profile(
            user_id=key.user_id,
            statistics=ProfileStatistics(ideas=stats),
            api_info=ApiInfo(
                permissions=key.permissions,
                rate_limit_per_hour=key.rate_limit_per_hour,
            ),
        )
    )


@router.api_route("/profile", methods=["POST", "PUT", "DELETE", "PATCH"], include_in_schema=False)
async def profile_fallback(
    request: Request,
    key: KeyRecord = Depends(require_api_key),
) -> None:
    raise MethodNotAllowedError(request.method)
