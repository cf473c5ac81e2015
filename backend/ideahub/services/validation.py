"""
IdeaHub Backend — Idea Payload Validation
==========================================

What:  Pure validation of an incoming idea payload.
Why:   Clients (often AI assistants) fix their request in one round trip only
       if they see every problem at once, so rules are independent and all
       violations are collected.
How:   `validate_idea_payload()` returns a list of fixed message strings;
       an empty list means the payload is valid.

Rules:
    title        required (unless partial and absent), string, non-blank, ≤ 500 chars
    description  if present: string
    status       if present: idea | research | progress | launched | archived
    tags         if present: list of strings
    color        if present: #RRGGBB (hex, case-insensitive)

    JSON null on an optional field counts as "absent".
"""

import re
from typing import Any, List, Mapping

from ideahub.models.idea import IDEA_STATUSES

MAX_TITLE_LENGTH = 500
HEX_COLOR_RE = re.compile(r"#[0-9A-Fa-f]{6}")

TITLE_REQUIRED = "Title is required and must be a non-empty string"
TITLE_TOO_LONG = f"Title must be at most {MAX_TITLE_LENGTH} characters"
DESCRIPTION_NOT_STRING = "Description must be a string"
STATUS_INVALID = "Status must be one of: " + ", ".join(IDEA_STATUSES)
TAGS_INVALID = "Tags must be an array of strings"
COLOR_INVALID = "Color must be a valid hex color code"
IMAGE_URL_NOT_STRING = "Image URL must be a string"


def validate_idea_payload(payload: Mapping[str, Any], partial: bool = False) -> List[str]:
    """
    Validate an idea payload.

    Args:
        payload: Decoded JSON object from the request body.
        partial: True for updates — only fields present in the payload are checked.

    Returns:
        Every violated rule, in a fixed order. Empty list when valid.
    """
    errors: List[str] = []

    if not partial or "title" in payload:
        title = payload.get("title")
        if not isinstance(title, str) or not title.strip():
            errors.append(TITLE_REQUIRED)
        elif len(title) > MAX_TITLE_LENGTH:
            errors.append(TITLE_TOO_LONG)

    description = payload.get("description")
    if description is not None and not isinstance(description, str):
        errors.append(DESCRIPTION_NOT_STRING)

    status = payload.get("status")
    if status is not None and status not in IDEA_STATUSES:
        errors.append(STATUS_INVALID)

    tags = payload.get("tags")
    if tags is not None and (
        not isinstance(tags, list) or not all(isinstance(tag, str) for tag in tags)
    ):
        errors.append(TAGS_INVALID)

    color = payload.get("color")
    if color is not None and (not isinstance(color, str) or not HEX_COLOR_RE.fullmatch(color)):
        errors.append(COLOR_INVALID)

    image_url = payload.get("image_url")
    if image_url is not None and not isinstance(image_url, str):
        errors.append(IMAGE_URL_NOT_STRING)

    return errors
