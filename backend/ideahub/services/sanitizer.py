"""
IdeaHub Backend — Markdown Content Sanitizer
=============================================

What:  Strips executable markup from free-text fields (title, description).
Why:   Descriptions are markdown rendered by the web UI. Stored text must not
       carry script blocks, embedding/form tags or script/data URLs.
How:   Regex passes applied in a fixed order, repeated until the text stops
       changing, then a size ceiling and a trim.

Passes:
    1. <script ...> ... </script> blocks, content included
    2. Opening/closing tags of script, iframe, object, embed, form, input,
       textarea, button (the enclosed content is kept)
    3. Every `javascript:` and `data:` substring
    4. Byte ceiling on the result (ContentTooLargeError, never truncation)
    5. Trim surrounding whitespace

Passes 1-3 loop to a fixed point. A single pass would turn
"javajavascript:script:" into "javascript:"; looping removes those
reassembled tokens too and makes sanitize_markdown idempotent.
"""

import re
from typing import Optional

from ideahub.config import settings
from ideahub.exceptions import ContentTooLargeError

DANGEROUS_TAGS = (
    "script",
    "iframe",
    "object",
    "embed",
    "form",
    "input",
    "textarea",
    "button",
)

_SCRIPT_BLOCK_RE = re.compile(r"<script\b[^>]*>.*?</script\s*>", re.IGNORECASE | re.DOTALL)
_DANGEROUS_TAG_RE = re.compile(
    r"</?(?:" + "|".join(DANGEROUS_TAGS) + r")\b[^>]*>",
    re.IGNORECASE,
)
_UNSAFE_SCHEME_RE = re.compile(r"javascript:|data:", re.IGNORECASE)


def _strip_once(text: str) -> str:
    text = _SCRIPT_BLOCK_RE.sub("", text)
    text = _DANGEROUS_TAG_RE.sub("", text)
    return _UNSAFE_SCHEME_RE.sub("", text)


def sanitize_markdown(text: Optional[str], max_bytes: Optional[int] = None) -> str:
    """
    Sanitize a markdown string.

    Args:
        text: Raw text; None or "" yields "".
        max_bytes: UTF-8 byte ceiling; defaults to settings.max_content_bytes.

    Returns:
        The cleaned, trimmed text.

    Raises:
        ContentTooLargeError: the cleaned text exceeds the ceiling.
    """
    if not text:
        return ""

    limit = settings.max_content_bytes if max_bytes is None else max_bytes

    previous = None
    while text != previous:
        previous = text
        text = _strip_once(text)

    size = len(text.encode("utf-8"))
    if size > limit:
        raise ContentTooLargeError(limit_bytes=limit, actual_bytes=size)

    return text.strip()
