"""
IdeaHub Backend — Markdown Sanitizer Unit Tests
================================================

What:  Tests for sanitize_markdown().

What we test:
    ✅ Script blocks removed with their content
    ✅ Dangerous tags removed, enclosed text kept
    ✅ javascript: / data: stripped, including reassembled fragments
    ✅ Idempotence
    ✅ Byte ceiling raises instead of truncating
    ✅ Ordinary markdown untouched apart from trimming
"""

import pytest

from ideahub.exceptions import ContentTooLargeError, ValidationError
from ideahub.services.sanitizer import sanitize_markdown


class TestStripping:

    def test_plain_markdown_unchanged(self):
        text = "# Plan\n\n- **bold** item\n- [link](https://example.com)"
        assert sanitize_markdown(text) == text

    def test_trims_surrounding_whitespace(self):
        assert sanitize_markdown("  hello \n") == "hello"

    @pytest.mark.parametrize("value", [None, ""])
    def test_empty_input(self, value):
        assert sanitize_markdown(value) == ""

    def test_script_block_removed_with_content(self):
        text = "before<script type='text/javascript'>alert(1)</script>after"
        assert sanitize_markdown(text) == "beforeafter"

    def test_multiline_script_block(self):
        text = "a<SCRIPT>\nvar x = 1;\nsteal(x);\n</Script >b"
        assert sanitize_markdown(text) == "ab"

    @pytest.mark.parametrize("tag", ["iframe", "object", "embed", "form", "input", "textarea", "button"])
    def test_dangerous_tags_removed_content_kept(self, tag):
        text = f"<{tag} class='x'>inner</{tag}>"
        assert sanitize_markdown(text) == "inner"

    def test_harmless_tags_kept(self):
        text = "<b>bold</b> <em>em</em>"
        assert sanitize_markdown(text) == text

    def test_tag_name_prefix_is_not_a_match(self):
        """<formula> is not <form>."""
        assert sanitize_markdown("<formula>x</formula>") == "<formula>x</formula>"

    def test_unsafe_schemes_removed_case_insensitive(self):
        text = "[a](JavaScript:alert(1)) ![b](data:image/png;base64,AAAA)"
        result = sanitize_markdown(text)
        assert "javascript:" not in result.lower()
        assert "data:" not in result.lower()
        assert result == "[a](alert(1)) ![b](image/png;base64,AAAA)"


class TestFixedPoint:

    def test_reassembled_scheme_is_removed(self):
        """One pass leaves 'javascript:'; looping removes it too."""
        assert sanitize_markdown("javajavascript:script:alert(1)") == "alert(1)"

    def test_reassembled_script_tag_is_removed(self):
        result = sanitize_markdown("<scr<script>x</script>ipt>alert(1)</script>")
        assert "<script" not in result.lower()

    @pytest.mark.parametrize("text", [
        "javajavascript:script:x",
        "<scr<script></script>ipt>bad</script>",
        "  <iframe>keep</iframe> data:text ",
        "plain text",
    ])
    def test_idempotent(self, text):
        once = sanitize_markdown(text)
        assert sanitize_markdown(once) == once


class TestSizeCeiling:

    def test_exactly_at_limit_passes(self):
        assert sanitize_markdown("a" * 1024, max_bytes=1024) == "a" * 1024

    def test_over_limit_raises(self):
        with pytest.raises(ContentTooLargeError) as exc_info:
            sanitize_markdown("a" * 1025, max_bytes=1024)
        assert exc_info.value.context["actual_bytes"] == 1025

    def test_limit_counts_utf8_bytes(self):
        """Two-byte characters: 600 chars are 1200 bytes."""
        with pytest.raises(ContentTooLargeError):
            sanitize_markdown("é" * 600, max_bytes=1024)

    def test_limit_applies_after_stripping(self):
        text = "<script>" + "x" * 2000 + "</script>ok"
        assert sanitize_markdown(text, max_bytes=1024) == "ok"

    def test_too_large_is_a_validation_error(self):
        """Reported through the 400 handler like any other bad input."""
        assert issubclass(ContentTooLargeError, ValidationError)

    def test_default_limit_message(self):
        err = ContentTooLargeError(limit_bytes=10_485_760)
        assert err.message == "Content too large (max 10MB)"
