"""Tests for markdown rendering."""

from unittest.mock import patch

import pytest

from marginalia.comments.rendering import MarkdownRenderer
from marginalia.core.errors import RenderError


def test_renders_markdown() -> None:
    html = MarkdownRenderer().render("**bold** and *italic*")
    assert "<strong>bold</strong>" in html
    assert "<em>italic</em>" in html


def test_raw_html_is_escaped() -> None:
    html = MarkdownRenderer().render("<script>alert(1)</script>")
    assert "<script>" not in html
    assert "&lt;script&gt;" in html


def test_renderer_failure_is_wrapped() -> None:
    target = "marginalia.comments.rendering.markdown2.markdown"
    with patch(target, side_effect=ValueError("boom")), pytest.raises(RenderError):
        MarkdownRenderer().render("text")
