"""Markdown rendering for comment bodies.

Rendering happens once per create or edit; the stored HTML is served as-is on
reads. Raw HTML in the source is escaped, never passed through.
"""

from abc import ABC, abstractmethod

import markdown2
import structlog

from marginalia.core.errors import RenderError


logger = structlog.get_logger(__name__)

DEFAULT_EXTRAS = ["fenced-code-blocks", "strike", "tables"]


class Renderer(ABC):
    """Turns author markdown into safe HTML."""

    @abstractmethod
    def render(self, raw_text: str) -> str:
        """Render ``raw_text``.

        Raises:
            RenderError: If rendering fails
        """


class MarkdownRenderer(Renderer):
    """markdown2 renderer with HTML escaping."""

    def __init__(self, extras: list[str] | None = None):
        self.extras = list(DEFAULT_EXTRAS if extras is None else extras)

    def render(self, raw_text: str) -> str:
        try:
            html = markdown2.markdown(raw_text, safe_mode="escape", extras=self.extras)
        except Exception as e:
            logger.exception("markdown_render_failed", length=len(raw_text))
            raise RenderError(f"Failed to render comment: {e}") from e
        return str(html).strip()
