"""Parse and clean formatted text fields (description, abstract, claims).

Every entry point runs the same pipeline on a fresh tree::

    raw markup -> parse -> structural rewrites (math escaped) -> serialize
               -> sanitize -> { markup | plain text | paragraphs } -> restore math

Nothing is cached between calls; a :class:`FormattedText` instance only holds
read-only configuration and may be shared across threads.
"""

from __future__ import annotations

import dataclasses
import logging

from patentdoc.config import Settings, settings
from patentdoc.markup.mathml import MathEscaper
from patentdoc.markup.paragraphs import (
    LEVEL_ATTRIBUTE,
    ParagraphFragment,
    split_paragraphs,
)
from patentdoc.markup.plaintext import PlainTextRenderer, RenderConfig
from patentdoc.markup.sanitizer import sanitize
from patentdoc.markup.whitelist import DEFAULT_WHITELIST, Whitelist
from patentdoc.sgml.rewriter import StructuralRewriter

logger = logging.getLogger(__name__)


class FormattedText:
    """Normalize legacy field markup into sanitized markup, text or paragraphs.

    Usage::

        processor = FormattedText()
        html = processor.get_simple_html(raw)
        text = processor.get_plain_text(raw, RenderConfig(max_line_width=80))
        paragraphs = processor.get_paragraph_text(raw)
    """

    def __init__(
        self,
        whitelist: Whitelist = DEFAULT_WHITELIST,
        config: Settings = settings,
        rewriter: StructuralRewriter | None = None,
    ):
        self.whitelist = whitelist
        self.config = config
        self.rewriter = rewriter or StructuralRewriter(
            table_reference_text=config.table_reference_text,
            indent_marker=config.indent_marker,
        )

    def _clean(
        self, raw_text: str, whitelist: Whitelist | None = None
    ) -> tuple[str, MathEscaper]:
        """Rewrite and sanitize; math is still tokenized in the result."""
        math = MathEscaper()
        rewritten = self.rewriter.rewrite_markup(raw_text, math)
        return sanitize(rewritten, whitelist or self.whitelist), math

    def default_render_config(self) -> RenderConfig:
        """Render configuration used when the caller does not pass one."""
        return RenderConfig(
            max_line_width=self.config.max_line_width,
            indent_marker=self.config.indent_marker,
        )

    def get_simple_html(self, raw_text: str) -> str:
        """Return sanitized markup with math restored.

        Raises:
            MarkupParseError: If *raw_text* is not well-formed.
            MathRoundTripError: If an escaped math element cannot be restored.
        """
        cleaned, math = self._clean(raw_text)
        return math.restore(cleaned, expect_all=True)

    def get_plain_text(
        self, raw_text: str, render_config: RenderConfig | None = None
    ) -> str:
        """Return the field flattened to plain text, with math restored.

        Args:
            raw_text: Raw legacy markup.
            render_config: Rendering options; see :meth:`default_render_config`.
        """
        cleaned, math = self._clean(raw_text)
        renderer = PlainTextRenderer(render_config or self.default_render_config())
        return math.restore(renderer.render(cleaned))

    def get_paragraphs(self, raw_text: str) -> list[ParagraphFragment]:
        """Return one fragment per output paragraph, in document order."""
        # Levels are read from lvl, never from the leading markers.
        whitelist = self.whitelist.extended(attributes=[LEVEL_ATTRIBUTE])
        cleaned, math = self._clean(raw_text, whitelist)
        fragments = [
            dataclasses.replace(fragment, markup=math.restore(fragment.markup))
            for fragment in split_paragraphs(cleaned)
        ]
        logger.debug(f"Split field into {len(fragments)} paragraph(s)")
        return fragments

    def get_paragraph_text(self, raw_text: str) -> list[str]:
        """Return the inner markup of each output paragraph."""
        return [fragment.markup for fragment in self.get_paragraphs(raw_text)]
