"""Split sanitized field markup into per-paragraph fragments."""

from __future__ import annotations

from dataclasses import dataclass

from lxml import etree

from patentdoc.markup.tree import get_attr, parse_fragment, select, to_html

PARAGRAPH_TAG = "p"

# Normalized by the structural rewriter; must survive sanitizing for the
# levels to be read back.
LEVEL_ATTRIBUTE = "lvl"


@dataclass(frozen=True)
class ParagraphFragment:
    """Inner markup of one paragraph plus its nesting level.

    Attributes:
        markup: Content of the ``<p>`` element, without its own tags.
        level: Nesting level from the paragraph's ``lvl`` attribute.
    """

    markup: str
    level: int = 0


def paragraph_level(paragraph: etree._Element) -> int:
    """Return the nesting level recorded on *paragraph* (0 when absent)."""
    raw = get_attr(paragraph, LEVEL_ATTRIBUTE)
    if raw is None:
        return 0
    try:
        return max(int(raw.strip()), 0)
    except ValueError:
        return 0


def split_paragraphs(markup: str) -> list[ParagraphFragment]:
    """Return one fragment per ``<p>`` element, in document order.

    Args:
        markup: Sanitized markup, with ``lvl`` kept on paragraphs.

    Returns:
        The fragments; an empty list when there are no paragraphs.

    Raises:
        MarkupParseError: If *markup* is not well-formed.
    """
    root = parse_fragment(markup)
    return [
        ParagraphFragment(markup=to_html(paragraph), level=paragraph_level(paragraph))
        for paragraph in select(root, PARAGRAPH_TAG)
    ]
