"""Render sanitized field markup as flat plain text.

Block-level elements (paragraphs, headings, list items, table rows, ...) each
start a new output block; everything else is inline. The caller controls the
result through a :class:`RenderConfig`, which this module treats as read-only.
"""

from __future__ import annotations

import re
import textwrap
from collections.abc import Mapping
from dataclasses import dataclass, field

from lxml import etree

from patentdoc.markup.tree import NBSP, get_attr, local_name, parse_fragment

BLOCK_TAGS = frozenset(
    {
        "p",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "li",
        "tr",
        "dt",
        "dd",
        "table",
        "ul",
        "ol",
        "dl",
    }
)

# ASCII whitespace only: the no-break space used as an indentation marker must
# survive collapsing.
_ASCII_WHITESPACE = re.compile(r"[ \t\r\n\f\v]+")
_ASCII_WHITESPACE_CHARS = " \t\r\n\f\v"


@dataclass(frozen=True)
class RenderConfig:
    """Options for plain text rendering.

    Attributes:
        max_line_width: Wrap blocks at this width (None = no wrapping). Words
            and hyphenated compounds are never split.
        collapse_whitespace: Collapse runs of ASCII whitespace to one space.
        paragraph_separator: Inserted between consecutive blocks.
        table_cell_separator: Inserted between cells of a table row.
        list_item_prefix: Prepended to each list item, e.g. "- ".
        indent_marker: Character the rewriter uses for paragraph indentation.
        indent_text: Emitted for each indentation marker.
        replacements: Maps ``tag`` or ``tag.class`` to literal text that stands
            in for the whole element, e.g. ``{"a.figref": "Patent-Figure"}``.
            ``tag.class`` keys win over bare ``tag`` keys.
        remove_tags: Elements dropped together with their content.
    """

    max_line_width: int | None = None
    collapse_whitespace: bool = True
    paragraph_separator: str = "\n"
    table_cell_separator: str = " | "
    list_item_prefix: str = ""
    indent_marker: str = NBSP
    indent_text: str = " "
    replacements: Mapping[str, str] = field(default_factory=dict)
    remove_tags: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        if self.max_line_width is not None and self.max_line_width < 1:
            raise ValueError(
                f"max_line_width must be positive or None, got {self.max_line_width}"
            )

    def replacement_for(self, element: etree._Element) -> str | None:
        """Return the configured stand-in text for *element*, if any."""
        if not self.replacements:
            return None
        name = local_name(element)
        for class_name in (get_attr(element, "class") or "").split():
            key = f"{name}.{class_name}"
            if key in self.replacements:
                return self.replacements[key]
        return self.replacements.get(name)


class _BlockBuffer:
    """Accumulates inline text and closes it off into blocks."""

    def __init__(self, collapse_whitespace: bool):
        self.collapse_whitespace = collapse_whitespace
        self.blocks: list[str] = []
        self._current: list[str] = []

    def write(self, text: str | None) -> None:
        if text:
            self._current.append(text)

    def close_block(self) -> None:
        text = "".join(self._current)
        self._current = []
        if self.collapse_whitespace:
            text = _ASCII_WHITESPACE.sub(" ", text).strip(_ASCII_WHITESPACE_CHARS)
        if text.strip(_ASCII_WHITESPACE_CHARS):
            self.blocks.append(text)


class PlainTextRenderer:
    """Flatten sanitized markup into a single text string.

    Usage::

        renderer = PlainTextRenderer(RenderConfig(max_line_width=72))
        text = renderer.render('<p>Some <bold>field</bold> text</p>')
    """

    def __init__(self, config: RenderConfig | None = None):
        self.config = config or RenderConfig()

    def render(self, markup: str | etree._Element) -> str:
        """Render a markup fragment (string or parsed root) to text."""
        root = parse_fragment(markup) if isinstance(markup, str) else markup

        buffer = _BlockBuffer(self.config.collapse_whitespace)
        self._render_content(root, buffer)
        buffer.close_block()

        blocks = [self._finish_block(block) for block in buffer.blocks]
        return self.config.paragraph_separator.join(blocks)

    def _render_content(self, element: etree._Element, buffer: _BlockBuffer) -> None:
        buffer.write(element.text)
        for child in element:
            self._render_element(child, buffer)
            buffer.write(child.tail)

    def _render_element(self, element: etree._Element, buffer: _BlockBuffer) -> None:
        name = local_name(element)
        if not name or name in self.config.remove_tags:
            return

        replacement = self.config.replacement_for(element)
        if replacement is not None:
            buffer.write(replacement)
            return

        if name == "td":
            if _has_previous_cell(element):
                buffer.write(self.config.table_cell_separator)
            self._render_content(element, buffer)
            return

        if name not in BLOCK_TAGS:
            self._render_content(element, buffer)
            return

        buffer.close_block()
        if name == "li":
            buffer.write(self.config.list_item_prefix)
        self._render_content(element, buffer)
        buffer.close_block()

    def _finish_block(self, block: str) -> str:
        # Wrap before expanding markers: textwrap does not treat the no-break
        # space as whitespace, so indentation stays attached to the first word.
        if self.config.max_line_width is not None:
            block = textwrap.fill(
                block,
                width=self.config.max_line_width,
                break_long_words=False,
                break_on_hyphens=False,
            )
        return block.replace(self.config.indent_marker, self.config.indent_text)


def _has_previous_cell(cell: etree._Element) -> bool:
    return any(
        local_name(sibling) == "td" for sibling in cell.itersiblings(preceding=True)
    )


def render_plain_text(
    markup: str | etree._Element, config: RenderConfig | None = None
) -> str:
    """Render *markup* with a one-off :class:`PlainTextRenderer`."""
    return PlainTextRenderer(config).render(markup)
