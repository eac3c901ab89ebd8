"""Markup building blocks: lxml wiring, sanitizing, math escaping, rendering."""

from patentdoc.markup.mathml import MathEscaper, MathRoundTripError
from patentdoc.markup.paragraphs import ParagraphFragment, split_paragraphs
from patentdoc.markup.plaintext import PlainTextRenderer, RenderConfig
from patentdoc.markup.sanitizer import sanitize
from patentdoc.markup.tree import MarkupParseError, parse_fragment
from patentdoc.markup.whitelist import DEFAULT_WHITELIST, Whitelist

__all__ = [
    "MathEscaper",
    "MathRoundTripError",
    "ParagraphFragment",
    "split_paragraphs",
    "PlainTextRenderer",
    "RenderConfig",
    "sanitize",
    "MarkupParseError",
    "parse_fragment",
    "DEFAULT_WHITELIST",
    "Whitelist",
]
