"""Normalization of legacy patent field text (description, abstract, claims)."""

from patentdoc.markup.mathml import MathRoundTripError
from patentdoc.markup.paragraphs import ParagraphFragment
from patentdoc.markup.plaintext import RenderConfig
from patentdoc.markup.tree import MarkupParseError
from patentdoc.markup.whitelist import DEFAULT_WHITELIST, Whitelist
from patentdoc.sgml.formatted_text import FormattedText

__all__ = [
    "FormattedText",
    "RenderConfig",
    "ParagraphFragment",
    "Whitelist",
    "DEFAULT_WHITELIST",
    # Errors
    "MarkupParseError",
    "MathRoundTripError",
]
