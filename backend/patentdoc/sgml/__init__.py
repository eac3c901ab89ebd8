"""Legacy (SGML-era) patent field text."""

from patentdoc.sgml.formatted_text import FormattedText
from patentdoc.sgml.rewriter import REWRITE_RULES, RuleName, StructuralRewriter

__all__ = ["FormattedText", "StructuralRewriter", "REWRITE_RULES", "RuleName"]
