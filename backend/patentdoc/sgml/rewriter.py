"""Structural rewrites applied to legacy formatted-text fields.

Description, abstract and claim fields of the legacy (SGML-era) patent
schema use their own tag vocabulary: ``<PARA LVL="1">``, ``<FGREF>``,
``<CLREF>``, ``<CLMSTEP>`` and friends. Before the sanitizer reduces the
markup to its small HTML-like whitelist, these rules reshape the tree so that
the information the whitelist cannot express survives as allowed tags,
classes or plain text.

The rules run in a fixed order and later rules rely on the shapes earlier ones
produce (e.g. drawing-description pruning looks for ``<a class="figref">``,
which only exists once reference linking has run).
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from lxml import etree

from patentdoc.markup.mathml import MathEscaper
from patentdoc.markup.tree import (
    NBSP,
    add_class,
    get_attr,
    has_class,
    local_name,
    parse_fragment,
    prepend_text,
    remove,
    replace_with_text,
    select,
    set_attr,
    to_xml,
    unwrap,
)

logger = logging.getLogger(__name__)

# Legacy schema vocabulary
PARAGRAPH = "PARA"
PARAGRAPH_LEVEL_ATTR = "LVL"
FIGURE_REF = "FGREF"
CLAIM_REF = "CLREF"
DRAWING_DESCRIPTION = "DRWDESC"
BODY_TEXT = "BTEXT"
RELATED_APPLICATION = "RELAPP"
HEADING = "H"
TABLE_REF = "TBLREF"
CLAIM = "CLM"
CLAIM_STEP = "CLMSTEP"
SUBSCRIPT = "SB"
SUPERSCRIPT = "SP"

# Output vocabulary
LINK_TAG = "a"
HEADING_TAG = "h2"
LIST_ITEM_TAG = "li"
PARAGRAPH_TAG = "p"
FIGREF_CLASS = "figref"
CLAIM_CLASS = "claim"

SUBSCRIPT_MARKER = "_"
SUPERSCRIPT_MARKER = "^"

# Serialized legacy text sometimes carries escaped newlines.
_LITERAL_NEWLINE = "\\n"


class RuleName(enum.StrEnum):
    """Rewrite rules, in the order they are applied."""

    INDENTATION = "indentation"
    REFERENCE_LINKING = "reference_linking"
    DRAWING_DESCRIPTION = "drawing_description"
    RELATED_APPLICATIONS = "related_applications"
    HEADINGS = "headings"
    TABLE_REFERENCES = "table_references"
    MATH = "math"
    CLAIM_STRUCTURE = "claim_structure"
    PARAGRAPHS = "paragraphs"
    SUB_SUPERSCRIPT = "sub_superscript"


@dataclass
class RewriteContext:
    """Per-invocation values shared by the rules."""

    math: MathEscaper
    table_reference_text: str = "Table-Reference"
    indent_marker: str = NBSP


@dataclass(frozen=True)
class RewriteRule:
    """One named tree rewrite."""

    name: RuleName
    apply: Callable[[etree._Element, RewriteContext], None]
    description: str


# =============================================================================
# Rules
# =============================================================================


def paragraph_level(paragraph: etree._Element) -> int:
    """Read the ``LVL`` nesting level of a legacy paragraph.

    A missing attribute means level 0. A value that is not a non-negative
    integer is logged and also treated as level 0.
    """
    raw = get_attr(paragraph, PARAGRAPH_LEVEL_ATTR)
    if raw is None:
        return 0
    try:
        level = int(raw.strip())
    except ValueError:
        level = -1
    if level < 0:
        logger.warning(f"Invalid paragraph level {raw!r}; treating as level 0")
        return 0
    return level


def annotate_indentation(root: etree._Element, context: RewriteContext) -> None:
    """Prepend ``level + 1`` indentation markers to every paragraph.

    A present ``LVL`` is rewritten to the level actually used, so later stages
    read the level from the attribute rather than from the markers.
    """
    for paragraph in select(root, PARAGRAPH):
        level = paragraph_level(paragraph)
        if get_attr(paragraph, PARAGRAPH_LEVEL_ATTR) is not None:
            set_attr(paragraph, PARAGRAPH_LEVEL_ATTR, str(level))
        prepend_text(paragraph, context.indent_marker * (level + 1))


def link_references(root: etree._Element, context: RewriteContext) -> None:
    """Turn figure and claim cross-references into classed links."""
    for ref in select(root, FIGURE_REF):
        ref.tag = LINK_TAG
        add_class(ref, FIGREF_CLASS)
    for ref in select(root, CLAIM_REF):
        ref.tag = LINK_TAG
        add_class(ref, CLAIM_CLASS)


def _is_first_element_child(element: etree._Element) -> bool:
    return not any(
        isinstance(sibling.tag, str) for sibling in element.itersiblings(preceding=True)
    )


def _has_figure_reference(element: etree._Element) -> bool:
    for node in element.iter():
        name = local_name(node)
        if name == FIGURE_REF.lower():
            return True
        if name == LINK_TAG and has_class(node, FIGREF_CLASS):
            return True
    return False


def prune_drawing_description(root: etree._Element, context: RewriteContext) -> None:
    """Drop a leading drawing-description paragraph with no figure reference.

    The first paragraph of the brief description of the drawings is usually
    boilerplate ("The invention will be described with reference to the
    drawings"), with nothing to link to.
    """
    candidates: list[etree._Element] = []
    for description in select(root, DRAWING_DESCRIPTION):
        for body in select(description, BODY_TEXT):
            for paragraph in select(body, PARAGRAPH):
                if paragraph not in candidates and _is_first_element_child(paragraph):
                    candidates.append(paragraph)

    # Candidates are collected first so that removing one paragraph does not
    # promote its sibling to "first child".
    for paragraph in candidates:
        if _has_figure_reference(paragraph):
            continue
        text = " ".join("".join(paragraph.itertext()).split())
        logger.info(
            f"Removing drawing description paragraph without figure reference: "
            f"{text!r}"
        )
        remove(paragraph)


def remove_related_applications(root: etree._Element, context: RewriteContext) -> None:
    """Remove related-application boilerplate, which is extracted elsewhere."""
    for element in select(root, RELATED_APPLICATION):
        remove(element)


def normalize_headings(root: etree._Element, context: RewriteContext) -> None:
    for heading in select(root, HEADING):
        heading.tag = HEADING_TAG


def substitute_table_references(root: etree._Element, context: RewriteContext) -> None:
    """Replace table references with placeholder text; tables are not kept."""
    for ref in select(root, TABLE_REF):
        replace_with_text(ref, context.table_reference_text)


def escape_math(root: etree._Element, context: RewriteContext) -> None:
    context.math.escape(root)


def flatten_claims(root: etree._Element, context: RewriteContext) -> None:
    """Unwrap paragraphs directly inside claims and turn claim steps into items."""
    for claim in select(root, CLAIM):
        for child in list(claim):
            if local_name(child) == PARAGRAPH.lower():
                unwrap(child)
    for claim in select(root, CLAIM):
        for step in select(claim, CLAIM_STEP):
            step.tag = LIST_ITEM_TAG


def rename_paragraphs(root: etree._Element, context: RewriteContext) -> None:
    for paragraph in select(root, PARAGRAPH):
        paragraph.tag = PARAGRAPH_TAG


def mark_sub_superscripts(root: etree._Element, context: RewriteContext) -> None:
    """Prefix sub/superscript content with ``_`` / ``^``.

    The output vocabulary has no sub/superscript tags, so "H<SB>2</SB>O"
    comes out as "H_2O".
    """
    for element in select(root, SUBSCRIPT):
        prepend_text(element, SUBSCRIPT_MARKER)
    for element in select(root, SUPERSCRIPT):
        prepend_text(element, SUPERSCRIPT_MARKER)


REWRITE_RULES: list[RewriteRule] = [
    RewriteRule(
        name=RuleName.INDENTATION,
        apply=annotate_indentation,
        description="Prepend LVL + 1 indentation markers to each PARA",
    ),
    RewriteRule(
        name=RuleName.REFERENCE_LINKING,
        apply=link_references,
        description='FGREF -> a.figref, CLREF -> a.claim',
    ),
    RewriteRule(
        name=RuleName.DRAWING_DESCRIPTION,
        apply=prune_drawing_description,
        description="Drop first DRWDESC paragraph lacking a figure reference",
    ),
    RewriteRule(
        name=RuleName.RELATED_APPLICATIONS,
        apply=remove_related_applications,
        description="Remove RELAPP sections",
    ),
    RewriteRule(
        name=RuleName.HEADINGS,
        apply=normalize_headings,
        description="H -> h2",
    ),
    RewriteRule(
        name=RuleName.TABLE_REFERENCES,
        apply=substitute_table_references,
        description="TBLREF -> placeholder text",
    ),
    RewriteRule(
        name=RuleName.MATH,
        apply=escape_math,
        description="Replace math subtrees with span.math tokens",
    ),
    RewriteRule(
        name=RuleName.CLAIM_STRUCTURE,
        apply=flatten_claims,
        description="Unwrap CLM > PARA, CLMSTEP -> li",
    ),
    RewriteRule(
        name=RuleName.PARAGRAPHS,
        apply=rename_paragraphs,
        description="PARA -> p",
    ),
    RewriteRule(
        name=RuleName.SUB_SUPERSCRIPT,
        apply=mark_sub_superscripts,
        description="Prefix SB content with _ and SP content with ^",
    ),
]


def get_rule(name: RuleName | str) -> RewriteRule:
    """Look up a rule in :data:`REWRITE_RULES` by name."""
    for rule in REWRITE_RULES:
        if rule.name == name:
            return rule
    raise KeyError(f"Unknown rewrite rule: {name}")


class StructuralRewriter:
    """Apply the rewrite rules, in order, to a legacy field fragment.

    Usage::

        rewriter = StructuralRewriter()
        math = MathEscaper()
        markup = rewriter.rewrite_markup('<PARA LVL="1">...</PARA>', math)
    """

    def __init__(
        self,
        rules: Sequence[RewriteRule] = REWRITE_RULES,
        table_reference_text: str = "Table-Reference",
        indent_marker: str = NBSP,
    ):
        self.rules = tuple(rules)
        self.table_reference_text = table_reference_text
        self.indent_marker = indent_marker

    def rewrite(self, root: etree._Element, math: MathEscaper) -> None:
        """Rewrite the tree under *root* in place."""
        context = RewriteContext(
            math=math,
            table_reference_text=self.table_reference_text,
            indent_marker=self.indent_marker,
        )
        for rule in self.rules:
            rule.apply(root, context)

    def rewrite_markup(self, raw_text: str, math: MathEscaper) -> str:
        """Parse, rewrite and serialize a fragment.

        Args:
            raw_text: Raw legacy markup.
            math: Escaper that records the math tokens issued for this call.

        Returns:
            The rewritten fragment in XML syntax, with literal ``\\n``
            sequences turned into newlines.

        Raises:
            MarkupParseError: If *raw_text* is not well-formed.
        """
        root = parse_fragment(raw_text)
        math.capture_sources(root, raw_text)
        self.rewrite(root, math)
        return to_xml(root).replace(_LITERAL_NEWLINE, "\n")
