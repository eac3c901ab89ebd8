"""Reduce markup to a fixed tag and attribute vocabulary.

Elements outside the whitelist are unwrapped, never deleted, so their text
stays in the output at the same position. Attributes outside the whitelist
are dropped. Comments and processing instructions are removed.
"""

from __future__ import annotations

import logging

from lxml import etree

from patentdoc.markup.tree import (
    local_name,
    parse_fragment,
    remove,
    to_html,
    unwrap,
)
from patentdoc.markup.whitelist import DEFAULT_WHITELIST, Whitelist

logger = logging.getLogger(__name__)


def sanitize_tree(
    root: etree._Element, whitelist: Whitelist = DEFAULT_WHITELIST
) -> None:
    """Sanitize the descendants of *root* in place.

    Surviving tags and attribute names are lower-cased and stripped of any
    namespace.
    """
    unwrapped = 0
    for node in list(root.iterdescendants()):
        if not isinstance(node.tag, str):
            remove(node)
            continue

        name = local_name(node)
        if not whitelist.allows_tag(name):
            unwrap(node)
            unwrapped += 1
            continue

        node.tag = name
        attributes = list(node.attrib.items())
        node.attrib.clear()
        for key, value in attributes:
            attr_name = key.split("}")[-1].lower()
            if whitelist.allows_attribute(attr_name):
                node.set(attr_name, value)

    # Renaming leaves namespace declarations behind on the surviving nodes.
    etree.cleanup_namespaces(root)
    logger.debug(f"Sanitizer unwrapped {unwrapped} element(s)")


def sanitize(markup: str, whitelist: Whitelist = DEFAULT_WHITELIST) -> str:
    """Sanitize a markup fragment and serialize it in final output form.

    Args:
        markup: Well-formed markup (typically the structural rewriter's output).
        whitelist: Vocabulary to keep. Defaults to the field text whitelist.

    Returns:
        HTML-syntax markup using only whitelisted tags and attributes.

    Raises:
        MarkupParseError: If *markup* is not well-formed.
    """
    root = parse_fragment(markup)
    sanitize_tree(root, whitelist)
    return to_html(root)
