"""lxml wiring for legacy markup fragments.

Field text is not a document: a fragment may hold several top-level nodes,
bare text, and HTML named entities that XML does not define. Fragments are
wrapped in a synthetic root element before parsing and the wrapper is stripped
again on serialization, so callers only ever see the fragment itself.

The mutation helpers below exist because lxml stores the text that follows an
element in that element's ``tail``. Removing or replacing an element with the
plain lxml API drops that text, so every structural change goes through here.
"""

from __future__ import annotations

import html.entities
import re

from lxml import etree

FRAGMENT_ROOT = "fragment-root"

# Indentation marker prepended to paragraphs.
NBSP = "\u00a0"

_XML_BUILTIN_ENTITIES = frozenset({"amp", "lt", "gt", "quot", "apos"})
_NAMED_ENTITY = re.compile(r"&([A-Za-z][A-Za-z0-9]*);")
_XML_DECLARATION = re.compile(r"^\s*<\?xml[^>]*\?>")

# Non-ASCII characters that have an HTML named entity are written as that
# entity in final output.
_EXTENDED_ENTITIES = {
    codepoint: f"&{name};"
    for codepoint, name in html.entities.codepoint2name.items()
    if codepoint > 127
}

_ERROR_PREVIEW_CHARS = 200


class MarkupParseError(ValueError):
    """Raised when a raw markup fragment is not well-formed.

    Attributes:
        fragment: The offending input, exactly as the caller passed it.
        reason: The parser's description of the problem.
    """

    def __init__(self, reason: str, fragment: str):
        self.fragment = fragment
        self.reason = reason
        preview = fragment
        if len(preview) > _ERROR_PREVIEW_CHARS:
            preview = preview[:_ERROR_PREVIEW_CHARS] + "..."
        super().__init__(f"Malformed markup ({reason}): {preview!r}")


# =============================================================================
# Parsing
# =============================================================================


def _numeric_entity(match: re.Match[str]) -> str:
    """Rewrite an HTML named entity to a numeric character reference."""
    name = match.group(1)
    if name in _XML_BUILTIN_ENTITIES:
        return match.group(0)
    codepoint = html.entities.name2codepoint.get(name)
    if codepoint is None:
        # Left as-is; the XML parser will reject it.
        return match.group(0)
    return f"&#{codepoint};"


def parse_fragment(markup: str) -> etree._Element:
    """Parse a markup fragment into a tree under a synthetic root element.

    Args:
        markup: Raw markup text. May contain several top-level nodes.

    Returns:
        The synthetic root element; its children are the fragment's nodes.

    Raises:
        MarkupParseError: If the fragment is not well-formed.
    """
    text = _XML_DECLARATION.sub("", markup, count=1)
    text = _NAMED_ENTITY.sub(_numeric_entity, text)

    # A parser per call: lxml parsers must not be shared between threads.
    parser = etree.XMLParser(
        resolve_entities=False,
        no_network=True,
        huge_tree=True,
        remove_comments=False,
    )
    try:
        return etree.fromstring(
            f"<{FRAGMENT_ROOT}>{text}</{FRAGMENT_ROOT}>", parser
        )
    except etree.XMLSyntaxError as exc:
        raise MarkupParseError(str(exc), markup) from exc


# =============================================================================
# Selection
# =============================================================================


def local_name(node: etree._Element) -> str:
    """Return the lower-cased local tag name of *node* ("" for comments/PIs)."""
    tag = node.tag
    if not isinstance(tag, str):
        return ""
    tag = tag.split("}")[-1]
    return tag.split(":")[-1].lower()


def select(root: etree._Element, *names: str) -> list[etree._Element]:
    """Return descendants of *root* whose local name is in *names*.

    Matching is case-insensitive. The result is a snapshot in document order,
    so callers may mutate the tree while iterating over it.
    """
    wanted = {name.lower() for name in names}
    return [node for node in root.iterdescendants() if local_name(node) in wanted]


def get_attr(element: etree._Element, name: str) -> str | None:
    """Look up an attribute by case-insensitive local name."""
    wanted = name.lower()
    for key, value in element.attrib.items():
        if key.split("}")[-1].lower() == wanted:
            return value
    return None


def set_attr(element: etree._Element, name: str, value: str) -> None:
    """Set an attribute, reusing the spelling of an existing case-insensitive match."""
    wanted = name.lower()
    for key in element.attrib:
        if key.split("}")[-1].lower() == wanted:
            element.set(key, value)
            return
    element.set(name, value)


def has_class(element: etree._Element, class_name: str) -> bool:
    """Return True if *class_name* is one of the element's classes."""
    return class_name in (get_attr(element, "class") or "").split()


def add_class(element: etree._Element, class_name: str) -> None:
    """Append *class_name* to the element's class attribute."""
    if has_class(element, class_name):
        return
    existing = element.get("class")
    element.set("class", f"{existing} {class_name}" if existing else class_name)


# =============================================================================
# Mutation
# =============================================================================


def _append_text_before(parent: etree._Element, index: int, text: str) -> None:
    """Append *text* at the position just before ``parent[index]``."""
    if not text:
        return
    if index == 0:
        parent.text = (parent.text or "") + text
    else:
        previous = parent[index - 1]
        previous.tail = (previous.tail or "") + text


def prepend_text(element: etree._Element, text: str) -> None:
    """Insert *text* as the element's first content."""
    element.text = text + (element.text or "")


def remove(element: etree._Element) -> None:
    """Remove *element* and its subtree, keeping the text that follows it."""
    parent = element.getparent()
    if parent is None:
        return
    index = parent.index(element)
    tail = element.tail or ""
    parent.remove(element)
    _append_text_before(parent, index, tail)


def replace_with_text(element: etree._Element, text: str) -> None:
    """Replace *element* and its subtree with a plain text node."""
    parent = element.getparent()
    if parent is None:
        return
    index = parent.index(element)
    tail = element.tail or ""
    parent.remove(element)
    _append_text_before(parent, index, text + tail)


def replace_with(element: etree._Element, replacement: etree._Element) -> None:
    """Put *replacement* where *element* was; the following text stays put."""
    parent = element.getparent()
    if parent is None:
        return
    replacement.tail = element.tail
    element.tail = None
    parent.replace(element, replacement)


def unwrap(element: etree._Element) -> None:
    """Replace *element* with its own content, preserving document order."""
    parent = element.getparent()
    if parent is None:
        return
    index = parent.index(element)
    text = element.text or ""
    tail = element.tail or ""
    children = list(element)

    parent.remove(element)
    _append_text_before(parent, index, text)
    for offset, child in enumerate(children):
        parent.insert(index + offset, child)
    _append_text_before(parent, index + len(children), tail)


# =============================================================================
# Serialization
# =============================================================================


def escape_extended(text: str) -> str:
    """Write non-ASCII characters that have a named HTML entity as that entity."""
    return text.translate(_EXTENDED_ENTITIES)


def _inner(element: etree._Element, method: str) -> str:
    """Serialize the content of *element* without its own start and end tags."""
    if not element.text and len(element) == 0:
        return ""
    full = etree.tostring(element, encoding="unicode", method=method, with_tail=False)
    # An empty copy serializes the same start tag, which tells us where the
    # content begins.
    shell = etree.Element(element.tag, attrib=dict(element.attrib))
    shell.text = ""
    empty = etree.tostring(shell, encoding="unicode", method=method)
    end_tag = empty[empty.rindex("</") :]
    start_tag = empty[: -len(end_tag)]
    return full[len(start_tag) : -len(end_tag)]


def to_xml(root: etree._Element) -> str:
    """Serialize a fragment in XML syntax (for intermediate hand-offs)."""
    return _inner(root, "xml")


def to_html(element: etree._Element) -> str:
    """Serialize an element's content in final output form.

    HTML syntax, no reformatting, extended named-entity escaping.
    """
    return escape_extended(_inner(element, "html"))


def outer_xml(element: etree._Element) -> str:
    """Serialize *element* itself (start tag, content, end tag) as XML."""
    return etree.tostring(element, encoding="unicode", method="xml", with_tail=False)
