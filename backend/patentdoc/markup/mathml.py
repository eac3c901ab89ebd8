"""Carry embedded MathML through sanitization as opaque text tokens.

The sanitizer only knows a handful of HTML-ish tags, so a ``<math>`` subtree
would be unwrapped down to its bare text. Before sanitizing, each math element
is encoded into a token made only of characters the sanitizer and the entity
escaper leave alone::

    [[mathml:3f9c2a7d01b4e8c6:PG1hdGg-WDwvbWF0aD4=]]

The first field is a key drawn fresh for every escaper, so token-shaped text
in the input can never pass for a token this module issued. The payload is
URL-safe base64 of the math element's source text, so decoding gives back the
exact markup the caller wrote. After sanitizing (and after plain text
rendering), the tokens are swapped back for that markup.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
import secrets

from lxml import etree

from patentdoc.markup.tree import (
    add_class,
    local_name,
    outer_xml,
    replace_with,
    select,
)

logger = logging.getLogger(__name__)

TOKEN_PREFIX = "[[mathml:"
TOKEN_SUFFIX = "]]"
TOKEN_PATTERN = re.compile(r"\[\[mathml:([0-9a-f]*):([A-Za-z0-9_-]*={0,2})\]\]")

MATH_CLASS = "math"
MATH_FORMAT = "mathml"

_KEY_BYTES = 8

# Start, end or empty tag of a math element, any prefix, any case. Comments,
# CDATA sections and processing instructions are matched only to be skipped.
_MATH_SOURCE_SCAN = re.compile(
    r"(?P<skip><!--.*?-->|<!\[CDATA\[.*?\]\]>|<\?.*?\?>)"
    r"|<(?P<close>/)?(?:[A-Za-z_][\w.-]*:)?math(?=[\s/>])"
    r"(?:[^>\"']|\"[^\"]*\"|'[^']*')*?(?P<empty>/)?>",
    re.IGNORECASE | re.DOTALL,
)


class MathRoundTripError(RuntimeError):
    """Raised when a math token in processed output cannot be restored.

    This is an internal consistency failure (a token was altered between
    encoding and decoding), not a problem with the caller's input.
    """


def encode_token(markup: str, key: str = "") -> str:
    """Encode math markup as an opaque token tagged with *key*."""
    payload = base64.urlsafe_b64encode(markup.encode("utf-8")).decode("ascii")
    return f"{TOKEN_PREFIX}{key}:{payload}{TOKEN_SUFFIX}"


def decode_token(token: str) -> str:
    """Decode a token produced by :func:`encode_token`.

    Raises:
        MathRoundTripError: If *token* is not a well-formed math token.
    """
    match = TOKEN_PATTERN.fullmatch(token)
    if match is None:
        raise MathRoundTripError(f"Not a math token: {token!r}")
    return _decode_payload(match.group(2))


def _decode_payload(payload: str) -> str:
    try:
        raw = base64.urlsafe_b64decode(payload.encode("ascii"))
        return raw.decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise MathRoundTripError(f"Undecodable math token payload {payload!r}") from exc


def find_math_sources(markup: str) -> list[tuple[int, int]]:
    """Return the ``(start, end)`` offsets of each outermost math element.

    Offsets index into *markup* itself, in document order. An unbalanced scan
    returns no spans; the parser reports the malformed markup.
    """
    spans: list[tuple[int, int]] = []
    depth = 0
    start = 0
    for match in _MATH_SOURCE_SCAN.finditer(markup):
        if match.group("skip"):
            continue
        if match.group("close"):
            if depth == 0:
                return []
            depth -= 1
            if depth == 0:
                spans.append((start, match.end()))
        elif match.group("empty"):
            if depth == 0:
                spans.append((match.start(), match.end()))
        else:
            if depth == 0:
                start = match.start()
            depth += 1
    return spans if depth == 0 else []


def _outermost_math(root: etree._Element) -> list[etree._Element]:
    return [
        element
        for element in select(root, "math")
        if not any(
            ancestor is not root and local_name(ancestor) == "math"
            for ancestor in element.iterancestors()
        )
    ]


class MathEscaper:
    """Escape math subtrees in one tree and restore them in derived output.

    One instance serves exactly one pipeline invocation. It remembers the
    tokens it issued; :meth:`restore` substitutes those and nothing else.
    """

    def __init__(self) -> None:
        self.key = secrets.token_hex(_KEY_BYTES)
        self.tokens: list[str] = []
        self._sources: dict[etree._Element, str] = {}

    @property
    def found_math(self) -> bool:
        """Return True if at least one math element was escaped."""
        return bool(self.tokens)

    def capture_sources(self, root: etree._Element, raw_text: str) -> None:
        """Remember the source text of each math element parsed from *raw_text*.

        Must run before any rewrite touches the tree. Math elements without a
        captured source are encoded from their serialization instead.
        """
        elements = _outermost_math(root)
        spans = find_math_sources(raw_text)
        if len(elements) != len(spans):
            logger.debug(
                f"Found {len(spans)} math span(s) for {len(elements)} math "
                f"element(s); encoding serialized math instead"
            )
            return
        self._sources = {
            element: raw_text[start:end]
            for element, (start, end) in zip(elements, spans)
        }

    def escape(self, root: etree._Element) -> None:
        """Replace every ``<math>`` element under *root* with a token span.

        The span carries ``class="math"`` and ``format="mathml"``; its only
        content is the token.
        """
        for element in select(root, "math"):
            if _inside_replaced_math(element, root):
                continue
            source = self._sources.get(element)
            if source is None:
                source = outer_xml(element)
            token = encode_token(source, self.key)
            span = etree.Element("span")
            add_class(span, MATH_CLASS)
            span.set("format", MATH_FORMAT)
            span.text = token
            replace_with(element, span)
            self.tokens.append(token)

        if self.tokens:
            logger.debug(f"Escaped {len(self.tokens)} math element(s)")

    def restore(self, text: str, expect_all: bool = False) -> str:
        """Swap every token this escaper issued in *text* back for its markup.

        Token-shaped text carrying another key is left as it is.

        Args:
            text: Sanitized markup or rendered plain text.
            expect_all: If True, every token issued by :meth:`escape` must
                appear in *text*.

        Returns:
            *text* with math restored; *text* itself if no math was escaped.

        Raises:
            MathRoundTripError: If a token is damaged or missing.
        """
        if not self.tokens:
            return text

        issued = set(self.tokens)
        found = 0

        def _substitute(match: re.Match[str]) -> str:
            nonlocal found
            if match.group(1) != self.key:
                return match.group(0)
            if match.group(0) not in issued:
                raise MathRoundTripError(f"Unknown math token {match.group(0)!r}")
            found += 1
            return _decode_payload(match.group(2))

        restored = TOKEN_PATTERN.sub(_substitute, text)

        # Any prefix with our key left behind belonged to a token the pattern
        # could not match, i.e. one that was altered after escaping.
        own = text.count(f"{TOKEN_PREFIX}{self.key}:")
        if own != found:
            raise MathRoundTripError(f"{own - found} damaged math token(s) in output")
        if expect_all and found < len(self.tokens):
            raise MathRoundTripError(
                f"Expected {len(self.tokens)} math token(s) in output, found {found}"
            )
        return restored


def _inside_replaced_math(element: etree._Element, root: etree._Element) -> bool:
    """Return True if *element* was nested in a math element already escaped."""
    for ancestor in element.iterancestors():
        if ancestor is root:
            return False
    # Detached from the tree: its outer math element was replaced.
    return True
