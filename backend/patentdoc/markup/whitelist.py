"""Tag and attribute vocabulary allowed in sanitized field text."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class Whitelist:
    """Allowed tag names plus one attribute set applied to every tag.

    Names are stored lower-cased; the sanitizer lower-cases the names it
    checks, so legacy upper-case markup (``ID``) matches (``id``).
    """

    tags: frozenset[str]
    attributes: frozenset[str]

    @classmethod
    def of(cls, tags: Iterable[str], attributes: Iterable[str]) -> Whitelist:
        """Build a whitelist from any iterables of names."""
        return cls(
            tags=frozenset(tag.lower() for tag in tags),
            attributes=frozenset(attr.lower() for attr in attributes),
        )

    def allows_tag(self, tag: str) -> bool:
        return tag.lower() in self.tags

    def allows_attribute(self, name: str) -> bool:
        return name.lower() in self.attributes

    def extended(
        self, tags: Iterable[str] = (), attributes: Iterable[str] = ()
    ) -> Whitelist:
        """Return a new whitelist that also allows *tags* and *attributes*."""
        return Whitelist.of(self.tags | set(tags), self.attributes | set(attributes))


HTML_WHITELIST_TAGS = (
    "bold",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    "p",
    "table",
    "tr",
    "td",
    "ul",
    "ol",
    "li",
    "dl",
    "dt",
    "dd",
    "a",
    "span",
)

HTML_WHITELIST_ATTRIBUTES = ("class", "id", "num", "idref", "format", "type")

DEFAULT_WHITELIST = Whitelist.of(HTML_WHITELIST_TAGS, HTML_WHITELIST_ATTRIBUTES)
