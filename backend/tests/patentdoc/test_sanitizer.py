"""Tests for whitelist sanitization."""

import pytest

from patentdoc.markup.sanitizer import sanitize
from patentdoc.markup.tree import MarkupParseError, parse_fragment
from patentdoc.markup.whitelist import (
    DEFAULT_WHITELIST,
    HTML_WHITELIST_ATTRIBUTES,
    HTML_WHITELIST_TAGS,
    Whitelist,
)


class TestWhitelist:
    """Tests for the Whitelist value."""

    def test_default_vocabulary(self) -> None:
        assert DEFAULT_WHITELIST.tags == frozenset(HTML_WHITELIST_TAGS)
        assert DEFAULT_WHITELIST.attributes == frozenset(HTML_WHITELIST_ATTRIBUTES)
        assert "b" not in DEFAULT_WHITELIST.tags
        assert "style" not in DEFAULT_WHITELIST.attributes

    def test_names_are_case_insensitive(self) -> None:
        assert DEFAULT_WHITELIST.allows_tag("P")
        assert DEFAULT_WHITELIST.allows_attribute("ID")

    def test_extended_returns_new_value(self) -> None:
        wider = DEFAULT_WHITELIST.extended(tags=["sub"], attributes=["lang"])
        assert wider.allows_tag("sub")
        assert wider.allows_attribute("lang")
        assert not DEFAULT_WHITELIST.allows_tag("sub")

    def test_immutable(self) -> None:
        with pytest.raises(AttributeError):
            DEFAULT_WHITELIST.tags = frozenset()  # type: ignore[misc]


class TestSanitize:
    """Tests for sanitize."""

    def test_disallowed_tags_unwrapped(self) -> None:
        assert sanitize("<DIV><B>bold</B> text</DIV>") == "bold text"

    def test_nested_disallowed_inside_allowed(self) -> None:
        assert (
            sanitize("<p><PTEXT><PDAT>A widget</PDAT></PTEXT> base</p>")
            == "<p>A widget base</p>"
        )

    def test_attributes_filtered_and_lowercased(self) -> None:
        result = sanitize('<p style="x" class="c" ID="i" onclick="y">t</p>')
        assert result == '<p class="c" id="i">t</p>'

    def test_tag_names_lowercased(self) -> None:
        assert sanitize("<P>x</P><H2>y</H2>") == "<p>x</p><h2>y</h2>"

    def test_comments_removed_text_kept(self) -> None:
        assert sanitize("<p>a<!-- note -->b</p>") == "<p>ab</p>"

    def test_processing_instructions_removed(self) -> None:
        assert sanitize("<p>a<?page 12?>b</p>") == "<p>ab</p>"

    def test_extended_entity_escaping(self) -> None:
        result = sanitize("<p>café — x &amp; y &lt; z</p>")
        assert result == "<p>caf&eacute; &mdash; x &amp; y &lt; z</p>"

    def test_empty_allowed_element_not_self_closed(self) -> None:
        assert sanitize('<a id="F1" class="figref"/>') == (
            '<a id="F1" class="figref"></a>'
        )

    def test_custom_whitelist(self) -> None:
        wider = DEFAULT_WHITELIST.extended(tags=["sub"])
        assert sanitize("<p>H<sub>2</sub>O</p>", wider) == "<p>H<sub>2</sub>O</p>"
        assert sanitize("<p>H<sub>2</sub>O</p>") == "<p>H2O</p>"

    def test_empty_whitelist_keeps_text_only(self) -> None:
        bare = Whitelist.of([], [])
        assert sanitize("<p>one <a>two</a></p><p>three</p>", bare) == "one twothree"

    def test_namespaced_elements(self) -> None:
        result = sanitize('<x:p xmlns:x="urn:test" x:class="c">t</x:p>')
        assert result == '<p class="c">t</p>'

    def test_malformed_markup(self) -> None:
        with pytest.raises(MarkupParseError):
            sanitize("<p>oops")

    def test_vocabulary_closure(self) -> None:
        raw = (
            '<DOC lang="en"><H>Title</H><p align="left" id="p1">Some <b>bold</b> and '
            '<bold>kept</bold> <a href="x" idref="y" class="claim">text</a></p>'
            "<table border='1'><tr><td colspan='2'>cell</td></tr></table>"
            '<ul><li type="disc">item</li></ul><img src="x.png"/></DOC>'
        )
        root = parse_fragment(sanitize(raw))
        for element in root.iterdescendants():
            assert DEFAULT_WHITELIST.allows_tag(element.tag)
            for name in element.attrib:
                assert DEFAULT_WHITELIST.allows_attribute(name)
