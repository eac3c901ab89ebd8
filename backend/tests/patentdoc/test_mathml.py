"""Tests for math escaping and restoration."""

import pytest

from patentdoc.markup.mathml import (
    MATH_CLASS,
    MATH_FORMAT,
    TOKEN_PREFIX,
    MathEscaper,
    MathRoundTripError,
    decode_token,
    encode_token,
    find_math_sources,
)
from patentdoc.markup.sanitizer import sanitize
from patentdoc.markup.tree import parse_fragment, select, to_xml

MATHML_NS = "http://www.w3.org/1998/Math/MathML"


class TestTokenCodec:
    """Tests for encode_token / decode_token."""

    @pytest.mark.parametrize(
        "markup",
        [
            "<math>X</math>",
            f'<math xmlns="{MATHML_NS}"><msub><mi>x</mi><mn>2</mn></msub></math>',
            "<math><mi>α</mi><mo>≤</mo><mi>β</mi></math>",
            "<m:math xmlns:m='urn:x'>a &amp; b &lt; c</m:math>",
            "",
        ],
    )
    def test_round_trip(self, markup: str) -> None:
        assert decode_token(encode_token(markup)) == markup

    def test_token_avoids_markup_characters(self) -> None:
        token = encode_token("<math a=\"1\" b='2'>&amp; x\ny\u00a0</math>")
        for char in "<>&\"' \n\t\u00a0":
            assert char not in token

    def test_distinct_inputs_give_distinct_tokens(self) -> None:
        assert encode_token("<math>a</math>") != encode_token("<math>b</math>")

    def test_token_survives_sanitizer(self) -> None:
        token = encode_token("<math><mi>x</mi></math>")
        assert sanitize(f"<p>{token}</p>") == f"<p>{token}</p>"

    def test_decode_rejects_non_token(self) -> None:
        with pytest.raises(MathRoundTripError):
            decode_token("<math>X</math>")

    def test_decode_rejects_bad_payload(self) -> None:
        with pytest.raises(MathRoundTripError):
            decode_token(f"{TOKEN_PREFIX}:A]]")


class TestMathEscaper:
    """Tests for MathEscaper."""

    def test_escape_replaces_math_with_span(self) -> None:
        root = parse_fragment("<PARA>E = <math>X</math> here</PARA>")
        escaper = MathEscaper()
        escaper.escape(root)

        assert escaper.found_math
        assert select(root, "math") == []
        span = select(root, "span")[0]
        assert span.get("class") == MATH_CLASS
        assert span.get("format") == MATH_FORMAT
        assert span.text == encode_token("<math>X</math>", escaper.key)
        assert span.tail == " here"
        assert len(span) == 0

    def test_restore_round_trip(self) -> None:
        raw = f'<PARA>a <math xmlns="{MATHML_NS}"><mi>x</mi></math> b</PARA>'
        root = parse_fragment(raw)
        escaper = MathEscaper()
        escaper.escape(root)

        assert escaper.restore(to_xml(root)) == (
            '<PARA>a <span class="math" format="mathml">'
            f'<math xmlns="{MATHML_NS}"><mi>x</mi></math></span> b</PARA>'
        )

    def test_nested_math_escaped_once(self) -> None:
        root = parse_fragment("<math><mrow><math>inner</math></mrow></math>")
        escaper = MathEscaper()
        escaper.escape(root)
        assert len(escaper.tokens) == 1
        assert escaper.restore(root[0].text) == (
            "<math><mrow><math>inner</math></mrow></math>"
        )

    def test_restore_without_math_is_noop(self) -> None:
        escaper = MathEscaper()
        escaper.escape(parse_fragment("<PARA>no math [[mathml:junk</PARA>"))
        text = "anything [[mathml:junk"
        assert escaper.restore(text) is text

    def test_damaged_token_raises(self) -> None:
        escaper = MathEscaper()
        escaper.escape(parse_fragment("<math>X</math>"))
        damaged = escaper.tokens[0][:-3]
        with pytest.raises(MathRoundTripError):
            escaper.restore(f"<p>{damaged}</p>")

    def test_missing_token_raises_when_all_expected(self) -> None:
        escaper = MathEscaper()
        escaper.escape(parse_fragment("<math>X</math>"))
        assert escaper.restore("nothing here") == "nothing here"
        with pytest.raises(MathRoundTripError):
            escaper.restore("nothing here", expect_all=True)

    def test_round_trip_error_is_not_parse_error(self) -> None:
        assert not issubclass(MathRoundTripError, ValueError)
        assert issubclass(MathRoundTripError, RuntimeError)

    def test_each_escaper_has_its_own_key(self) -> None:
        first, second = MathEscaper(), MathEscaper()
        assert first.key != second.key
        first.escape(parse_fragment("<math>X</math>"))
        second.escape(parse_fragment("<math>X</math>"))
        assert first.tokens != second.tokens

    def test_foreign_token_left_as_text(self) -> None:
        escaper = MathEscaper()
        escaper.escape(parse_fragment("<math>X</math>"))
        foreign = encode_token("<script>alert(1)</script>")
        text = f"{foreign} {escaper.tokens[0]}"
        assert escaper.restore(text, expect_all=True) == f"{foreign} <math>X</math>"

    def test_foreign_token_does_not_count_as_found(self) -> None:
        escaper = MathEscaper()
        escaper.escape(parse_fragment("<math>X</math>"))
        foreign = encode_token("<math>X</math>")
        with pytest.raises(MathRoundTripError):
            escaper.restore(foreign, expect_all=True)

    def test_unissued_token_with_own_key_raises(self) -> None:
        escaper = MathEscaper()
        escaper.escape(parse_fragment("<math>X</math>"))
        unissued = encode_token("<b>x</b>", escaper.key)
        with pytest.raises(MathRoundTripError):
            escaper.restore(unissued)


class TestMathSources:
    """Tests for capturing math source text before parsing."""

    def test_find_outermost_spans(self) -> None:
        raw = "a <math x='>'><math/></math> b <M:MATH xmlns:M='u'/> c"
        spans = find_math_sources(raw)
        assert [raw[start:end] for start, end in spans] == [
            "<math x='>'><math/></math>",
            "<M:MATH xmlns:M='u'/>",
        ]

    def test_skips_comments_and_cdata(self) -> None:
        raw = "<!-- <math> --><![CDATA[</math>]]><?pi <math>?><math>y</math>"
        spans = find_math_sources(raw)
        assert [raw[start:end] for start, end in spans] == ["<math>y</math>"]

    def test_ignores_similar_names(self) -> None:
        assert find_math_sources("<mathml>x</mathml><mathvariant/>") == []

    def test_unbalanced_gives_no_spans(self) -> None:
        assert find_math_sources("<math><mi>x</mi>") == []
        assert find_math_sources("</math>") == []

    def test_source_encoded_verbatim(self) -> None:
        raw = "<PARA><math display='block'><mi>&alpha;</mi></math></PARA>"
        root = parse_fragment(raw)
        escaper = MathEscaper()
        escaper.capture_sources(root, raw)
        escaper.escape(root)
        assert escaper.restore(to_xml(root)) == (
            '<PARA><span class="math" format="mathml">'
            "<math display='block'><mi>&alpha;</mi></math></span></PARA>"
        )

    def test_mismatched_source_falls_back_to_serialization(self) -> None:
        root = parse_fragment("<math display='block'>x</math>")
        escaper = MathEscaper()
        escaper.capture_sources(root, "no math here")
        escaper.escape(root)
        assert escaper.restore(to_xml(root)) == (
            '<span class="math" format="mathml"><math display="block">x</math></span>'
        )
