"""CLI for normalizing a legacy field text fragment."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from patentdoc.config import settings
from patentdoc.markup.mathml import MathRoundTripError
from patentdoc.markup.plaintext import RenderConfig
from patentdoc.markup.tree import MarkupParseError
from patentdoc.sgml.formatted_text import FormattedText

logger = logging.getLogger(__name__)

EXIT_PARSE_ERROR = 2
EXIT_MATH_ERROR = 3


def positive_int(value: str) -> int:
    """argparse type for a strictly positive integer."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def read_fragment(path: Path | None) -> str:
    """Read a raw fragment from *path*, or from stdin when no path is given."""
    if path is None:
        return sys.stdin.read()
    return path.read_text(encoding="utf-8")


def html_command(raw_text: str) -> int:
    """Print sanitized markup."""
    print(FormattedText().get_simple_html(raw_text))
    return 0


def text_command(raw_text: str, width: int | None = None) -> int:
    """Print plain text.

    Args:
        raw_text: Raw legacy markup.
        width: Wrap width; falls back to the configured default.
    """
    processor = FormattedText()
    config = RenderConfig(
        max_line_width=width if width is not None else settings.max_line_width,
        indent_marker=settings.indent_marker,
    )
    print(processor.get_plain_text(raw_text, config))
    return 0


def paragraphs_command(raw_text: str) -> int:
    """Print one paragraph per line, prefixed by its nesting level."""
    fragments = FormattedText().get_paragraphs(raw_text)
    for fragment in fragments:
        print(f"{fragment.level}\t{fragment.markup}")
    logger.info(f"{len(fragments)} paragraph(s)")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for CLI."""
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else settings.log_level.upper(),
        format="%(levelname)-5.5s [%(name)s] %(message)s",
        stream=sys.stderr,
    )

    parser = argparse.ArgumentParser(
        description="Normalize legacy patent field text (description, abstract, claims)"
    )
    subparsers = parser.add_subparsers(dest="command", help="Output to produce")

    for name, help_text in (
        ("html", "Sanitized markup"),
        ("text", "Plain text"),
        ("paragraphs", "Per-paragraph markup"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument(
            "file",
            type=Path,
            nargs="?",
            help="File holding the raw fragment (default: stdin)",
        )
        if name == "text":
            sub.add_argument(
                "--width",
                type=positive_int,
                default=None,
                help="Wrap plain text at this width (default: no wrapping)",
            )

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 1

    raw_text = read_fragment(args.file)
    try:
        if args.command == "html":
            return html_command(raw_text)
        elif args.command == "text":
            return text_command(raw_text, width=args.width)
        else:
            return paragraphs_command(raw_text)
    except MarkupParseError as e:
        logger.error(f"Input is not well-formed: {e.reason}")
        return EXIT_PARSE_ERROR
    except MathRoundTripError as e:
        logger.error(f"Math restoration failed: {e}")
        return EXIT_MATH_ERROR


if __name__ == "__main__":
    sys.exit(main())
