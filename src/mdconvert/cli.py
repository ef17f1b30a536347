"""Command-line interface for mdconvert.

Usage::

    mdconvert notes.md                      # writes notes.html, notes.json, notes.txt
    mdconvert notes.md -f html -o out/      # only HTML, into out/
    mdconvert notes.md -f txt --stdout      # print plain text
    mdconvert notes.md --info               # line/word counts and features
    mdconvert --list-styles                 # list stylesheet presets
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import structlog

from mdconvert import __version__
from mdconvert.config import get_settings
from mdconvert.converter import (
    ConversionFormat,
    ConversionOptions,
    Converter,
    compute_stats,
    detect_markdown_features,
    write_result,
)
from mdconvert.errors import MdConvertError
from mdconvert.log import configure_logging
from mdconvert.security import format_file_size, raise_for_result, validate_content, validate_file
from mdconvert.styles import StyleManager

logger = structlog.get_logger(__name__)

FORMAT_CHOICES = [f.value for f in ConversionFormat]


def _build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="mdconvert",
        description="Convert Markdown files to HTML, JSON and plain text.",
    )
    parser.add_argument(
        "input",
        nargs="?",
        help="Path to the Markdown file to convert (.md, .markdown, .txt).",
    )
    parser.add_argument(
        "-f", "--format",
        dest="formats",
        nargs="+",
        choices=FORMAT_CHOICES,
        default=FORMAT_CHOICES,
        help="Output formats (default: all).",
    )
    parser.add_argument(
        "-o", "--output-dir",
        help="Directory for converted files. Defaults to the input's directory.",
    )
    parser.add_argument(
        "-s", "--style",
        default=settings.default_style,
        choices=StyleManager.PRESETS,
        help="Stylesheet preset for HTML output (default: %(default)s).",
    )
    parser.add_argument(
        "-e", "--encoding",
        default="utf-8",
        help="Input file encoding (default: %(default)s).",
    )
    parser.add_argument(
        "--compact",
        action="store_true",
        help="Do not prettify HTML/JSON output (default from MDCONVERT_PRETTIFY).",
    )
    parser.add_argument(
        "--no-metadata",
        action="store_true",
        help="Omit generator and timestamp metadata (default from MDCONVERT_INCLUDE_METADATA).",
    )
    parser.add_argument(
        "--stdout",
        action="store_true",
        help="Print the converted content instead of writing files.",
    )
    parser.add_argument(
        "--info",
        action="store_true",
        help="Print document statistics and detected features, then exit.",
    )
    parser.add_argument(
        "--list-styles",
        action="store_true",
        help="List available style presets and exit.",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Print progress information.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def _print_info(text: str) -> None:
    stats = compute_stats(text)
    features = detect_markdown_features(text)
    print(f"Lines:      {stats.lines}")
    print(f"Words:      {stats.words}")
    print(f"Characters: {stats.characters}")
    print(f"Size:       {format_file_size(stats.size_bytes)}")
    found = [name for name, present in features.to_dict().items() if present]
    print(f"Features:   {', '.join(found) if found else 'none'}")


def main(argv: list[str] | None = None) -> int:
    """Entry point for the CLI."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    settings = get_settings()
    configure_logging("DEBUG" if args.verbose else settings.log_level, settings.log_format)

    if args.list_styles:
        print("Available style presets:")
        for preset in StyleManager.PRESETS:
            print(f"  - {preset}")
        return 0

    if not args.input:
        parser.error("the following argument is required: input")

    input_path = Path(args.input)
    if not input_path.is_file():
        print(f"Error: file not found: {input_path}", file=sys.stderr)
        return 1

    validation = settings.file_validation_options()
    try:
        raise_for_result(validate_file(input_path.stat().st_size, input_path.name, validation))
        md_text = input_path.read_text(encoding=args.encoding)
        raise_for_result(validate_content(md_text, validation.max_content_length))
    except (MdConvertError, UnicodeDecodeError, LookupError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if args.info:
        _print_info(md_text)
        return 0

    output_dir = Path(args.output_dir) if args.output_dir else input_path.parent
    options = ConversionOptions(
        original_filename=input_path.name,
        prettify=settings.prettify and not args.compact,
        include_metadata=settings.include_metadata and not args.no_metadata,
    )

    if args.verbose:
        print(f"Input:   {input_path}")
        print(f"Formats: {', '.join(args.formats)}")
        print(f"Style:   {args.style}")

    converter = Converter(style_preset=args.style)
    exit_code = 0
    # Each format is converted independently; one failure does not stop the rest.
    for fmt in dict.fromkeys(args.formats):
        result = converter.convert(md_text, fmt, options)
        if not result.success:
            print(f"Error ({fmt}): {result.error}", file=sys.stderr)
            exit_code = 1
            continue
        if args.stdout:
            print(result.content)
            continue
        try:
            target = write_result(result, output_dir)
        except OSError as exc:
            logger.error("write_failed", format=fmt, error=str(exc))
            print(f"Error ({fmt}): {exc}", file=sys.stderr)
            exit_code = 1
            continue
        if args.verbose:
            print(f"Done. {target} ({format_file_size(target.stat().st_size)})")
        else:
            print(f"Converted: {target}")

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
