"""High-level Markdown conversion orchestrator.

Ties together the parser, the renderer set and the style presets into a
single public API that turns Markdown text into a packaged HTML, JSON or
plain-text result.  :meth:`Converter.convert` never raises: every failure
comes back as a :class:`ConversionResult` with ``success=False``.
"""

from __future__ import annotations

import json
import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional, Union

import structlog

from mdconvert import __version__
from mdconvert.errors import ConversionError, MaliciousContentDetected
from mdconvert.parser import Document, MarkdownParser
from mdconvert.renderer import HtmlRenderer, JsonRenderer, PlainTextRenderer, RendererConfig
from mdconvert.security import (
    FileValidationOptions,
    detect_malicious_content,
    raise_for_result,
    sanitize_filename,
    validate_content,
    validate_file,
)
from mdconvert.styles import StyleManager

logger = structlog.get_logger(__name__)

GENERATOR_NAME = "Markdown Converter"


class ConversionFormat(str, Enum):
    HTML = "html"
    JSON = "json"
    TXT = "txt"

    @property
    def extension(self) -> str:
        return f".{self.value}"

    @property
    def mime_type(self) -> str:
        return _MIME_TYPES[self]


_MIME_TYPES = {
    ConversionFormat.HTML: "text/html",
    ConversionFormat.JSON: "application/json",
    ConversionFormat.TXT: "text/plain",
}


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ParsedDocument:
    """The three derived views of one source text."""

    rendered_html: str
    nodes: Document
    plain_text: str


@dataclass(frozen=True)
class ConversionOptions:
    original_filename: Optional[str] = None
    prettify: bool = False
    include_metadata: bool = False


@dataclass(frozen=True)
class ConversionResult:
    content: str
    filename: str
    mime_type: str
    success: bool
    error: Optional[str] = None

    @classmethod
    def ok(cls, content: str, filename: str, mime_type: str) -> ConversionResult:
        return cls(content=content, filename=filename, mime_type=mime_type, success=True)

    @classmethod
    def failure(cls, message: str) -> ConversionResult:
        return cls(content="", filename="", mime_type="", success=False, error=message)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "content": self.content,
            "filename": self.filename,
            "mimeType": self.mime_type,
            "success": self.success,
        }
        if self.error is not None:
            payload["error"] = self.error
        return payload


@dataclass(frozen=True)
class DocumentStats:
    lines: int
    words: int
    characters: int
    size_bytes: int

    def to_dict(self) -> dict[str, int]:
        return {
            "lines": self.lines,
            "words": self.words,
            "characters": self.characters,
            "sizeBytes": self.size_bytes,
        }


@dataclass(frozen=True)
class MarkdownFeatures:
    has_headers: bool = False
    has_lists: bool = False
    has_code_blocks: bool = False
    has_links: bool = False
    has_images: bool = False
    has_table: bool = False

    def to_dict(self) -> dict[str, bool]:
        return {
            "hasHeaders": self.has_headers,
            "hasLists": self.has_lists,
            "hasCodeBlocks": self.has_code_blocks,
            "hasLinks": self.has_links,
            "hasImages": self.has_images,
            "hasTable": self.has_table,
        }


def compute_stats(text: str) -> DocumentStats:
    """Line, word, character and byte counts of *text*."""
    return DocumentStats(
        lines=len(text.split("\n")),
        words=len(text.split()),
        characters=len(text),
        size_bytes=len(text.encode("utf-8")),
    )


_FEATURE_PATTERNS = {
    "has_headers": re.compile(r"^#{1,6}\s", re.MULTILINE),
    "has_lists": re.compile(r"^[ \t]*(?:[-*+]|\d+\.)\s", re.MULTILINE),
    "has_code_blocks": re.compile(r"```[\s\S]*?```"),
    "has_links": re.compile(r"\[[^\]\n]*\]\([^)\n]*\)"),
    "has_images": re.compile(r"!\[[^\]\n]*\]\([^)\n]*\)"),
    "has_table": re.compile(r"\|[^\n]*\|"),
}


def detect_markdown_features(text: str) -> MarkdownFeatures:
    """Report which Markdown constructs appear in *text*."""
    return MarkdownFeatures(
        **{name: bool(pattern.search(text)) for name, pattern in _FEATURE_PATTERNS.items()}
    )


# ---------------------------------------------------------------------------
# Converter
# ---------------------------------------------------------------------------

_EXTENSION_RE = re.compile(r"\.[^/.]+$")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _iso_timestamp(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def prettify_html(html: str) -> str:
    """Put adjacent tags on separate lines and drop blank lines."""
    lines = html.replace("><", ">\n<").split("\n")
    return "\n".join(line.strip() for line in lines if line.strip())


class Converter:
    """Convert Markdown content to HTML, JSON or plain text.

    Usage::

        converter = Converter(style_preset="default")
        result = converter.convert("# Hello", "html", ConversionOptions(prettify=True))
        if result.success:
            Path(result.filename).write_text(result.content)
    """

    STYLE_PRESETS = StyleManager.PRESETS

    def __init__(
        self,
        style_preset: str = "default",
        renderer_config: Optional[RendererConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.style_manager = StyleManager(style_preset)
        self.parser = MarkdownParser()
        self.html_renderer = HtmlRenderer(renderer_config)
        self.json_renderer = JsonRenderer()
        self.text_renderer = PlainTextRenderer()
        self._clock = clock or _utc_now

    # -- public API ---------------------------------------------------------

    def parse(self, markdown_text: str) -> ParsedDocument:
        """Parse once and derive the HTML and plain-text views."""
        nodes = self.parser.parse(markdown_text)
        return ParsedDocument(
            rendered_html=self.html_renderer.render(nodes),
            nodes=nodes,
            plain_text=self.text_renderer.render(nodes),
        )

    def convert(
        self,
        markdown_text: str,
        fmt: Union[ConversionFormat, str],
        options: Optional[ConversionOptions] = None,
    ) -> ConversionResult:
        """Convert *markdown_text* to *fmt*; never raises."""
        options = options or ConversionOptions()
        format_name = getattr(fmt, "value", fmt)
        started = time.perf_counter()
        try:
            target = self._resolve_format(fmt)
            if detect_malicious_content(markdown_text):
                raise MaliciousContentDetected()
            parsed = self.parse(markdown_text)
            base_filename = self.base_filename(options.original_filename)
            handler = getattr(self, f"_convert_to_{target.value}")
            result = handler(parsed, base_filename, options)
        except (MaliciousContentDetected, ConversionError) as exc:
            logger.warning("conversion_refused", format=format_name, reason=str(exc))
            return ConversionResult.failure(str(exc))
        except Exception as exc:
            logger.exception("conversion_failed", format=format_name)
            return ConversionResult.failure(str(exc) or "Unknown error occurred")

        logger.info(
            "conversion_complete",
            format=target.value,
            filename=result.filename,
            success=result.success,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return result

    def convert_file(
        self,
        input_path: Union[str, Path],
        fmt: Union[ConversionFormat, str],
        output_dir: Optional[Union[str, Path]] = None,
        *,
        encoding: str = "utf-8",
        options: Optional[ConversionOptions] = None,
        validation: Optional[FileValidationOptions] = None,
    ) -> ConversionResult:
        """Validate and read a Markdown file, convert it, optionally write it.

        Raises:
            ValidationError: If the file fails the size, type or length guards.
        """
        input_path = Path(input_path)
        validation = validation or FileValidationOptions()
        raise_for_result(validate_file(input_path.stat().st_size, input_path.name, validation))

        md_text = input_path.read_text(encoding=encoding)
        raise_for_result(validate_content(md_text, validation.max_content_length))

        if options is None:
            options = ConversionOptions(original_filename=input_path.name)
        elif options.original_filename is None:
            options = ConversionOptions(
                original_filename=input_path.name,
                prettify=options.prettify,
                include_metadata=options.include_metadata,
            )

        result = self.convert(md_text, fmt, options)
        if output_dir is not None and result.success:
            write_result(result, output_dir)
        return result

    def base_filename(self, original_filename: Optional[str]) -> str:
        """Strip the extension and sanitize, or synthesize a timestamped name."""
        fallback = f"converted_{int(self._clock().timestamp() * 1000)}"
        if not original_filename:
            return fallback
        return sanitize_filename(_EXTENSION_RE.sub("", original_filename)) or fallback

    # -- format handlers ----------------------------------------------------

    def _convert_to_html(
        self, parsed: ParsedDocument, base_filename: str, options: ConversionOptions
    ) -> ConversionResult:
        metadata = self._html_metadata() if options.include_metadata else ""
        document = (
            "<!DOCTYPE html>\n"
            '<html lang="en">\n'
            "<head>\n"
            '    <meta charset="UTF-8">\n'
            '    <meta name="viewport" content="width=device-width, initial-scale=1.0">\n'
            f"    <title>{base_filename}</title>\n"
            f"    <style>\n{self.style_manager.stylesheet()}\n    </style>\n"
            f"{metadata}"
            "</head>\n"
            "<body>\n"
            '    <article class="markdown-content">\n'
            f"{parsed.rendered_html}\n"
            "    </article>\n"
            "</body>\n"
            "</html>"
        )
        content = prettify_html(document) if options.prettify else document
        return ConversionResult.ok(
            content, base_filename + ConversionFormat.HTML.extension, ConversionFormat.HTML.mime_type
        )

    def _convert_to_json(
        self, parsed: ParsedDocument, base_filename: str, options: ConversionOptions
    ) -> ConversionResult:
        metadata: dict[str, Any] = {
            "filename": base_filename,
            "convertedAt": _iso_timestamp(self._clock()),
            "format": ConversionFormat.JSON.value,
        }
        if options.include_metadata:
            metadata["generator"] = GENERATOR_NAME
            metadata["version"] = __version__

        payload = {
            "metadata": metadata,
            "content": {
                "structure": self.json_renderer.render(parsed.nodes),
                "html": parsed.rendered_html,
                "plainText": parsed.plain_text,
            },
        }
        if options.prettify:
            content = json.dumps(payload, indent=2, ensure_ascii=False)
        else:
            content = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
        return ConversionResult.ok(
            content, base_filename + ConversionFormat.JSON.extension, ConversionFormat.JSON.mime_type
        )

    def _convert_to_txt(
        self, parsed: ParsedDocument, base_filename: str, options: ConversionOptions
    ) -> ConversionResult:
        content = parsed.plain_text
        if options.include_metadata:
            header = "\n".join([
                f"File: {base_filename}",
                f"Converted: {self._clock().astimezone().strftime('%Y-%m-%d %H:%M:%S')}",
                "Format: Plain Text",
                "=" * 50,
                "",
            ])
            content = header + content
        return ConversionResult.ok(
            content, base_filename + ConversionFormat.TXT.extension, ConversionFormat.TXT.mime_type
        )

    # -- helpers ------------------------------------------------------------

    @staticmethod
    def _resolve_format(fmt: Union[ConversionFormat, str]) -> ConversionFormat:
        try:
            return ConversionFormat(fmt)
        except ValueError:
            raise ConversionError(f"Unsupported format: {fmt}") from None

    def _html_metadata(self) -> str:
        return (
            f'    <meta name="generator" content="{GENERATOR_NAME}">\n'
            f'    <meta name="converted-at" content="{_iso_timestamp(self._clock())}">\n'
            '    <meta name="format" content="html">\n'
        )


def write_result(result: ConversionResult, directory: Union[str, Path]) -> Path:
    """Write a successful result into *directory* under its sanitized name.

    Raises:
        ConversionError: If *result* is a failed conversion.
    """
    if not result.success:
        raise ConversionError(result.error or "Conversion failed")
    directory = Path(directory)
    filename = sanitize_filename(result.filename) or f"converted{Path(result.filename).suffix}"
    directory.mkdir(parents=True, exist_ok=True)
    target = directory / filename
    target.write_text(result.content, encoding="utf-8")
    return target
