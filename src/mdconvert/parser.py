"""Markdown block scanner that produces the document model.

The scanner classifies runs of source lines into block nodes
(:class:`Heading`, :class:`Paragraph`, :class:`ListBlock`, ...).  Inline
spans such as emphasis or links are left untouched in each node's text;
only the HTML renderer resolves them.

The parser accepts any string and never raises.  Constructs it does not
model (tables, raw HTML) are kept verbatim in :class:`RawFallback` nodes.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional, Union


# ---------------------------------------------------------------------------
# Document model
# ---------------------------------------------------------------------------

class NodeType(Enum):
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    LIST = "list"
    CODE_BLOCK = "code"
    BLOCKQUOTE = "blockquote"
    RULE = "hr"
    RAW = "raw"


@dataclass(frozen=True)
class Heading:
    level: int
    text: str

    type: ClassVar[NodeType] = NodeType.HEADING


@dataclass(frozen=True)
class Paragraph:
    text: str

    type: ClassVar[NodeType] = NodeType.PARAGRAPH


@dataclass(frozen=True)
class ListItem:
    text: str


@dataclass(frozen=True)
class ListBlock:
    ordered: bool
    items: tuple[ListItem, ...]
    # Number of the first item of an ordered list
    start: int = 1

    type: ClassVar[NodeType] = NodeType.LIST


@dataclass(frozen=True)
class CodeBlock:
    code: str
    language: Optional[str] = None

    type: ClassVar[NodeType] = NodeType.CODE_BLOCK


@dataclass(frozen=True)
class Blockquote:
    text: str

    type: ClassVar[NodeType] = NodeType.BLOCKQUOTE


@dataclass(frozen=True)
class Rule:
    raw: str = "---"

    type: ClassVar[NodeType] = NodeType.RULE


@dataclass(frozen=True)
class RawFallback:
    raw: str
    # What the raw block looked like: "table" or "html"
    kind: str = "html"

    type: ClassVar[NodeType] = NodeType.RAW


DocumentNode = Union[Heading, Paragraph, ListBlock, CodeBlock, Blockquote, Rule, RawFallback]
Document = tuple[DocumentNode, ...]


# ---------------------------------------------------------------------------
# Line patterns
# ---------------------------------------------------------------------------

# Patterns avoid overlapping whitespace runs so long hostile lines stay linear.
_FENCE = re.compile(r"^ {0,3}(`{3,})(.*)$")
_FENCE_CLOSE = re.compile(r"^ {0,3}(`{3,})[ \t]*$")
_HEADING = re.compile(r"^ {0,3}(#{1,6})(?:[ \t]+(.*))?$")
_QUOTE = re.compile(r"^ {0,3}> ?(.*)$")
_RULE = re.compile(r"^ {0,3}([-*_])(?:[ \t]*\1){2,}[ \t]*$")
_BULLET = re.compile(r"^ {0,3}([-*+])(?:[ \t]+(.*))?$")
_ORDERED = re.compile(r"^ {0,3}(\d{1,9})\.(?:[ \t]+(.*))?$")
_TABLE_DELIMITER = re.compile(r"^\|?[ \t]*:?-+:?[ \t]*(?:\|[ \t]*:?-+:?[ \t]*)*\|?$")

# HTML block starts, after CommonMark: raw-text elements, markup
# declarations, block-level tag names, and a lone complete tag.
_HTML_RAW_TEXT = re.compile(r"^ {0,3}<(?:script|pre|style|textarea)(?=[\s>]|$)", re.IGNORECASE)
_HTML_DECLARATION = re.compile(r"^ {0,3}<(?:!--|\?|![A-Za-z]|!\[CDATA\[)")
_HTML_TAG_NAME = re.compile(r"^ {0,3}</?([A-Za-z][A-Za-z0-9-]*)(?=[\s>]|/>|$)")
_HTML_LONE_TAG = re.compile(
    r"^ {0,3}</?[A-Za-z][A-Za-z0-9-]*(?:[\s/](?:[^<>\"']|\"[^\"]*\"|'[^']*')*)?>[ \t]*$"
)
_HTML_BLOCK_NAMES = frozenset({
    "address", "article", "aside", "base", "basefont", "blockquote", "body",
    "caption", "center", "col", "colgroup", "dd", "details", "dialog", "dir",
    "div", "dl", "dt", "fieldset", "figcaption", "figure", "footer", "form",
    "frame", "frameset", "h1", "h2", "h3", "h4", "h5", "h6", "head", "header",
    "hr", "html", "iframe", "legend", "li", "link", "main", "menu", "menuitem",
    "nav", "noframes", "ol", "optgroup", "option", "p", "param", "search",
    "section", "summary", "table", "tbody", "td", "tfoot", "th", "thead",
    "title", "tr", "track", "ul",
})


def _is_blank(line: str) -> bool:
    return not line.strip()


def _fence_open(line: str) -> Optional[tuple[int, Optional[str]]]:
    """Return ``(fence length, language)`` for an opening fence line."""
    m = _FENCE.match(line)
    if not m or "`" in m.group(2):
        return None
    info = m.group(2).split()
    return len(m.group(1)), (info[0] if info else None)


def _heading_text(raw: str) -> str:
    """Strip surrounding blanks and an optional closing ``#`` run."""
    text = raw.strip()
    without_close = text.rstrip("#")
    if without_close != text and (not without_close or without_close[-1] in " \t"):
        text = without_close.rstrip()
    return text


def _html_block_start(line: str, in_paragraph: bool = False) -> bool:
    """Return True if *line* opens a raw HTML block.

    A line holding only an inline tag (``<span class="x">``) opens a block
    too, but never in the middle of a paragraph.  Lines that merely start
    with an inline tag (``<em>Note</em>: ...``) are prose.
    """
    if _HTML_RAW_TEXT.match(line) or _HTML_DECLARATION.match(line):
        return True
    m = _HTML_TAG_NAME.match(line)
    if m and m.group(1).lower() in _HTML_BLOCK_NAMES:
        return True
    return not in_paragraph and _HTML_LONE_TAG.match(line) is not None


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip(" \t"))


def _list_marker(line: str) -> Optional[tuple[str, int, str]]:
    """Return ``(style, number, text)`` for a list item line.

    *style* is the bullet character for unordered items and ``"."`` for
    ordered ones, so a change of bullet also ends the list.
    """
    m = _BULLET.match(line)
    if m:
        return m.group(1), 1, (m.group(2) or "").strip()
    m = _ORDERED.match(line)
    if m:
        return ".", int(m.group(1)), (m.group(2) or "").strip()
    return None


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

class MarkdownParser:
    """Split Markdown text into an ordered tuple of block nodes.

    Usage::

        nodes = MarkdownParser().parse("# Title\\n\\nBody")
    """

    # Tried in order at every block boundary; paragraph is the fallback.
    BLOCK_SCANNERS = ("fence", "heading", "blockquote", "rule", "list", "table", "html")

    def parse(self, text: str) -> Document:
        lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
        nodes: list[DocumentNode] = []
        pos = 0
        while pos < len(lines):
            if _is_blank(lines[pos]):
                pos += 1
                continue
            node, pos = self._scan_block(lines, pos)
            nodes.append(node)
        return tuple(nodes)

    # -- dispatch -----------------------------------------------------------

    def _scan_block(self, lines: list[str], pos: int) -> tuple[DocumentNode, int]:
        for name in self.BLOCK_SCANNERS:
            scanned = getattr(self, f"_scan_{name}")(lines, pos)
            if scanned is not None:
                return scanned
        return self._scan_paragraph(lines, pos)

    def _interrupts_paragraph(self, lines: list[str], pos: int) -> bool:
        line = lines[pos]
        if (
            _fence_open(line)
            or _HEADING.match(line)
            or _QUOTE.match(line)
            or _RULE.match(line)
            or _html_block_start(line, in_paragraph=True)
            or _BULLET.match(line)
        ):
            return True
        ordered = _ORDERED.match(line)
        if ordered and ordered.group(1) == "1":
            return True
        return self._scan_table(lines, pos) is not None

    # -- block scanners -----------------------------------------------------

    def _scan_fence(self, lines: list[str], pos: int) -> Optional[tuple[CodeBlock, int]]:
        opened = _fence_open(lines[pos])
        if opened is None:
            return None
        fence_len, language = opened
        body: list[str] = []
        end = pos + 1
        while end < len(lines):
            close = _FENCE_CLOSE.match(lines[end])
            if close and len(close.group(1)) >= fence_len:
                return CodeBlock(code="\n".join(body), language=language), end + 1
            body.append(lines[end])
            end += 1
        # Unterminated fence: the block runs to end of input.
        return CodeBlock(code="\n".join(body), language=language), end

    def _scan_heading(self, lines: list[str], pos: int) -> Optional[tuple[Heading, int]]:
        m = _HEADING.match(lines[pos])
        if not m:
            return None
        return Heading(level=len(m.group(1)), text=_heading_text(m.group(2) or "")), pos + 1

    def _scan_blockquote(self, lines: list[str], pos: int) -> Optional[tuple[Blockquote, int]]:
        parts: list[str] = []
        end = pos
        while end < len(lines):
            m = _QUOTE.match(lines[end])
            if not m:
                break
            parts.append(m.group(1))
            end += 1
        if not parts:
            return None
        return Blockquote(text="\n".join(parts).strip("\n")), end

    def _scan_rule(self, lines: list[str], pos: int) -> Optional[tuple[Rule, int]]:
        if not _RULE.match(lines[pos]):
            return None
        return Rule(raw=lines[pos].strip()), pos + 1

    def _scan_list(self, lines: list[str], pos: int) -> Optional[tuple[ListBlock, int]]:
        first = _list_marker(lines[pos])
        if first is None:
            return None
        style, start, text = first
        base_indent = _indent(lines[pos])
        items: list[list[str]] = [[text]]
        end = pos + 1
        while end < len(lines):
            line = lines[end]
            if _is_blank(line):
                break
            if _indent(line) > base_indent + 1:
                # Deeper indentation continues the current item verbatim.
                items[-1].append(line.strip())
                end += 1
                continue
            if _RULE.match(line):
                break
            marker = _list_marker(line)
            if marker is None or marker[0] != style:
                break
            items.append([marker[2]])
            end += 1
        return (
            ListBlock(
                ordered=style == ".",
                items=tuple(ListItem(text="\n".join(parts)) for parts in items),
                start=start,
            ),
            end,
        )

    def _scan_table(self, lines: list[str], pos: int) -> Optional[tuple[RawFallback, int]]:
        if pos + 1 >= len(lines):
            return None
        header, delimiter = lines[pos], lines[pos + 1]
        if "|" not in header or "|" not in delimiter:
            return None
        if not _TABLE_DELIMITER.match(delimiter.strip()):
            return None
        end = pos + 2
        while end < len(lines) and not _is_blank(lines[end]):
            end += 1
        return RawFallback(raw="\n".join(lines[pos:end]), kind="table"), end

    def _scan_html(self, lines: list[str], pos: int) -> Optional[tuple[RawFallback, int]]:
        if not _html_block_start(lines[pos]):
            return None
        end = pos + 1
        while end < len(lines) and not _is_blank(lines[end]):
            end += 1
        return RawFallback(raw="\n".join(lines[pos:end]), kind="html"), end

    def _scan_paragraph(self, lines: list[str], pos: int) -> tuple[Paragraph, int]:
        parts = [lines[pos].strip()]
        end = pos + 1
        while end < len(lines):
            if _is_blank(lines[end]) or self._interrupts_paragraph(lines, end):
                break
            parts.append(lines[end].strip())
            end += 1
        return Paragraph(text="\n".join(parts)), end


_default_parser = MarkdownParser()


def parse_document(text: str) -> Document:
    """Parse *text* with a shared :class:`MarkdownParser`."""
    return _default_parser.parse(text)
