"""Renderers that turn the document model into HTML, JSON and plain text.

The HTML renderer emits block markup itself and hands inline spans
(emphasis, code, links, images, strikethrough) to mistune's inline parser
with a restricted :class:`mistune.HTMLRenderer`.  The assembled markup is
then passed through :func:`sanitize_html`, a bleach allow-list pass which
is the authoritative defence against script injection.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from html import unescape
from typing import Any, Callable, Iterable, Optional

import bleach
import mistune
from mistune.core import BlockState

from mdconvert.parser import (
    Blockquote,
    CodeBlock,
    DocumentNode,
    Heading,
    ListBlock,
    NodeType,
    Paragraph,
    RawFallback,
    Rule,
    parse_document,
)
from mdconvert.security import escape_html, sanitize_url

# ---------------------------------------------------------------------------
# Allow-list
# ---------------------------------------------------------------------------

ALLOWED_TAGS = frozenset({
    "h1", "h2", "h3", "h4", "h5", "h6",
    "p", "br", "strong", "em", "u", "s",
    "ul", "ol", "li", "blockquote",
    "code", "pre", "a", "img", "hr",
    "table", "thead", "tbody", "tr", "td", "th",
})
ALLOWED_ATTRIBUTES = frozenset({"href", "src", "alt", "title", "target", "rel"})
ALLOWED_PROTOCOLS = frozenset({"http", "https", "mailto"})

# Never allowed, even if someone widens the lists above.
FORBIDDEN_TAGS = frozenset({"script", "object", "embed", "form", "input"})
FORBIDDEN_ATTRIBUTES = frozenset({"style"})

LINK_TARGET = ' target="_blank" rel="noopener noreferrer"'


def _allow_attribute(tag: str, name: str, value: str) -> bool:
    lowered = name.lower()
    if lowered.startswith("on") or lowered in FORBIDDEN_ATTRIBUTES:
        return False
    return lowered in ALLOWED_ATTRIBUTES


def sanitize_html(html: str) -> str:
    """Strip every tag and attribute outside the allow-list."""
    return bleach.clean(
        html,
        tags=ALLOWED_TAGS - FORBIDDEN_TAGS,
        attributes=_allow_attribute,
        protocols=ALLOWED_PROTOCOLS,
        strip=True,
        strip_comments=True,
    )


# ---------------------------------------------------------------------------
# Renderer configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RendererConfig:
    """Pure transforms and switches used by :class:`HtmlRenderer`."""

    url_sanitizer: Callable[[str], str] = sanitize_url
    text_escaper: Callable[[str], str] = escape_html
    # Render single newlines inside a block as <br>
    breaks: bool = True
    # Keep raw HTML from the source (still subject to sanitize_html)
    allow_html: bool = False
    sanitize: bool = True


_TAG_RE = re.compile(r"<[^>]*>")


def render_link(text: str, url: str, title: Optional[str], config: RendererConfig) -> str:
    href = config.text_escaper(config.url_sanitizer(url))
    title_attr = f' title="{config.text_escaper(title)}"' if title else ""
    return f'<a href="{href}"{LINK_TARGET}{title_attr}>{text}</a>'


def render_image(alt: str, url: str, title: Optional[str], config: RendererConfig) -> str:
    src = config.text_escaper(config.url_sanitizer(url))
    alt_attr = f' alt="{config.text_escaper(alt)}"'
    title_attr = f' title="{config.text_escaper(title)}"' if title else ""
    return f'<img src="{src}"{alt_attr}{title_attr}>'


class _SpanRenderer(mistune.HTMLRenderer):
    """mistune HTML renderer with link, image and raw-HTML policies."""

    def __init__(self, config: RendererConfig) -> None:
        super().__init__(escape=True)
        self.config = config

    def link(self, text: str, url: str, title: Optional[str] = None) -> str:
        return render_link(text, url, title, self.config)

    def image(self, text: str, url: str, title: Optional[str] = None) -> str:
        # mistune hands over the alt text already rendered as HTML
        alt = unescape(_TAG_RE.sub("", text))
        return render_image(alt, url, title, self.config)

    def inline_html(self, html: str) -> str:
        return html if self.config.allow_html else ""

    def block_html(self, html: str) -> str:
        return html if self.config.allow_html else ""

    def softbreak(self) -> str:
        return "<br>\n" if self.config.breaks else "\n"

    def strikethrough(self, text: str) -> str:
        return "<s>" + text + "</s>"


# ---------------------------------------------------------------------------
# HTML
# ---------------------------------------------------------------------------

class HtmlRenderer:
    """Render document nodes to sanitized HTML markup."""

    # Blockquotes are re-parsed for nested blocks up to this depth.
    MAX_QUOTE_DEPTH = 16

    def __init__(self, config: Optional[RendererConfig] = None) -> None:
        self.config = config or RendererConfig()
        self._spans = _SpanRenderer(self.config)
        self._md = mistune.create_markdown(
            renderer=self._spans,
            plugins=["strikethrough", "table"],
        )

    def render(self, nodes: Iterable[DocumentNode]) -> str:
        markup = self._render_nodes(nodes, depth=0)
        if self.config.sanitize:
            return sanitize_html(markup)
        return markup

    def render_inline(self, text: str) -> str:
        """Render inline spans of *text* without a block wrapper."""
        if not text:
            return ""
        tokens = self._md.inline(text, {"ref_links": {}})
        return self._spans(tokens, BlockState())

    # -- block handlers -----------------------------------------------------

    def _render_nodes(self, nodes: Iterable[DocumentNode], depth: int) -> str:
        return "".join(self._render_node(node, depth) for node in nodes)

    def _render_node(self, node: DocumentNode, depth: int) -> str:
        handler = getattr(self, f"_render_{node.type.name.lower()}")
        return handler(node, depth)

    def _render_heading(self, node: Heading, _depth: int) -> str:
        return f"<h{node.level}>{self.render_inline(node.text)}</h{node.level}>\n"

    def _render_paragraph(self, node: Paragraph, _depth: int) -> str:
        return f"<p>{self.render_inline(node.text)}</p>\n"

    def _render_list(self, node: ListBlock, _depth: int) -> str:
        tag = "ol" if node.ordered else "ul"
        items = "".join(f"<li>{self.render_inline(item.text)}</li>\n" for item in node.items)
        return f"<{tag}>\n{items}</{tag}>\n"

    def _render_code_block(self, node: CodeBlock, _depth: int) -> str:
        return f"<pre><code>{escape_html(node.code)}</code></pre>\n"

    def _render_blockquote(self, node: Blockquote, depth: int) -> str:
        if depth >= self.MAX_QUOTE_DEPTH:
            inner = f"<p>{self.render_inline(node.text)}</p>\n"
        else:
            inner = self._render_nodes(parse_document(node.text), depth + 1)
        return f"<blockquote>\n{inner}</blockquote>\n"

    def _render_rule(self, _node: Rule, _depth: int) -> str:
        return "<hr>\n"

    def _render_raw(self, node: RawFallback, _depth: int) -> str:
        if node.kind == "table":
            return self._md(node.raw)
        return node.raw + "\n" if self.config.allow_html else ""


# ---------------------------------------------------------------------------
# JSON tree
# ---------------------------------------------------------------------------

class JsonRenderer:
    """Render document nodes to a JSON-serialisable tree."""

    DEFAULT_CODE_LANGUAGE = "text"

    def render(self, nodes: Iterable[DocumentNode]) -> dict[str, Any]:
        return {
            "type": "document",
            "children": [self.render_node(node) for node in nodes],
        }

    def render_node(self, node: DocumentNode) -> dict[str, Any]:
        base: dict[str, Any] = {"type": node.type.value}
        if isinstance(node, Heading):
            return {**base, "level": node.level, "text": node.text}
        if isinstance(node, Paragraph):
            return {**base, "text": node.text}
        if isinstance(node, ListBlock):
            return {
                **base,
                "ordered": node.ordered,
                "items": [{"type": "list_item", "text": item.text} for item in node.items],
            }
        if isinstance(node, CodeBlock):
            return {
                **base,
                "language": node.language or self.DEFAULT_CODE_LANGUAGE,
                "code": node.code,
            }
        if isinstance(node, Blockquote):
            return {**base, "text": node.text}
        if isinstance(node, RawFallback):
            return {"type": node.kind, "raw": node.raw}
        # Nodes without a specific mapping keep their source text.
        return {**base, "raw": getattr(node, "raw", "")}


# ---------------------------------------------------------------------------
# Plain text
# ---------------------------------------------------------------------------

class PlainTextRenderer:
    """Render document nodes back to readable, normalised text."""

    BULLET = "•"
    SEPARATOR = "\n\n"

    def render(self, nodes: Iterable[DocumentNode]) -> str:
        return self.SEPARATOR.join(self.render_node(node) for node in nodes)

    def render_node(self, node: DocumentNode) -> str:
        if node.type is NodeType.HEADING:
            return f"{'#' * node.level} {node.text}"
        if node.type is NodeType.PARAGRAPH:
            return node.text
        if node.type is NodeType.LIST:
            lines = []
            for index, item in enumerate(node.items):
                bullet = f"{node.start + index}." if node.ordered else self.BULLET
                lines.append(f"{bullet} {item.text}")
            return "\n".join(lines)
        if node.type is NodeType.CODE_BLOCK:
            return f"```{node.language or ''}\n{node.code}\n```"
        if node.type is NodeType.BLOCKQUOTE:
            return "\n".join(f"> {line}" if line else ">" for line in node.text.split("\n"))
        if node.type is NodeType.RULE:
            return "---"
        return node.raw
