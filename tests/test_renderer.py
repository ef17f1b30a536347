"""Tests for the HTML, JSON and plain-text renderers."""

from __future__ import annotations

import json

import pytest

from mdconvert.parser import (
    Blockquote,
    CodeBlock,
    Heading,
    ListBlock,
    ListItem,
    Paragraph,
    RawFallback,
    Rule,
    parse_document,
)
from mdconvert.renderer import (
    HtmlRenderer,
    JsonRenderer,
    PlainTextRenderer,
    RendererConfig,
    render_image,
    render_link,
    sanitize_html,
)


@pytest.fixture
def html() -> HtmlRenderer:
    return HtmlRenderer()


def render_md(renderer: HtmlRenderer, text: str) -> str:
    return renderer.render(parse_document(text))


# ---------------------------------------------------------------------------
# Sanitizer
# ---------------------------------------------------------------------------

class TestSanitizeHtml:
    def test_script_removed(self):
        out = sanitize_html("<p>ok</p><script>alert(1)</script>")
        assert "<script" not in out
        assert "<p>ok</p>" in out

    @pytest.mark.parametrize("tag", ["object", "embed", "form", "input", "iframe", "div", "span"])
    def test_disallowed_tags_stripped(self, tag):
        out = sanitize_html(f"<{tag}>x</{tag}>")
        assert f"<{tag}" not in out

    def test_event_handlers_removed(self):
        out = sanitize_html('<img src="https://x.test/a.png" onerror="steal()">')
        assert "onerror" not in out
        assert 'src="https://x.test/a.png"' in out

    def test_style_attribute_removed(self):
        out = sanitize_html('<p style="color:red">x</p>')
        assert "style" not in out

    def test_javascript_href_removed(self):
        out = sanitize_html('<a href="javascript:alert(1)">x</a>')
        assert "javascript" not in out

    def test_comments_removed(self):
        assert "secret" not in sanitize_html("<p>a</p><!-- secret -->")

    def test_allowed_structure_kept(self):
        markup = "<h2>T</h2><ul><li><strong>b</strong></li></ul><hr><blockquote><p>q</p></blockquote>"
        out = sanitize_html(markup)
        for tag in ("<h2>", "<ul>", "<li>", "<strong>", "<hr>", "<blockquote>"):
            assert tag in out


# ---------------------------------------------------------------------------
# Links and images
# ---------------------------------------------------------------------------

class TestLinkHelpers:
    def test_render_link_safe_url(self):
        out = render_link("site", "https://example.com", None, RendererConfig())
        assert out.startswith('<a href="https://example.com"')
        assert 'target="_blank"' in out
        assert 'rel="noopener noreferrer"' in out
        assert out.endswith(">site</a>")

    def test_render_link_unsafe_url(self):
        out = render_link("x", "javascript:alert(1)", None, RendererConfig())
        assert 'href="#"' in out

    def test_render_link_title_escaped(self):
        out = render_link("x", "https://e.test", 'say "hi"', RendererConfig())
        assert 'title="say &quot;hi&quot;"' in out

    def test_render_image(self):
        out = render_image('a "cat"', "https://e.test/c.png", None, RendererConfig())
        assert out == '<img src="https://e.test/c.png" alt="a &quot;cat&quot;">'

    def test_render_image_unsafe_src(self):
        out = render_image("x", "data:image/png;base64,AAAA", None, RendererConfig())
        assert 'src="#"' in out

    def test_custom_url_sanitizer(self):
        config = RendererConfig(url_sanitizer=lambda url: "https://proxy.test/")
        out = render_link("x", "https://e.test", None, config)
        assert 'href="https://proxy.test/"' in out


# ---------------------------------------------------------------------------
# HTML renderer
# ---------------------------------------------------------------------------

class TestHtmlRenderer:
    def test_script_block_stripped(self, html):
        out = render_md(html, "<script>alert('x')</script>\n\n# Hi\n\n*text*")
        assert "<script" not in out
        assert "alert" not in out
        assert "<h1>Hi</h1>" in out
        assert "<em>text</em>" in out

    @pytest.mark.parametrize("level", [1, 2, 3, 4, 5, 6])
    def test_heading_levels(self, html, level):
        out = html.render([Heading(level=level, text="Title")])
        assert f"<h{level}>Title</h{level}>" in out

    def test_inline_spans(self, html):
        out = render_md(html, "**bold** *em* `code` ~~gone~~")
        assert "<strong>bold</strong>" in out
        assert "<em>em</em>" in out
        assert "<code>code</code>" in out
        assert "<s>gone</s>" in out

    def test_softbreak_is_br(self, html):
        out = render_md(html, "line one\nline two")
        assert "<br>" in out

    def test_softbreak_without_breaks(self):
        renderer = HtmlRenderer(RendererConfig(breaks=False))
        assert "<br>" not in render_md(renderer, "line one\nline two")

    def test_link_has_target_and_rel(self, html):
        out = render_md(html, "[site](https://example.com)")
        assert 'href="https://example.com"' in out
        assert 'target="_blank"' in out
        assert 'rel="noopener noreferrer"' in out

    def test_javascript_link_neutralised(self, html):
        out = render_md(html, "[x](javascript:alert(1))")
        assert "javascript" not in out
        assert 'href="#"' in out

    def test_relative_link_neutralised(self, html):
        out = render_md(html, "[x](docs/page.md)")
        assert 'href="#"' in out

    def test_image(self, html):
        out = render_md(html, "![A *cat*](https://e.test/cat.png)")
        assert "<img" in out
        assert 'src="https://e.test/cat.png"' in out
        assert 'alt="A cat"' in out

    def test_inline_html_dropped(self, html):
        out = render_md(html, 'hello <span onclick="x()">there</span>')
        assert "span" not in out
        assert "onclick" not in out
        assert "hello" in out

    def test_paragraph_starting_with_inline_tag(self, html):
        out = render_md(html, "<em>Note</em>: read the docs")
        assert out.startswith("<p>")
        assert "Note" in out
        assert ": read the docs" in out

    def test_inline_tag_line_after_prose_kept(self, html):
        out = render_md(html, "intro line\n<span>kept?</span> more words")
        assert "intro line" in out
        assert "kept?" in out
        assert "more words" in out
        assert "span" not in out

    def test_br_line_text_kept(self, html):
        assert "after break" in render_md(html, "<br> after break")

    def test_inline_tag_kept_when_allowed(self):
        renderer = HtmlRenderer(RendererConfig(allow_html=True))
        out = render_md(renderer, "<em>Note</em>: read the docs")
        assert "<p><em>Note</em>: read the docs</p>" in out

    def test_raw_fallback_dropped_by_default(self, html):
        assert html.render([RawFallback(raw="<b>x</b>")]) == ""

    def test_html_block_kept_when_allowed(self):
        renderer = HtmlRenderer(RendererConfig(allow_html=True))
        out = render_md(renderer, "<p>raw <u>under</u></p>")
        assert "<u>under</u>" in out

    def test_html_block_still_sanitized_when_allowed(self):
        renderer = HtmlRenderer(RendererConfig(allow_html=True))
        out = render_md(renderer, "<div><script>alert(1)</script></div>")
        assert "<script" not in out

    def test_lists(self, html):
        out = render_md(html, "- a\n- b\n\n1. one\n2. two")
        assert out.count("<li>") == 4
        assert "<ul>" in out
        assert "<ol>" in out

    def test_code_block_escaped(self, html):
        out = render_md(html, "```html\n<script>x</script>\n```")
        assert "<pre><code>" in out
        assert "&lt;script&gt;" in out
        assert "<script>" not in out

    def test_code_block_not_inline_parsed(self, html):
        out = render_md(html, "```\n**not bold**\n```")
        assert "**not bold**" in out
        assert "<strong>" not in out

    def test_blockquote_nested_blocks(self, html):
        out = render_md(html, "> # Quoted\n> - item")
        assert "<blockquote>" in out
        assert "<h1>Quoted</h1>" in out
        assert "<li>item</li>" in out

    def test_deep_blockquote_is_bounded(self, html):
        out = html.render([Blockquote(text=">" * 200 + " deep")])
        assert out.count("<blockquote>") == HtmlRenderer.MAX_QUOTE_DEPTH + 1
        assert "deep" in out

    def test_rule(self, html):
        assert "<hr>" in html.render([Rule()])

    def test_table(self, html):
        out = render_md(html, "| A | B |\n|:--|--:|\n| 1 | 2 |")
        assert "<table>" in out
        assert "<th>A</th>" in out
        assert "<td>2</td>" in out
        assert "style" not in out

    def test_unsanitized_output(self):
        renderer = HtmlRenderer(RendererConfig(sanitize=False))
        out = renderer.render([Paragraph(text="x")])
        assert out == "<p>x</p>\n"

    def test_render_inline_empty(self, html):
        assert html.render_inline("") == ""


# ---------------------------------------------------------------------------
# JSON renderer
# ---------------------------------------------------------------------------

class TestJsonRenderer:
    def test_document_shape(self):
        tree = JsonRenderer().render(parse_document("# T\n\n- a\n- b\n\n```js\nx\n```"))
        assert tree["type"] == "document"
        assert [c["type"] for c in tree["children"]] == ["heading", "list", "code"]
        assert tree["children"][0] == {"type": "heading", "level": 1, "text": "T"}
        assert tree["children"][2]["language"] == "js"

    def test_list_items(self):
        node = ListBlock(ordered=True, items=(ListItem(text="a"), ListItem(text="b")))
        assert JsonRenderer().render_node(node) == {
            "type": "list",
            "ordered": True,
            "items": [{"type": "list_item", "text": "a"}, {"type": "list_item", "text": "b"}],
        }

    def test_code_without_language(self):
        assert JsonRenderer().render_node(CodeBlock(code="x"))["language"] == "text"

    def test_blockquote_and_paragraph(self):
        renderer = JsonRenderer()
        assert renderer.render_node(Blockquote(text="q")) == {"type": "blockquote", "text": "q"}
        assert renderer.render_node(Paragraph(text="p")) == {"type": "paragraph", "text": "p"}

    def test_rule_and_raw(self):
        renderer = JsonRenderer()
        assert renderer.render_node(Rule(raw="***")) == {"type": "hr", "raw": "***"}
        assert renderer.render_node(RawFallback(raw="|a|", kind="table")) == {"type": "table", "raw": "|a|"}

    def test_serialisable(self):
        tree = JsonRenderer().render(parse_document("> quote\n\n---\n\n<div>x</div>"))
        assert json.loads(json.dumps(tree)) == tree

    def test_text_kept_raw(self):
        tree = JsonRenderer().render(parse_document("**bold** [l](https://x.test)"))
        assert tree["children"][0]["text"] == "**bold** [l](https://x.test)"


# ---------------------------------------------------------------------------
# Plain-text renderer
# ---------------------------------------------------------------------------

class TestPlainTextRenderer:
    def test_blocks_joined_by_blank_line(self):
        out = PlainTextRenderer().render(parse_document("# T\n\nbody"))
        assert out == "# T\n\nbody"

    def test_bullets(self):
        out = PlainTextRenderer().render(parse_document("- a\n* b"))
        assert out == "• a\n\n• b"

    def test_ordered_numbering_from_start(self):
        out = PlainTextRenderer().render(parse_document("3. c\n4. d"))
        assert out == "3. c\n4. d"

    def test_code_block(self):
        out = PlainTextRenderer().render([CodeBlock(code="x = 1", language="py")])
        assert out == "```py\nx = 1\n```"

    def test_blockquote(self):
        out = PlainTextRenderer().render([Blockquote(text="a\n\nb")])
        assert out == "> a\n>\n> b"

    def test_rule_and_raw(self):
        renderer = PlainTextRenderer()
        assert renderer.render([Rule(raw="***")]) == "---"
        assert renderer.render([RawFallback(raw="<b>x</b>")]) == "<b>x</b>"

    def test_deterministic(self):
        nodes = parse_document("# A\n\n- x\n\n> q")
        renderer = PlainTextRenderer()
        assert renderer.render(nodes) == renderer.render(nodes)

    def test_empty_document(self):
        assert PlainTextRenderer().render(()) == ""
