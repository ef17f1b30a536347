"""Stylesheet presets for the HTML document shell.

Manages style presets (default, academic, minimal) that map semantic
style groups (body, headings, code, tables, ...) to concrete CSS used in
the ``<style>`` element of converted HTML documents.
"""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass
class FontSpec:
    """Typography for running text."""

    family: str = (
        "-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Roboto', 'Oxygen', "
        "'Ubuntu', 'Cantarell', sans-serif"
    )
    size_px: int = 16
    line_height: float = 1.6
    color: str = "#333"

    def derive(self, **overrides) -> FontSpec:
        """Return a copy with selected fields overridden."""
        clone = deepcopy(self)
        for k, v in overrides.items():
            if hasattr(clone, k):
                setattr(clone, k, v)
        return clone


@dataclass
class PageSpec:
    """Page box around the article."""

    max_width_px: int = 800
    padding: str = "2rem"
    background: str = "#fff"
    link_color: str = "#0366d6"
    border_color: str = "#eaecef"
    muted_color: str = "#6a737d"

    def derive(self, **overrides) -> PageSpec:
        clone = deepcopy(self)
        for k, v in overrides.items():
            if hasattr(clone, k):
                setattr(clone, k, v)
        return clone


@dataclass
class CodeSpec:
    family: str = "'SFMono-Regular', Consolas, 'Liberation Mono', Menlo, monospace"
    inline_background: str = "rgba(27,31,35,0.05)"
    block_background: str = "#f6f8fa"
    radius_px: int = 6


@dataclass
class StyleDef:
    """Complete preset: body font, page box, code and heading scale."""

    name: str
    font: FontSpec
    page: PageSpec
    code: CodeSpec = field(default_factory=CodeSpec)
    # Heading font sizes in rem, H1..H6
    heading_sizes: tuple[float, ...] = (2.0, 1.5, 1.25, 1.0, 0.875, 0.85)
    heading_weight: int = 600


# ---------------------------------------------------------------------------
# Preset definitions
# ---------------------------------------------------------------------------

def _build_default_style() -> StyleDef:
    return StyleDef(name="default", font=FontSpec(), page=PageSpec())


def _build_academic_style() -> StyleDef:
    font = FontSpec(
        family="Georgia, 'Times New Roman', Times, serif",
        size_px=17,
        line_height=1.7,
        color="#222",
    )
    return StyleDef(
        name="academic",
        font=font,
        page=PageSpec(max_width_px=720, link_color="#1a4e8a"),
        heading_sizes=(1.9, 1.5, 1.25, 1.1, 1.0, 0.9),
        heading_weight=700,
    )


def _build_minimal_style() -> StyleDef:
    return StyleDef(
        name="minimal",
        font=FontSpec().derive(family="system-ui, sans-serif", line_height=1.5),
        page=PageSpec().derive(max_width_px=680, padding="1rem", border_color="#ddd"),
        code=CodeSpec(inline_background="#f4f4f4", block_background="#f4f4f4", radius_px=0),
        heading_sizes=(1.6, 1.35, 1.15, 1.0, 0.9, 0.85),
        heading_weight=500,
    )


_PRESET_BUILDERS = {
    "default": _build_default_style,
    "academic": _build_academic_style,
    "minimal": _build_minimal_style,
}


# ---------------------------------------------------------------------------
# StyleManager
# ---------------------------------------------------------------------------

class StyleManager:
    """Resolve a preset name to its stylesheet.

    Usage::

        sm = StyleManager("academic")
        css = sm.stylesheet()
    """

    PRESETS = list(_PRESET_BUILDERS.keys())

    def __init__(self, preset: str = "default") -> None:
        if preset not in _PRESET_BUILDERS:
            raise ValueError(
                f"Unknown preset {preset!r}. Choose from: {', '.join(_PRESET_BUILDERS)}"
            )
        self.preset = preset
        self.style = _PRESET_BUILDERS[preset]()

    def stylesheet(self) -> str:
        """Return the CSS text for the preset."""
        s = self.style
        font, page, code = s.font, s.page, s.code
        heading_rules = []
        for level, size in enumerate(s.heading_sizes, start=1):
            extra = ""
            if level == 1:
                extra = f" border-bottom: 2px solid {page.border_color}; padding-bottom: 0.3rem;"
            elif level == 2:
                extra = f" border-bottom: 1px solid {page.border_color}; padding-bottom: 0.3rem;"
            elif level == 6:
                extra = f" color: {page.muted_color};"
            heading_rules.append(f"h{level} {{ font-size: {size}rem;{extra} }}")

        return "\n".join([
            "body {",
            f"  font-family: {font.family};",
            f"  line-height: {font.line_height};",
            f"  color: {font.color};",
            f"  max-width: {page.max_width_px}px;",
            "  margin: 0 auto;",
            f"  padding: {page.padding};",
            f"  background-color: {page.background};",
            "}",
            f".markdown-content {{ font-size: {font.size_px}px; }}",
            "h1, h2, h3, h4, h5, h6 {",
            "  margin-top: 2rem;",
            "  margin-bottom: 1rem;",
            f"  font-weight: {s.heading_weight};",
            "  line-height: 1.25;",
            "}",
            *heading_rules,
            "p { margin-bottom: 1rem; }",
            f"a {{ color: {page.link_color}; text-decoration: none; }}",
            "a:hover { text-decoration: underline; }",
            "blockquote {",
            "  padding: 0 1rem;",
            f"  color: {page.muted_color};",
            "  border-left: 4px solid #dfe2e5;",
            "  margin: 1rem 0;",
            "}",
            "code {",
            "  padding: 0.2rem 0.4rem;",
            "  font-size: 85%;",
            f"  background-color: {code.inline_background};",
            "  border-radius: 3px;",
            f"  font-family: {code.family};",
            "}",
            "pre {",
            "  padding: 1rem;",
            "  overflow: auto;",
            "  font-size: 85%;",
            "  line-height: 1.45;",
            f"  background-color: {code.block_background};",
            f"  border-radius: {code.radius_px}px;",
            "  margin: 1rem 0;",
            "}",
            "pre code { background: transparent; padding: 0; font-size: 100%; }",
            "ul, ol { padding-left: 2rem; margin: 1rem 0; }",
            "li { margin: 0.25rem 0; }",
            "table { border-collapse: collapse; width: 100%; margin: 1rem 0; }",
            "th, td { border: 1px solid #dfe2e5; padding: 6px 13px; text-align: left; }",
            f"th {{ background-color: {code.block_background}; font-weight: 600; }}",
            f"img {{ max-width: 100%; height: auto; border-radius: {code.radius_px}px; }}",
            f"hr {{ border: none; border-top: 2px solid {page.border_color}; margin: 2rem 0; }}",
        ])
