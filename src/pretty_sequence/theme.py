from __future__ import annotations

from dataclasses import dataclass

# ============================================================================
# Types
# ============================================================================


@dataclass(slots=True, frozen=True)
class DiagramColors:
    """Diagram color configuration.

    bg + fg give a clean mono diagram; every other color is derived from them
    with color-mix() inside the SVG's own style block.
    """

    bg: str
    fg: str


# ============================================================================
# Defaults -- the one fixed style
# ============================================================================

DEFAULTS = DiagramColors(bg="#FFFFFF", fg="#27272A")

DEFAULT_FONT = "Inter"

# ============================================================================
# color-mix() weights for derived CSS variables
# ============================================================================

MIX = {
    "text_sec": 60,
    "text_muted": 40,
    "line": 30,
    "arrow": 50,
    "node_fill": 3,
    "node_stroke": 20,
    "group_header": 5,
    "inner_stroke": 12,
    "activation_fill": 8,
}

# ============================================================================
# SVG style block
# ============================================================================


def build_style_block(font: str) -> str:
    """Build the CSS variable derivation rules for the SVG <style> block.

    The block only references system font stacks, so the document stays
    self-contained.
    """
    derived_vars = f"""
    /* Derived from --bg and --fg */
    --_text:          var(--fg);
    --_text-sec:      color-mix(in srgb, var(--fg) {MIX["text_sec"]}%, var(--bg));
    --_text-muted:    color-mix(in srgb, var(--fg) {MIX["text_muted"]}%, var(--bg));
    --_line:          color-mix(in srgb, var(--fg) {MIX["line"]}%, var(--bg));
    --_arrow:         color-mix(in srgb, var(--fg) {MIX["arrow"]}%, var(--bg));
    --_node-fill:     color-mix(in srgb, var(--fg) {MIX["node_fill"]}%, var(--bg));
    --_node-stroke:   color-mix(in srgb, var(--fg) {MIX["node_stroke"]}%, var(--bg));
    --_group-hdr:     color-mix(in srgb, var(--fg) {MIX["group_header"]}%, var(--bg));
    --_inner-stroke:  color-mix(in srgb, var(--fg) {MIX["inner_stroke"]}%, var(--bg));
    --_active-fill:   color-mix(in srgb, var(--fg) {MIX["activation_fill"]}%, var(--bg));"""

    lines = [
        "<style>",
        f"  text {{ font-family: '{_css_string(font)}', system-ui, sans-serif; }}",
        f"  svg {{{derived_vars}",
        "  }",
        "</style>",
    ]
    return "\n".join(lines)


def svg_open_tag(
    width: str,
    height: str,
    colors: DiagramColors,
    transparent: bool = False,
) -> str:
    """Build the SVG opening tag with CSS variables set as inline styles."""
    vars_str = f"--bg:{colors.bg};--fg:{colors.fg}"
    bg_style = "" if transparent else ";background:var(--bg)"

    return (
        f'<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 {width} {height}" '
        f'width="{width}" height="{height}" style="{vars_str}{bg_style}">'
    )


def _css_string(value: str) -> str:
    """Keep a font name from closing its quoted CSS string or the style element."""
    return (
        value.replace("\\", "")
        .replace("'", "")
        .replace("<", "")
        .replace(">", "")
        .replace("&", "")
    )
