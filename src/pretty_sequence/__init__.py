"""pretty-sequence -- Render sequence diagram text to self-contained SVG."""

from __future__ import annotations

from .errors import LexError, ParseError
from .types import RenderOptions, SequenceDiagram, PositionedSequenceDiagram
from .theme import DEFAULTS, DEFAULT_FONT, DiagramColors
from .lexer import tokenize
from .parser import parse_sequence_diagram
from .layout import layout_sequence_diagram
from .renderer import render_sequence_svg

__all__ = [
    "render",
    "tokenize",
    "parse_sequence_diagram",
    "layout_sequence_diagram",
    "render_sequence_svg",
    "RenderOptions",
    "SequenceDiagram",
    "PositionedSequenceDiagram",
    "DiagramColors",
    "ParseError",
    "LexError",
]


def render(
    source: str,
    options: RenderOptions | None = None,
) -> str:
    """Render sequence diagram text to an SVG string.

    Raises ParseError (LexError for malformed tokens) carrying the 1-based
    line of the first problem; no partial output is produced.
    """
    if options is None:
        options = RenderOptions()

    font = options.font or DEFAULT_FONT
    transparent = options.transparent or False

    diagram = parse_sequence_diagram(source)
    positioned = layout_sequence_diagram(diagram, options)
    return render_sequence_svg(positioned, DEFAULTS, font, transparent)
