from __future__ import annotations

from .types import (
    PositionedSequenceDiagram,
    PositionedParticipant,
    PositionedTitle,
    Lifeline,
    PositionedMessage,
    ActivationBar,
    PositionedBlock,
    PositionedNote,
    PositionedBox,
    DestroyMarker,
    FooterBar,
)
from .layout import SEQ
from .theme import DiagramColors, DEFAULTS, DEFAULT_FONT, svg_open_tag, build_style_block
from .styles import (
    FONT_SIZES,
    FONT_WEIGHTS,
    LINE_HEIGHT,
    STROKE_WIDTHS,
    ARROW_HEAD,
    TEXT_BASELINE_SHIFT,
    estimate_text_width,
    fmt,
    text_lines,
)

# ============================================================================
# Sequence diagram SVG renderer
#
# Serializes a positioned sequence diagram; every coordinate comes from the
# layout. All colors use CSS custom properties (var(--_xxx)) from theme.py.
#
# Render order (back to front):
#   1. Title
#   2. Block frames (alt/opt/loop)
#   3. Lifelines (dashed vertical lines)
#   4. Activation bars
#   5. Messages (arrows with labels)
#   6. Notes, then ref and state boxes
#   7. Destroy markers
#   8. Participant headers, then footers or the footer bar
# ============================================================================

_BLOCK_TAB_HEIGHT = 18


def render_sequence_svg(
    diagram: PositionedSequenceDiagram,
    colors: DiagramColors = DEFAULTS,
    font: str = DEFAULT_FONT,
    transparent: bool = False,
) -> str:
    """Render a positioned sequence diagram as an SVG string.

    Args:
        colors: DiagramColors with bg/fg.
        transparent: If true, renders with transparent background.
    """
    parts: list[str] = []

    # SVG root with CSS variables + style block + defs
    parts.append(svg_open_tag(fmt(diagram.width), fmt(diagram.height), colors, transparent))
    parts.append(build_style_block(font))
    parts.append("<defs>")

    # Arrow marker definitions
    parts.append(_arrow_marker_defs())
    parts.append("</defs>")

    # 1. Title
    if diagram.title is not None:
        parts.append(_render_title(diagram.title))

    # 2. Block frames (alt/opt/loop rectangles)
    for block in diagram.blocks:
        parts.append(_render_block(block))

    # 3. Lifelines (dashed vertical lines from header to footer)
    for lifeline in diagram.lifelines:
        parts.append(_render_lifeline(lifeline))

    # 4. Activation bars
    for activation in diagram.activations:
        parts.append(_render_activation(activation))

    # 5. Messages (horizontal arrows with labels)
    for message in diagram.messages:
        parts.append(_render_message(message))

    # 6. Notes
    for note in diagram.notes:
        parts.append(_render_note(note))
    for box in diagram.boxes:
        parts.append(_render_box(box))

    # 7. Destroy markers
    for marker in diagram.destroys:
        parts.append(_render_destroy(marker))

    # 8. Participant boxes (rendered last so they're on top)
    for participant in diagram.participants:
        parts.append(_render_participant(participant))
    for participant in diagram.footers:
        parts.append(_render_participant(participant))
    if diagram.footer_bar is not None:
        parts.append(_render_footer_bar(diagram.footer_bar))

    parts.append("</svg>")
    return "\n".join(parts)


# ============================================================================
# Arrow marker definitions
# ============================================================================


def _arrow_marker_defs() -> str:
    w = ARROW_HEAD["width"]
    h = ARROW_HEAD["height"]
    return (
        # Filled (closed) head: -> and -->
        f'  <marker id="seq-arrow" markerWidth="{w}" markerHeight="{h}" '
        f'refX="{w}" refY="{h / 2}" orient="auto-start-reverse">\n'
        f'    <polygon points="0 0, {w} {h / 2}, 0 {h}" fill="var(--_arrow)" />\n'
        f"  </marker>\n"
        # Open head, just lines: ->> and -->>
        f'  <marker id="seq-arrow-open" markerWidth="{w}" markerHeight="{h}" '
        f'refX="{w}" refY="{h / 2}" orient="auto-start-reverse">\n'
        f'    <polyline points="0 0, {w} {h / 2}, 0 {h}" fill="none" '
        f'stroke="var(--_arrow)" stroke-width="1" />\n'
        f"  </marker>"
    )


# ============================================================================
# Component renderers
# ============================================================================


def _render_title(title: PositionedTitle) -> str:
    return _text(
        title.text,
        title.x,
        title.y + FONT_SIZES["title"],
        FONT_SIZES["title"],
        FONT_WEIGHTS["title"],
        LINE_HEIGHT["title"],
        fill="var(--_text)",
        anchor="middle",
        centered=False,
    )


def _render_participant(participant: PositionedParticipant) -> str:
    """Render a participant box (participant = rectangle, actor = person icon)."""
    x = participant.x
    y = participant.y
    width = participant.width
    height = participant.height

    if participant.kind == "actor":
        # Circle-person icon: outer circle + head circle + shoulders arc.
        # Defined in a 24x24 coordinate space, scaled to 90% of the box height
        # and centered both horizontally and vertically within the box.
        # Stroke width is inverse-scaled so the visual thickness matches STROKE_WIDTHS.outer_box.
        s = (height / 24) * 0.9
        tx = x - 12 * s
        ty = y + (height - 24 * s) / 2
        sw = STROKE_WIDTHS["outer_box"] / s
        icon_stroke = "var(--_line)"

        return (
            f'<g transform="translate({fmt(tx)},{fmt(ty)}) scale({fmt(s)})">\n'
            # Outer circle
            f'  <path d="M21 12C21 16.9706 16.9706 21 12 21C7.02944 21 3 16.9706 3 12'
            f'C3 7.02944 7.02944 3 12 3C16.9706 3 21 7.02944 21 12Z" '
            f'fill="none" stroke="{icon_stroke}" stroke-width="{fmt(sw)}" />\n'
            # Head
            f'  <path d="M15 10C15 11.6569 13.6569 13 12 13C10.3431 13 9 11.6569 9 10'
            f'C9 8.34315 10.3431 7 12 7C13.6569 7 15 8.34315 15 10Z" '
            f'fill="none" stroke="{icon_stroke}" stroke-width="{fmt(sw)}" />\n'
            # Shoulders
            f'  <path d="M5.62842 18.3563C7.08963 17.0398 9.39997 16 12 16'
            f'C14.6 16 16.9104 17.0398 18.3716 18.3563" '
            f'fill="none" stroke="{icon_stroke}" stroke-width="{fmt(sw)}" />\n'
            f"</g>\n"
            # Label below the icon
            + _text(
                participant.label,
                x,
                y + height + 14,
                FONT_SIZES["participant"],
                FONT_WEIGHTS["participant"],
                LINE_HEIGHT["participant"],
                fill="var(--_text)",
                anchor="middle",
                centered=False,
            )
        )

    # Participant: rectangle box with label
    box_x = x - width / 2
    return (
        f'<rect x="{fmt(box_x)}" y="{fmt(y)}" width="{fmt(width)}" height="{fmt(height)}" '
        f'rx="4" ry="4" fill="var(--_node-fill)" stroke="var(--_node-stroke)" '
        f'stroke-width="{STROKE_WIDTHS["outer_box"]}" />\n'
        + _text(
            participant.label,
            x,
            y + height / 2,
            FONT_SIZES["participant"],
            FONT_WEIGHTS["participant"],
            LINE_HEIGHT["participant"],
            fill="var(--_text)",
            anchor="middle",
        )
    )


def _render_lifeline(lifeline: Lifeline) -> str:
    """Render a lifeline (dashed vertical line from header to footer)."""
    return (
        f'<line x1="{fmt(lifeline.x)}" y1="{fmt(lifeline.top_y)}" '
        f'x2="{fmt(lifeline.x)}" y2="{fmt(lifeline.bottom_y)}" '
        f'stroke="var(--_line)" stroke-width="0.75" stroke-dasharray="6 4" />'
    )


def _render_activation(activation: ActivationBar) -> str:
    """Render an activation bar (narrow filled rectangle on a lifeline)."""
    return (
        f'<rect x="{fmt(activation.x)}" y="{fmt(activation.top_y)}" '
        f'width="{fmt(activation.width)}" '
        f'height="{fmt(activation.bottom_y - activation.top_y)}" '
        f'fill="var(--_active-fill)" stroke="var(--_node-stroke)" '
        f'stroke-width="{STROKE_WIDTHS["inner_box"]}" />'
    )


def _render_message(msg: PositionedMessage) -> str:
    """Render a message arrow with label."""
    parts: list[str] = []
    dash_array = ' stroke-dasharray="6 4"' if msg.line_style == "dashed" else ""
    marker_id = "seq-arrow" if msg.arrow_head == "filled" else "seq-arrow-open"
    label = msg.text

    if msg.is_self:
        # Self-message: rectangular loop going right and back
        right = msg.x1 + SEQ["self_loop_width"]
        bottom = msg.y + SEQ["self_loop_height"]
        parts.append(
            f'<polyline points="{fmt(msg.x1)},{fmt(msg.y)} {fmt(right)},{fmt(msg.y)} '
            f'{fmt(right)},{fmt(bottom)} {fmt(msg.x2)},{fmt(bottom)}" '
            f'fill="none" stroke="var(--_line)" '
            f'stroke-width="{STROKE_WIDTHS["connector"]}"{dash_array} '
            f'marker-end="url(#{marker_id})" />'
        )
        if label:
            # Label to the right of the loop
            parts.append(
                _text(
                    label,
                    right + SEQ["self_label_gap"],
                    msg.y + SEQ["self_loop_height"] / 2,
                    FONT_SIZES["message"],
                    FONT_WEIGHTS["message"],
                    LINE_HEIGHT["message"],
                    fill="var(--_text-muted)",
                )
            )
    else:
        # Normal message: horizontal arrow
        parts.append(
            f'<line x1="{fmt(msg.x1)}" y1="{fmt(msg.y)}" x2="{fmt(msg.x2)}" y2="{fmt(msg.y)}" '
            f'stroke="var(--_line)" '
            f'stroke-width="{STROKE_WIDTHS["connector"]}"{dash_array} '
            f'marker-end="url(#{marker_id})" />'
        )
        if label:
            # Label above the arrow, centered; extra lines stack upwards
            mid_x = (msg.x1 + msg.x2) / 2
            first_baseline = msg.y - 6 - (len(text_lines(label)) - 1) * LINE_HEIGHT["message"]
            parts.append(
                _text(
                    label,
                    mid_x,
                    first_baseline,
                    FONT_SIZES["message"],
                    FONT_WEIGHTS["message"],
                    LINE_HEIGHT["message"],
                    fill="var(--_text-muted)",
                    anchor="middle",
                    centered=False,
                )
            )

    return "\n".join(parts)


def _render_block(block: PositionedBlock) -> str:
    """Render a block frame (alt/opt/loop) with its else dividers."""
    parts: list[str] = []

    # Dashed outer rectangle
    parts.append(
        f'<rect x="{fmt(block.x)}" y="{fmt(block.y)}" width="{fmt(block.width)}" '
        f'height="{fmt(block.height)}" rx="0" ry="0" fill="none" '
        f'stroke="var(--_node-stroke)" stroke-width="{STROKE_WIDTHS["outer_box"]}" '
        f'stroke-dasharray="4 3" />'
    )

    # Kind label tab (top-left corner)
    label_text = f"{block.kind} [{block.label}]" if block.label else block.kind
    tab_width = (
        estimate_text_width(
            label_text, FONT_SIZES["block_label"], FONT_WEIGHTS["block_label"]
        )
        + 16
    )

    parts.append(
        f'<rect x="{fmt(block.x)}" y="{fmt(block.y)}" width="{fmt(tab_width)}" '
        f'height="{_BLOCK_TAB_HEIGHT}" fill="var(--_group-hdr)" '
        f'stroke="var(--_node-stroke)" stroke-width="{STROKE_WIDTHS["outer_box"]}" />'
    )
    parts.append(
        f'<text x="{fmt(block.x + 6)}" y="{fmt(block.y + _BLOCK_TAB_HEIGHT / 2)}" '
        f'dy="{TEXT_BASELINE_SHIFT}" '
        f'font-size="{FONT_SIZES["block_label"]}" '
        f'font-weight="{FONT_WEIGHTS["block_label"]}" '
        f'fill="var(--_text-sec)">{_escape_xml(label_text)}</text>'
    )

    # Divider lines (for else sections)
    for divider in block.dividers:
        parts.append(
            f'<line x1="{fmt(block.x)}" y1="{fmt(divider.y)}" '
            f'x2="{fmt(block.x + block.width)}" y2="{fmt(divider.y)}" '
            f'stroke="var(--_line)" stroke-width="0.75" stroke-dasharray="6 4" />'
        )
        if divider.label:
            parts.append(
                f'<text x="{fmt(block.x + 8)}" y="{fmt(divider.y + 14)}" '
                f'font-size="{FONT_SIZES["block_label"]}" '
                f'font-weight="{FONT_WEIGHTS["message"]}" '
                f'fill="var(--_text-muted)">[{_escape_xml(divider.label)}]</text>'
            )

    return "\n".join(parts)


def _render_note(note: PositionedNote) -> str:
    """Render a note box."""
    # Folded corner effect: note rectangle + small triangle in top-right
    fold_size = 6
    right = note.x + note.width
    return (
        f'<rect x="{fmt(note.x)}" y="{fmt(note.y)}" width="{fmt(note.width)}" '
        f'height="{fmt(note.height)}" fill="var(--_group-hdr)" '
        f'stroke="var(--_node-stroke)" stroke-width="{STROKE_WIDTHS["inner_box"]}" />\n'
        # Fold triangle
        f'<polygon points="{fmt(right - fold_size)},{fmt(note.y)} '
        f'{fmt(right)},{fmt(note.y + fold_size)} '
        f'{fmt(right - fold_size)},{fmt(note.y + fold_size)}" '
        f'fill="var(--_inner-stroke)" />\n'
        + _text(
            note.text,
            note.x + note.width / 2,
            note.y + note.height / 2,
            FONT_SIZES["note"],
            FONT_WEIGHTS["note"],
            LINE_HEIGHT["note"],
            fill="var(--_text-muted)",
            anchor="middle",
        )
    )


def _render_box(box: PositionedBox) -> str:
    """Render a ref frame (with its "ref" tab) or a rounded state box."""
    if box.kind == "state":
        return (
            f'<rect x="{fmt(box.x)}" y="{fmt(box.y)}" width="{fmt(box.width)}" '
            f'height="{fmt(box.height)}" rx="8" ry="8" fill="var(--_group-hdr)" '
            f'stroke="var(--_node-stroke)" stroke-width="{STROKE_WIDTHS["outer_box"]}" />\n'
            + _text(
                box.text,
                box.x + box.width / 2,
                box.y + box.height / 2,
                FONT_SIZES["note"],
                FONT_WEIGHTS["note"],
                LINE_HEIGHT["note"],
                fill="var(--_text)",
                anchor="middle",
            )
        )

    header = SEQ["ref_header"]
    tab_width = (
        estimate_text_width("ref", FONT_SIZES["block_label"], FONT_WEIGHTS["block_label"]) + 16
    )
    tab_right = box.x + tab_width
    # Tab with a clipped bottom-right corner
    tab_points = (
        f"{fmt(box.x)},{fmt(box.y)} {fmt(tab_right)},{fmt(box.y)} "
        f"{fmt(tab_right)},{fmt(box.y + header - 5)} "
        f"{fmt(tab_right - 5)},{fmt(box.y + header)} {fmt(box.x)},{fmt(box.y + header)}"
    )
    return (
        f'<rect x="{fmt(box.x)}" y="{fmt(box.y)}" width="{fmt(box.width)}" '
        f'height="{fmt(box.height)}" fill="var(--_node-fill)" '
        f'stroke="var(--_node-stroke)" stroke-width="{STROKE_WIDTHS["outer_box"]}" />\n'
        f'<polygon points="{tab_points}" fill="var(--_group-hdr)" '
        f'stroke="var(--_node-stroke)" stroke-width="{STROKE_WIDTHS["outer_box"]}" />\n'
        f'<text x="{fmt(box.x + 6)}" y="{fmt(box.y + header / 2)}" '
        f'dy="{TEXT_BASELINE_SHIFT}" '
        f'font-size="{FONT_SIZES["block_label"]}" '
        f'font-weight="{FONT_WEIGHTS["block_label"]}" '
        f'fill="var(--_text-sec)">ref</text>\n'
        + _text(
            box.text,
            box.x + box.width / 2,
            box.y + header + (box.height - header) / 2,
            FONT_SIZES["note"],
            FONT_WEIGHTS["note"],
            LINE_HEIGHT["note"],
            fill="var(--_text)",
            anchor="middle",
        )
    )


def _render_footer_bar(bar: FooterBar) -> str:
    """Render the single line that closes the lifelines instead of footer boxes."""
    return (
        f'<line x1="{fmt(bar.x1)}" y1="{fmt(bar.y)}" x2="{fmt(bar.x2)}" y2="{fmt(bar.y)}" '
        f'stroke="var(--_line)" stroke-width="{STROKE_WIDTHS["outer_box"]}" />'
    )


def _render_destroy(marker: DestroyMarker) -> str:
    """Render a destroy marker (an X across the lifeline)."""
    s = marker.size
    stroke = (
        f'stroke="var(--_arrow)" stroke-width="{STROKE_WIDTHS["destroy"]}"'
    )
    return (
        f'<line x1="{fmt(marker.x - s)}" y1="{fmt(marker.y - s)}" '
        f'x2="{fmt(marker.x + s)}" y2="{fmt(marker.y + s)}" {stroke} />\n'
        f'<line x1="{fmt(marker.x + s)}" y1="{fmt(marker.y - s)}" '
        f'x2="{fmt(marker.x - s)}" y2="{fmt(marker.y + s)}" {stroke} />'
    )


# ============================================================================
# Utilities
# ============================================================================


def _text(
    text: str,
    x: float,
    y: float,
    font_size: int,
    font_weight: int,
    line_height: float,
    fill: str,
    anchor: str | None = None,
    centered: bool = True,
) -> str:
    """Render a (possibly multi-line) text element.

    With centered=True the block of lines is vertically centered on y,
    otherwise y is the first line's baseline.
    """
    lines = text_lines(text)
    anchor_attr = f' text-anchor="{anchor}"' if anchor else ""
    head = (
        f'<text x="{fmt(x)}" y="{fmt(y)}"{anchor_attr} '
        f'font-size="{font_size}" font-weight="{font_weight}" fill="{fill}"'
    )
    if len(lines) == 1:
        dy = f' dy="{TEXT_BASELINE_SHIFT}"' if centered else ""
        return f"{head}{dy}>{_escape_xml(text)}</text>"

    first_y = y - (len(lines) - 1) * line_height / 2 if centered else y
    spans = []
    for i, line in enumerate(lines):
        line_y = first_y + i * line_height
        dy = f' dy="{TEXT_BASELINE_SHIFT}"' if centered else ""
        spans.append(
            f'<tspan x="{fmt(x)}" y="{fmt(line_y)}"{dy}>{_escape_xml(line)}</tspan>'
        )
    return f"{head}>{''.join(spans)}</text>"


def _escape_xml(text: str) -> str:
    """Escape special XML characters in text content."""
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&#39;")
    )
