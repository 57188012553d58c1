from __future__ import annotations

import unicodedata

# ============================================================================
# Font metrics -- character width estimates for Inter at different sizes.
#
# Widths come from fixed per-class advances (in em) rather than real font
# metrics, so the same text measures the same on every platform.
# ============================================================================

CHAR_ADVANCE = {
    "lower": 0.52,
    "upper": 0.66,
    "digit": 0.56,
    "space": 0.28,
    "punct": 0.34,
    # East Asian wide/fullwidth glyphs
    "wide": 1.0,
    "other": 0.6,
}

# Narrow and extra-wide Latin letters that skew the class average
_NARROW = frozenset("iljtfrI.,:;'|!")
_WIDE = frozenset("mwMW@%")


def char_class(ch: str) -> str:
    if ch.isspace():
        return "space"
    if ch.isdigit():
        return "digit"
    if ch.islower():
        return "lower"
    if ch.isupper():
        return "upper"
    if unicodedata.east_asian_width(ch) in ("W", "F"):
        return "wide"
    if ch.isascii():
        return "punct"
    return "other"


def char_advance(ch: str) -> float:
    """Advance of one character in em."""
    if ch in _NARROW:
        return 0.3
    if ch in _WIDE:
        return 0.86
    return CHAR_ADVANCE[char_class(ch)]


def text_lines(text: str) -> list[str]:
    return text.split("\n")


def estimate_text_width(text: str, font_size: float, font_weight: int = 400) -> float:
    """Width in px of the widest line of text at the given font size and weight."""
    if font_weight >= 600:
        weight_factor = 1.08
    elif font_weight >= 500:
        weight_factor = 1.04
    else:
        weight_factor = 1.0
    widest = max(sum(char_advance(c) for c in line) for line in text_lines(text))
    return round(widest * font_size * weight_factor, 2)


def fmt(value: float) -> str:
    """Format a coordinate with at most two decimals."""
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


# Fixed font sizes (px)
FONT_SIZES = {
    "participant": 13,
    "message": 11,
    "note": 11,
    "block_label": 11,
    "title": 16,
}

# Font weights per element type
FONT_WEIGHTS = {
    "participant": 500,
    "message": 400,
    "note": 400,
    "block_label": 600,
    "title": 600,
}

# Vertical distance between lines of multi-line text
LINE_HEIGHT = {
    "participant": 16,
    "message": 14,
    "note": 14,
    "title": 20,
}

# ============================================================================
# Spacing & sizing constants
# ============================================================================

# Insets between text and the box drawn around it
BOX_PADDING = {
    "participant_x": 16,
    "participant_y": 12,
    "note_x": 8,
    "note_y": 8,
    # Clearance between a message label and the lanes it runs between
    "label_x": 12,
}

STROKE_WIDTHS = {
    "outer_box": 1,
    "inner_box": 0.75,
    "connector": 0.75,
    "destroy": 1.5,
}

TEXT_BASELINE_SHIFT = "0.35em"

ARROW_HEAD = {
    "width": 8,
    "height": 4.8,
}
