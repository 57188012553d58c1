"""Tests for the SVG renderer.

Uses hand-crafted PositionedSequenceDiagram data to test SVG output without
depending on the layout engine.
"""
from __future__ import annotations

import re

import pytest

from pretty_sequence.renderer import render_sequence_svg
from pretty_sequence.theme import DiagramColors
from pretty_sequence.types import (
    ActivationBar,
    DestroyMarker,
    FooterBar,
    Lifeline,
    PositionedBlock,
    PositionedBlockDivider,
    PositionedBox,
    PositionedMessage,
    PositionedNote,
    PositionedParticipant,
    PositionedSequenceDiagram,
    PositionedTitle,
)


def make_diagram(**overrides) -> PositionedSequenceDiagram:
    """Minimal positioned diagram for testing."""
    defaults = dict(width=400, height=300)
    defaults.update(overrides)
    return PositionedSequenceDiagram(**defaults)


def make_participant(**overrides) -> PositionedParticipant:
    """Helper to build a positioned participant box."""
    defaults = dict(
        name="A",
        label="Alice",
        kind="participant",
        x=70,
        y=30,
        width=80,
        height=40,
        lane_width=80,
    )
    defaults.update(overrides)
    return PositionedParticipant(**defaults)


def make_message(**overrides) -> PositionedMessage:
    """Helper to build a solid left-to-right message."""
    defaults = dict(
        source="A",
        target="B",
        label="Hello",
        line_style="solid",
        arrow_head="filled",
        x1=70,
        x2=190,
        y=100,
        is_self=False,
    )
    defaults.update(overrides)
    return PositionedMessage(**defaults)


# ============================================================================
# Document structure
# ============================================================================


class TestDocument:
    def test_produces_a_single_svg_root(self):
        svg = render_sequence_svg(make_diagram())
        assert svg.startswith('<svg xmlns="http://www.w3.org/2000/svg"')
        assert svg.endswith("</svg>")
        assert svg.count("<svg") == 1

    def test_viewbox_matches_diagram_size(self):
        svg = render_sequence_svg(make_diagram(width=412.5, height=300))
        assert 'viewBox="0 0 412.5 300"' in svg
        assert 'width="412.5"' in svg

    def test_defines_both_arrow_markers(self):
        svg = render_sequence_svg(make_diagram())
        assert 'id="seq-arrow"' in svg
        assert 'id="seq-arrow-open"' in svg

    def test_uses_the_given_colors(self):
        svg = render_sequence_svg(make_diagram(), DiagramColors(bg="#000000", fg="#EEEEEE"))
        assert "--bg:#000000" in svg
        assert "--fg:#EEEEEE" in svg

    def test_transparent_background(self):
        svg = render_sequence_svg(make_diagram(), transparent=True)
        assert "background:var(--bg)" not in svg

    def test_font_is_written_to_the_style_block(self):
        svg = render_sequence_svg(make_diagram(), font="JetBrains Mono")
        assert "font-family: 'JetBrains Mono'" in svg

    def test_has_no_external_references(self):
        svg = render_sequence_svg(
            make_diagram(
                participants=[make_participant()],
                messages=[make_message()],
            )
        )
        assert "href" not in svg
        assert "@import" not in svg
        assert "url(http" not in svg
        assert "<script" not in svg


# ============================================================================
# Participants and lifelines
# ============================================================================


class TestParticipants:
    def test_participant_box_with_centered_label(self):
        svg = render_sequence_svg(make_diagram(participants=[make_participant()]))
        assert '<rect x="30" y="30" width="80" height="40" rx="4" ry="4"' in svg
        assert ">Alice</text>" in svg

    def test_actor_renders_a_person_icon_with_label_below(self):
        svg = render_sequence_svg(
            make_diagram(participants=[make_participant(kind="actor", label="User")])
        )
        assert '<g transform="translate(' in svg
        assert "scale(" in svg
        assert ">User</text>" in svg
        assert 'rx="4"' not in svg

    def test_footers_are_drawn_like_headers(self):
        header = make_participant()
        footer = make_participant(y=200)
        svg = render_sequence_svg(make_diagram(participants=[header], footers=[footer]))
        assert svg.count('rx="4" ry="4"') == 2
        assert svg.count(">Alice</text>") == 2

    def test_lifeline_is_a_dashed_vertical_line(self):
        svg = render_sequence_svg(
            make_diagram(lifelines=[Lifeline(participant="A", x=70, top_y=70, bottom_y=250)])
        )
        assert '<line x1="70" y1="70" x2="70" y2="250"' in svg
        assert 'stroke-dasharray="6 4"' in svg


# ============================================================================
# Messages
# ============================================================================


class TestMessages:
    def test_solid_message_with_filled_head(self):
        svg = render_sequence_svg(make_diagram(messages=[make_message()]))
        line = re.search(r'<line x1="70" y1="100" x2="190" y2="100"[^>]*>', svg)
        assert line is not None
        assert "stroke-dasharray" not in line.group(0)
        assert 'marker-end="url(#seq-arrow)"' in line.group(0)
        assert ">Hello</text>" in svg

    @pytest.mark.parametrize(
        "line_style, arrow_head, dashed, marker",
        [
            ("solid", "filled", False, "seq-arrow"),
            ("dashed", "filled", True, "seq-arrow"),
            ("solid", "open", False, "seq-arrow-open"),
            ("dashed", "open", True, "seq-arrow-open"),
        ],
    )
    def test_line_style_and_head_combinations(self, line_style, arrow_head, dashed, marker):
        svg = render_sequence_svg(
            make_diagram(messages=[make_message(line_style=line_style, arrow_head=arrow_head)])
        )
        line = re.search(r'<line x1="70"[^>]*>', svg).group(0)
        assert ('stroke-dasharray="6 4"' in line) == dashed
        assert f'marker-end="url(#{marker})"' in line

    def test_label_is_placed_above_the_arrow(self):
        svg = render_sequence_svg(make_diagram(messages=[make_message()]))
        assert '<text x="130" y="94" text-anchor="middle"' in svg

    def test_numbered_message_shows_its_prefix(self):
        svg = render_sequence_svg(make_diagram(messages=[make_message(number=3)]))
        assert ">3. Hello</text>" in svg

    def test_empty_label_draws_no_text(self):
        svg = render_sequence_svg(make_diagram(messages=[make_message(label="")]))
        assert "<text" not in svg.split("</style>")[1]

    def test_self_message_is_a_loop_with_label_on_the_right(self):
        msg = make_message(target="A", x1=70, x2=70, is_self=True, label="think")
        svg = render_sequence_svg(make_diagram(messages=[msg]))
        assert '<polyline points="70,100 100,100 100,120 70,120"' in svg
        assert '<text x="106" y="110"' in svg
        assert ">think</text>" in svg

    def test_multiline_label_uses_tspans(self):
        svg = render_sequence_svg(make_diagram(messages=[make_message(label="one\ntwo")]))
        assert svg.count("<tspan") == 2
        assert ">one</tspan>" in svg
        assert ">two</tspan>" in svg

    def test_label_text_is_escaped(self):
        svg = render_sequence_svg(
            make_diagram(messages=[make_message(label='<b> & "q" \'s\'')])
        )
        assert "&lt;b&gt; &amp; &quot;q&quot; &#39;s&#39;" in svg
        assert "<b>" not in svg


# ============================================================================
# Activations, blocks, notes, destroy markers, title
# ============================================================================


class TestShapes:
    def test_activation_bar(self):
        bar = ActivationBar(participant="B", x=185, top_y=100, bottom_y=140, width=10)
        svg = render_sequence_svg(make_diagram(activations=[bar]))
        assert '<rect x="185" y="100" width="10" height="40" fill="var(--_active-fill)"' in svg

    def test_block_frame_is_dashed_with_kind_tab_and_divider(self):
        block = PositionedBlock(
            kind="alt",
            label="ok",
            x=20,
            y=80,
            width=200,
            height=132,
            dividers=[PositionedBlockDivider(y=144, label="fail")],
        )
        svg = render_sequence_svg(make_diagram(blocks=[block]))
        frame = re.search(r'<rect x="20" y="80" width="200" height="132"[^>]*>', svg)
        assert frame is not None
        assert 'stroke-dasharray="4 3"' in frame.group(0)
        assert ">alt [ok]</text>" in svg
        assert '<line x1="20" y1="144" x2="220" y2="144"' in svg
        assert ">[fail]</text>" in svg

    def test_block_without_label_shows_only_its_kind(self):
        block = PositionedBlock(kind="loop", label="", x=20, y=80, width=200, height=60)
        svg = render_sequence_svg(make_diagram(blocks=[block]))
        assert ">loop</text>" in svg

    def test_note_with_folded_corner(self):
        note = PositionedNote(placement="over", text="remember", x=40, y=90, width=100, height=30)
        svg = render_sequence_svg(make_diagram(notes=[note]))
        assert '<rect x="40" y="90" width="100" height="30"' in svg
        assert '<polygon points="134,90 140,96 134,96"' in svg
        assert ">remember</text>" in svg

    def test_destroy_marker_is_an_x(self):
        marker = DestroyMarker(participant="B", x=190, y=100, size=9)
        svg = render_sequence_svg(make_diagram(destroys=[marker]))
        assert '<line x1="181" y1="91" x2="199" y2="109"' in svg
        assert '<line x1="199" y1="91" x2="181" y2="109"' in svg

    def test_title_is_centered_text(self):
        title = PositionedTitle(text="Checkout & pay", x=200, y=30)
        svg = render_sequence_svg(make_diagram(title=title))
        assert '<text x="200" y="46" text-anchor="middle" font-size="16"' in svg
        assert ">Checkout &amp; pay</text>" in svg

    def test_state_box_is_rounded(self):
        box = PositionedBox(kind="state", text="idle", x=40, y=90, width=80, height=30)
        svg = render_sequence_svg(make_diagram(boxes=[box]))
        rect = re.search(r'<rect x="40" y="90" width="80" height="30"[^>]*>', svg)
        assert rect is not None
        assert 'rx="8" ry="8"' in rect.group(0)
        assert ">idle</text>" in svg

    def test_ref_frame_has_a_ref_tab(self):
        box = PositionedBox(kind="ref", text="checkout", x=30, y=100, width=200, height=48)
        svg = render_sequence_svg(make_diagram(boxes=[box]))
        rect = re.search(r'<rect x="30" y="100" width="200" height="48"[^>]*>', svg)
        assert rect is not None
        assert "rx=" not in rect.group(0)
        assert '<polygon points="30,100 ' in svg
        assert ">ref</text>" in svg
        assert ">checkout</text>" in svg

    def test_footer_bar_is_one_line(self):
        bar = FooterBar(x1=30, x2=230, y=180)
        svg = render_sequence_svg(make_diagram(footer_bar=bar))
        assert '<line x1="30" y1="180" x2="230" y2="180"' in svg


# ============================================================================
# Output stability
# ============================================================================


class TestStability:
    def test_rendering_is_deterministic(self):
        diagram = make_diagram(
            participants=[make_participant(), make_participant(name="B", label="Bob", x=190)],
            messages=[make_message(x2=190.123456)],
        )
        assert render_sequence_svg(diagram) == render_sequence_svg(diagram)

    def test_coordinates_have_at_most_two_decimals(self):
        svg = render_sequence_svg(make_diagram(messages=[make_message(x2=190.123456)]))
        assert 'x2="190.12"' in svg
        assert not re.search(r'="-?\d+\.\d{3,}"', svg)
