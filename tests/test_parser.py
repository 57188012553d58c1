"""Tests for the sequence diagram parser.

Covers: participant registration (explicit, implicit, aliases), messages and
arrow styles, activation modifiers, notes, blocks, lifecycle statements,
title/autonumber, and every ParseError path.
"""
from __future__ import annotations

import pytest

from pretty_sequence.errors import LexError, ParseError
from pretty_sequence.parser import parse_sequence_diagram
from pretty_sequence.types import (
    Activate,
    AutonumberToggle,
    BlockClose,
    BlockElse,
    BlockOpen,
    Deactivate,
    Destroy,
    Message,
    Note,
    Ref,
    State,
    TitleSet,
)


def parse(text: str):
    """Helper to parse a diagram from source text."""
    return parse_sequence_diagram(text)


def messages(diagram) -> list[Message]:
    return [e for e in diagram.events if isinstance(e, Message)]


# ============================================================================
# Participants
# ============================================================================


class TestParticipants:
    def test_registers_implicit_participants_in_first_appearance_order(self):
        d = parse("Alice->Bob: Hello")
        assert [p.name for p in d.participants] == ["Alice", "Bob"]
        assert [p.index for p in d.participants] == [0, 1]
        assert d.participants[0].label == "Alice"
        assert d.participants[0].kind == "participant"
        assert d.participants.index_of("Bob") == 1

    def test_explicit_declarations_fix_lane_order(self):
        d = parse(
            "participant C\n"
            "actor A\n"
            "A->C: Hi\n"
            "B->A: Yo"
        )
        assert [p.name for p in d.participants] == ["C", "A", "B"]
        assert d.participants.get("A").kind == "actor"

    def test_quoted_display_name_with_alias(self):
        d = parse(
            'participant "Web Server" as W\n'
            "W->DB: query"
        )
        w = d.participants.get("W")
        assert w.label == "Web Server"
        assert w.index == 0
        assert "Web Server" not in d.participants

    def test_participant_is_registered_at_most_once(self):
        d = parse(
            "participant A\n"
            "A->A: self\n"
            "A->B: x\n"
            "B->A: y\n"
            "participant A"
        )
        assert len(d.participants) == 2

    def test_first_textual_occurrence_wins_for_late_alias(self):
        d = parse(
            "X->B: early use\n"
            'participant "Display" as X'
        )
        x = d.participants.get("X")
        assert x.label == "X"
        assert x.index == 0

    def test_lifecycle_statements_register_participants(self):
        d = parse("activate Worker")
        assert "Worker" in d.participants

    def test_note_registers_participants(self):
        d = parse("note over A,B: hi")
        assert [p.name for p in d.participants] == ["A", "B"]


# ============================================================================
# Messages
# ============================================================================


class TestMessages:
    @pytest.mark.parametrize(
        "arrow, line_style, arrow_head",
        [
            ("->", "solid", "filled"),
            ("-->", "dashed", "filled"),
            ("->>", "solid", "open"),
            ("-->>", "dashed", "open"),
        ],
    )
    def test_arrow_style_lookup(self, arrow, line_style, arrow_head):
        msg = messages(parse(f"A{arrow}B: x"))[0]
        assert msg.arrow == arrow
        assert msg.line_style == line_style
        assert msg.arrow_head == arrow_head

    def test_message_fields(self):
        msg = messages(parse("Alice->Bob: Hello"))[0]
        assert msg.source == "Alice"
        assert msg.target == "Bob"
        assert msg.label == "Hello"
        assert msg.activation == "none"
        assert msg.line == 1
        assert not msg.is_self

    def test_label_keeps_colons_and_quotes(self):
        msg = messages(parse('A->B: GET /x?a=1: "ok"'))[0]
        assert msg.label == 'GET /x?a=1: "ok"'

    def test_trailing_plus_activates_target(self):
        d = parse("Alice->+Bob: Hi")
        assert messages(d)[0].activation == "activate_target"
        assert d.participants.get("Bob").activation_depth == 1

    def test_leading_plus_activates_target(self):
        assert messages(parse("A+->B: Hi"))[0].activation == "activate_target"

    def test_minus_deactivates_source(self):
        d = parse("Alice->+Bob: Hi\nBob-->-Alice: Ok")
        assert messages(d)[1].activation == "deactivate_source"
        assert d.participants.get("Bob").activation_depth == 0

    def test_conflicting_modifiers_are_an_error(self):
        with pytest.raises(ParseError) as info:
            parse("A->B: ok\nA+->-B: x")
        assert info.value.line == 2

    def test_escaped_newline_becomes_line_break(self):
        assert messages(parse(r"A->B: one\ntwo"))[0].label == "one\ntwo"

    def test_self_message(self):
        msg = messages(parse("A->A: think"))[0]
        assert msg.is_self


# ============================================================================
# Notes
# ============================================================================


class TestNotes:
    @pytest.mark.parametrize(
        "source, placement",
        [
            ("note left of A: text", "left"),
            ("note right of A: text", "right"),
            ("note over A: text", "over"),
        ],
    )
    def test_note_placements(self, source, placement):
        note = parse(source).events[0]
        assert isinstance(note, Note)
        assert note.placement == placement
        assert note.participants == ("A",)
        assert note.text == "text"

    def test_note_over_two_participants(self):
        note = parse("note over Alice,Bob: shared").events[0]
        assert note.participants == ("Alice", "Bob")

    def test_multiline_note(self):
        note = parse("note right of A\nfirst\nsecond\nend note").events[0]
        assert note.text == "first\nsecond"

    def test_left_of_takes_one_participant(self):
        with pytest.raises(ParseError):
            parse("note left of A,B: x")

    def test_over_takes_at_most_two_participants(self):
        with pytest.raises(ParseError):
            parse("note over A,B,C: x")

    def test_bad_placement_is_an_error(self):
        with pytest.raises(ParseError) as info:
            parse("A->B: x\nnote above A: x")
        assert info.value.line == 2


# ============================================================================
# Ref and state boxes
# ============================================================================


class TestBoxes:
    def test_ref_over_two_participants(self):
        ref = parse("ref over A,B: checkout").events[0]
        assert isinstance(ref, Ref)
        assert ref.participants == ("A", "B")
        assert ref.text == "checkout"
        assert ref.line == 1

    def test_ref_registers_participants_implicitly(self):
        d = parse("ref over Shop,Stock,Bank: settle")
        assert [p.name for p in d.participants] == ["Shop", "Stock", "Bank"]

    def test_multiline_ref(self):
        ref = parse("ref over A\nfirst\nsecond\nend ref").events[0]
        assert isinstance(ref, Ref)
        assert ref.text == "first\nsecond"

    def test_state_over_one_participant(self):
        state = parse("A->B: x\nstate over B: waiting").events[1]
        assert isinstance(state, State)
        assert state.participants == ("B",)
        assert state.text == "waiting"

    def test_escaped_line_breaks(self):
        state = parse("state over A: one\\ntwo").events[0]
        assert state.text == "one\ntwo"

    @pytest.mark.parametrize(
        "source",
        ["ref A: x", "state over A", "state over: x", "ref over A,"],
    )
    def test_malformed_boxes_are_errors(self, source):
        with pytest.raises(ParseError) as info:
            parse(source)
        assert info.value.line == 1

    def test_ref_over_destroyed_participant_is_an_error(self):
        with pytest.raises(ParseError) as info:
            parse("A->B: x\ndestroy B\nref over A,B: late")
        assert info.value.line == 3


# ============================================================================
# Options
# ============================================================================


class TestOptions:
    def test_no_option_leaves_footer_unset(self):
        assert parse("A->B: x").footer is None

    @pytest.mark.parametrize("style", ["box", "bar", "none"])
    def test_footer_styles(self, style):
        d = parse(f"option footer={style}\nA->B: x")
        assert d.footer == style
        assert [type(e) for e in d.events] == [Message]

    def test_last_option_wins(self):
        assert parse("option footer=bar\noption footer=none").footer == "none"

    @pytest.mark.parametrize(
        "source, fragment",
        [
            ("option", "option key=value"),
            ("option footer", "option key=value"),
            ("option colour=red", "unknown option"),
            ("option footer=fancy", "footer must be one of"),
        ],
    )
    def test_bad_options_are_errors(self, source, fragment):
        with pytest.raises(ParseError) as info:
            parse(source)
        assert fragment in info.value.message


# ============================================================================
# Blocks
# ============================================================================


class TestBlocks:
    def test_alt_else_end_events(self):
        d = parse("alt ok\nA->B: x\nelse fail\nA->B: y\nend")
        kinds = [type(e) for e in d.events]
        assert kinds == [BlockOpen, Message, BlockElse, Message, BlockClose]
        assert d.events[0].kind == "alt"
        assert d.events[0].label == "ok"
        assert d.events[2].label == "fail"

    def test_nested_blocks(self):
        d = parse(
            "loop every minute\n"
            "  opt cache miss\n"
            "    A->B: fetch\n"
            "  end\n"
            "end"
        )
        opens = [e for e in d.events if isinstance(e, BlockOpen)]
        assert [o.kind for o in opens] == ["loop", "opt"]
        assert sum(isinstance(e, BlockClose) for e in d.events) == 2

    def test_unterminated_block_reports_its_opening_line(self):
        with pytest.raises(ParseError) as info:
            parse("alt ok\nA->B: x")
        assert info.value.line == 1
        assert "end of input" in info.value.message

    def test_unterminated_inner_block_reports_innermost(self):
        with pytest.raises(ParseError) as info:
            parse("loop a\nA->B: x\nopt b\nA->B: y\nend")
        assert info.value.line == 1

        with pytest.raises(ParseError) as info:
            parse("loop a\nopt b\nA->B: y")
        assert info.value.line == 2

    def test_unmatched_end_is_an_error(self):
        with pytest.raises(ParseError) as info:
            parse("A->B: x\nend")
        assert info.value.line == 2

    def test_unmatched_else_is_an_error(self):
        with pytest.raises(ParseError) as info:
            parse("else nope")
        assert info.value.line == 1

    def test_else_is_allowed_in_any_block(self):
        d = parse("loop x\nA->B: 1\nelse y\nA->B: 2\nend")
        assert any(isinstance(e, BlockElse) for e in d.events)


# ============================================================================
# Activation, destroy, title, autonumber
# ============================================================================


class TestLifecycle:
    def test_activate_and_deactivate_events(self):
        d = parse("activate A\ndeactivate A")
        assert isinstance(d.events[0], Activate)
        assert isinstance(d.events[1], Deactivate)
        assert d.participants.get("A").activation_depth == 0

    def test_deactivate_at_depth_zero_is_a_no_op(self):
        d = parse("deactivate A\ndeactivate A\nactivate A")
        assert d.participants.get("A").activation_depth == 1

    def test_destroy_marks_participant(self):
        d = parse("A->B: bye\ndestroy B")
        assert isinstance(d.events[-1], Destroy)
        assert d.participants.get("B").destroyed

    def test_reference_to_destroyed_participant_is_an_error(self):
        with pytest.raises(ParseError) as info:
            parse("A->B: bye\ndestroy B\nA->B: hello?")
        assert info.value.line == 3
        assert "destroyed" in info.value.message

    def test_destroying_twice_is_an_error(self):
        with pytest.raises(ParseError):
            parse("destroy B\ndestroy B")

    def test_note_on_destroyed_participant_is_an_error(self):
        with pytest.raises(ParseError):
            parse("destroy B\nnote over B: ghost")

    def test_title(self):
        d = parse("title Login flow\nA->B: x")
        assert d.title == "Login flow"
        assert isinstance(d.events[0], TitleSet)

    def test_title_requires_text(self):
        with pytest.raises(ParseError):
            parse("title")

    def test_autonumber_toggles(self):
        d = parse("autonumber\nA->B: x\nautonumber off")
        toggles = [e for e in d.events if isinstance(e, AutonumberToggle)]
        assert [t.on for t in toggles] == [True, False]

    def test_autonumber_rejects_arguments(self):
        with pytest.raises(ParseError):
            parse("autonumber 5")


# ============================================================================
# Error reporting
# ============================================================================


class TestErrors:
    def test_unrecognized_statement_reports_line(self):
        with pytest.raises(ParseError) as info:
            parse("A->B: ok\n\nwhat is this")
        assert info.value.line == 3
        assert "unrecognized statement" in info.value.message
        assert str(info.value).startswith("Parse error at line 3:")

    def test_lex_errors_propagate_as_parse_errors(self):
        with pytest.raises(ParseError) as info:
            parse('participant "unterminated')
        assert isinstance(info.value, LexError)
        assert str(info.value).startswith("Lex error at line 1:")

    def test_activate_requires_a_name(self):
        with pytest.raises(ParseError):
            parse("activate")

    def test_empty_source_parses_to_empty_diagram(self):
        d = parse("\n\n# only a comment\n")
        assert len(d.participants) == 0
        assert d.events == []

    def test_quote_inside_a_bare_name_is_a_lex_error(self):
        with pytest.raises(LexError) as info:
            parse('Al"ice->Bob: x')
        assert info.value.line == 1
