from __future__ import annotations

import logging
import re

from .errors import ParseError
from .lexer import tokenize
from .types import (
    ARROW_STYLES,
    Activate,
    ActivationDelta,
    AutonumberToggle,
    BlockClose,
    BlockElse,
    BlockKind,
    BlockOpen,
    BoxKind,
    Deactivate,
    Destroy,
    Message,
    Note,
    NotePlacement,
    Participant,
    ParticipantKind,
    Ref,
    SequenceDiagram,
    SourceLine,
    State,
    TitleSet,
    Token,
)

logger = logging.getLogger(__name__)

# ============================================================================
# Sequence diagram parser
#
# Consumes the lexer's token lines and builds the event sequence plus the
# participant table.
#
# Supported syntax:
#   title Text
#   autonumber / autonumber off
#   participant "Long Name" as L
#   actor User
#   A->B: Solid arrow, filled head
#   A-->B: Dashed arrow, filled head
#   A->>B: Solid arrow, open head
#   A-->>B: Dashed arrow, open head
#   A->+B: Activate target
#   B-->-A: Deactivate source
#   alt Label ... else Label ... end
#   opt Label ... end
#   loop Label ... end
#   note left of A: Text
#   note right of A: Text
#   note over A,B: Text
#   ref over A,B: Text  (or multi-line, closed by "end ref")
#   state over A: Text
#   option footer=box|bar|none
#   activate A / deactivate A / destroy A
#
# The first error aborts parsing.
# ============================================================================

_BLOCK_KINDS: tuple[BlockKind, ...] = ("alt", "opt", "loop")

_OPTION_RE = re.compile(r"([a-z_]+)=(\S+)$")
_FOOTER_STYLES = ("box", "bar", "none")


def parse_sequence_diagram(source: str) -> SequenceDiagram:
    """Parse diagram source text into participants and an ordered event list.

    Raises ParseError (or its subclass LexError) with the offending line.
    """
    parser = _Parser()
    for line in tokenize(source):
        parser.statement(line)
    parser.finish()
    logger.debug(
        "parsed %d events, %d participants",
        len(parser.diagram.events),
        len(parser.diagram.participants),
    )
    return parser.diagram


def _unescape_breaks(text: str) -> str:
    """Turn the two-character sequence backslash-n into a line break."""
    return text.replace("\\n", "\n")


class _Parser:
    def __init__(self) -> None:
        self.diagram = SequenceDiagram()
        # Open blocks: (kind, line of the opening statement)
        self.block_stack: list[tuple[BlockKind, int]] = []

    # -- dispatch -------------------------------------------------------------

    def statement(self, line: SourceLine) -> None:
        tokens = line.tokens
        first = tokens[0]

        if first.kind == "error":
            raise ParseError(line.number, f"unrecognized statement: {first.value}")
        for token in tokens:
            if token.kind == "error":
                raise ParseError(line.number, f"unexpected {token.value!r}")

        if first.kind != "keyword":
            self._message(line.number, tokens)
            return

        keyword = first.value
        rest = tokens[1:]
        if keyword == "title":
            self._title(line.number, rest)
        elif keyword == "autonumber":
            self._autonumber(line.number, rest)
        elif keyword in ("participant", "actor"):
            self._declaration(line.number, keyword, rest)  # type: ignore[arg-type]
        elif keyword == "note":
            self._note(line.number, rest)
        elif keyword in ("ref", "state"):
            self._box(line.number, keyword, rest)  # type: ignore[arg-type]
        elif keyword == "option":
            self._option(line.number, rest)
        elif keyword in _BLOCK_KINDS:
            self._block_open(line.number, keyword, rest)  # type: ignore[arg-type]
        elif keyword == "else":
            self._block_else(line.number, rest)
        elif keyword == "end":
            self._block_close(line.number, rest)
        elif keyword in ("activate", "deactivate", "destroy"):
            self._lifecycle(line.number, keyword, rest)
        else:
            raise ParseError(line.number, f"unrecognized statement keyword {keyword!r}")

    def finish(self) -> None:
        if self.block_stack:
            kind, opened_at = self.block_stack[-1]
            raise ParseError(
                opened_at, f"unterminated '{kind}' block (reached end of input)"
            )

    # -- statements -----------------------------------------------------------

    def _title(self, number: int, rest: list[Token]) -> None:
        text = _unescape_breaks(rest[0].value) if rest else ""
        if not text:
            raise ParseError(number, "title requires text")
        self.diagram.title = text
        self.diagram.events.append(TitleSet(text=text, line=number))

    def _autonumber(self, number: int, rest: list[Token]) -> None:
        if not rest:
            on = True
        elif len(rest) == 1 and rest[0].kind == "keyword" and rest[0].value == "off":
            on = False
        else:
            raise ParseError(number, f"unexpected {rest[0].value!r} after autonumber")
        self.diagram.events.append(AutonumberToggle(on=on, line=number))

    def _declaration(self, number: int, kind: ParticipantKind, rest: list[Token]) -> None:
        if not rest or rest[0].kind != "name":
            raise ParseError(number, f"{kind} requires a name")
        label = _unescape_breaks(rest[0].value)
        name = rest[0].value
        if len(rest) > 1:
            if len(rest) != 3 or rest[1].value != "as" or rest[2].kind != "name":
                raise ParseError(number, f"expected '{kind} NAME as ALIAS'")
            name = rest[2].value

        existing = self.diagram.participants.get(name)
        if existing is not None:
            self._check_alive(number, existing)
            # First textual occurrence wins
            logger.debug("line %d: %r already registered, declaration ignored", number, name)
            return
        self.diagram.participants.register(name, label, kind)

    def _message(self, number: int, tokens: list[Token]) -> None:
        # name modifier* arrow modifier* name [colon text]
        source = tokens[0].value
        i = 1
        modifiers: list[str] = []
        arrow = ""
        while i < len(tokens) and tokens[i].kind in ("modifier", "arrow"):
            if tokens[i].kind == "arrow":
                arrow = tokens[i].value
            else:
                modifiers.append(tokens[i].value)
            i += 1
        if not arrow or i >= len(tokens) or tokens[i].kind != "name":
            raise ParseError(number, "malformed message arrow")
        target = tokens[i].value
        label = ""
        if i + 2 < len(tokens) and tokens[i + 1].kind == "colon":
            label = _unescape_breaks(tokens[i + 2].value)

        activation = _activation_delta(number, modifiers)

        sender = self._resolve(number, source)
        receiver = self._resolve(number, target)
        if activation == "activate_target":
            receiver.activation_depth += 1
        elif activation == "deactivate_source":
            _deactivate(sender)

        line_style, arrow_head = ARROW_STYLES[arrow]
        self.diagram.events.append(
            Message(
                source=sender.name,
                target=receiver.name,
                label=label,
                arrow=arrow,
                line_style=line_style,
                arrow_head=arrow_head,
                activation=activation,
                line=number,
            )
        )

    def _note(self, number: int, rest: list[Token]) -> None:
        words = []
        i = 0
        while i < len(rest) and rest[i].kind == "keyword":
            words.append(rest[i].value)
            i += 1

        placement: NotePlacement
        if words == ["left", "of"]:
            placement = "left"
        elif words == ["right", "of"]:
            placement = "right"
        elif words == ["over"]:
            placement = "over"
        else:
            raise ParseError(number, "expected 'note left of', 'note right of' or 'note over'")

        names: list[str] = []
        while i < len(rest) and rest[i].kind in ("name", "comma"):
            if rest[i].kind == "name":
                names.append(rest[i].value)
            i += 1
        if i + 1 >= len(rest) or rest[i].kind != "colon":
            raise ParseError(number, "note requires ':' followed by text")
        text = _unescape_breaks(rest[i + 1].value)

        if not names:
            raise ParseError(number, "note requires a participant")
        if placement != "over" and len(names) != 1:
            raise ParseError(number, f"note {placement} of takes exactly one participant")
        if len(names) > 2:
            raise ParseError(number, "note over takes one or two participants")

        resolved = tuple(self._resolve(number, n).name for n in names)
        self.diagram.events.append(
            Note(placement=placement, participants=resolved, text=text, line=number)
        )

    def _box(self, number: int, kind: BoxKind, rest: list[Token]) -> None:
        if not rest or rest[0].kind != "keyword" or rest[0].value != "over":
            raise ParseError(number, f"expected '{kind} over'")
        names = [t.value for t in rest if t.kind == "name"]
        if not names:
            raise ParseError(number, f"{kind} requires a participant")
        if rest[-2].kind != "colon":
            raise ParseError(number, f"{kind} requires ':' followed by text")
        text = _unescape_breaks(rest[-1].value)

        resolved = tuple(self._resolve(number, n).name for n in names)
        event = Ref if kind == "ref" else State
        self.diagram.events.append(event(participants=resolved, text=text, line=number))

    def _option(self, number: int, rest: list[Token]) -> None:
        setting = rest[0].value if rest else ""
        match = _OPTION_RE.match(setting)
        if not match:
            raise ParseError(number, "expected 'option key=value'")
        key, value = match.groups()
        if key != "footer":
            raise ParseError(number, f"unknown option {key!r}")
        if value not in _FOOTER_STYLES:
            raise ParseError(
                number, f"footer must be one of {', '.join(_FOOTER_STYLES)}, not {value!r}"
            )
        self.diagram.footer = value  # type: ignore[assignment]

    def _block_open(self, number: int, kind: BlockKind, rest: list[Token]) -> None:
        label = _unescape_breaks(rest[0].value) if rest else ""
        self.block_stack.append((kind, number))
        self.diagram.events.append(BlockOpen(kind=kind, label=label, line=number))

    def _block_else(self, number: int, rest: list[Token]) -> None:
        if not self.block_stack:
            raise ParseError(number, "'else' without an open block")
        label = _unescape_breaks(rest[0].value) if rest else ""
        self.diagram.events.append(BlockElse(label=label, line=number))

    def _block_close(self, number: int, rest: list[Token]) -> None:
        if rest:
            raise ParseError(number, f"unexpected {rest[0].value!r} after 'end'")
        if not self.block_stack:
            raise ParseError(number, "'end' without an open block")
        self.block_stack.pop()
        self.diagram.events.append(BlockClose(line=number))

    def _lifecycle(self, number: int, keyword: str, rest: list[Token]) -> None:
        if len(rest) != 1 or rest[0].kind != "name":
            raise ParseError(number, f"{keyword} requires exactly one participant")
        participant = self._resolve(number, rest[0].value)

        if keyword == "activate":
            participant.activation_depth += 1
            self.diagram.events.append(Activate(participant=participant.name, line=number))
        elif keyword == "deactivate":
            _deactivate(participant)
            self.diagram.events.append(Deactivate(participant=participant.name, line=number))
        else:
            participant.destroyed = True
            participant.activation_depth = 0
            self.diagram.events.append(Destroy(participant=participant.name, line=number))

    # -- helpers --------------------------------------------------------------

    def _resolve(self, number: int, name: str) -> Participant:
        """Look up a participant, registering it implicitly on first use."""
        participant = self.diagram.participants.register(name)
        self._check_alive(number, participant)
        return participant

    @staticmethod
    def _check_alive(number: int, participant: Participant) -> None:
        if participant.destroyed:
            raise ParseError(
                number, f"participant {participant.name!r} was destroyed and cannot be referenced"
            )


def _activation_delta(number: int, modifiers: list[str]) -> ActivationDelta:
    if not modifiers:
        return "none"
    if len(modifiers) > 1:
        raise ParseError(number, f"conflicting arrow modifiers {''.join(modifiers)!r}")
    return "activate_target" if modifiers[0] == "+" else "deactivate_source"


def _deactivate(participant: Participant) -> None:
    if participant.activation_depth == 0:
        logger.debug("deactivate of %r at depth 0 ignored", participant.name)
        return
    participant.activation_depth -= 1
