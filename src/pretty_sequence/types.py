from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Literal, Union

# ============================================================================
# Sequence diagram types
#
# Models the token stream, the parsed event sequence and the positioned
# geometry of a sequence diagram. Sequence diagrams show participant
# interactions over time (vertical timeline).
# ============================================================================

# ============================================================================
# Tokens -- produced by the lexer, one list per source line
# ============================================================================

TokenKind = Literal["keyword", "name", "arrow", "modifier", "colon", "comma", "text", "error"]


@dataclass(slots=True, frozen=True)
class Token:
    kind: TokenKind
    value: str
    # 1-based source line and 0-based column
    line: int
    column: int = 0


@dataclass(slots=True)
class SourceLine:
    number: int
    text: str
    tokens: list[Token] = field(default_factory=list)


# ============================================================================
# Parsed sequence diagram -- participants and ordered events
# ============================================================================

ParticipantKind = Literal["participant", "actor"]
LineStyle = Literal["solid", "dashed"]
ArrowHead = Literal["filled", "open"]
ActivationDelta = Literal["none", "activate_target", "deactivate_source"]
BlockKind = Literal["alt", "opt", "loop"]
NotePlacement = Literal["left", "right", "over"]
BoxKind = Literal["ref", "state"]
# box: header boxes repeated at the bottom, bar: one closing line, none: nothing
FooterStyle = Literal["box", "bar", "none"]

# Arrow glyph -> (line style, head style)
ARROW_STYLES: dict[str, tuple[LineStyle, ArrowHead]] = {
    "->": ("solid", "filled"),
    "-->": ("dashed", "filled"),
    "->>": ("solid", "open"),
    "-->>": ("dashed", "open"),
}


@dataclass(slots=True)
class Participant:
    # Identifier used by messages and notes
    name: str
    # Text shown in the header box
    label: str
    # 'participant' renders as a box, 'actor' renders as a person icon
    kind: ParticipantKind
    # Registration order, which is also the lane order
    index: int
    destroyed: bool = False
    activation_depth: int = 0


class ParticipantTable:
    """Participants in registration order, looked up by canonical name."""

    def __init__(self) -> None:
        self._by_name: dict[str, Participant] = {}
        self._ordered: list[Participant] = []

    def register(self, name: str, label: str | None = None,
                 kind: ParticipantKind = "participant") -> Participant:
        """Register a participant, or return the existing one with that name."""
        existing = self._by_name.get(name)
        if existing is not None:
            return existing
        participant = Participant(
            name=name,
            label=label if label is not None else name,
            kind=kind,
            index=len(self._ordered),
        )
        self._by_name[name] = participant
        self._ordered.append(participant)
        return participant

    def get(self, name: str) -> Participant | None:
        return self._by_name.get(name)

    def index_of(self, name: str) -> int:
        return self._by_name[name].index

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[Participant]:
        return iter(self._ordered)

    def __len__(self) -> int:
        return len(self._ordered)

    def __getitem__(self, index: int) -> Participant:
        return self._ordered[index]


@dataclass(slots=True)
class Message:
    source: str
    target: str
    label: str
    # Arrow glyph as written: ->, -->, ->>, -->>
    arrow: str
    line_style: LineStyle
    arrow_head: ArrowHead
    activation: ActivationDelta = "none"
    line: int = 0

    @property
    def is_self(self) -> bool:
        return self.source == self.target


@dataclass(slots=True)
class Note:
    placement: NotePlacement
    # One participant, or two for a note spanning lanes
    participants: tuple[str, ...]
    text: str
    line: int = 0


@dataclass(slots=True)
class Ref:
    """Reference to another interaction, drawn as a framed box over its lanes."""
    participants: tuple[str, ...]
    text: str
    line: int = 0


@dataclass(slots=True)
class State:
    participants: tuple[str, ...]
    text: str
    line: int = 0


@dataclass(slots=True)
class BlockOpen:
    kind: BlockKind
    label: str
    line: int = 0


@dataclass(slots=True)
class BlockElse:
    label: str
    line: int = 0


@dataclass(slots=True)
class BlockClose:
    line: int = 0


@dataclass(slots=True)
class Activate:
    participant: str
    line: int = 0


@dataclass(slots=True)
class Deactivate:
    participant: str
    line: int = 0


@dataclass(slots=True)
class Destroy:
    participant: str
    line: int = 0


@dataclass(slots=True)
class TitleSet:
    text: str
    line: int = 0


@dataclass(slots=True)
class AutonumberToggle:
    on: bool
    line: int = 0


Event = Union[
    Message,
    Note,
    Ref,
    State,
    BlockOpen,
    BlockElse,
    BlockClose,
    Activate,
    Deactivate,
    Destroy,
    TitleSet,
    AutonumberToggle,
]


@dataclass(slots=True)
class SequenceDiagram:
    """Parsed sequence diagram -- participants plus the ordered event list."""
    title: str | None = None
    participants: ParticipantTable = field(default_factory=ParticipantTable)
    # Order is the only source of vertical ordering
    events: list[Event] = field(default_factory=list)
    # Set by an "option footer=..." statement
    footer: FooterStyle | None = None


# ============================================================================
# Render options
# ============================================================================


@dataclass(slots=True)
class RenderOptions:
    font: str | None = None
    # Space around the whole diagram
    padding: int | None = None
    transparent: bool | None = None
    # Overrides the diagram's own "option footer=..." when set
    footer: FooterStyle | None = None


# ============================================================================
# Positioned sequence diagram -- ready for SVG rendering
# ============================================================================


@dataclass(slots=True)
class PositionedParticipant:
    name: str
    label: str
    kind: ParticipantKind
    # Center x of the lane
    x: float
    # Top y of the header box
    y: float
    width: float
    height: float
    # Horizontal room reserved for the lane (>= width)
    lane_width: float


@dataclass(slots=True)
class Lifeline:
    """Vertical dashed line from the header box down to the footer or destroy point."""
    participant: str
    x: float
    top_y: float
    bottom_y: float
    destroyed: bool = False


@dataclass(slots=True)
class PositionedMessage:
    source: str
    target: str
    label: str
    line_style: LineStyle
    arrow_head: ArrowHead
    # Start point (source lane or activation bar edge)
    x1: float
    # End point (target lane or activation bar edge)
    x2: float
    # Vertical position of the arrow
    y: float
    is_self: bool
    # Autonumber value, when numbering was on
    number: int | None = None

    @property
    def text(self) -> str:
        """Label as displayed, with the autonumber prefix."""
        return message_text(self.label, self.number)


@dataclass(slots=True)
class ActivationBar:
    """Narrow rectangle on a lifeline showing active processing."""
    participant: str
    x: float
    top_y: float
    bottom_y: float
    width: float
    # 1 for the outermost bar, +1 per nested activation
    depth: int = 1


@dataclass(slots=True)
class PositionedBlockDivider:
    y: float
    label: str


@dataclass(slots=True)
class PositionedBlock:
    kind: BlockKind
    label: str
    x: float
    y: float
    width: float
    height: float
    # Nesting level, 0 for outermost blocks
    depth: int = 0
    # Divider lines within the block (for else sections)
    dividers: list[PositionedBlockDivider] = field(default_factory=list)


@dataclass(slots=True)
class PositionedNote:
    placement: NotePlacement
    text: str
    x: float
    y: float
    width: float
    height: float


@dataclass(slots=True)
class PositionedBox:
    """A ref or state box spanning one or more lanes."""
    kind: BoxKind
    text: str
    x: float
    y: float
    width: float
    height: float


@dataclass(slots=True)
class FooterBar:
    """Horizontal line closing the lifelines when footer boxes are off."""
    x1: float
    x2: float
    y: float


@dataclass(slots=True)
class DestroyMarker:
    participant: str
    x: float
    y: float
    # Half the length of each X stroke
    size: float


@dataclass(slots=True)
class PositionedTitle:
    text: str
    # Center x and top y
    x: float
    y: float


@dataclass(slots=True)
class PositionedSequenceDiagram:
    width: float
    height: float
    title: PositionedTitle | None = None
    # Whether any message was numbered
    autonumber: bool = False
    participants: list[PositionedParticipant] = field(default_factory=list)
    footers: list[PositionedParticipant] = field(default_factory=list)
    footer_bar: FooterBar | None = None
    lifelines: list[Lifeline] = field(default_factory=list)
    messages: list[PositionedMessage] = field(default_factory=list)
    activations: list[ActivationBar] = field(default_factory=list)
    blocks: list[PositionedBlock] = field(default_factory=list)
    notes: list[PositionedNote] = field(default_factory=list)
    boxes: list[PositionedBox] = field(default_factory=list)
    destroys: list[DestroyMarker] = field(default_factory=list)


def message_text(label: str, number: int | None) -> str:
    """Prefix a message label with its autonumber, if any."""
    if number is None:
        return label
    return f"{number}. {label}" if label else f"{number}."
