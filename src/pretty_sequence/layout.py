from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .types import (
    Activate,
    ActivationBar,
    AutonumberToggle,
    BlockClose,
    BlockElse,
    BlockKind,
    BlockOpen,
    BoxKind,
    Deactivate,
    Destroy,
    DestroyMarker,
    Event,
    FooterBar,
    FooterStyle,
    Lifeline,
    Message,
    Note,
    PositionedBlock,
    PositionedBlockDivider,
    PositionedBox,
    PositionedMessage,
    PositionedNote,
    PositionedParticipant,
    PositionedSequenceDiagram,
    PositionedTitle,
    Ref,
    RenderOptions,
    SequenceDiagram,
    State,
    message_text,
)
from .styles import (
    BOX_PADDING,
    FONT_SIZES,
    FONT_WEIGHTS,
    LINE_HEIGHT,
    estimate_text_width,
    text_lines,
)

logger = logging.getLogger(__name__)

# ============================================================================
# Sequence diagram layout engine
#
# Custom timeline-based layout: one forward pass, no solver.
#
# Layout strategy:
#   1. Measure: size participant boxes, then widen lanes so that every
#      message label and note fits between the lanes it touches
#   2. Place lanes left to right as a running sum of half-widths + margin
#   3. Walk the events in order with a y-cursor, tracking activation stacks,
#      open blocks, the autonumber counter and destroyed participants
#   4. Shift everything right if anything spills past the left padding
#   5. Draw lifelines down to the footer (or the destroy point)
# ============================================================================

# Layout constants specific to sequence diagrams
SEQ = {
    # Padding around the entire diagram
    "padding": 30,
    # Horizontal gap between neighbouring lanes
    "lane_margin": 40,
    # Participant box size limits
    "participant_min_width": 80,
    "participant_min_height": 40,
    # Extra room under an actor icon for its label
    "actor_label_drop": 18,
    # Vertical space between the title and the participant boxes
    "title_gap": 16,
    # Vertical space between participant boxes and the first row
    "header_gap": 10,
    # Distance from a row's top to a message arrow (one-line label)
    "message_top": 20,
    # Distance from a message arrow to the next row
    "message_bottom": 20,
    # Self-message loop size
    "self_loop_width": 30,
    "self_loop_height": 20,
    "self_label_gap": 6,
    # Activation bar width and horizontal shift per nesting level
    "activation_width": 10,
    "activation_inset": 5,
    "activation_min_height": 8,
    # Block frame spacing
    "block_pad_x": 10,
    "block_nest_inset": 8,
    "block_header": 24,
    "block_pad_bottom": 6,
    "block_after": 8,
    # Vertical space after an else divider (room for its label)
    "divider_space": 22,
    # Note dimensions
    "note_min_width": 80,
    "note_gap": 10,
    "note_margin": 6,
    # Ref and state boxes
    "ref_min_width": 100,
    "ref_notch": 10,
    "ref_header": 18,
    "state_min_width": 60,
    # Destroy marker half-size and the space it adds
    "destroy_size": 9,
    "destroy_row": 10,
    # Space between the last row and the footer boxes
    "footer_gap": 10,
    # Smallest canvas, also used for empty input
    "min_width": 200,
    "min_height": 100,
}


def layout_sequence_diagram(
    diagram: SequenceDiagram,
    options: RenderOptions | None = None,
) -> PositionedSequenceDiagram:
    """Lay out a parsed sequence diagram.

    Returns a fully positioned diagram ready for SVG rendering.
    """
    if options is None:
        options = RenderOptions()
    padding = float(options.padding if options.padding is not None else SEQ["padding"])
    participants = list(diagram.participants)
    footer_style: FooterStyle = options.footer or diagram.footer or "box"

    if not participants and not diagram.events and diagram.title is None:
        return PositionedSequenceDiagram(width=SEQ["min_width"], height=SEQ["min_height"])

    # 1. Participant boxes
    header_widths: list[float] = []
    header_height: float = SEQ["participant_min_height"]
    for p in participants:
        text_w = estimate_text_width(
            p.label, FONT_SIZES["participant"], FONT_WEIGHTS["participant"]
        )
        header_widths.append(
            max(text_w + BOX_PADDING["participant_x"] * 2, SEQ["participant_min_width"])
        )
        text_h = len(text_lines(p.label)) * LINE_HEIGHT["participant"]
        header_height = max(header_height, text_h + BOX_PADDING["participant_y"] * 2)
    actor_drop = SEQ["actor_label_drop"] if any(p.kind == "actor" for p in participants) else 0

    # 2. Lane widths from content, then lane centers
    lane_index = {p.name: p.index for p in participants}
    lane_widths = _measure_lanes(diagram.events, lane_index, header_widths)
    centers: list[float] = []
    current_x = padding
    for i, w in enumerate(lane_widths):
        if i == 0:
            current_x += w / 2
        else:
            current_x += lane_widths[i - 1] / 2 + SEQ["lane_margin"] + w / 2
        centers.append(current_x)

    # 3. Title and participant headers
    title: PositionedTitle | None = None
    header_y = padding
    title_w = 0.0
    if diagram.title is not None:
        title_w = estimate_text_width(diagram.title, FONT_SIZES["title"], FONT_WEIGHTS["title"])
        mid = (centers[0] + centers[-1]) / 2 if centers else padding + title_w / 2
        title = PositionedTitle(text=diagram.title, x=mid, y=padding)
        header_y += len(text_lines(diagram.title)) * LINE_HEIGHT["title"] + SEQ["title_gap"]

    headers = [
        PositionedParticipant(
            name=p.name,
            label=p.label,
            kind=p.kind,
            x=centers[i],
            y=header_y,
            width=header_widths[i],
            height=header_height,
            lane_width=lane_widths[i],
        )
        for i, p in enumerate(participants)
    ]
    content_top = header_y + header_height + actor_drop + SEQ["header_gap"]

    # 4. Events, top to bottom
    timeline = _Timeline(lane_index, centers, header_widths, content_top, padding)
    for event in diagram.events:
        timeline.place(event)
    timeline.finish()

    lifeline_top = header_y + header_height
    lifeline_bottom = timeline.y + SEQ["footer_gap"]
    footers: list[PositionedParticipant] = []
    footer_bar: FooterBar | None = None
    if footer_style == "box":
        footers = [
            PositionedParticipant(
                name=h.name,
                label=h.label,
                kind=h.kind,
                x=h.x,
                y=lifeline_bottom,
                width=h.width,
                height=h.height,
                lane_width=h.lane_width,
            )
            for h in headers
            if h.name not in timeline.destroyed
        ]
    elif footer_style == "bar" and headers:
        footer_bar = FooterBar(
            x1=headers[0].x - headers[0].width / 2,
            x2=headers[-1].x + headers[-1].width / 2,
            y=lifeline_bottom,
        )
    diagram_bottom = (
        lifeline_bottom + header_height + actor_drop if footers else lifeline_bottom
    ) + padding

    # 5. Bounding-box post-processing
    #
    # Notes left of the first lane, self-message labels and long titles can
    # extend beyond the lane-based viewport. Compute the true horizontal
    # extent, shift everything right if anything crosses the left padding,
    # and widen the diagram to fit.
    global_min_x = padding
    global_max_x = 0.0
    for h in headers:
        global_min_x = min(global_min_x, h.x - h.width / 2)
        global_max_x = max(global_max_x, h.x + h.width / 2)
    for b in timeline.blocks:
        global_min_x = min(global_min_x, b.x)
        global_max_x = max(global_max_x, b.x + b.width)
    for n in timeline.notes:
        global_min_x = min(global_min_x, n.x)
        global_max_x = max(global_max_x, n.x + n.width)
    for box in timeline.boxes:
        global_min_x = min(global_min_x, box.x)
        global_max_x = max(global_max_x, box.x + box.width)
    for m in timeline.messages:
        left, right = _message_extent(m)
        global_min_x = min(global_min_x, left)
        global_max_x = max(global_max_x, right)
    if title is not None:
        global_min_x = min(global_min_x, title.x - title_w / 2)
        global_max_x = max(global_max_x, title.x + title_w / 2)

    shift_x = padding - global_min_x if global_min_x < padding else 0
    if shift_x > 0:
        for h in headers:
            h.x += shift_x
        for f in footers:
            f.x += shift_x
        for m in timeline.messages:
            m.x1 += shift_x
            m.x2 += shift_x
        for act in timeline.activations:
            act.x += shift_x
        for b in timeline.blocks:
            b.x += shift_x
        for n in timeline.notes:
            n.x += shift_x
        for box in timeline.boxes:
            box.x += shift_x
        for d in timeline.destroys:
            d.x += shift_x
        if footer_bar is not None:
            footer_bar.x1 += shift_x
            footer_bar.x2 += shift_x
        if title is not None:
            title.x += shift_x
        centers = [c + shift_x for c in centers]

    # 6. Lifelines (after shift so x positions are final)
    lifelines: list[Lifeline] = [
        Lifeline(
            participant=p.name,
            x=centers[i],
            top_y=lifeline_top,
            bottom_y=timeline.destroyed.get(p.name, lifeline_bottom),
            destroyed=p.name in timeline.destroyed,
        )
        for i, p in enumerate(participants)
    ]

    diagram_width = global_max_x + shift_x + padding

    return PositionedSequenceDiagram(
        width=max(diagram_width, SEQ["min_width"]),
        height=max(diagram_bottom, SEQ["min_height"]),
        title=title,
        autonumber=timeline.numbered,
        participants=headers,
        footers=footers,
        footer_bar=footer_bar,
        lifelines=lifelines,
        messages=timeline.messages,
        activations=sorted(timeline.activations, key=lambda a: (a.depth, a.top_y, a.x)),
        blocks=sorted(timeline.blocks, key=lambda b: (b.y, b.depth)),
        notes=timeline.notes,
        boxes=timeline.boxes,
        destroys=timeline.destroys,
    )


# ============================================================================
# Pass 1 -- lane widths
# ============================================================================


def _measure_lanes(
    events: list[Event],
    lane_index: dict[str, int],
    header_widths: list[float],
) -> list[float]:
    """Widen each lane so the labels and notes touching it fit.

    A label spanning k lane gaps needs its two end lanes to be at least
    (label width - k * lane_margin) wide, since the gap between lane centers
    is half of each end lane plus every margin and interior lane in between.
    """
    widths = list(header_widths)
    numbering = False
    next_number = 1
    destroyed: set[str] = set()

    def widen(i: int, need: float) -> None:
        widths[i] = max(widths[i], need)

    for event in events:
        if isinstance(event, AutonumberToggle):
            numbering = event.on
        elif isinstance(event, Destroy):
            destroyed.add(event.participant)
        elif isinstance(event, Message):
            if not _usable(lane_index, destroyed, event.source, event.target):
                continue
            number = None
            if numbering:
                number = next_number
                next_number += 1
            label_w = _message_label_width(message_text(event.label, number))
            src = lane_index[event.source]
            dst = lane_index[event.target]
            if src == dst:
                one_side = (
                    SEQ["self_loop_width"] + SEQ["self_label_gap"] + label_w
                    + SEQ["activation_width"]
                )
                widen(src, 2 * one_side)
            else:
                lo, hi = sorted((src, dst))
                need = label_w + BOX_PADDING["label_x"] * 2 - (hi - lo) * SEQ["lane_margin"]
                widen(lo, need)
                widen(hi, need)
        elif isinstance(event, Note):
            if not _usable(lane_index, destroyed, *event.participants):
                continue
            note_w = _note_size(event.text)[0]
            indices = sorted(lane_index[n] for n in event.participants)
            if event.placement in ("left", "right"):
                widen(indices[0], 2 * (note_w + SEQ["note_gap"]))
            elif indices[0] == indices[-1]:
                widen(indices[0], note_w)
            else:
                lo, hi = indices[0], indices[-1]
                need = note_w - (hi - lo) * SEQ["lane_margin"]
                widen(lo, need)
                widen(hi, need)
        elif isinstance(event, (Ref, State)):
            if not _usable(lane_index, destroyed, *event.participants):
                continue
            box_w = _box_size(_box_kind(event), event.text)[0]
            lo = min(lane_index[n] for n in event.participants)
            hi = max(lane_index[n] for n in event.participants)
            need = box_w - (hi - lo) * SEQ["lane_margin"]
            widen(lo, need)
            widen(hi, need)
    return widths


def _usable(lane_index: dict[str, int], destroyed: set[str] | dict[str, float],
            *names: str) -> bool:
    return all(n in lane_index and n not in destroyed for n in names)


def _message_label_width(text: str) -> float:
    return estimate_text_width(text, FONT_SIZES["message"], FONT_WEIGHTS["message"])


def _note_size(text: str) -> tuple[float, float]:
    text_w = estimate_text_width(text, FONT_SIZES["note"], FONT_WEIGHTS["note"])
    width = max(text_w + BOX_PADDING["note_x"] * 2, SEQ["note_min_width"])
    height = len(text_lines(text)) * LINE_HEIGHT["note"] + BOX_PADDING["note_y"] * 2
    return width, height


def _box_kind(event: Ref | State) -> BoxKind:
    return "ref" if isinstance(event, Ref) else "state"


def _box_size(kind: BoxKind, text: str) -> tuple[float, float]:
    text_w = estimate_text_width(text, FONT_SIZES["note"], FONT_WEIGHTS["note"])
    height = len(text_lines(text)) * LINE_HEIGHT["note"] + BOX_PADDING["note_y"] * 2
    if kind == "ref":
        width = max(
            text_w + BOX_PADDING["note_x"] * 2 + SEQ["ref_notch"] * 2, SEQ["ref_min_width"]
        )
        return width, height + SEQ["ref_header"]
    return max(text_w + BOX_PADDING["note_x"] * 2, SEQ["state_min_width"]), height


def _message_extent(m: PositionedMessage) -> tuple[float, float]:
    """Horizontal extent of a message's line and label."""
    label_w = _message_label_width(m.text)
    if m.is_self:
        right = m.x1 + SEQ["self_loop_width"] + SEQ["self_label_gap"] + label_w
        return min(m.x1, m.x2), right
    mid = (m.x1 + m.x2) / 2
    return min(m.x1, m.x2, mid - label_w / 2), max(m.x1, m.x2, mid + label_w / 2)


# ============================================================================
# Pass 2 -- the timeline walk
# ============================================================================


@dataclass(slots=True)
class _BlockFrame:
    kind: BlockKind
    label: str
    top: float
    depth: int
    # Leftmost / rightmost lane touched so far
    lo: int | None = None
    hi: int | None = None
    # Deepest nesting below this frame
    nested_levels: int = 0
    dividers: list[PositionedBlockDivider] = field(default_factory=list)
    # Horizontal extent the frame must enclose, padding included
    min_x: float | None = None
    max_x: float | None = None

    def touch(self, lo: int, hi: int) -> None:
        self.lo = lo if self.lo is None else min(self.lo, lo)
        self.hi = hi if self.hi is None else max(self.hi, hi)

    def enclose(self, left: float, right: float) -> None:
        self.min_x = left if self.min_x is None else min(self.min_x, left)
        self.max_x = right if self.max_x is None else max(self.max_x, right)


class _Timeline:
    """Walks the events once, assigning y positions and building geometry."""

    def __init__(
        self,
        lane_index: dict[str, int],
        centers: list[float],
        header_widths: list[float],
        top: float,
        padding: float,
    ) -> None:
        self.lane_index = lane_index
        self.centers = centers
        self.header_widths = header_widths
        self.padding = padding
        # Top of the next row
        self.y = top
        # Anchor of the latest row: a message's arrow, or the current top
        self.anchor_y = top

        # Participant name -> start y of each open activation, innermost last
        self.activation_stacks: dict[str, list[float]] = {}
        self.block_stack: list[_BlockFrame] = []
        self.numbering = False
        self.next_number = 1
        self.numbered = False
        # Participant name -> y where its lifeline ends
        self.destroyed: dict[str, float] = {}

        self.messages: list[PositionedMessage] = []
        self.activations: list[ActivationBar] = []
        self.blocks: list[PositionedBlock] = []
        self.notes: list[PositionedNote] = []
        self.boxes: list[PositionedBox] = []
        self.destroys: list[DestroyMarker] = []

    def place(self, event: Event) -> None:
        if isinstance(event, Message):
            self._message(event)
        elif isinstance(event, Note):
            self._note(event)
        elif isinstance(event, (Ref, State)):
            self._box(event)
        elif isinstance(event, BlockOpen):
            self._block_open(event)
        elif isinstance(event, BlockElse):
            self._block_else(event)
        elif isinstance(event, BlockClose):
            self._block_close()
        elif isinstance(event, Activate):
            if self._alive(event.participant):
                self._open_bar(event.participant, self.anchor_y)
                self._touch(event.participant)
        elif isinstance(event, Deactivate):
            if self._alive(event.participant):
                self._close_bar(event.participant, self.anchor_y)
                self._touch(event.participant)
        elif isinstance(event, Destroy):
            self._destroy(event)
        elif isinstance(event, AutonumberToggle):
            self.numbering = event.on
        # TitleSet carries no geometry; the title is placed before the walk

    def finish(self) -> None:
        """Close activations and blocks still open after the last event."""
        for name, stack in self.activation_stacks.items():
            while stack:
                self._close_bar(name, self.y)
        while self.block_stack:
            self._block_close()

    # -- events ---------------------------------------------------------------

    def _message(self, msg: Message) -> None:
        if not self._alive(msg.source, msg.target):
            return
        number = None
        if self.numbering:
            number = self.next_number
            self.next_number += 1
            self.numbered = True

        lines = len(text_lines(message_text(msg.label, number)))
        y = self.y + SEQ["message_top"] + (lines - 1) * LINE_HEIGHT["message"]

        # A new activation starts at the arrow it is attached to, so the arrow
        # already ends on the new bar's edge
        if msg.activation == "activate_target":
            self._open_bar(msg.target, y)

        src = self.lane_index[msg.source]
        dst = self.lane_index[msg.target]
        if msg.is_self:
            x1 = self._bar_edge(msg.source, toward_right=True)
            x2 = x1
        else:
            going_right = dst > src
            x1 = self._bar_edge(msg.source, toward_right=going_right)
            x2 = self._bar_edge(msg.target, toward_right=not going_right)

        self.messages.append(
            PositionedMessage(
                source=msg.source,
                target=msg.target,
                label=msg.label,
                line_style=msg.line_style,
                arrow_head=msg.arrow_head,
                x1=x1,
                x2=x2,
                y=y,
                is_self=msg.is_self,
                number=number,
            )
        )
        self._enclose(*_message_extent(self.messages[-1]))

        if msg.activation == "deactivate_source":
            self._close_bar(msg.source, y)

        self._touch(msg.source, msg.target)
        self.anchor_y = y
        self.y = y + SEQ["message_bottom"]
        if msg.is_self:
            self.y += SEQ["self_loop_height"]

    def _note(self, note: Note) -> None:
        if not self._alive(*note.participants):
            return
        width, height = _note_size(note.text)
        top = self.y + SEQ["note_margin"]
        indices = sorted(self.lane_index[n] for n in note.participants)
        first = indices[0]

        if note.placement == "left":
            x = self.centers[first] - SEQ["note_gap"] - width
        elif note.placement == "right":
            x = self.centers[first] + SEQ["note_gap"]
        elif indices[0] != indices[-1]:
            # Over two lanes: span exactly from center to center when the
            # text fits, otherwise center the wider box between them
            left = self.centers[indices[0]]
            right = self.centers[indices[-1]]
            if right - left >= width:
                x = left
                width = right - left
            else:
                x = (left + right) / 2 - width / 2
        else:
            x = self.centers[first] - width / 2

        self.notes.append(
            PositionedNote(
                placement=note.placement,
                text=note.text,
                x=x,
                y=top,
                width=width,
                height=height,
            )
        )
        self._enclose(x, x + width)
        self._touch(*note.participants)
        self.anchor_y = top + height
        self.y = top + height + SEQ["note_margin"]

    def _box(self, event: Ref | State) -> None:
        if not self._alive(*event.participants):
            return
        kind = _box_kind(event)
        width, height = _box_size(kind, event.text)
        top = self.y + SEQ["note_margin"]
        lo = min(self.lane_index[n] for n in event.participants)
        hi = max(self.lane_index[n] for n in event.participants)

        if lo == hi:
            x = self.centers[lo] - width / 2
        else:
            # Cover the header boxes of the outer lanes, wider if the text needs it
            left = self.centers[lo] - self.header_widths[lo] / 2
            right = self.centers[hi] + self.header_widths[hi] / 2
            if right - left >= width:
                x = left
                width = right - left
            else:
                x = (left + right) / 2 - width / 2

        self.boxes.append(
            PositionedBox(kind=kind, text=event.text, x=x, y=top, width=width, height=height)
        )
        self._enclose(x, x + width)
        self._touch(*event.participants)
        self.anchor_y = top + height
        self.y = top + height + SEQ["note_margin"]

    def _block_open(self, event: BlockOpen) -> None:
        self.block_stack.append(
            _BlockFrame(
                kind=event.kind,
                label=event.label,
                top=self.y,
                depth=len(self.block_stack),
            )
        )
        self.y += SEQ["block_header"]
        self.anchor_y = self.y

    def _block_else(self, event: BlockElse) -> None:
        if not self.block_stack:
            logger.debug("else outside a block ignored")
            return
        self.block_stack[-1].dividers.append(
            PositionedBlockDivider(y=self.y, label=event.label)
        )
        self.y += SEQ["divider_space"]
        self.anchor_y = self.y

    def _block_close(self) -> None:
        if not self.block_stack:
            logger.debug("end outside a block ignored")
            return
        frame = self.block_stack.pop()
        bottom = self.y + SEQ["block_pad_bottom"]

        # Empty blocks span every lane
        if frame.lo is None or frame.hi is None:
            lo, hi = 0, len(self.centers) - 1
        else:
            lo, hi = frame.lo, frame.hi

        inset = SEQ["block_pad_x"] + frame.nested_levels * SEQ["block_nest_inset"]
        if self.centers:
            left = self.centers[lo] - self.header_widths[lo] / 2 - inset
            right = self.centers[hi] + self.header_widths[hi] / 2 + inset
        else:
            # No lanes: frame a participant-sized slot at the left edge
            half = SEQ["participant_min_width"] / 2
            mid = self.padding + half
            left = mid - half - inset
            right = mid + half + inset
        # Content that reaches past the lanes, e.g. side notes and self loops
        if frame.min_x is not None and frame.max_x is not None:
            left = min(left, frame.min_x)
            right = max(right, frame.max_x)

        self.blocks.append(
            PositionedBlock(
                kind=frame.kind,
                label=frame.label,
                x=left,
                y=frame.top,
                width=right - left,
                height=bottom - frame.top,
                depth=frame.depth,
                dividers=frame.dividers,
            )
        )

        if self.block_stack:
            parent = self.block_stack[-1]
            parent.nested_levels = max(parent.nested_levels, frame.nested_levels + 1)
            if self.centers:
                parent.touch(lo, hi)
            parent.enclose(left - SEQ["block_nest_inset"], right + SEQ["block_nest_inset"])

        self.anchor_y = bottom
        self.y = bottom + SEQ["block_after"]

    def _destroy(self, event: Destroy) -> None:
        name = event.participant
        if not self._alive(name):
            return
        # The X sits on the row that led to the destruction
        y = self.anchor_y
        while self.activation_stacks.get(name):
            self._close_bar(name, y)
        self.destroys.append(
            DestroyMarker(
                participant=name,
                x=self.centers[self.lane_index[name]],
                y=y,
                size=SEQ["destroy_size"],
            )
        )
        self.destroyed[name] = y
        self._touch(name)
        self.y += SEQ["destroy_row"]

    # -- helpers --------------------------------------------------------------

    def _alive(self, *names: str) -> bool:
        if _usable(self.lane_index, self.destroyed, *names):
            return True
        logger.debug("event for unknown or destroyed participant ignored: %s", names)
        return False

    def _touch(self, *names: str) -> None:
        if not self.block_stack:
            return
        indices = [self.lane_index[n] for n in names]
        self.block_stack[-1].touch(min(indices), max(indices))

    def _enclose(self, left: float, right: float) -> None:
        if self.block_stack:
            pad = SEQ["block_pad_x"]
            self.block_stack[-1].enclose(left - pad, right + pad)

    def _bar_edge(self, name: str, toward_right: bool) -> float:
        """X where an arrow meets the lane: the topmost bar's edge, or the lifeline."""
        center = self.centers[self.lane_index[name]]
        depth = len(self.activation_stacks.get(name, ()))
        if depth == 0:
            return center
        bar_center = center + (depth - 1) * SEQ["activation_inset"]
        half = SEQ["activation_width"] / 2
        return bar_center + half if toward_right else bar_center - half

    def _open_bar(self, name: str, y: float) -> None:
        self.activation_stacks.setdefault(name, []).append(y)

    def _close_bar(self, name: str, y: float) -> None:
        stack = self.activation_stacks.get(name)
        if not stack:
            logger.debug("deactivate of inactive participant %r ignored", name)
            return
        top = stack.pop()
        depth = len(stack) + 1
        center = self.centers[self.lane_index[name]]
        self.activations.append(
            ActivationBar(
                participant=name,
                x=center + (depth - 1) * SEQ["activation_inset"] - SEQ["activation_width"] / 2,
                top_y=top,
                bottom_y=max(y, top + SEQ["activation_min_height"]),
                width=SEQ["activation_width"],
                depth=depth,
            )
        )
