from __future__ import annotations

import re

from .errors import LexError
from .types import SourceLine, Token, TokenKind

# ============================================================================
# Sequence diagram lexer
#
# Turns each source line into typed tokens. Statements never span lines,
# except multi-line notes and refs, which are folded into a single line here.
#
# Token shapes per statement:
#   title <text>                    keyword text
#   alt|else|opt|loop <text>        keyword text
#   participant|actor NAME [as X]   keyword name [keyword name]
#   note left of A: text            keyword keyword keyword name colon text
#   note over A,B: text             keyword keyword name comma name colon text
#   ref|state over A,B: text        keyword keyword name comma name colon text
#   option footer=bar               keyword text
#   activate|deactivate|destroy A   keyword name
#   autonumber [off]                keyword [keyword]
#   end                             keyword
#   A->+B: text                     name arrow modifier name colon text
#
# Anything else becomes one "error" token and is reported by the parser.
# ============================================================================

STATEMENT_KEYWORDS = frozenset({
    "title",
    "autonumber",
    "participant",
    "actor",
    "note",
    "alt",
    "else",
    "opt",
    "loop",
    "end",
    "activate",
    "deactivate",
    "destroy",
    "ref",
    "state",
    "option",
})

# Keywords whose remainder is a free-text label
_FREE_TEXT_KEYWORDS = frozenset({"title", "alt", "else", "opt", "loop"})

# Longest first, so "-->>" is never read as "-->" followed by ">"
ARROWS = ("-->>", "-->", "->>", "->")

_MODIFIERS = "+-"

_LEADING_KEYWORD_RE = re.compile(r"([a-z]+)(?=\s|$)")
_NAME_RE = re.compile(r"[^\s\"+\-<>:,]+")
_WORD_RE = re.compile(r"[a-z]+(?=\s|$|[\":,])")

# Statement keyword -> line closing its multi-line form
MULTILINE_ENDS = {
    "note": "end note",
    "ref": "end ref",
}


def tokenize(source: str) -> list[SourceLine]:
    """Tokenize a whole document.

    Blank and comment lines are dropped; every other line yields one
    SourceLine carrying its 1-based number. A note or ref without a ':'
    collects the following lines up to "end note" or "end ref" as its text.
    """
    raw_lines = source.splitlines()
    result: list[SourceLine] = []
    i = 0
    while i < len(raw_lines):
        number = i + 1
        text = raw_lines[i].strip()
        i += 1
        tokens = tokenize_line(text, number)
        if not tokens:
            continue

        terminator = _multiline_end(tokens)
        if terminator is not None:
            body: list[str] = []
            while i < len(raw_lines) and raw_lines[i].strip() != terminator:
                body.append(raw_lines[i].strip())
                i += 1
            if i >= len(raw_lines):
                raise LexError(
                    number, f"unterminated {tokens[0].value} (missing '{terminator}')"
                )
            i += 1  # skip the terminator
            tokens.append(Token("colon", ":", number, len(text)))
            tokens.append(Token("text", "\n".join(body), number, len(text)))

        result.append(SourceLine(number=number, text=text, tokens=tokens))
    return result


def tokenize_line(text: str, line: int) -> list[Token]:
    """Tokenize one line. Returns an empty list for blank and comment lines."""
    stripped = text.strip()
    if not stripped or stripped.startswith("#"):
        return []

    scanner = _LineScanner(stripped, line)
    keyword_match = _LEADING_KEYWORD_RE.match(stripped)
    keyword = keyword_match.group(1) if keyword_match else None

    if keyword not in STATEMENT_KEYWORDS:
        return scanner.message()

    scanner.emit("keyword", keyword, 0)
    scanner.pos = len(keyword)

    if keyword in _FREE_TEXT_KEYWORDS:
        scanner.rest_as_text()
    elif keyword in ("participant", "actor"):
        scanner.declaration()
    elif keyword == "note":
        scanner.note()
    elif keyword in ("ref", "state"):
        if scanner.word("over"):
            scanner.names_and_text()
    elif keyword == "option":
        scanner.rest_as_text()
    elif keyword == "autonumber":
        scanner.word("off")
    else:
        # activate / deactivate / destroy take one name, end takes none
        if keyword != "end":
            scanner.name()
    scanner.leftover()
    return scanner.tokens


def _multiline_end(tokens: list[Token]) -> str | None:
    """Terminator line for a note or ref that has names but no ':' text."""
    first = tokens[0]
    if first.kind != "keyword" or first.value not in MULTILINE_ENDS:
        return None
    if not any(t.kind == "name" for t in tokens):
        return None
    if any(t.kind in ("colon", "error") for t in tokens):
        return None
    return MULTILINE_ENDS[first.value]


class _LineScanner:
    """Cursor over a single stripped line, appending tokens as it goes."""

    def __init__(self, text: str, line: int) -> None:
        self.text = text
        self.line = line
        self.pos = 0
        self.tokens: list[Token] = []

    # -- primitives ----------------------------------------------------------

    def emit(self, kind: TokenKind, value: str, column: int) -> None:
        self.tokens.append(Token(kind, value, self.line, column))

    def skip_space(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def at_end(self) -> bool:
        self.skip_space()
        return self.pos >= len(self.text)

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def name(self) -> bool:
        """Read a bare or quoted name."""
        self.skip_space()
        start = self.pos
        if self.peek() == '"':
            close = self.text.find('"', start + 1)
            if close == -1:
                raise LexError(self.line, f"unterminated quote at column {start + 1}")
            self.emit("name", self.text[start + 1:close], start)
            self.pos = close + 1
            return True
        match = _NAME_RE.match(self.text, start)
        if not match:
            return False
        self.emit("name", match.group(0), start)
        self.pos = match.end()
        if self.peek() == '"':
            raise LexError(self.line, f"unexpected quote at column {self.pos + 1}")
        return True

    def word(self, expected: str) -> bool:
        """Read a contextual keyword such as 'as' or 'of'."""
        self.skip_space()
        match = _WORD_RE.match(self.text, self.pos)
        if not match or match.group(0) != expected:
            return False
        self.emit("keyword", expected, self.pos)
        self.pos = match.end()
        return True

    def char(self, ch: str, kind: TokenKind) -> bool:
        self.skip_space()
        if self.peek() != ch:
            return False
        self.emit(kind, ch, self.pos)
        self.pos += 1
        return True

    def arrow(self) -> bool:
        """Read an arrow glyph with its adjacent +/- modifiers."""
        self.skip_space()
        start = len(self.tokens)
        while True:
            glyph = self._arrow_at(self.pos)
            if glyph is not None:
                break
            if self.peek() and self.peek() in _MODIFIERS:
                self.emit("modifier", self.peek(), self.pos)
                self.pos += 1
                continue
            del self.tokens[start:]
            return False
        self.emit("arrow", glyph, self.pos)
        self.pos += len(glyph)
        while self.peek() and self.peek() in _MODIFIERS:
            self.emit("modifier", self.peek(), self.pos)
            self.pos += 1
        return True

    def _arrow_at(self, pos: int) -> str | None:
        for glyph in ARROWS:
            if self.text.startswith(glyph, pos):
                return glyph
        return None

    def rest_as_text(self) -> None:
        """Capture the remainder of the line verbatim."""
        self.skip_space()
        self.emit("text", self.text[self.pos:].strip(), self.pos)
        self.pos = len(self.text)

    def colon_text(self) -> bool:
        if not self.char(":", "colon"):
            return False
        self.rest_as_text()
        return True

    def leftover(self) -> None:
        """Anything not consumed becomes an error token for the parser to report."""
        if not self.at_end():
            self.emit("error", self.text[self.pos:], self.pos)
            self.pos = len(self.text)

    # -- statements ----------------------------------------------------------

    def declaration(self) -> None:
        if self.name() and self.word("as"):
            self.name()

    def note(self) -> None:
        if self.word("left") or self.word("right"):
            if not self.word("of"):
                return
        elif not self.word("over"):
            return
        self.names_and_text()

    def names_and_text(self) -> None:
        """Read "A[,B...]" followed by an optional ": text"."""
        if not self.name():
            return
        while self.char(",", "comma"):
            if not self.name():
                return
        self.colon_text()

    def message(self) -> list[Token]:
        """Tokenize "A->B: text", or return a single error token."""
        if self.name() and self.arrow() and self.name():
            if self.at_end() or self.colon_text():
                return self.tokens
        return [Token("error", self.text, self.line, 0)]
