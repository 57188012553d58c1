from __future__ import annotations

# ============================================================================
# Errors raised while reading diagram text
#
# Layout and rendering never fail on a parsed diagram, so these are the only
# exceptions the pipeline raises for user input.
# ============================================================================


class ParseError(ValueError):
    """Structural problem in the diagram source, with its 1-based line."""

    kind = "Parse"

    def __init__(self, line: int, message: str) -> None:
        super().__init__(f"{self.kind} error at line {line}: {message}")
        self.line = line
        self.message = message


class LexError(ParseError):
    """Malformed token, e.g. an unterminated quote."""

    kind = "Lex"
