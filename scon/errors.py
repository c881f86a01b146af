"""
Error types raised while parsing SCON literals.
"""

from enum import Enum, auto
from typing import Tuple


class ErrorKind(Enum):
    """Why a parse was rejected."""
    BAD_INT = auto()         # digit run outside the 128-bit range
    BAD_ESCAPE = auto()      # string escape could not be decoded
    BAD_HEX = auto()         # 0x-prefixed text is not an even run of hex digits
    UNPARSEABLE = auto()     # no alternative matched
    TRAILING_INPUT = auto()  # a complete value followed by more input


class ParseError(Exception):
    """Raised when a literal cannot be parsed.

    Attributes:
        kind: The ErrorKind classifying the failure.
        reason: Human readable description, without position.
        pos: 0-based offset into the input where the failure was detected.
        line, column: 1-based position of `pos`.
        context: The offending line with a caret under `pos`.
    """

    def __init__(self, kind: ErrorKind, reason: str, text: str, pos: int):
        self.kind = kind
        self.reason = reason
        self.pos = pos
        self.line, self.column = line_column(text, pos)
        self.context = error_context(text, pos)
        super().__init__(f"Line {self.line}, column {self.column}: {reason}")


def line_column(text: str, pos: int) -> Tuple[int, int]:
    """1-based line and column of offset `pos` in `text`."""
    line = text.count("\n", 0, pos) + 1
    column = pos - (text.rfind("\n", 0, pos) + 1) + 1
    return line, column


def error_context(text: str, pos: int, span: int = 40) -> str:
    """The line around `pos`, at most `span` characters each side, with a caret."""
    before = text[max(pos - span, 0):pos].rsplit("\n", 1)[-1]
    after = text[pos:pos + span].split("\n", 1)[0]
    return f"{before}{after}\n{' ' * len(before)}^"
