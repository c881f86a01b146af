"""
Lark-based parser for SCON literals.

The grammar (scon.lark) is compiled once with the LALR parser. Terminals
that carry a payload (hex, integers, strings) are decoded by lexer
callbacks as soon as they are recognized, so a bad literal is reported at
its own position and never falls back to another alternative. The parse
tree is then turned into Value objects by SconTransformer.
"""

import json
import logging
from pathlib import Path

from lark import Lark, Token, Transformer, v_args
from lark.exceptions import UnexpectedEOF, UnexpectedInput, VisitError

from scon.errors import ErrorKind, ParseError
from scon.value import (
    Bool, Bytes, Char, Int, Map, Seq, String, Tuple, UInt, Unit, Value,
    I128_MIN, U128_MAX, starts_identifier,
)

logger = logging.getLogger(__name__)

GRAMMAR_PATH = Path(__file__).parent / "scon.lark"

KEYWORD_LITERALS = {"true": True, "false": False}


class _TokenError(Exception):
    """Raised from a lexer callback; turned into a ParseError by parse_value."""
    def __init__(self, kind: ErrorKind, reason: str, pos: int):
        self.kind = kind
        self.reason = reason
        self.pos = pos
        super().__init__(reason)


# =============================================================================
# Primitive decoders
# =============================================================================

def unescape(raw: str) -> str:
    """Decode the escapes in a string body (the text between the quotes).

    Handles the RFC 8259 escapes: \\" \\\\ \\/ \\b \\f \\n \\r \\t and \\uXXXX,
    including surrogate pairs. Raises ValueError if an escape is malformed.
    """
    try:
        decoded = json.loads(f'"{raw}"')
    except json.JSONDecodeError as e:
        raise ValueError(f"Bad escape sequence in {raw!r}: {e.msg}") from e
    if any("\ud800" <= c <= "\udfff" for c in decoded):
        raise ValueError(f"Unpaired surrogate escape in {raw!r}")
    return decoded


def _check_hex(token: Token) -> Token:
    if len(token) == 2:
        raise _TokenError(ErrorKind.BAD_HEX, "Expected hex digits after '0x'", token.start_pos)
    try:
        Bytes.from_hex_string(str(token))
    except ValueError as e:
        raise _TokenError(ErrorKind.BAD_HEX, str(e), token.start_pos) from e
    return token


def _check_uint(token: Token) -> Token:
    if int(token) > U128_MAX:
        raise _TokenError(
            ErrorKind.BAD_INT,
            f"{token} does not fit in an unsigned 128-bit integer",
            token.start_pos,
        )
    return token


def _check_int(token: Token) -> Token:
    if int(token) < I128_MIN:
        raise _TokenError(
            ErrorKind.BAD_INT,
            f"{token} does not fit in a signed 128-bit integer",
            token.start_pos,
        )
    return token


def _check_string(token: Token) -> Token:
    try:
        unescape(token[1:-1])
    except ValueError as e:
        raise _TokenError(ErrorKind.BAD_ESCAPE, str(e), token.start_pos) from e
    return token


def _check_ident(token: Token) -> Token:
    if not starts_identifier(token[0]):
        raise _TokenError(
            ErrorKind.UNPARSEABLE,
            f"An identifier cannot start with {token[0]!r}",
            token.start_pos,
        )
    return token


LEXER_CALLBACKS = {
    "HEX": _check_hex,
    "UINT": _check_uint,
    "INT": _check_int,
    "STRING": _check_string,
    "IDENT": _check_ident,
}


# =============================================================================
# Tree -> Value
# =============================================================================

def _split_ident(children):
    """Separate an optional leading IDENT token from the nested values."""
    if children and isinstance(children[0], Token):
        return str(children[0]), children[1:]
    return None, children


@v_args(inline=True)
class SconTransformer(Transformer):
    """Transform the Lark parse tree into Value objects."""

    def unit(self, _token):
        return Unit()

    def bytes(self, token):
        return Bytes.from_hex_string(str(token))

    def seq(self, *elems):
        return Seq(elems)

    def tuple(self, *children):
        ident, values = _split_ident(children)
        return Tuple(ident, values)

    def named_unit_tuple(self, ident, _unit):
        return Tuple(str(ident))

    def map(self, *children):
        ident, entries = _split_ident(children)
        return Map(ident, entries)

    def entry(self, key, value):
        return (key, value)

    def ident_key(self, ident):
        return String(str(ident))

    def string(self, token):
        return String(unescape(token[1:-1]))

    def integer(self, token):
        if token.type == "INT":
            return Int(int(token))
        return UInt(int(token))

    def char(self, token):
        return Char(token[1:-1])

    def bare_ident(self, ident):
        name = str(ident)
        if name in KEYWORD_LITERALS:
            return Bool(KEYWORD_LITERALS[name])
        return Tuple(name)


# =============================================================================
# Entry point
# =============================================================================

_parser = None


def get_parser() -> Lark:
    """Get or create the Lark parser instance."""
    global _parser
    if _parser is None:
        with open(GRAMMAR_PATH) as f:
            grammar = f.read()
        _parser = Lark(
            grammar,
            parser="lalr",
            lexer="contextual",
            maybe_placeholders=False,
            lexer_callbacks=LEXER_CALLBACKS,
        )
        logger.debug("Compiled SCON grammar from %s", GRAMMAR_PATH)
    return _parser


def parse_value(text: str) -> Value:
    """Parse a SCON literal into a Value.

    The whole of `text` must be one literal, optionally surrounded by
    whitespace. Raises ParseError otherwise.

    Nesting is limited by the interpreter's recursion limit: a literal nested
    around a thousand levels deep raises RecursionError, so callers taking
    untrusted input should bound its size.
    """
    try:
        tree = get_parser().parse(text)
    except _TokenError as e:
        if e.pos > 0 and _is_complete(text[:e.pos]):
            raise ParseError(
                ErrorKind.TRAILING_INPUT,
                f"Unexpected {text[e.pos]!r} after a complete value",
                text,
                e.pos,
            ) from e
        raise ParseError(e.kind, e.reason, text, e.pos) from e
    except UnexpectedInput as e:
        raise _syntax_error(text, e) from e
    try:
        return SconTransformer().transform(tree)
    except VisitError as e:
        raise e.orig_exc from e


def _syntax_error(text: str, err: UnexpectedInput) -> ParseError:
    token = getattr(err, "token", None)
    pos = getattr(err, "pos_in_stream", None)
    at_end = isinstance(err, UnexpectedEOF) or pos is None or (
        token is not None and token.type == "$END"
    )
    if at_end:
        return ParseError(ErrorKind.UNPARSEABLE, "Unexpected end of input", text, len(text))

    found = str(token) if token is not None else text[pos]
    if pos > 0 and _is_complete(text[:pos]):
        return ParseError(
            ErrorKind.TRAILING_INPUT,
            f"Unexpected {found!r} after a complete value",
            text,
            pos,
        )
    return ParseError(ErrorKind.UNPARSEABLE, f"Unexpected {found!r}", text, pos)


def _is_complete(prefix: str) -> bool:
    """Whether `prefix` on its own is a whole literal."""
    try:
        get_parser().parse(prefix)
    except (UnexpectedInput, _TokenError):
        return False
    return True
