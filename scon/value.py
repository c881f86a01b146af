"""
Value tree produced by the SCON literal parser.

Every variant is a frozen dataclass, and nested values are held in tuples,
so a parsed tree cannot be changed after construction. `str(value)` renders
the canonical literal text, which parses back to an equal value.
"""

import json
import re
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple as TupleType

U128_MAX = 2**128 - 1
I128_MIN = -2**127
I128_MAX = 2**127 - 1

IDENT_RE = re.compile(r"[^\W\d](?:_?[A-Za-z0-9])*")
KEYWORD_NAMES = ("true", "false")


def starts_identifier(char: str) -> bool:
    """Whether an identifier may begin with `char` (a letter or `_`)."""
    return char.isalpha() or char == "_"


class Value:
    """Base class of all parsed literal values."""
    __slots__ = ()


@dataclass(frozen=True)
class Unit(Value):
    """The literal `()`."""

    def __str__(self) -> str:
        return "()"


@dataclass(frozen=True)
class Bool(Value):
    value: bool

    def __str__(self) -> str:
        return "true" if self.value else "false"


@dataclass(frozen=True)
class Char(Value):
    value: str

    def __post_init__(self) -> None:
        if len(self.value) != 1:
            raise ValueError(f"Char holds exactly one character, got {self.value!r}")

    def __str__(self) -> str:
        return f"'{self.value}'"


@dataclass(frozen=True)
class Int(Value):
    """Signed 128-bit integer, written with a leading `-`."""
    value: int

    def __post_init__(self) -> None:
        if not I128_MIN <= self.value <= I128_MAX:
            raise ValueError(f"{self.value} does not fit in a signed 128-bit integer")

    def __str__(self) -> str:
        # "-0" keeps zero on the signed side of the grammar
        return f"-{abs(self.value)}" if self.value <= 0 else str(self.value)


@dataclass(frozen=True)
class UInt(Value):
    """Unsigned 128-bit integer."""
    value: int

    def __post_init__(self) -> None:
        if not 0 <= self.value <= U128_MAX:
            raise ValueError(f"{self.value} does not fit in an unsigned 128-bit integer")

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class Bytes(Value):
    value: bytes

    @classmethod
    def from_hex_string(cls, text: str) -> "Bytes":
        """Decode hex text, with or without a leading `0x`.

        Raises ValueError for an odd number of digits or a non-hex character.
        """
        digits = text[2:] if text.startswith("0x") else text
        if len(digits) % 2:
            raise ValueError(f"Odd number of hex digits ({len(digits)})")
        if not re.fullmatch(r"[0-9a-fA-F]*", digits):
            raise ValueError(f"Invalid hex digits in {digits!r}")
        return cls(bytes.fromhex(digits))

    def __str__(self) -> str:
        return f"0x{self.value.hex()}"


@dataclass(frozen=True)
class String(Value):
    value: str

    def __str__(self) -> str:
        return json.dumps(self.value, ensure_ascii=False)


@dataclass(frozen=True)
class Seq(Value):
    """Ordered sequence: `[a, b, c]`."""
    elems: TupleType[Value, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "elems", tuple(self.elems))

    def __len__(self) -> int:
        return len(self.elems)

    def __iter__(self) -> Iterator[Value]:
        return iter(self.elems)

    def __str__(self) -> str:
        return f"[{', '.join(str(e) for e in self.elems)}]"


@dataclass(frozen=True)
class Tuple(Value):
    """Positional fields with an optional name: `Foo(1, 2)`, `(1, 2)` or `Foo`."""
    ident: Optional[str] = None
    values: TupleType[Value, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", tuple(self.values))

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self) -> Iterator[Value]:
        return iter(self.values)

    def __str__(self) -> str:
        if not self.values:
            if self.ident is None:
                return "( )"
            if self.ident in KEYWORD_NAMES:
                return f"{self.ident}()"
            return self.ident
        fields = ", ".join(str(v) for v in self.values)
        return f"{self.ident or ''}({fields})"


@dataclass(frozen=True)
class Map(Value):
    """Key/value entries with an optional name: `Foo {a: 1}` or `{a: 1}`.

    Entry order is kept and keys are not required to be unique.
    """
    ident: Optional[str] = None
    entries: TupleType[TupleType[Value, Value], ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "entries", tuple((k, v) for k, v in self.entries))

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[TupleType[Value, Value]]:
        return iter(self.entries)

    def get_by_str(self, key: str) -> Optional[Value]:
        """Value of the first entry keyed by the string `key`."""
        for k, v in self.entries:
            if k == String(key):
                return v
        return None

    def __str__(self) -> str:
        body = ", ".join(f"{_key_to_str(k)}: {v}" for k, v in self.entries)
        prefix = f"{self.ident} " if self.ident else ""
        return f"{prefix}{{{body}}}"


def _key_to_str(key: Value) -> str:
    if (
        isinstance(key, String)
        and IDENT_RE.fullmatch(key.value)
        and starts_identifier(key.value[0])
    ):
        return key.value
    return str(key)
