"""
Basic definitions for type-driven codecs.
"""

from __future__ import annotations

from enum import Enum
from types import NoneType

__all__ = [
    "PrimitiveKind",
    "DEFAULT_KINDS",
    "INT_RANGES",
    "FINAL_TYPES",
    "ARRAY_TYPECODES",
]


class PrimitiveKind(Enum):
    """
    Leaf kinds every carrier must be able to encode.

    Python's `bool`, `int` and `float` map to `BOOLEAN`, `LONG` and `DOUBLE`
    respectively; other kinds are selected with `Annotated[]`, e.g.
    `Annotated[int, PrimitiveKind.SHORT]`.
    """

    BOOLEAN = "boolean"
    BYTE = "byte"
    CHAR = "char"
    SHORT = "short"
    INT = "int"
    LONG = "long"
    FLOAT = "float"
    DOUBLE = "double"


DEFAULT_KINDS: dict[type, PrimitiveKind] = {
    bool: PrimitiveKind.BOOLEAN,
    int: PrimitiveKind.LONG,
    float: PrimitiveKind.DOUBLE,
}
"""
Kind used for builtin types when not otherwise annotated.
"""

INT_RANGES: dict[PrimitiveKind, tuple[int, int]] = {
    PrimitiveKind.BYTE: (0, 0xFF),
    PrimitiveKind.SHORT: (-(2**15), 2**15 - 1),
    PrimitiveKind.INT: (-(2**31), 2**31 - 1),
    PrimitiveKind.LONG: (-(2**63), 2**63 - 1),
}
"""
Inclusive value range of each integer kind; bytes are unsigned as in `bytes`.
"""

ARRAY_TYPECODES: dict[str, PrimitiveKind] = {
    "b": PrimitiveKind.SHORT,
    "B": PrimitiveKind.BYTE,
    "u": PrimitiveKind.CHAR,
    "w": PrimitiveKind.CHAR,
    "h": PrimitiveKind.SHORT,
    "H": PrimitiveKind.INT,
    "i": PrimitiveKind.INT,
    "I": PrimitiveKind.LONG,
    "l": PrimitiveKind.LONG,
    "L": PrimitiveKind.LONG,
    "q": PrimitiveKind.LONG,
    "Q": PrimitiveKind.LONG,
    "f": PrimitiveKind.FLOAT,
    "d": PrimitiveKind.DOUBLE,
}
"""
Element kind wide enough to hold each `array.array` typecode, except that items of
the unsigned 64-bit typecodes must fit in a long.
"""

FINAL_TYPES: frozenset[type] = frozenset(
    (bool, int, float, str, bytes, bytearray, NoneType)
)
"""
Builtin types treated as final: values of these types are never tagged with their
runtime type.
"""
