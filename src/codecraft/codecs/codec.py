"""
Codec contract and the primitive codec shapes each carrier implements.
"""

from __future__ import annotations

import struct
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, ClassVar

from ..exceptions import CodecError, OperationNotImplementedError
from ..registry import ForwardRef
from ..typedefs import INT_RANGES, PrimitiveKind

if TYPE_CHECKING:
    from ..core import BaseCodecCore

__all__ = [
    "Codec",
    "CodecRef",
    "NullCodec",
    "PrimitiveCodec",
    "BooleanCodec",
    "ByteCodec",
    "CharCodec",
    "ShortCodec",
    "IntCodec",
    "LongCodec",
    "FloatCodec",
    "DoubleCodec",
    "StringCodec",
    "StringProxyCodec",
]


class Codec[T, E](ABC):
    """
    Encodes values of type `T` into carrier `E` and decodes them back.

    Codecs are shared across all encode and decode calls for their type, so they
    must not hold mutable state. A base codec may assume it's never given `None`;
    null handling is added by wrapping it.
    """

    @abstractmethod
    def encode(self, obj: T, enc: E, /) -> E:
        """
        Encode object into the given carrier node, returning the node which holds
        the encoded value. Depending on the carrier, this is `enc` itself or a new
        node.
        """

    def decode(self, enc: E, /, type_: type[T] | None = None) -> T:
        """
        Decode value from carrier node.

        :param type_: Runtime type to decode, if different from the codec's declared \
        type, e.g. as read from a type tag
        """
        raise OperationNotImplementedError(
            f"{type(self).__name__}.decode() is not implemented"
        )


class CodecRef[T, E](ForwardRef[Any], Codec[T, E]):
    """
    Forward reference to a codec under construction, used to resolve recursive
    types. Delegates to the codec once it's installed.
    """

    def encode(self, obj: T, enc: E, /) -> E:
        return self.target.encode(obj, enc)

    def decode(self, enc: E, /, type_: type[T] | None = None) -> T:
        return self.target.decode(enc, type_)


class NullCodec[E](Codec[None, E]):
    """
    Writes and detects the carrier's marker for absent values.
    """

    @abstractmethod
    def is_null(self, enc: E, /) -> bool:
        """
        Check whether the node holds the null marker.
        """

    @abstractmethod
    def encode(self, obj: None, enc: E, /) -> E: ...

    def mark_present(self, enc: E, /) -> E:
        """
        Prepare node for encoding a present value. Carriers which can't detect the
        absence of the null marker (e.g. streams) write a "present" marker here.
        """
        return enc

    def decode(self, enc: E, /, type_: type[None] | None = None) -> None:
        if not self.is_null(enc):
            raise CodecError("Expected null marker")
        return None


class PrimitiveCodec[P, E](Codec[P, E]):
    """
    Codec for one primitive kind.

    `encode()` validates and unboxes the value, then passes it to `encode_prim()`.
    A carrier implements one of:

    - `encode()`, taking the boxed value
    - `encode_prim()`, writing the unboxed value into the given node
    - `encode_prim_value()`, creating a new node without needing a parent

    The others are derived from the one implemented.
    """

    kind: ClassVar[PrimitiveKind]

    def encode(self, obj: P, enc: E, /) -> E:
        value = self.unbox(obj)
        if _overrides(self, "encode_prim"):
            return self.encode_prim(value, enc)
        return self.encode_prim_value(value)

    def encode_prim(self, value: P, enc: E, /) -> E:
        if _overrides(self, "encode"):
            return self.encode(value, enc)
        return self.encode_prim_value(value)

    def encode_prim_value(self, value: P, /) -> E:
        raise OperationNotImplementedError(
            f"{type(self).__name__}.encode_prim_value() is not implemented"
        )

    def decode(self, enc: E, /, type_: type[P] | None = None) -> P:
        return self.unbox(self.decode_prim(enc))

    @abstractmethod
    def decode_prim(self, enc: E, /) -> P: ...

    @abstractmethod
    def unbox(self, obj: Any, /) -> P:
        """
        Validate value for this kind, normalizing it to the Python type of the kind.
        """

    def _error(self, obj: Any) -> CodecError:
        return CodecError(f"Not a valid {self.kind.value}: {obj!r}")


class BooleanCodec[E](PrimitiveCodec[bool, E]):
    kind = PrimitiveKind.BOOLEAN

    def unbox(self, obj: Any, /) -> bool:
        if not isinstance(obj, bool):
            raise self._error(obj)
        return obj


class CharCodec[E](PrimitiveCodec[str, E]):
    """
    A char is a string of length 1.
    """

    kind = PrimitiveKind.CHAR

    def unbox(self, obj: Any, /) -> str:
        if not isinstance(obj, str) or len(obj) != 1:
            raise self._error(obj)
        return str(obj)


class _IntegerCodec[E](PrimitiveCodec[int, E]):
    def unbox(self, obj: Any, /) -> int:
        lo, hi = INT_RANGES[self.kind]
        if isinstance(obj, bool) or not isinstance(obj, int) or not lo <= obj <= hi:
            raise self._error(obj)
        return int(obj)


class ByteCodec[E](_IntegerCodec[E]):
    """
    Bytes are unsigned, as in `bytes`.
    """

    kind = PrimitiveKind.BYTE


class ShortCodec[E](_IntegerCodec[E]):
    kind = PrimitiveKind.SHORT


class IntCodec[E](_IntegerCodec[E]):
    kind = PrimitiveKind.INT


class LongCodec[E](_IntegerCodec[E]):
    kind = PrimitiveKind.LONG


class _FloatingCodec[E](PrimitiveCodec[float, E]):
    def unbox(self, obj: Any, /) -> float:
        if isinstance(obj, bool) or not isinstance(obj, (int, float)):
            raise self._error(obj)
        return float(obj)


class FloatCodec[E](_FloatingCodec[E]):
    """
    Floats are single precision, so values are rounded to the nearest 32-bit float.
    """

    kind = PrimitiveKind.FLOAT

    def unbox(self, obj: Any, /) -> float:
        value = super().unbox(obj)
        try:
            return struct.unpack("f", struct.pack("f", value))[0]
        except OverflowError:
            raise self._error(obj) from None


class DoubleCodec[E](_FloatingCodec[E]):
    kind = PrimitiveKind.DOUBLE


class StringCodec[E](Codec[str, E]):
    """
    Codec for strings; carriers implement it like a primitive codec.
    """

    def encode(self, obj: str, enc: E, /) -> E:
        if not isinstance(obj, str):
            raise CodecError(f"Not a valid string: {obj!r}")
        return self.encode_str(str(obj), enc)

    def encode_str(self, value: str, enc: E, /) -> E:
        return self.encode_str_value(value)

    def encode_str_value(self, value: str, /) -> E:
        raise OperationNotImplementedError(
            f"{type(self).__name__}.encode_str_value() is not implemented"
        )

    @abstractmethod
    def decode(self, enc: E, /, type_: type[str] | None = None) -> str: ...


class StringProxyCodec[T, E](Codec[T, E]):
    """
    Encodes values as strings through a pair of conversion functions.
    """

    __core: BaseCodecCore[E, Any]
    __to_str: Callable[[T], str]
    __from_str: Callable[[str], T]

    def __init__(
        self,
        core: BaseCodecCore[E, Any],
        to_str: Callable[[T], str],
        from_str: Callable[[str], T],
    ):
        self.__core = core
        self.__to_str = to_str
        self.__from_str = from_str

    def encode(self, obj: T, enc: E, /) -> E:
        return self.__core.string_codec.encode(self.__to_str(obj), enc)

    def decode(self, enc: E, /, type_: type[T] | None = None) -> T:
        value = self.__core.string_codec.decode(enc)
        try:
            return self.__from_str(value)
        except ValueError as e:
            raise CodecError(f"Invalid encoded value {value!r}: {e}", cause=e) from e


def _overrides(codec: PrimitiveCodec[Any, Any], name: str) -> bool:
    return getattr(type(codec), name) is not getattr(PrimitiveCodec, name)
