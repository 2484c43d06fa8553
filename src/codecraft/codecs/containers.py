"""
Codecs for enums, collections, tuples, maps and arrays, parameterized by the codecs
of their elements.
"""

from __future__ import annotations

import array
from collections.abc import Collection, Iterable, Mapping, Sequence
from enum import Enum
from itertools import repeat
from typing import TYPE_CHECKING, Any

from ..exceptions import CodecError, error_path
from ..typedefs import ARRAY_TYPECODES
from .codec import Codec

if TYPE_CHECKING:
    from ..core import BaseCodecCore

__all__ = [
    "EnumCodec",
    "CollectionCodec",
    "TupleCodec",
    "MapCodec",
    "PrimitiveArrayCodec",
    "ArrayCodec",
]


class EnumCodec[T: Enum, E](Codec[T, E]):
    """
    Encodes enum members by name.
    """

    enum_type: type[T]

    __core: BaseCodecCore[E, Any]

    def __init__(self, core: BaseCodecCore[E, Any], enum_type: type[T]):
        self.__core = core
        self.enum_type = enum_type

    def encode(self, obj: T, enc: E, /) -> E:
        return self.__core.string_codec.encode(obj.name, enc)

    def decode(self, enc: E, /, type_: type[T] | None = None) -> T:
        enum_type = type_ or self.enum_type
        name = self.__core.string_codec.decode(enc)
        try:
            return enum_type[name]
        except KeyError:
            raise CodecError(
                f"Unknown member '{name}' of {enum_type.__qualname__}"
            ) from None


class _SequenceCodec[T, E](Codec[T, E]):
    """
    Common functionality to encode and decode carrier sequences.
    """

    _core: BaseCodecCore[E, Any]

    def __init__(self, core: BaseCodecCore[E, Any]):
        self._core = core

    def _encode_items(
        self, items: Iterable[Any], size: int, codecs: Iterable[Codec[Any, E]], enc: E
    ) -> E:
        core = self._core
        seq_enc = core._start_sequence(enc, size)
        for i, (item, codec) in enumerate(zip(items, codecs)):
            with error_path(i):
                entry_enc = codec.encode(item, core._entry_carrier(seq_enc))
                core._end_entry(seq_enc, entry_enc)
        return seq_enc

    def _decode_items(self, enc: E, codecs: Iterable[Codec[Any, E]]) -> list[Any]:
        items: list[Any] = []
        codec_iter = iter(codecs)
        for i, entry_enc in enumerate(self._core._entries(enc)):
            with error_path(i):
                codec = next(codec_iter, None)
                if codec is None:
                    raise CodecError("Unexpected sequence entry")
                items.append(codec.decode(entry_enc))
        return items


class CollectionCodec[T: Collection[Any], E](_SequenceCodec[T, E]):
    """
    Encodes a homogeneous collection as a sequence of entries.

    Tuples and frozensets are created from the decoded elements; other collections
    are allocated with their type constructor and populated with `append()` or
    `add()`.
    """

    collection_type: type[T]
    elem_codec: Codec[Any, E]

    def __init__(
        self,
        core: BaseCodecCore[E, Any],
        collection_type: type[T],
        elem_codec: Codec[Any, E],
    ):
        super().__init__(core)
        self.collection_type = collection_type
        self.elem_codec = elem_codec

    def __repr__(self) -> str:
        name = self.collection_type.__qualname__
        return f"CollectionCodec({name}, {self.elem_codec!r})"

    def encode(self, obj: T, enc: E, /) -> E:
        return self._encode_items(obj, len(obj), repeat(self.elem_codec), enc)

    def decode(self, enc: E, /, type_: type[T] | None = None) -> T:
        collection_type = type_ or self.collection_type
        items = self._decode_items(enc, repeat(self.elem_codec))

        if issubclass(collection_type, (tuple, frozenset)):
            return collection_type(items)

        obj: Any = self._core.get_type_constructor(collection_type)()
        if hasattr(obj, "append"):
            for item in items:
                obj.append(item)
        elif hasattr(obj, "add"):
            for item in items:
                obj.add(item)
        else:
            raise CodecError(
                f"Cannot populate collection of type {collection_type.__qualname__}"
            )
        return obj


class TupleCodec[T: tuple[Any, ...], E](_SequenceCodec[T, E]):
    """
    Encodes a fixed-length tuple with a codec per position.
    """

    tuple_type: type[T]
    elem_codecs: tuple[Codec[Any, E], ...]

    def __init__(
        self,
        core: BaseCodecCore[E, Any],
        tuple_type: type[T],
        elem_codecs: Sequence[Codec[Any, E]],
    ):
        super().__init__(core)
        self.tuple_type = tuple_type
        self.elem_codecs = tuple(elem_codecs)

    def encode(self, obj: T, enc: E, /) -> E:
        self._check_length(len(obj))
        return self._encode_items(obj, len(obj), self.elem_codecs, enc)

    def decode(self, enc: E, /, type_: type[T] | None = None) -> T:
        items = self._decode_items(enc, self.elem_codecs)
        self._check_length(len(items))
        return (type_ or self.tuple_type)(items)

    def _check_length(self, length: int):
        if length != len(self.elem_codecs):
            raise CodecError(
                f"Expected tuple of length {len(self.elem_codecs)}, got {length}"
            )


class MapCodec[T: Mapping[Any, Any], E](_SequenceCodec[T, E]):
    """
    Encodes a mapping as a sequence of entry objects, each with a key field and a
    value field.
    """

    map_type: type[T]
    key_codec: Codec[Any, E]
    value_codec: Codec[Any, E]

    def __init__(
        self,
        core: BaseCodecCore[E, Any],
        map_type: type[T],
        key_codec: Codec[Any, E],
        value_codec: Codec[Any, E],
    ):
        super().__init__(core)
        self.map_type = map_type
        self.key_codec = key_codec
        self.value_codec = value_codec

    def __repr__(self) -> str:
        name = self.map_type.__qualname__
        return f"MapCodec({name}, {self.key_codec!r}, {self.value_codec!r})"

    def encode(self, obj: T, enc: E, /) -> E:
        core = self._core
        key_name, value_name = core.config.map_key_name, core.config.map_value_name
        seq_enc = core._start_sequence(enc, len(obj))

        for i, (key, value) in enumerate(obj.items()):
            with error_path(i):
                entry_enc = core._start_object(core._entry_carrier(seq_enc))
                for name, codec, item in (
                    (key_name, self.key_codec, key),
                    (value_name, self.value_codec, value),
                ):
                    with error_path(name):
                        field_enc = codec.encode(
                            item, core._field_carrier(entry_enc, name)
                        )
                        core._end_field(entry_enc, name, field_enc)
                core._end_entry(seq_enc, entry_enc)

        return seq_enc

    def decode(self, enc: E, /, type_: type[T] | None = None) -> T:
        core = self._core
        key_name, value_name = core.config.map_key_name, core.config.map_value_name
        obj: Any = core.get_type_constructor(type_ or self.map_type)()

        for i, entry_enc in enumerate(core._entries(enc)):
            with error_path(i):
                with error_path(key_name):
                    key = self.key_codec.decode(core._get_field(entry_enc, key_name))
                with error_path(value_name):
                    value = self.value_codec.decode(
                        core._get_field(entry_enc, value_name)
                    )
                obj[key] = value

        return obj


class PrimitiveArrayCodec[T: (bytes, bytearray), E](_SequenceCodec[T, E]):
    """
    Encodes `bytes` or `bytearray` as a sequence of bytes.
    """

    array_type: type[T]

    def __init__(self, core: BaseCodecCore[E, Any], array_type: type[T]):
        super().__init__(core)
        self.array_type = array_type

    def encode(self, obj: T, enc: E, /) -> E:
        return self._encode_items(obj, len(obj), repeat(self._core.byte_codec), enc)

    def decode(self, enc: E, /, type_: type[T] | None = None) -> T:
        items = self._decode_items(enc, repeat(self._core.byte_codec))
        return (type_ or self.array_type)(items)


class ArrayCodec[E](_SequenceCodec[array.array, E]):
    """
    Encodes `array.array` as an object with its typecode and a sequence of items of
    the primitive kind corresponding to the typecode.
    """

    TYPECODE_NAME = "typecode"
    ITEMS_NAME = "items"

    def encode(self, obj: array.array, enc: E, /) -> E:
        core = self._core
        elem_codec = self._get_elem_codec(obj.typecode)
        obj_enc = core._start_object(enc)

        with error_path(self.TYPECODE_NAME):
            field_enc = core.string_codec.encode(
                obj.typecode, core._field_carrier(obj_enc, self.TYPECODE_NAME)
            )
            core._end_field(obj_enc, self.TYPECODE_NAME, field_enc)

        with error_path(self.ITEMS_NAME):
            field_enc = self._encode_items(
                obj,
                len(obj),
                repeat(elem_codec),
                core._field_carrier(obj_enc, self.ITEMS_NAME),
            )
            core._end_field(obj_enc, self.ITEMS_NAME, field_enc)

        return obj_enc

    def decode(self, enc: E, /, type_: type[array.array] | None = None) -> array.array:
        core = self._core

        with error_path(self.TYPECODE_NAME):
            typecode = core.string_codec.decode(
                core._get_field(enc, self.TYPECODE_NAME)
            )
            elem_codec = self._get_elem_codec(typecode)

        with error_path(self.ITEMS_NAME):
            items = self._decode_items(
                core._get_field(enc, self.ITEMS_NAME), repeat(elem_codec)
            )

        return (type_ or array.array)(typecode, items)

    def _get_elem_codec(self, typecode: str) -> Codec[Any, E]:
        if (kind := ARRAY_TYPECODES.get(typecode)) is None:
            raise CodecError(f"Unsupported array typecode '{typecode}'")
        return self._core.primitive_codec(kind)
