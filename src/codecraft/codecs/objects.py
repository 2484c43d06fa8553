"""
Structural object codec, driven by an ordered list of field metas.

Reflective codecs write decoded fields directly into a bare instance; builder codecs
accumulate constructor arguments. Both share one driver.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Sequence

from ..exceptions import CodecError, error_path
from ..inspecting.classes import StorageField
from ..inspecting.utils import safe_issubclass
from .codec import Codec

if TYPE_CHECKING:
    from ..constructors import TypeConstructor
    from ..core import BaseCodecCore

__all__ = [
    "FieldCodec",
    "FieldMeta",
    "ObjectMeta",
    "ObjectCodec",
    "ReflectiveObjectMeta",
    "ArgsObjectMeta",
]


@dataclass(frozen=True)
class FieldCodec[T, F, E]:
    """
    A named field of type `F` of an object of type `T`, with its accessor and codec.
    """

    name: str
    getter: Callable[[T], F]
    codec: Codec[F, E]

    def encode_field(self, obj: T, enc: E, /) -> E:
        return self.codec.encode(self.getter(obj), enc)

    def decode_field(self, enc: E, /) -> F:
        return self.codec.decode(enc)


class FieldMeta[T, E, AccT](ABC):
    """
    Encodes one field of an object, and decodes it into an accumulator.
    """

    name: str

    @abstractmethod
    def encode_field(self, obj: T, enc: E, /) -> E: ...

    @abstractmethod
    def decode_field(self, acc: AccT, enc: E, /) -> AccT: ...


class ObjectMeta[T, E, AccT](ABC):
    """
    Ordered field metas of a type along with the decode accumulator.
    """

    fields: tuple[FieldMeta[T, E, AccT], ...]

    def __init__(self, fields: Sequence[FieldMeta[T, E, AccT]]):
        self.fields = tuple(fields)

    def start_encode(self, obj: T, /):
        """
        Check that the object can be encoded by these fields.
        """

    @abstractmethod
    def start_decode(self, type_: type[T], /) -> AccT:
        """
        Create accumulator for decoding an instance of the given type.
        """

    @abstractmethod
    def construct(self, acc: AccT, /) -> T:
        """
        Get the decoded instance from a complete accumulator.
        """


class ObjectCodec[T, E](Codec[T, E]):
    """
    Encodes an object field by field, each under its name, in a fixed order.
    """

    type_: type[T]
    meta: ObjectMeta[T, E, Any]

    __core: BaseCodecCore[E, Any]

    def __init__(
        self, core: BaseCodecCore[E, Any], type_: type[T], meta: ObjectMeta[T, E, Any]
    ):
        self.__core = core
        self.type_ = type_
        self.meta = meta

    def __repr__(self) -> str:
        return f"ObjectCodec({self.type_.__qualname__})"

    def encode(self, obj: T, enc: E, /) -> E:
        self.meta.start_encode(obj)
        core = self.__core
        obj_enc = core._start_object(enc)
        for field in self.meta.fields:
            with error_path(field.name):
                field_enc = field.encode_field(
                    obj, core._field_carrier(obj_enc, field.name)
                )
                core._end_field(obj_enc, field.name, field_enc)
        return obj_enc

    def decode(self, enc: E, /, type_: type[T] | None = None) -> T:
        core = self.__core
        target = type_ if safe_issubclass(type_, self.type_) else self.type_
        acc = self.meta.start_decode(target)
        for field in self.meta.fields:
            with error_path(field.name):
                acc = field.decode_field(acc, core._get_field(enc, field.name))
        return self.meta.construct(acc)


class _StorageFieldMeta[T, E](FieldMeta[T, E, T]):
    """
    Field decoded by writing into the instance being decoded.
    """

    def __init__(self, field: StorageField, codec: Codec[Any, E]):
        self.name = field.name
        self.field = field
        self.codec = codec

    def encode_field(self, obj: T, enc: E, /) -> E:
        return self.codec.encode(self.field.get(obj), enc)

    def decode_field(self, acc: T, enc: E, /) -> T:
        self.field.set(acc, self.codec.decode(enc))
        return acc


class ReflectiveObjectMeta[T, E](ObjectMeta[T, E, T]):
    """
    Meta for reflectively inspected types: decoding allocates a bare instance and
    populates its storage directly.
    """

    __get_type_constructor: Callable[[type[T]], TypeConstructor[T]]

    __declared_attrs: frozenset[str]
    """
    Attributes the class declares, which instances may hold in `__dict__`.
    """

    def __init__(
        self,
        fields: Sequence[tuple[StorageField, Codec[Any, E]]],
        get_type_constructor: Callable[[type[T]], TypeConstructor[T]],
        declared_attrs: frozenset[str],
    ):
        super().__init__([_StorageFieldMeta(f, c) for f, c in fields])
        self.__get_type_constructor = get_type_constructor
        self.__declared_attrs = declared_attrs

    def start_encode(self, obj: T, /):
        """
        Reject instances holding attributes their class doesn't declare, which
        would otherwise be silently dropped.
        """
        attrs = getattr(obj, "__dict__", None)
        if not attrs:
            return
        if undeclared := attrs.keys() - self.__declared_attrs:
            names = ", ".join(sorted(undeclared))
            raise CodecError(
                f"Undeclared attributes of {type(obj).__qualname__}: {names}; "
                "annotate them on the class or register a codec"
            )

    def start_decode(self, type_: type[T], /) -> T:
        return self.__get_type_constructor(type_)()

    def construct(self, acc: T, /) -> T:
        return acc


class _ArgFieldMeta[T, E](FieldMeta[T, E, list[Any]]):
    """
    Field decoded as the next positional constructor argument.
    """

    def __init__(self, field: FieldCodec[T, Any, E]):
        self.name = field.name
        self.field = field

    def encode_field(self, obj: T, enc: E, /) -> E:
        return self.field.encode_field(obj, enc)

    def decode_field(self, acc: list[Any], enc: E, /) -> list[Any]:
        acc.append(self.field.decode_field(enc))
        return acc


class ArgsObjectMeta[T, E](ObjectMeta[T, E, list[Any]]):
    """
    Meta for explicitly declared fields: decoding collects constructor arguments in
    field order and passes them to the constructor function.
    """

    __ctor: Callable[[list[Any]], T]

    def __init__(
        self,
        fields: Sequence[FieldCodec[T, Any, E]],
        ctor: Callable[[list[Any]], T],
    ):
        super().__init__([_ArgFieldMeta(f) for f in fields])
        self.__ctor = ctor

    def start_decode(self, type_: type[T], /) -> list[Any]:
        return []

    def construct(self, acc: list[Any], /) -> T:
        return self.__ctor(acc)
