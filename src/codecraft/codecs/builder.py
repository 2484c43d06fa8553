"""
Fluent builder declaring an object codec field by field.

Each field call returns a stage typed one arity higher, whose `map()` takes a
constructor with one parameter per field. Beyond four fields, the builder continues
with an untyped stage whose constructor takes the decoded values as a list.

```python
codec = (
    core.object_codec(Person)
    .field("name", lambda p: p.name, str)
    .null_field("email", lambda p: p.email, str)
    .map(Person)
)
```
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable

from .codec import Codec
from .objects import FieldCodec

if TYPE_CHECKING:
    from ..core import BaseCodecCore

__all__ = [
    "ObjectCodecBuilder",
    "FieldStage1",
    "FieldStage2",
    "FieldStage3",
    "FieldStage4",
    "FieldStageN",
]

type FieldSpec[F, E] = Codec[F, E] | Any
"""
Codec for a field, or the field's annotation to look one up.
"""


class ObjectCodecBuilder[T, E]:
    """
    Entry point of the builder, with no fields declared.
    """

    type_: type[T]
    """
    Type the codec is built for.
    """

    __core: BaseCodecCore[E, Any]
    __register: bool

    def __init__(
        self, core: BaseCodecCore[E, Any], type_: type[T], /, *, register: bool = False
    ):
        """
        :param register: Whether to register the codec for `type_` once built
        """
        self.__core = core
        self.type_ = type_
        self.__register = register

    def field[A](
        self, name: str, getter: Callable[[T], A], codec: FieldSpec[A, E], /
    ) -> FieldStage1[T, E, A]:
        """
        Declare a field which is never `None`.
        """
        return FieldStage1(self, (self._field_codec(name, getter, codec, False),))

    def null_field[A](
        self, name: str, getter: Callable[[T], A | None], type_: Any, /
    ) -> FieldStage1[T, E, A | None]:
        """
        Declare a field which may be `None`.
        """
        return FieldStage1(self, (self._field_codec(name, getter, type_, True),))

    def map(self, ctor: Callable[[], T], /) -> Codec[T, E]:
        return self._build((), lambda _: ctor())

    def _field_codec(
        self,
        name: str,
        getter: Callable[[T], Any],
        codec_or_type: FieldSpec[Any, E],
        nullable: bool,
    ) -> FieldCodec[T, Any, E]:
        if isinstance(codec_or_type, Codec):
            codec = codec_or_type
            if nullable:
                codec = self.__core.make_null_safe_codec(codec)
        else:
            codec = self.__core.get_field_codec(codec_or_type, nullable=nullable)
        return FieldCodec(name, getter, codec)

    def _build(
        self,
        fields: tuple[FieldCodec[T, Any, E], ...],
        ctor: Callable[[list[Any]], T],
    ) -> Codec[T, E]:
        codec = self.__core.create_builder_codec(self.type_, fields, ctor)
        if self.__register:
            self.__core.register_codec(self.type_, codec)
        return codec


class _FieldStage[T, E]:
    """
    Common functionality of stages with at least one field.
    """

    _builder: ObjectCodecBuilder[T, E]
    _fields: tuple[FieldCodec[T, Any, E], ...]

    def __init__(
        self,
        builder: ObjectCodecBuilder[T, E],
        fields: tuple[FieldCodec[T, Any, E], ...],
    ):
        self._builder = builder
        self._fields = fields

    def _add(
        self,
        name: str,
        getter: Callable[[T], Any],
        codec_or_type: FieldSpec[Any, E],
        nullable: bool,
    ) -> tuple[FieldCodec[T, Any, E], ...]:
        return self._fields + (
            self._builder._field_codec(name, getter, codec_or_type, nullable),
        )


class FieldStage1[T, E, A](_FieldStage[T, E]):
    def field[B](
        self, name: str, getter: Callable[[T], B], codec: FieldSpec[B, E], /
    ) -> FieldStage2[T, E, A, B]:
        return FieldStage2(self._builder, self._add(name, getter, codec, False))

    def null_field[B](
        self, name: str, getter: Callable[[T], B | None], type_: Any, /
    ) -> FieldStage2[T, E, A, B | None]:
        return FieldStage2(self._builder, self._add(name, getter, type_, True))

    def map(self, ctor: Callable[[A], T], /) -> Codec[T, E]:
        return self._builder._build(self._fields, lambda args: ctor(*args))


class FieldStage2[T, E, A, B](_FieldStage[T, E]):
    def field[C](
        self, name: str, getter: Callable[[T], C], codec: FieldSpec[C, E], /
    ) -> FieldStage3[T, E, A, B, C]:
        return FieldStage3(self._builder, self._add(name, getter, codec, False))

    def null_field[C](
        self, name: str, getter: Callable[[T], C | None], type_: Any, /
    ) -> FieldStage3[T, E, A, B, C | None]:
        return FieldStage3(self._builder, self._add(name, getter, type_, True))

    def map(self, ctor: Callable[[A, B], T], /) -> Codec[T, E]:
        return self._builder._build(self._fields, lambda args: ctor(*args))


class FieldStage3[T, E, A, B, C](_FieldStage[T, E]):
    def field[D](
        self, name: str, getter: Callable[[T], D], codec: FieldSpec[D, E], /
    ) -> FieldStage4[T, E, A, B, C, D]:
        return FieldStage4(self._builder, self._add(name, getter, codec, False))

    def null_field[D](
        self, name: str, getter: Callable[[T], D | None], type_: Any, /
    ) -> FieldStage4[T, E, A, B, C, D | None]:
        return FieldStage4(self._builder, self._add(name, getter, type_, True))

    def map(self, ctor: Callable[[A, B, C], T], /) -> Codec[T, E]:
        return self._builder._build(self._fields, lambda args: ctor(*args))


class FieldStage4[T, E, A, B, C, D](_FieldStage[T, E]):
    def field(
        self, name: str, getter: Callable[[T], Any], codec: FieldSpec[Any, E], /
    ) -> FieldStageN[T, E]:
        return FieldStageN(self._builder, self._add(name, getter, codec, False))

    def null_field(
        self, name: str, getter: Callable[[T], Any], type_: Any, /
    ) -> FieldStageN[T, E]:
        return FieldStageN(self._builder, self._add(name, getter, type_, True))

    def map(self, ctor: Callable[[A, B, C, D], T], /) -> Codec[T, E]:
        return self._builder._build(self._fields, lambda args: ctor(*args))


class FieldStageN[T, E](_FieldStage[T, E]):
    """
    Stage with more than four fields; the constructor takes a list of the decoded
    field values in declaration order.
    """

    def field(
        self, name: str, getter: Callable[[T], Any], codec: FieldSpec[Any, E], /
    ) -> FieldStageN[T, E]:
        return FieldStageN(self._builder, self._add(name, getter, codec, False))

    def null_field(
        self, name: str, getter: Callable[[T], Any], type_: Any, /
    ) -> FieldStageN[T, E]:
        return FieldStageN(self._builder, self._add(name, getter, type_, True))

    def map(self, ctor: Callable[[list[Any]], T], /) -> Codec[T, E]:
        return self._builder._build(self._fields, ctor)
