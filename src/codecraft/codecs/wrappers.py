"""
Codecs layering null handling and runtime type tagging over a base codec.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

from ..exceptions import CodecError
from ..inspecting.utils import safe_issubclass
from .codec import Codec, NullCodec

if TYPE_CHECKING:
    from ..core import BaseCodecCore

__all__ = [
    "NullSafeCodec",
    "DynamicCodec",
    "DynamicCheckCodec",
]


class NullSafeCodec[T, E](Codec[T | None, E]):
    """
    Encodes `None` with the carrier's null marker and other values with the base
    codec.
    """

    null_codec: NullCodec[E]
    codec: Codec[T, E]

    def __init__(self, null_codec: NullCodec[E], codec: Codec[T, E]):
        self.null_codec = null_codec
        self.codec = codec

    def __repr__(self) -> str:
        return f"NullSafeCodec({self.codec!r})"

    def encode(self, obj: T | None, enc: E, /) -> E:
        if obj is None:
            return self.null_codec.encode(None, enc)
        return self.codec.encode(obj, self.null_codec.mark_present(enc))

    def decode(self, enc: E, /, type_: type[T | None] | None = None) -> T | None:
        if self.null_codec.is_null(enc):
            return self.null_codec.decode(enc)
        return self.codec.decode(enc, cast(type[T] | None, type_))


class DynamicCodec[T, E](Codec[T, E]):
    """
    Codec for a non-final declared type whose values may be instances of
    subclasses.

    Values of exactly the declared type are encoded untagged. Values of another
    type are tagged with their type's identity and encoded with its codec. Decoding
    resolves the tagged type, defaulting to the declared type if there's no tag.
    """

    static_type: type[T]
    """
    Declared type.
    """

    __core: BaseCodecCore[E, Any]

    def __init__(self, core: BaseCodecCore[E, Any], static_type: type[T]):
        self.__core = core
        self.static_type = static_type

    def __repr__(self) -> str:
        return f"DynamicCodec({self.static_type.__qualname__})"

    def encode(self, obj: T, enc: E, /) -> E:
        core = self.__core
        dyn_type = type(obj)
        tag = core.class_to_name(dyn_type) if dyn_type is not self.static_type else None
        codec = core.get_null_unsafe_codec(dyn_type)
        return core._encode_tagged(enc, tag, codec, obj)

    def decode(self, enc: E, /, type_: type[T] | None = None) -> T:
        core = self.__core
        tag, enc_ = core._decode_tag(enc)
        if tag is not None:
            dyn_type = _check_tag(tag, core.name_to_class(tag), self.static_type)
        else:
            dyn_type = type_ or self.static_type
        return core.get_null_unsafe_codec(dyn_type).decode(enc_, dyn_type)


class DynamicCheckCodec[T, E](Codec[T, E]):
    """
    Tags values whose type differs from the declared type like `DynamicCodec`, but
    keeps encoding with the given codec, passing the tagged type to its `decode()`.

    Used for containers, so e.g. a tuple in a field declared as `Sequence[int]`
    decodes as a tuple while sharing the element codec.
    """

    static_type: type[T]
    """
    Declared type.
    """

    codec: Codec[T, E]
    """
    Codec used for all runtime types.
    """

    bound: type
    """
    Base class of the types which tags may name, e.g. `Collection` for a list
    codec which can also decode tuples.
    """

    __core: BaseCodecCore[E, Any]

    def __init__(
        self,
        core: BaseCodecCore[E, Any],
        codec: Codec[T, E],
        static_type: type[T],
        bound: type | None = None,
    ):
        self.__core = core
        self.codec = codec
        self.static_type = static_type
        self.bound = bound or static_type

    def __repr__(self) -> str:
        return f"DynamicCheckCodec({self.codec!r})"

    def encode(self, obj: T, enc: E, /) -> E:
        core = self.__core
        dyn_type = type(obj)
        tag = core.class_to_name(dyn_type) if dyn_type is not self.static_type else None
        return core._encode_tagged(enc, tag, self.codec, obj)

    def decode(self, enc: E, /, type_: type[T] | None = None) -> T:
        core = self.__core
        tag, enc_ = core._decode_tag(enc)
        if tag is not None:
            dyn_type = _check_tag(tag, core.name_to_class(tag), self.bound)
        else:
            dyn_type = type_ or self.static_type
        return self.codec.decode(enc_, dyn_type)


def _check_tag[T](tag: str, dyn_type: type, bound: type[T]) -> type[T]:
    """
    Ensure the type named by a tag can be held where `bound` is declared.
    """
    if not safe_issubclass(dyn_type, bound):
        raise CodecError(
            f"Tagged type '{tag}' is not a subclass of {bound.__qualname__}"
        )
    return dyn_type
