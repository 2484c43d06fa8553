"""
JSON carrier via `orjson`.

Values are encoded as plain Python values which `orjson` serializes: objects are
dicts, sequences are lists, leaves are scalars and null is `None`. Runtime type tags
wrap the value in a dict with reserved keys:

```json
{"@type": "example.Circle", "@value": {"label": null}}
```

Non-finite floats have no JSON representation and are written as `null`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generator

import orjson

from ..codecs.codec import (
    BooleanCodec,
    ByteCodec,
    CharCodec,
    Codec,
    DoubleCodec,
    FloatCodec,
    IntCodec,
    LongCodec,
    NullCodec,
    PrimitiveCodec,
    ShortCodec,
    StringCodec,
)
from ..config import CodecConfig
from ..core import BaseCodecCore
from ..exceptions import CodecError
from ..typedefs import PrimitiveKind

__all__ = [
    "JsonConfig",
    "JsonCodecCore",
    "dumps",
    "loads",
]


@dataclass(kw_only=True)
class JsonConfig(CodecConfig):
    type_key: str = "@type"
    """
    Key holding the runtime type tag.
    """

    value_key: str = "@value"
    """
    Key holding the value wrapped by a type tag.
    """

    indent: bool = False
    """
    Whether to indent documents by 2 spaces.
    """


class JsonNullCodec(NullCodec[Any]):
    def is_null(self, enc: Any, /) -> bool:
        return enc is None

    def encode(self, obj: None, enc: Any, /) -> None:
        return None


class JsonStringCodec(StringCodec[Any]):
    def encode_str_value(self, value: str, /) -> str:
        return value

    def decode(self, enc: Any, /, type_: type[str] | None = None) -> str:
        if not isinstance(enc, str):
            raise CodecError(f"Not a valid string: {enc!r}")
        return enc


class JsonPrimitiveMixin:
    """
    Primitives are their own JSON values; decoded values are validated by the
    primitive codec.
    """

    def encode_prim_value(self, value: Any, /) -> Any:
        return value

    def decode_prim(self, enc: Any, /) -> Any:
        return enc


class JsonBooleanCodec(JsonPrimitiveMixin, BooleanCodec[Any]): ...


class JsonByteCodec(JsonPrimitiveMixin, ByteCodec[Any]): ...


class JsonCharCodec(JsonPrimitiveMixin, CharCodec[Any]): ...


class JsonShortCodec(JsonPrimitiveMixin, ShortCodec[Any]): ...


class JsonIntCodec(JsonPrimitiveMixin, IntCodec[Any]): ...


class JsonLongCodec(JsonPrimitiveMixin, LongCodec[Any]): ...


class JsonFloatCodec(JsonPrimitiveMixin, FloatCodec[Any]): ...


class JsonDoubleCodec(JsonPrimitiveMixin, DoubleCodec[Any]): ...


PRIMITIVE_CODECS: tuple[type[PrimitiveCodec[Any, Any]], ...] = (
    JsonBooleanCodec,
    JsonByteCodec,
    JsonCharCodec,
    JsonShortCodec,
    JsonIntCodec,
    JsonLongCodec,
    JsonFloatCodec,
    JsonDoubleCodec,
)


class JsonCodecCore(BaseCodecCore[Any, JsonConfig]):
    """
    Codec core encoding into and decoding from plain JSON-compatible values.
    """

    __null_codec: JsonNullCodec
    __string_codec: JsonStringCodec
    __primitive_codecs: dict[PrimitiveKind, PrimitiveCodec[Any, Any]]

    def __init__(self, config: JsonConfig | None = None, /):
        super().__init__(config)
        self.__null_codec = JsonNullCodec()
        self.__string_codec = JsonStringCodec()
        self.__primitive_codecs = {c.kind: c() for c in PRIMITIVE_CODECS}

    @property
    def null_codec(self) -> JsonNullCodec:
        return self.__null_codec

    @property
    def string_codec(self) -> JsonStringCodec:
        return self.__string_codec

    def primitive_codec(self, kind: PrimitiveKind, /) -> PrimitiveCodec[Any, Any]:
        return self.__primitive_codecs[kind]

    def _create_root(self) -> None:
        return None

    def _encode_tagged[T](
        self, enc: Any, tag: str | None, codec: Codec[T, Any], obj: T, /
    ) -> Any:
        value = codec.encode(obj, enc)
        if tag is None:
            return value
        return {self.config.type_key: tag, self.config.value_key: value}

    def _decode_tag(self, enc: Any, /) -> tuple[str | None, Any]:
        if isinstance(enc, dict) and self.config.type_key in enc:
            if self.config.value_key not in enc:
                raise CodecError(
                    f"Missing '{self.config.value_key}' for tagged value"
                )
            tag = enc[self.config.type_key]
            if not isinstance(tag, str):
                raise CodecError(f"Not a valid type tag: {tag!r}")
            return tag, enc[self.config.value_key]
        return None, enc

    def _start_object(self, enc: Any, /) -> dict[str, Any]:
        return {}

    def _field_carrier(self, obj_enc: Any, name: str, /) -> None:
        return None

    def _end_field(self, obj_enc: dict[str, Any], name: str, field_enc: Any, /):
        obj_enc[name] = field_enc

    def _get_field(self, enc: Any, name: str, /) -> Any:
        if not isinstance(enc, dict):
            raise CodecError(f"Expected object, got {enc!r}")
        if name not in enc:
            raise CodecError(f"Missing field '{name}'")
        return enc[name]

    def _start_sequence(self, enc: Any, size: int, /) -> list[Any]:
        return []

    def _entry_carrier(self, seq_enc: Any, /) -> None:
        return None

    def _end_entry(self, seq_enc: list[Any], entry_enc: Any, /):
        seq_enc.append(entry_enc)

    def _entries(self, enc: Any, /) -> Generator[Any, None, None]:
        if not isinstance(enc, list):
            raise CodecError(f"Expected array, got {enc!r}")
        yield from enc


def dumps(core: JsonCodecCore, obj: Any, /, *, type_: Any = None) -> str:
    """
    Encode object as a JSON document.
    """
    option = orjson.OPT_INDENT_2 if core.config.indent else None
    try:
        data = orjson.dumps(core.encode(obj, type_=type_), option=option)
    except orjson.JSONEncodeError as e:
        raise CodecError(f"Cannot write JSON: {e}", cause=e) from e
    return data.decode("utf-8")


def loads[T](core: JsonCodecCore, type_: type[T] | Any, text: str | bytes, /) -> T:
    """
    Decode object of the given type from a JSON document.
    """
    try:
        value = orjson.loads(text)
    except orjson.JSONDecodeError as e:
        raise CodecError(f"Invalid JSON: {e}", cause=e) from e
    return core.decode(type_, value)
