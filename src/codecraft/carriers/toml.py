"""
TOML carrier via `tomlkit`.

Codecs create a new `tomlkit` item for each value rather than writing into a parent:
objects are inline tables, sequences are arrays and leaves are scalar items. TOML has
no null, so null and runtime type tags are written as inline tables with reserved
keys:

```toml
value = {"@type" = "example.Circle", "@value" = {label = {"@null" = true}}}
```

Documents are decoded from plain Python values, as obtained by unwrapping the
parsed document.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generator

import tomlkit
from tomlkit.exceptions import TOMLKitError
from tomlkit.items import Array, InlineTable, Item

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
    "TomlConfig",
    "TomlCodecCore",
    "dumps",
    "loads",
]


@dataclass(kw_only=True)
class TomlConfig(CodecConfig):
    """
    Keys used for the top-level value and for metadata tables.
    """

    root_key: str = "value"
    """
    Key of the top-level value in a document.
    """

    type_key: str = "@type"
    """
    Key holding the runtime type tag.
    """

    value_key: str = "@value"
    """
    Key holding the value wrapped by a type tag.
    """

    null_key: str = "@null"
    """
    Key of the table marking a null value.
    """


class TomlNullCodec(NullCodec[Any]):
    config: TomlConfig

    def __init__(self, config: TomlConfig):
        self.config = config

    def is_null(self, enc: Any, /) -> bool:
        if not isinstance(enc, dict):
            return False
        return _unwrap(enc.get(self.config.null_key)) is True

    def encode(self, obj: None, enc: Any, /) -> InlineTable:
        table = tomlkit.inline_table()
        table[self.config.null_key] = True
        return table


class TomlStringCodec(StringCodec[Any]):
    def encode_str_value(self, value: str, /) -> Item:
        return tomlkit.item(value)

    def decode(self, enc: Any, /, type_: type[str] | None = None) -> str:
        enc = _unwrap(enc)
        if not isinstance(enc, str):
            raise CodecError(f"Not a valid string: {enc!r}")
        return str(enc)


class TomlPrimitiveMixin:
    """
    Creates a scalar item for each primitive; decoded values are validated by the
    primitive codec.
    """

    def encode_prim_value(self, value: Any, /) -> Item:
        return tomlkit.item(value)

    def decode_prim(self, enc: Any, /) -> Any:
        return _unwrap(enc)


class TomlBooleanCodec(TomlPrimitiveMixin, BooleanCodec[Any]): ...


class TomlByteCodec(TomlPrimitiveMixin, ByteCodec[Any]): ...


class TomlCharCodec(TomlPrimitiveMixin, CharCodec[Any]): ...


class TomlShortCodec(TomlPrimitiveMixin, ShortCodec[Any]): ...


class TomlIntCodec(TomlPrimitiveMixin, IntCodec[Any]): ...


class TomlLongCodec(TomlPrimitiveMixin, LongCodec[Any]): ...


class TomlFloatCodec(TomlPrimitiveMixin, FloatCodec[Any]): ...


class TomlDoubleCodec(TomlPrimitiveMixin, DoubleCodec[Any]): ...


PRIMITIVE_CODECS: tuple[type[PrimitiveCodec[Any, Any]], ...] = (
    TomlBooleanCodec,
    TomlByteCodec,
    TomlCharCodec,
    TomlShortCodec,
    TomlIntCodec,
    TomlLongCodec,
    TomlFloatCodec,
    TomlDoubleCodec,
)


class TomlCodecCore(BaseCodecCore[Any, TomlConfig]):
    """
    Codec core encoding into `tomlkit` items and decoding from plain values.
    """

    __null_codec: TomlNullCodec
    __string_codec: TomlStringCodec
    __primitive_codecs: dict[PrimitiveKind, PrimitiveCodec[Any, Any]]

    def __init__(self, config: TomlConfig | None = None, /):
        super().__init__(config)
        self.__null_codec = TomlNullCodec(self.config)
        self.__string_codec = TomlStringCodec()
        self.__primitive_codecs = {c.kind: c() for c in PRIMITIVE_CODECS}

    @property
    def null_codec(self) -> TomlNullCodec:
        return self.__null_codec

    @property
    def string_codec(self) -> TomlStringCodec:
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
        table = tomlkit.inline_table()
        table[self.config.type_key] = tag
        table[self.config.value_key] = value
        return table

    def _decode_tag(self, enc: Any, /) -> tuple[str | None, Any]:
        if isinstance(enc, dict) and self.config.type_key in enc:
            if self.config.value_key not in enc:
                raise CodecError(
                    f"Missing '{self.config.value_key}' for tagged value"
                )
            return str(enc[self.config.type_key]), enc[self.config.value_key]
        return None, enc

    def _start_object(self, enc: Any, /) -> InlineTable:
        return tomlkit.inline_table()

    def _field_carrier(self, obj_enc: Any, name: str, /) -> None:
        return None

    def _end_field(self, obj_enc: InlineTable, name: str, field_enc: Any, /):
        obj_enc[name] = field_enc

    def _get_field(self, enc: Any, name: str, /) -> Any:
        if not isinstance(enc, dict):
            raise CodecError(f"Expected table, got {enc!r}")
        if name not in enc:
            raise CodecError(f"Missing field '{name}'")
        return enc[name]

    def _start_sequence(self, enc: Any, size: int, /) -> Array:
        return tomlkit.array()

    def _entry_carrier(self, seq_enc: Any, /) -> None:
        return None

    def _end_entry(self, seq_enc: Array, entry_enc: Any, /):
        seq_enc.append(entry_enc)

    def _entries(self, enc: Any, /) -> Generator[Any, None, None]:
        if not isinstance(enc, list):
            raise CodecError(f"Expected array, got {enc!r}")
        yield from enc


def _unwrap(enc: Any) -> Any:
    """
    Get plain value of an item, as when decoding without a round trip through text.
    """
    return enc.unwrap() if isinstance(enc, Item) else enc


def dumps(core: TomlCodecCore, obj: Any, /, *, type_: Any = None) -> str:
    """
    Encode object as a TOML document with the value under `TomlConfig.root_key`.
    """
    doc = tomlkit.document()
    doc.add(core.config.root_key, core.encode(obj, type_=type_))
    return tomlkit.dumps(doc)


def loads[T](core: TomlCodecCore, type_: type[T] | Any, text: str, /) -> T:
    """
    Decode object of the given type from a TOML document.
    """
    try:
        doc = tomlkit.loads(text).unwrap()
    except TOMLKitError as e:
        raise CodecError(f"Invalid TOML: {e}", cause=e) from e

    if core.config.root_key not in doc:
        raise CodecError(f"Missing top-level key '{core.config.root_key}'")
    return core.decode(type_, doc[core.config.root_key])
