"""
XML carrier via `xml.etree.ElementTree`: values are element text, object fields are
child elements named after the field and sequence entries are child elements named
by `XmlConfig.entry_name`.

```xml
<root type="example.Circle">
  <radius>1.5</radius>
  <tags><elem>a</elem><elem meta="null" /></tags>
</root>
```
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Generator
from xml.etree import ElementTree
from xml.etree.ElementTree import Element

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
    "XmlConfig",
    "XmlCodecCore",
    "dumps",
    "loads",
]


@dataclass(kw_only=True)
class XmlConfig(CodecConfig):
    """
    Names of the elements and attributes used for structure and metadata.
    """

    field_name_marker: str = "_"
    """
    Collision prefix, which must be valid in an element name.
    """

    root_name: str = "root"
    """
    Name of the element created for a top-level value.
    """

    entry_name: str = "elem"
    """
    Name of each sequence entry element.
    """

    type_attr: str = "type"
    """
    Attribute holding the runtime type tag.
    """

    meta_attr: str = "meta"
    """
    Attribute holding the null marker.
    """

    null_value: str = "null"
    """
    Value of `meta_attr` marking a null element.
    """


class XmlNullCodec(NullCodec[Element]):
    config: XmlConfig

    def __init__(self, config: XmlConfig):
        self.config = config

    def is_null(self, enc: Element, /) -> bool:
        return enc.get(self.config.meta_attr) == self.config.null_value

    def encode(self, obj: None, enc: Element, /) -> Element:
        enc.set(self.config.meta_attr, self.config.null_value)
        return enc


class XmlStringCodec(StringCodec[Element]):
    def encode_str(self, value: str, enc: Element, /) -> Element:
        enc.text = value
        return enc

    def decode(self, enc: Element, /, type_: type[str] | None = None) -> str:
        return enc.text or ""


class XmlPrimitiveMixin:
    """
    Writes primitives as element text, parsed with `parse()` upon decoding.
    """

    kind: ClassVar[PrimitiveKind]

    def encode_prim(self, value: Any, enc: Element, /) -> Element:
        enc.text = self.format(value)
        return enc

    def decode_prim(self, enc: Element, /) -> Any:
        text = enc.text or ""
        try:
            return self.parse(text)
        except ValueError:
            raise CodecError(f"Not a valid {self.kind.value}: {text!r}") from None

    def format(self, value: Any) -> str:
        return str(value)

    def parse(self, text: str) -> Any:
        return int(text)


class XmlBooleanCodec(XmlPrimitiveMixin, BooleanCodec[Element]):
    def format(self, value: bool) -> str:
        return "true" if value else "false"

    def parse(self, text: str) -> bool:
        if text not in ("true", "false"):
            raise ValueError(text)
        return text == "true"


class XmlCharCodec(XmlPrimitiveMixin, CharCodec[Element]):
    def parse(self, text: str) -> str:
        return text


class XmlByteCodec(XmlPrimitiveMixin, ByteCodec[Element]): ...


class XmlShortCodec(XmlPrimitiveMixin, ShortCodec[Element]): ...


class XmlIntCodec(XmlPrimitiveMixin, IntCodec[Element]): ...


class XmlLongCodec(XmlPrimitiveMixin, LongCodec[Element]): ...


class XmlFloatCodec(XmlPrimitiveMixin, FloatCodec[Element]):
    def format(self, value: float) -> str:
        return repr(value)

    def parse(self, text: str) -> float:
        return float(text)


class XmlDoubleCodec(XmlPrimitiveMixin, DoubleCodec[Element]):
    def format(self, value: float) -> str:
        return repr(value)

    def parse(self, text: str) -> float:
        return float(text)


PRIMITIVE_CODECS: tuple[type[PrimitiveCodec[Any, Element]], ...] = (
    XmlBooleanCodec,
    XmlByteCodec,
    XmlCharCodec,
    XmlShortCodec,
    XmlIntCodec,
    XmlLongCodec,
    XmlFloatCodec,
    XmlDoubleCodec,
)


class XmlCodecCore(BaseCodecCore[Element, XmlConfig]):
    """
    Codec core encoding into `ElementTree` elements. Each codec writes into the
    element it's given, so nodes returned from encoding are the nodes passed in.
    """

    __null_codec: XmlNullCodec
    __string_codec: XmlStringCodec
    __primitive_codecs: dict[PrimitiveKind, PrimitiveCodec[Any, Element]]

    def __init__(self, config: XmlConfig | None = None, /):
        super().__init__(config)
        self.__null_codec = XmlNullCodec(self.config)
        self.__string_codec = XmlStringCodec()
        self.__primitive_codecs = {c.kind: c() for c in PRIMITIVE_CODECS}

    @property
    def null_codec(self) -> XmlNullCodec:
        return self.__null_codec

    @property
    def string_codec(self) -> XmlStringCodec:
        return self.__string_codec

    def primitive_codec(self, kind: PrimitiveKind, /) -> PrimitiveCodec[Any, Element]:
        return self.__primitive_codecs[kind]

    def _create_root(self) -> Element:
        return Element(self.config.root_name)

    def _encode_tagged[T](
        self, enc: Element, tag: str | None, codec: Codec[T, Element], obj: T, /
    ) -> Element:
        if tag is not None:
            enc.set(self.config.type_attr, tag)
        return codec.encode(obj, enc)

    def _decode_tag(self, enc: Element, /) -> tuple[str | None, Element]:
        return enc.get(self.config.type_attr), enc

    def _start_object(self, enc: Element, /) -> Element:
        return enc

    def _field_carrier(self, obj_enc: Element, name: str, /) -> Element:
        return ElementTree.SubElement(obj_enc, name)

    def _end_field(self, obj_enc: Element, name: str, field_enc: Element, /):
        pass

    def _get_field(self, enc: Element, name: str, /) -> Element:
        child = next((c for c in enc if c.tag == name), None)
        if child is None:
            raise CodecError(f"Missing field element <{name}>")
        return child

    def _start_sequence(self, enc: Element, size: int, /) -> Element:
        return enc

    def _entry_carrier(self, seq_enc: Element, /) -> Element:
        return ElementTree.SubElement(seq_enc, self.config.entry_name)

    def _end_entry(self, seq_enc: Element, entry_enc: Element, /):
        pass

    def _entries(self, enc: Element, /) -> Generator[Element, None, None]:
        for child in enc:
            if child.tag != self.config.entry_name:
                raise CodecError(
                    f"Unexpected element <{child.tag}> in sequence, expected "
                    f"<{self.config.entry_name}>"
                )
            yield child


def dumps(core: XmlCodecCore, obj: Any, /, *, type_: Any = None) -> str:
    """
    Encode object as an XML document string.
    """
    return ElementTree.tostring(core.encode(obj, type_=type_), encoding="unicode")


def loads[T](core: XmlCodecCore, type_: type[T] | Any, text: str, /) -> T:
    """
    Decode object of the given type from an XML document string.
    """
    try:
        root = ElementTree.fromstring(text)
    except ElementTree.ParseError as e:
        raise CodecError(f"Invalid XML: {e}", cause=e) from e
    return core.decode(type_, root)
