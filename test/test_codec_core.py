"""
Tests for codec resolution by the core, using the XML carrier.
"""

import threading
from abc import ABC, abstractmethod
from collections import OrderedDict
from collections.abc import Mapping, Sequence, Set
from dataclasses import dataclass
from typing import Annotated, final
from xml.etree import ElementTree
from xml.etree.ElementTree import Element

from pytest import raises

from codecraft.carriers.xml import XmlCodecCore, XmlConfig
from codecraft.codecs.codec import Codec
from codecraft.codecs.wrappers import DynamicCodec, NullSafeCodec
from codecraft.exceptions import CodecError, OperationNotImplementedError


class Broken:
    items: "list[Undefined]"  # noqa: F821


@dataclass
class Untyped:
    items: list


class AbstractShape(ABC):
    @abstractmethod
    def area(self) -> float: ...


@dataclass
class Square(AbstractShape):
    side: float

    def area(self) -> float:
        return self.side**2


@dataclass
class Point:
    x: int
    y: int


class Token:
    """
    Slotted class whose `__new__()` requires an argument.
    """

    __slots__ = ("value",)

    value: str

    def __new__(cls, value: str):
        obj = super().__new__(cls)
        obj.value = value
        return obj


class Opaque:
    pass


@dataclass
class OpaqueHolder:
    opaque: Opaque


class Legacy:
    """
    Class setting attributes it doesn't annotate.
    """

    label: str

    def __init__(self, label: str, size: int):
        self.label = label
        self.size = size


@final
@dataclass
class Branch:
    holder: "Holder | None"
    items: list


@final
@dataclass
class Holder:
    branch: Branch | None


@final
@dataclass
class Left:
    right: "Right | None"
    value: int


@final
@dataclass
class Right:
    left: Left | None
    value: str


class EncodeOnlyCodec(Codec[Opaque, Element]):
    def encode(self, obj: Opaque, enc: Element, /) -> Element:
        enc.text = "opaque"
        return enc


class PointCodec(Codec[Point, Element]):
    """
    Encodes a point as "x,y" text.
    """

    def encode(self, obj: Point, enc: Element, /) -> Element:
        enc.text = f"{obj.x},{obj.y}"
        return enc

    def decode(self, enc: Element, /, type_: type[Point] | None = None) -> Point:
        x, y = (enc.text or "").split(",")
        return Point(int(x), int(y))


def test_config():
    """
    Test that the core creates its carrier's config by default.
    """
    core = XmlCodecCore()
    assert isinstance(core.config, XmlConfig)
    assert core.config.field_name_marker == "_"

    config = XmlConfig(root_name="doc")
    assert XmlCodecCore(config).config is config


def test_codec_identity():
    """
    Test that codecs are resolved once per type identity and wrapped according to
    nullability.
    """
    core = XmlCodecCore()

    assert core.get_null_unsafe_codec(int) is core.get_null_unsafe_codec(int)
    assert core.get_field_codec(int) is core.get_null_unsafe_codec(int)
    assert isinstance(core.get_field_codec(int | None), NullSafeCodec)

    # non-primitive fields are nullable unless stated otherwise
    codec = core.get_field_codec(str)
    assert isinstance(codec, NullSafeCodec)
    assert codec.codec is core.string_codec
    assert core.get_field_codec(str, nullable=False) is core.string_codec

    null_safe = core.get_null_safe_codec(str)
    assert isinstance(null_safe, NullSafeCodec)
    assert core.get_null_safe_codec(str) is null_safe
    assert core.make_null_safe_codec(null_safe) is null_safe


def test_dynamic():
    """
    Test that final types get their codec directly, while other types get a
    dynamic codec.
    """
    core = XmlCodecCore()

    assert core.dynamic_codec(int) is core.get_null_unsafe_codec(int)
    assert core.dynamic_codec(str) is core.string_codec

    codec = core.dynamic_codec(Point)
    assert isinstance(codec, DynamicCodec)
    assert codec.static_type is Point

    string_codec = core.string_codec
    assert core.dynamic_check(string_codec, str) is string_codec


def test_register_codec():
    """
    Test that a registered codec is used in place of the reflective codec.
    """
    core = XmlCodecCore()
    core.register_codec(Point, PointCodec())

    enc = core.encode(Point(1, 2))
    assert ElementTree.tostring(enc, encoding="unicode") == "<root>1,2</root>"
    assert core.decode(Point, enc) == Point(1, 2)


def test_unresolvable_field():
    """
    Test that a failed codec build raises and leaves no placeholder behind.
    """
    core = XmlCodecCore()

    with raises(CodecError, match="Cannot inspect fields of Broken"):
        core.encode(Broken())

    # a later request builds anew
    codec = core.get_codec(core.type_name(Broken), lambda: core.string_codec)
    assert codec is core.string_codec


def test_retry_failed_build():
    """
    Test that codecs built during a failed build, referring to the type which
    failed, work once the failure is resolved.
    """
    core = XmlCodecCore()

    with raises(CodecError, match="Cannot determine element types"):
        core.encode(Branch(None, ["a"]))
    with raises(CodecError, match="Construction failed"):
        core.encode(Holder(Branch(None, ["a"])))

    core.register_string_proxy_codec(list, ",".join, lambda s: s.split(","))

    holder = Holder(Branch(Holder(None), ["a", "b"]))
    enc = core.encode(holder)
    assert core.decode(Holder, enc) == holder


def test_undeclared_attrs():
    """
    Test that instances holding attributes their class doesn't declare can't be
    encoded reflectively, rather than losing those attributes.
    """
    core = XmlCodecCore()

    with raises(CodecError, match="Undeclared attributes of Legacy: size"):
        core.encode(Legacy("a", 1))

    legacy = Legacy.__new__(Legacy)
    legacy.label = "a"
    enc = core.encode(legacy)
    assert (
        ElementTree.tostring(enc, encoding="unicode") == "<root><label>a</label></root>"
    )


def test_untyped_container():
    """
    Test that a container without element types can't be encoded.
    """
    core = XmlCodecCore()

    with raises(CodecError, match="Cannot determine element types") as exc_info:
        core.encode(Untyped([1, 2]))
    assert exc_info.value.path == ("items",)

    with raises(CodecError, match="Cannot determine element types"):
        core.get_null_unsafe_codec(dict)


def test_type_proxy():
    """
    Test that an abstract type can only be decoded without a tag once a concrete
    proxy type is registered for it.
    """
    enc = ElementTree.fromstring("<root><side>2.0</side></root>")

    core = XmlCodecCore()
    with raises(CodecError, match="Failed to instantiate AbstractShape"):
        core.decode(AbstractShape, enc)

    core = XmlCodecCore()
    core.register_type_proxy(AbstractShape, Square)
    assert core.decode(AbstractShape, enc) == Square(2.0)


def test_type_proxy_name():
    """
    Test registering a proxy by type identity, replacing a default proxy.
    """
    enc = ElementTree.fromstring("<root><elem>a</elem><elem>b</elem></root>")

    core = XmlCodecCore()
    assert core.decode(Set[str], enc) == {"a", "b"}
    assert type(core.decode(Set[str], enc)) is set

    core = XmlCodecCore()
    core.register_type_proxy("collections.abc.Set", frozenset)
    assert core.decode(Set[str], enc) == frozenset({"a", "b"})


def test_remap_type():
    """
    Test that type arguments and extras are kept when remapping a type.
    """
    core = XmlCodecCore()

    assert core.remap_type(Sequence[int]) == list[int]
    assert core.remap_type(Annotated[Mapping[str, int], "x"]) == Annotated[
        dict[str, int], "x"
    ]
    assert core.remap_type(int) is int

    core = XmlCodecCore(XmlConfig(use_default_type_proxies=False))
    assert core.remap_type(Sequence[int]) == Sequence[int]


def test_type_constructor():
    """
    Test that a class whose `__new__()` requires arguments needs a registered type
    constructor to be decoded.
    """
    core = XmlCodecCore()
    enc = core.encode(Token("abc"))

    with raises(CodecError, match="Failed to instantiate Token"):
        core.decode(Token, enc)

    core = XmlCodecCore()
    core.register_type_constructor(Token, lambda: Token(""))
    token = core.decode(Token, core.encode(Token("abc")))
    assert isinstance(token, Token)
    assert token.value == "abc"


def test_name_to_class():
    core = XmlCodecCore()

    assert core.name_to_class("collections.OrderedDict") is OrderedDict
    assert core.name_to_class(core.class_to_name(Point)) is Point

    with raises(CodecError, match="Cannot create class from class name"):
        core.name_to_class("nonexistent.module.Class")
    with raises(CodecError, match="Cannot create class from class name"):
        core.name_to_class("collections.Nonexistent")


def test_not_implemented():
    """
    Test that a codec operation which is not implemented propagates unwrapped.
    """
    core = XmlCodecCore()
    core.register_codec(Opaque, EncodeOnlyCodec())

    enc = core.encode(OpaqueHolder(Opaque()))
    assert (
        ElementTree.tostring(enc, encoding="unicode")
        == "<root><opaque>opaque</opaque></root>"
    )

    with raises(OperationNotImplementedError):
        core.decode(OpaqueHolder, enc)


def test_unexpected_error():
    """
    Test that unexpected exceptions are converted to errors with the path of the
    field which raised them.
    """
    core = XmlCodecCore()
    codec = (
        core.object_codec(Point)
        .field("x", lambda p: p.x, int)
        .field("y", lambda p: p.z, int)
        .map(Point)
    )

    with raises(CodecError) as exc_info:
        codec.encode(Point(1, 2), Element("root"))

    assert exc_info.value.path == ("y",)
    assert isinstance(exc_info.value.cause, AttributeError)
    assert str(exc_info.value).startswith("y: AttributeError")


def test_concurrent_recursive():
    """
    Test that threads resolving mutually recursive final types at the same time
    neither deadlock nor use incomplete codecs.
    """
    values: list[object] = [
        Left(Right(Left(None, 2), "a"), 1),
        Right(Left(Right(None, "c"), 3), "b"),
    ]

    for _ in range(20):
        core = XmlCodecCore()
        barrier = threading.Barrier(8)
        errors: list[Exception] = []

        def run(value: object):
            try:
                barrier.wait()
                enc = core.encode(value)
                assert core.decode(type(value), enc) == value
            except Exception as e:
                errors.append(e)

        threads = [
            threading.Thread(target=run, args=(values[i % 2],), daemon=True)
            for i in range(8)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert not any(thread.is_alive() for thread in threads)
        assert errors == []
