"""
Tests for the XML document layout.
"""

from dataclasses import dataclass
from enum import Enum

from pytest import raises

from codecraft.carriers import xml, xml_core
from codecraft.carriers.xml import XmlCodecCore
from codecraft.exceptions import CodecError


@dataclass
class Point:
    x: int
    y: int


@dataclass
class Polygon:
    points: list[Point]


@dataclass
class Shape:
    name: str


@dataclass
class Circle(Shape):
    radius: float


class Colour(Enum):
    RED = 1


class SlotBase:
    __slots__ = ("x",)


class SlotDerived(SlotBase):
    __slots__ = ("x",)


def test_layout():
    core = XmlCodecCore()

    assert xml.dumps(core, Point(1, 2)) == "<root><x>1</x><y>2</y></root>"
    assert xml.dumps(core, None) == '<root meta="null" />'
    assert xml.dumps(core, True) == "<root>true</root>"
    assert (
        xml.dumps(core, ["a", None], type_=list[str | None])
        == '<root><elem>a</elem><elem meta="null" /></root>'
    )
    assert (
        xml.dumps(core, {"a": 1}, type_=dict[str, int])
        == "<root><elem><key>a</key><value>1</value></elem></root>"
    )


def test_tagged():
    core = XmlCodecCore()

    text = xml.dumps(core, Circle("c", 1.5), type_=Shape)
    assert text == (
        f'<root type="{Circle.__module__}.Circle">'
        "<radius>1.5</radius><name>c</name>"
        "</root>"
    )
    assert xml.loads(core, Shape, text) == Circle("c", 1.5)


def test_config():
    """
    Test custom element and attribute names.
    """
    core = xml_core(root_name="doc", entry_name="li", meta_attr="m")

    text = xml.dumps(core, [1, 2], type_=list[int])
    assert text == "<doc><li>1</li><li>2</li></doc>"
    assert xml.dumps(core, None) == '<doc m="null" />'
    assert xml.loads(core, list[int], text) == [1, 2]


def test_field_collision():
    """
    Test that a slot hidden by a derived class's slot is encoded under a prefixed
    element name.
    """
    core = XmlCodecCore()
    obj = SlotDerived()
    obj.x = 1
    SlotBase.x.__set__(obj, 2)  # type: ignore

    text = xml.dumps(core, obj)
    assert text == (
        '<root><x type="builtins.int">1</x><_x type="builtins.int">2</_x></root>'
    )

    decoded = xml.loads(core, SlotDerived, text)
    assert decoded.x == 1
    assert SlotBase.x.__get__(decoded, SlotDerived) == 2  # type: ignore


def test_missing_field():
    core = XmlCodecCore()

    with raises(CodecError, match="Missing field element <y>") as exc_info:
        xml.loads(core, Point, "<root><x>1</x></root>")
    assert exc_info.value.path == ("y",)


def test_invalid_value():
    """
    Test errors for text which doesn't parse as the field's kind.
    """
    core = XmlCodecCore()

    with raises(CodecError, match="Not a valid boolean: 'yes'"):
        xml.loads(core, bool, "<root>yes</root>")

    with raises(CodecError) as exc_info:
        xml.loads(
            core,
            Polygon,
            "<root><points>"
            "<elem><x>1</x><y>2</y></elem>"
            "<elem><x>3</x><y>z</y></elem>"
            "</points></root>",
        )
    assert str(exc_info.value) == "points[1].y: Not a valid long: 'z'"


def test_invalid_structure():
    core = XmlCodecCore()

    with raises(CodecError, match="Unexpected element <item> in sequence"):
        xml.loads(core, list[int], "<root><item>1</item></root>")

    with raises(CodecError, match="Invalid XML"):
        xml.loads(core, int, "<root>1")

    with raises(CodecError, match="Unknown member 'BLUE' of Colour"):
        xml.loads(core, Colour, "<root>BLUE</root>")
