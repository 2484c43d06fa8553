"""
Tests for the TOML document layout.
"""

from dataclasses import dataclass

import tomlkit
from pytest import raises

from codecraft.carriers import toml, toml_core
from codecraft.carriers.toml import TomlCodecCore
from codecraft.exceptions import CodecError


@dataclass
class Point:
    x: int
    y: int


@dataclass
class Shape:
    name: str


@dataclass
class Circle(Shape):
    radius: float


@dataclass
class Node:
    value: int
    next: "Node | None" = None


def parse(text: str) -> dict:
    return tomlkit.loads(text).unwrap()


def test_layout():
    core = TomlCodecCore()

    assert parse(toml.dumps(core, Point(1, 2))) == {"value": {"x": 1, "y": 2}}
    assert parse(toml.dumps(core, None)) == {"value": {"@null": True}}
    assert parse(toml.dumps(core, ["a", None], type_=list[str | None])) == {
        "value": ["a", {"@null": True}]
    }
    assert parse(toml.dumps(core, {"a": 1}, type_=dict[str, int])) == {
        "value": [{"key": "a", "value": 1}]
    }


def test_tagged():
    core = TomlCodecCore()

    text = toml.dumps(core, Circle("c", 1.5), type_=Shape)
    assert parse(text) == {
        "value": {
            "@type": f"{Circle.__module__}.Circle",
            "@value": {"radius": 1.5, "name": "c"},
        }
    }
    assert toml.loads(core, Shape, text) == Circle("c", 1.5)


def test_config():
    """
    Test custom keys for the top-level value and metadata tables.
    """
    core = toml_core(root_key="data", type_key="$type", null_key="$null")

    text = toml.dumps(core, [Shape("a"), Circle("b", 1.0), None], type_=list[Shape])
    assert parse(text) == {
        "data": [
            {"name": "a"},
            {
                "$type": f"{Circle.__module__}.Circle",
                "@value": {"radius": 1.0, "name": "b"},
            },
            {"$null": True},
        ]
    }
    assert toml.loads(core, list[Shape], text) == [Shape("a"), Circle("b", 1.0), None]


def test_in_memory():
    """
    Test decoding the items created by encoding, without formatting them as text.
    """
    core = TomlCodecCore()
    node = Node(1, Node(2))

    assert core.decode(Node, core.encode(node)) == node
    assert core.decode(Node | None, core.encode(None)) is None
    enc = core.encode(Circle("c", 2.0), type_=Shape)
    assert core.decode(Shape, enc) == Circle("c", 2.0)


def test_invalid_document():
    core = TomlCodecCore()

    with raises(CodecError, match="Missing top-level key 'value'"):
        toml.loads(core, int, "other = 1")

    with raises(CodecError, match="Invalid TOML"):
        toml.loads(core, int, "value = ")


def test_invalid_structure():
    """
    Test errors for values which don't have the structure of their type.
    """
    core = TomlCodecCore()

    with raises(CodecError, match="Missing field 'y'") as exc_info:
        toml.loads(core, Point, "value = {x = 1}")
    assert exc_info.value.path == ("y",)

    with raises(CodecError, match="Expected array"):
        toml.loads(core, list[int], "value = 1")

    with raises(CodecError, match="Expected table"):
        toml.loads(core, Point, "value = [1, 2]")

    with raises(CodecError, match="Missing '@value' for tagged value"):
        toml.loads(core, Shape, 'value = {"@type" = "builtins.object"}')

    with raises(CodecError, match="Not a valid long: '2'") as exc_info:
        toml.loads(core, Point, 'value = {x = 1, y = "2"}')
    assert exc_info.value.path == ("y",)
