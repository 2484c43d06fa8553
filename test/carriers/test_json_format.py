"""
Tests for the JSON document layout.
"""

import json as stdlib_json
from dataclasses import dataclass

from pytest import raises

from codecraft.carriers import json, json_core
from codecraft.carriers.json import JsonCodecCore
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


def test_layout():
    core = JsonCodecCore()

    assert json.dumps(core, Point(1, 2)) == '{"x":1,"y":2}'
    assert json.dumps(core, None) == "null"
    assert json.dumps(core, ["a", None], type_=list[str | None]) == '["a",null]'
    assert json.dumps(core, {"a": 1}, type_=dict[str, int]) == (
        '[{"key":"a","value":1}]'
    )
    assert json.dumps(core, Node(1)) == '{"value":1,"next":null}'


def test_tagged():
    core = JsonCodecCore()

    text = json.dumps(core, Circle("c", 1.5), type_=Shape)
    assert stdlib_json.loads(text) == {
        "@type": f"{Circle.__module__}.Circle",
        "@value": {"radius": 1.5, "name": "c"},
    }
    assert json.loads(core, Shape, text) == Circle("c", 1.5)
    assert json.loads(core, Shape, text.encode()) == Circle("c", 1.5)


def test_config():
    """
    Test custom keys for type tags and indented output.
    """
    core = json_core(type_key="$type", value_key="$value", indent=True)

    text = json.dumps(core, [Shape("a"), Circle("b", 1.0)], type_=list[Shape])
    assert "\n  " in text
    assert stdlib_json.loads(text) == [
        {"name": "a"},
        {
            "$type": f"{Circle.__module__}.Circle",
            "$value": {"radius": 1.0, "name": "b"},
        },
    ]
    assert json.loads(core, list[Shape], text) == [Shape("a"), Circle("b", 1.0)]


def test_in_memory():
    """
    Test decoding the values created by encoding, without formatting them as text.
    """
    core = JsonCodecCore()
    node = Node(1, Node(2))

    assert core.encode(node) == {"value": 1, "next": {"value": 2, "next": None}}
    assert core.decode(Node, core.encode(node)) == node
    assert core.decode(Node | None, core.encode(None)) is None


def test_invalid_document():
    core = JsonCodecCore()

    with raises(CodecError, match="Invalid JSON"):
        json.loads(core, int, '{"x": ')


def test_invalid_structure():
    """
    Test errors for values which don't have the structure of their type.
    """
    core = JsonCodecCore()

    with raises(CodecError, match="Missing field 'y'") as exc_info:
        json.loads(core, Point, '{"x": 1}')
    assert exc_info.value.path == ("y",)

    with raises(CodecError, match="Expected array"):
        json.loads(core, list[int], "1")

    with raises(CodecError, match="Expected object"):
        json.loads(core, Point, "[1, 2]")

    with raises(CodecError, match="Missing '@value' for tagged value"):
        json.loads(core, Shape, '{"@type": "builtins.object"}')

    with raises(CodecError, match="Not a valid type tag: 1"):
        json.loads(core, Shape, '{"@type": 1, "@value": {}}')

    with raises(CodecError, match="Not a valid long: '2'") as exc_info:
        json.loads(core, Point, '{"x": 1, "y": "2"}')
    assert exc_info.value.path == ("y",)
