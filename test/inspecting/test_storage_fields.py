"""
Tests for class inspection: identities, finality and storage fields.
"""

from dataclasses import InitVar, dataclass
from enum import Enum
from typing import Annotated, Any, ClassVar, final

from codecraft.fields import TRANSIENT, transient_field
from codecraft.inspecting.classes import (
    class_to_name,
    get_declared_attrs,
    get_storage_fields,
    is_final,
    type_name,
)
from codecraft.typedefs import PrimitiveKind

type Tree = dict[str, Tree]
type Pair[T] = tuple[T, T]


@dataclass
class Shape:
    name: str


@dataclass
class Circle(Shape):
    radius: float


@dataclass
class Redeclared(Shape):
    name: str
    sides: int


@dataclass
class Excluded:
    value: int
    scale: InitVar[int]
    count: ClassVar[int] = 0
    note: Annotated[str, TRANSIENT] = ""
    hits: int = transient_field(default=0)

    def __post_init__(self, scale: int):
        self.value *= scale


class SlotBase:
    __slots__ = ("x", "__secret")


class SlotDerived(SlotBase):
    __slots__ = ("x",)


@dataclass(frozen=True, slots=True)
class FrozenSlots:
    a: int
    b: str


@final
class Sealed:
    pass


class Colour(Enum):
    RED = 1
    GREEN = 2


class EmptyEnum(Enum):
    pass


def test_class_to_name():
    assert class_to_name(int) == "builtins.int"
    assert class_to_name(Circle) == f"{__name__}.Circle"


def test_type_name():
    """
    Test identities of annotations.
    """
    assert type_name(int) == "builtins.int"
    assert type_name(list[int]) == "builtins.list[builtins.int]"
    assert (
        type_name(dict[str, Circle]) == f"builtins.dict[builtins.str, {__name__}.Circle]"
    )
    assert type_name(tuple[int, ...]) == "builtins.tuple[builtins.int, ...]"
    assert type_name(Annotated[int, PrimitiveKind.SHORT]) == "short"
    assert type_name(Any) == "typing.Any"
    assert type_name(int | str) == "builtins.int | builtins.str"

    # aliases are named rather than expanded
    assert type_name(Tree) == f"{__name__}.Tree"
    assert type_name(list[Tree]) == f"builtins.list[{__name__}.Tree]"
    assert type_name(Pair[int]) == f"{__name__}.Pair[builtins.int]"


def test_is_final():
    """
    Test detection of classes which can't have subclasses.
    """
    assert is_final(int)
    assert is_final(str)
    assert is_final(bytes)
    assert is_final(Colour)
    assert is_final(Sealed)

    assert not is_final(object)
    assert not is_final(Shape)
    assert not is_final(list)
    assert not is_final(EmptyEnum)


def test_inheritance():
    """
    Test that fields of derived classes come first, and attributes redeclared by a
    derived class are only yielded once.
    """
    fields = get_storage_fields(Circle)
    assert [f.name for f in fields] == ["radius", "name"]
    assert [f.owner for f in fields] == [Circle, Shape]
    assert fields[0].annotation is float

    fields = get_storage_fields(Redeclared)
    assert [f.name for f in fields] == ["name", "sides"]
    assert fields[0].owner is Redeclared


def test_excluded():
    """
    Test that class variables, init-only variables and transient attributes are
    excluded.
    """
    fields = get_storage_fields(Excluded)
    assert [f.name for f in fields] == ["value"]

    # excluded attributes are still declared
    assert get_declared_attrs(Excluded) == {"value", "scale", "count", "note", "hits"}
    assert get_declared_attrs(SlotDerived) == {"x", "_SlotBase__secret"}


def test_slots():
    """
    Test that a slot redeclared in a derived class is distinct storage, so the base
    class slot gets its name prefixed.
    """
    fields = get_storage_fields(SlotDerived)
    assert [f.name for f in fields] == ["x", "*x", "_SlotBase__secret"]
    assert [f.owner for f in fields] == [SlotDerived, SlotBase, SlotBase]
    assert all(f.annotation is Any for f in fields)

    fields = get_storage_fields(SlotDerived, marker="_")
    assert [f.name for f in fields] == ["x", "_x", "_SlotBase__secret"]

    obj = SlotDerived()
    fields[0].set(obj, 1)
    fields[1].set(obj, 2)
    fields[2].set(obj, 3)

    assert obj.x == 1
    assert [f.get(obj) for f in fields] == [1, 2, 3]


def test_frozen():
    """
    Test that storage fields are written bypassing frozen dataclass guards.
    """
    fields = get_storage_fields(FrozenSlots)
    assert [f.name for f in fields] == ["a", "b"]

    obj = FrozenSlots(1, "x")
    fields[0].set(obj, 5)
    assert obj == FrozenSlots(5, "x")
