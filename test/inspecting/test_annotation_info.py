"""
Tests for annotation normalization.
"""

from types import NoneType, UnionType
from typing import Annotated, Any, Literal, Optional, TypeVar, Union

from codecraft.inspecting.annotations import (
    Annotation,
    flatten_union,
    split_annotated,
    split_optional,
    unwrap_alias,
)
from codecraft.typedefs import PrimitiveKind

type IntList = list[int]
type Pair[T] = tuple[T, T]

Bounded = TypeVar("Bounded", bound=int)


def test_annotation():
    """
    Test normalized properties of annotations.
    """
    ann = Annotation(list[int])
    assert ann.raw == list[int]
    assert ann.origin is list
    assert ann.args == (int,)
    assert ann.concrete_type is list

    ann = Annotation(Annotated[int, PrimitiveKind.SHORT])
    assert ann.raw is int
    assert ann.extras == (PrimitiveKind.SHORT,)
    assert ann.find_extra(PrimitiveKind) is PrimitiveKind.SHORT
    assert ann.find_extra(str) is None

    assert Annotation(Any).concrete_type is object
    assert Annotation(None).concrete_type is NoneType
    assert Annotation(Bounded).concrete_type is int
    assert Annotation(int | str).concrete_type is UnionType
    assert Annotation(int | str).is_union
    assert Annotation(Literal["a", "b"]).is_literal


def test_alias():
    """
    Test that type aliases are unwrapped, including generic ones.
    """
    assert unwrap_alias(IntList) == list[int]
    assert unwrap_alias(Pair[str]) == tuple[str, str]
    assert Annotation(IntList).concrete_type is list


def test_split_annotated():
    assert split_annotated(Annotated[int, "a", "b"]) == (int, ("a", "b"))
    assert split_annotated(int) == (int, ())


def test_split_optional():
    """
    Test splitting `None` out of unions.
    """
    assert split_optional(int) == (int, False)
    assert split_optional(int | None) == (int, True)
    assert split_optional(Optional[str]) == (str, True)
    assert split_optional(int | str | None) == (Union[int, str], True)
    assert split_optional(int | str) == (int | str, False)
    assert split_optional(None) == (None, True)

    # extras of members are kept
    annotation, optional = split_optional(Annotated[int, PrimitiveKind.INT] | None)
    assert annotation == Annotated[int, PrimitiveKind.INT]
    assert optional


def test_flatten_union():
    assert flatten_union(int | (str | float)) == (int, str, float)
    assert flatten_union(Union[int, Union[str, None]]) == (int, str, NoneType)
    assert flatten_union(int) == (int,)
