"""
Tests for extracting type arguments passed to generic bases.
"""

from collections.abc import Collection, Mapping, Sequence
from typing import TypeVar

from pytest import raises

from codecraft.inspecting.generics import extract_arg, extract_arg_map, extract_args


class BaseContainer[T]:
    """
    Base generic container.
    """


class IntContainer(BaseContainer[int]):
    """
    Container of int.
    """


class MiddleContainer[T](BaseContainer[T]):
    """
    Intermediate between concrete and base container.
    """


class StrMiddleContainer(MiddleContainer[str]):
    """
    Container of str with middle container.
    """


class BaseTransformer[InputT, OutputT]:
    """
    Base with two type parameters.
    """


class SwappedTransformer[A, B](BaseTransformer[B, A]):
    """
    Passes its parameters to the base in reverse order.
    """


class IntList(list[int]):
    """
    Builtin subclass parameterized through its base.
    """


class UnrelatedClass:
    """
    Class unrelated to any others.
    """


def test_direct():
    """
    Test extracting args from direct and nested inheritance.
    """
    assert extract_args(IntContainer, BaseContainer) == (int,)
    assert extract_args(StrMiddleContainer, BaseContainer) == (str,)
    assert extract_arg(StrMiddleContainer, BaseContainer, "T") is str


def test_alias():
    """
    Test extracting args from parameterized annotations.
    """
    assert extract_args(MiddleContainer[float], BaseContainer) == (float,)
    assert extract_args(SwappedTransformer[int, str], BaseTransformer) == (str, int)
    assert extract_arg_map(SwappedTransformer[int, str], BaseTransformer) == {
        "InputT": str,
        "OutputT": int,
    }


def test_builtins():
    """
    Test extracting args passed to ABCs which builtins are registered with.
    """
    assert extract_args(list[int], Collection) == (int,)
    assert extract_args(dict[str, float], Mapping) == (str, float)
    assert extract_args(IntList, Sequence) == (int,)
    assert extract_args(tuple[int, str], tuple) == (int, str)

    # bare builtin has no args
    with raises(TypeError):
        extract_args(list, Collection)


def test_unresolved():
    """
    Test that unresolved parameters are returned as TypeVars, and rejected by
    `extract_arg()`.
    """
    args = extract_args(MiddleContainer, BaseContainer)
    assert len(args) == 1
    assert isinstance(args[0], TypeVar)

    with raises(ValueError, match="is unresolved"):
        extract_arg(MiddleContainer, BaseContainer, "T")


def test_invalid():
    """
    Test errors for missing bases, parameters and mismatched argument classes.
    """
    with raises(TypeError, match="not found in .*?'s inheritance hierarchy"):
        extract_args(UnrelatedClass, BaseContainer)

    with raises(KeyError, match="Available parameters"):
        extract_arg(IntContainer, BaseContainer, "U")

    with raises(TypeError, match="does not match required base class"):
        extract_arg(IntContainer, BaseContainer, "T", str)
