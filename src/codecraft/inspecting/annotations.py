"""
Utilities to inspect type annotations.
"""

from __future__ import annotations

from types import EllipsisType, GenericAlias, NoneType, UnionType
from typing import (
    Annotated,
    Any,
    Literal,
    TypeAliasType,
    TypeVar,
    Union,
    cast,
    get_args,
    get_origin,
)

__all__ = [
    "Annotation",
    "is_union",
    "unwrap_alias",
    "split_annotated",
    "split_optional",
    "normalize_annotation",
    "flatten_union",
    "get_concrete_type",
]

LiteralType = type(Literal["sentinel"])


class Annotation:
    """
    Normalized representation of an annotation.

    Unwraps `TypeAlias` and `Annotated` if applicable, keeping the extras.
    """

    raw: Any
    """
    Original annotation after stripping `Annotated[]` if applicable. May be a generic
    type.
    """

    extras: tuple[Any, ...]
    """
    Annotation extras, if `Annotated[]` was passed.
    """

    origin: Any
    """
    Origin, non-`None` if annotation is a generic type.
    """

    args: tuple[Any, ...]
    """
    Generic type parameters.
    """

    concrete_type: type
    """
    Concrete (non-generic) type, determined based on annotation:

    - `Any`: `object`
    - `TypeVar`: its bound, or `object` if unbound
    - `None`: `NoneType`
    - `Ellipsis`: `EllipsisType`
    - `Union`: `UnionType`
    - `Literal`: `LiteralType`
    - Generic type: `get_origin(annotation)`
    - Otherwise: annotation itself, ensuring it's a type
    """

    def __init__(self, annotation: Any, /):
        raw, extras = split_annotated(unwrap_alias(annotation))
        raw = unwrap_alias(raw)

        self.raw = raw
        self.extras = extras
        self.origin = get_origin(raw)
        self.args = get_args(raw)
        self.concrete_type = get_concrete_type(raw)

    def __repr__(self) -> str:
        raw = f"{self.raw}"
        extras = f"extras={self.extras}"
        concrete_type = f"concrete_type={self.concrete_type}"
        return f"Annotation({", ".join((raw, extras, concrete_type))})"

    @property
    def is_union(self) -> bool:
        return self.concrete_type is UnionType

    @property
    def is_literal(self) -> bool:
        return self.origin is Literal

    def find_extra[T](self, extra_cls: type[T], /) -> T | None:
        """
        Get the first extra which is an instance of the given class.
        """
        return next((e for e in self.extras if isinstance(e, extra_cls)), None)


def is_union(annotation: Any, /) -> bool:
    """
    Check whether annotation is a union, accommodating both `int | str`
    and `Union[int, str]`.
    """
    return isinstance(annotation, UnionType) or get_origin(annotation) is Union


def unwrap_alias(annotation: Any, /) -> Any:
    """
    If annotation is a `TypeAlias`, extract the corresponding definition.
    """
    if isinstance(annotation, TypeAliasType):
        return annotation.__value__
    elif isinstance(annotation, GenericAlias):
        # e.g. MyType[int] for `type MyType[T] = list[T]`
        origin = get_origin(annotation)
        if isinstance(origin, TypeAliasType):
            return origin.__value__[get_args(annotation)]
    return annotation


def split_annotated(annotation: Any, /) -> tuple[Any, tuple[Any, ...]]:
    """
    If annotation is an `Annotated`, split it into the wrapped annotation and extras.
    """
    if get_origin(annotation) is Annotated:
        args = get_args(annotation)
        assert len(args)
        return args[0], tuple(args[1:])
    return annotation, ()


def split_optional(annotation: Any, /) -> tuple[Any, bool]:
    """
    Split `None` out of a union, returning the remaining annotation and whether
    `None` was present.

    Extras of `Annotated[]` members are preserved, e.g.
    `Annotated[int, PrimitiveKind.SHORT] | None` is split into
    `(Annotated[int, PrimitiveKind.SHORT], True)`.
    """
    members = flatten_union(annotation, preserve_extras=True)
    if len(members) == 1:
        return annotation, members[0] in (None, NoneType)

    remaining = tuple(m for m in members if m not in (None, NoneType))
    optional = len(remaining) != len(members)

    if not remaining:
        return Any, True
    if len(remaining) == 1:
        return remaining[0], optional
    return Union[remaining], optional


def normalize_annotation(annotation: Any, /, *, preserve_extras: bool = False) -> Any:
    """
    Fully normalize annotation:

    - Unwrap aliases
    - If `preserve_extras` is `False`, unwrap `Annotated` and discard extras
    """
    annotation_ = unwrap_alias(annotation)
    if get_origin(annotation_) is Annotated and not preserve_extras:
        annotation_, _ = split_annotated(annotation_)
        annotation_ = unwrap_alias(annotation_)
    return annotation_


def flatten_union(
    annotation: Any, /, *, preserve_extras: bool = False
) -> tuple[Any, ...]:
    """
    If annotation is a union, recursively flatten it into its constituent types;
    otherwise return the annotation as-is. If `preserve_extras` is `True`, don't
    recurse into unions wrapped by `Annotated[]`.
    """
    return tuple(_recurse_union(annotation, preserve_extras=preserve_extras))


def get_concrete_type(annotation: Any, /) -> type:
    """
    Get concrete type of parameterized annotation; see `Annotation.concrete_type`.
    """
    annotation_ = normalize_annotation(annotation)
    concrete_type = get_origin(annotation_) or annotation_

    if concrete_type is Literal:
        return cast(type, LiteralType)

    if concrete_type is Any:
        return object

    if isinstance(concrete_type, TypeVar):
        bound = concrete_type.__bound__
        return get_concrete_type(bound) if bound is not None else object

    # convert singletons to respective type so isinstance() works as expected
    singleton_map = {None: NoneType, Ellipsis: EllipsisType, Union: UnionType}
    concrete_type = singleton_map.get(concrete_type, concrete_type)

    if not isinstance(concrete_type, type):
        raise TypeError(
            f"Not a type: '{concrete_type}' (from annotation '{annotation}')"
        )

    return concrete_type


def _recurse_union(annotation: Any, /, *, preserve_extras: bool) -> list[Any]:
    args: list[Any] = []
    annotation_ = normalize_annotation(annotation, preserve_extras=preserve_extras)

    if is_union(annotation_):
        for a in get_args(annotation_):
            args += _recurse_union(a, preserve_extras=preserve_extras)
    else:
        args.append(annotation_)

    return args
