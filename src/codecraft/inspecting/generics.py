"""
Utilities to extract type arguments passed to generic base classes.
"""

from __future__ import annotations

from typing import Any, TypeVar, cast, get_args, get_origin, overload

from .utils import safe_issubclass

__all__ = [
    "extract_args",
    "extract_arg_map",
    "extract_arg",
]


def extract_args(cls: Any, base_cls: type, /) -> tuple[Any, ...]:
    """
    Extract from `cls` the type arguments that were passed to `base_cls`.

    `cls` may be a class or a parameterized annotation like `list[int]`. ABCs which
    `cls` is only registered with (e.g. `list` and `Collection`) receive the
    arguments `cls` was parameterized with.

    :param cls: The class or annotation to extract type arguments from
    :param base_cls: The base class whose type arguments should be extracted
    :raises TypeError: If `base_cls` is not in `cls`'s inheritance hierarchy
    :return: Resolved types, or TypeVars which remain unresolved
    """
    base = get_origin(base_cls) or base_cls
    args = _search(cls, base, {}, ())
    if args is None:
        raise TypeError(
            f"Base class {base_cls} not found in {cls}'s inheritance hierarchy"
        )
    return args


def extract_arg_map(cls: Any, base_cls: type, /) -> dict[str, Any]:
    """
    Extract from `cls` a mapping of type parameter names of `base_cls` to the
    arguments passed for them.

    :raises TypeError: If `base_cls` is not in `cls`'s inheritance hierarchy
    """
    args = extract_args(cls, base_cls)
    params = _get_parameters(get_origin(base_cls) or base_cls)
    return {p.__name__: a for p, a in zip(params, args)}


@overload
def extract_arg(cls: Any, base_cls: type, name: str, /) -> type: ...


@overload
def extract_arg[ParamT](
    cls: Any, base_cls: type, name: str, arg_cls: type[ParamT], /
) -> type[ParamT]: ...


def extract_arg[ParamT](
    cls: Any,
    base_cls: type,
    name: str,
    arg_cls: type[ParamT] | None = None,
    /,
) -> type | type[ParamT]:
    """
    Extract from `cls` the resolved type argument passed to `base_cls` for the
    parameter with the given name, optionally ensuring it's a subclass of
    `arg_cls`.

    :raises TypeError: If `base_cls` is not in `cls`'s inheritance hierarchy
    :raises KeyError: If parameter name not found
    :raises ValueError: If the argument is unresolved (is a TypeVar)
    :raises TypeError: If the argument doesn't match `arg_cls` (when provided)
    """
    arg_map = extract_arg_map(cls, base_cls)
    if name not in arg_map:
        raise KeyError(
            f"Type parameter '{name}' not found in {base_cls}. "
            f"Available parameters: {list(arg_map.keys())}"
        )
    arg = arg_map[name]

    if isinstance(arg, TypeVar):
        raise ValueError(
            f"Type parameter '{name}' is unresolved (TypeVar {arg}): "
            f"cls={cls}, base_cls={base_cls}"
        )

    if arg_cls and not (isinstance(arg, type) and issubclass(arg, arg_cls)):
        raise TypeError(
            f"Type parameter '{name}' is {arg}, which does not match "
            f"required base class {arg_cls}"
        )

    return cast(type, arg)


def _search(
    cls: Any,
    base: type,
    substitutions: dict[TypeVar, Any],
    carried: tuple[Any, ...],
) -> tuple[Any, ...] | None:
    """
    Depth-first search for `base` through the original bases of `cls`.

    Arguments of classes without declared type parameters (builtins and the
    `collections.abc` types) are carried through to bases which also lack them.
    """
    origin = get_origin(cls)
    klass = origin if origin is not None else cls
    if not isinstance(klass, type):
        return None

    args = tuple(_substitute(a, substitutions) for a in get_args(cls))
    params = _get_parameters(klass)

    if params:
        level_subs = dict(zip(params, args))
        positional: tuple[Any, ...] = ()
    else:
        level_subs = {}
        positional = args or carried

    if klass is base:
        if params:
            return tuple(level_subs.get(p, p) for p in params)
        return positional

    for b in _get_bases(klass):
        if (result := _search(b, base, level_subs, positional)) is not None:
            return result

    # base only registered as a virtual superclass
    if base not in klass.__mro__ and safe_issubclass(klass, base) and args:
        return args

    return None


def _get_parameters(cls: type) -> tuple[TypeVar, ...]:
    """
    Get type parameters declared by this class itself.
    """
    params = cast(tuple[Any, ...], vars(cls).get("__parameters__", ()))
    return tuple(p for p in params if isinstance(p, TypeVar))


def _get_bases(cls: type) -> list[Any]:
    return list(vars(cls).get("__orig_bases__", ())) + list(cls.__bases__)


def _substitute(arg: Any, substitutions: dict[TypeVar, Any]) -> Any:
    """
    Resolve a TypeVar, or TypeVars nested in a generic alias, through the
    substitution map.
    """
    if isinstance(arg, TypeVar):
        return substitutions.get(arg, arg)
    params = getattr(arg, "__parameters__", ())
    if (
        get_origin(arg) is not None
        and params
        and all(p in substitutions for p in params)
    ):
        return arg[tuple(substitutions[p] for p in params)]
    return arg
