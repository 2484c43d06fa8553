"""
Inspecting utilities.
"""

from typing import Any


def safe_issubclass(cls: Any, class_or_tuple: type | tuple[type, ...], /) -> bool:
    """
    Like `issubclass()`, but returns `False` for non-class arguments (e.g. generic
    aliases or `typing` special forms) and for ABCs whose subclass hooks raise
    `TypeError`.
    """
    if not isinstance(cls, type):
        return False
    try:
        return issubclass(cls, class_or_tuple)
    except TypeError:
        return False


def mangle_name(cls: type, name: str, /) -> str:
    """
    Apply private name mangling as the compiler does for `__name` attributes.
    """
    if name.startswith("__") and not name.endswith("__"):
        return f"_{cls.__name__.lstrip('_')}{name}"
    return name
