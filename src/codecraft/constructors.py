"""
Strategies for allocating bare instances to be populated by decoding.
"""

from __future__ import annotations

from typing import Any, Callable, cast

from .exceptions import CodecError
from .registry import ForwardRef

__all__ = [
    "TypeConstructor",
    "TypeConstructorRef",
]


class TypeConstructor[T]:
    """
    Allocates an instance of a type without populating its fields.

    Unless given a function, allocates reflectively via `cls.__new__(cls)` without
    invoking `__init__`; this fails for abstract classes and for classes whose
    `__new__` requires arguments, which need a registered constructor.
    """

    cls: type[T]
    """
    Type being constructed.
    """

    __func: Callable[[], T] | None

    def __init__(self, cls: type[T], func: Callable[[], T] | None = None, /):
        self.cls = cls
        self.__func = func

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.cls.__qualname__})"

    def __call__(self) -> T:
        try:
            if self.__func is not None:
                return self.__func()
            return cast(Any, self.cls).__new__(self.cls)
        except CodecError:
            raise
        except Exception as e:
            raise CodecError(
                f"Failed to instantiate {self.cls.__qualname__}: {e}", cause=e
            ) from e


class TypeConstructorRef(ForwardRef[Any], TypeConstructor[Any]):
    """
    Forward reference to a type constructor under construction.
    """

    def __init__(self, name: str):
        ForwardRef.__init__(self, name)
        TypeConstructor.__init__(self, object)

    def __call__(self) -> Any:
        return self.target()
