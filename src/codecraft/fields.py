"""
Markers for excluding attributes from reflective object codecs.
"""

from __future__ import annotations

import dataclasses
from dataclasses import MISSING
from typing import Any, Callable, overload

__all__ = [
    "TRANSIENT",
    "Transient",
    "transient_field",
]


class Transient:
    """
    Marker placed in `Annotated[]` to exclude an attribute from encoding, e.g.
    `cache: Annotated[dict[str, int], TRANSIENT]`.
    """

    def __repr__(self) -> str:
        return "TRANSIENT"


TRANSIENT = Transient()
"""
Singleton transient marker.
"""

TRANSIENT_KEY = "transient"
"""
Key in dataclass field metadata flagging the field as transient.
"""


@overload
def transient_field[T](
    *,
    default: T,
    init: bool = True,
    repr: bool = True,
    compare: bool = True,
) -> T: ...


@overload
def transient_field[T](
    *,
    default_factory: Callable[[], T],
    init: bool = True,
    repr: bool = True,
    compare: bool = True,
) -> T: ...


def transient_field(
    *,
    default: Any = MISSING,
    default_factory: Any = MISSING,
    init: bool = True,
    repr: bool = True,
    compare: bool = True,
) -> Any:
    """
    Create a dataclass field which is not encoded.

    Decoding does not invoke `__init__`, so after decoding the attribute falls back
    to its class-level default if any.
    """
    return dataclasses.field(
        default=default,
        default_factory=default_factory,
        init=init,
        repr=repr,
        compare=compare,
        metadata={TRANSIENT_KEY: True},
    )
