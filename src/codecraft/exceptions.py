"""
Exception classes.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Generator

__all__ = [
    "CodecError",
    "OperationNotImplementedError",
    "error_path",
]


class CodecError(Exception):
    """
    Error encountered while building a codec, encoding or decoding.

    The path is extended as the error propagates out of object and sequence codecs,
    so the message identifies the field which failed.
    """

    message: str
    """
    Description of the error.
    """

    cause: BaseException | None
    """
    Underlying exception, if any.
    """

    __path: tuple[str | int, ...]

    def __init__(
        self,
        message: str,
        /,
        *,
        cause: BaseException | None = None,
        path: tuple[str | int, ...] = (),
    ):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.__path = path

    def __str__(self) -> str:
        if not self.__path:
            return self.message
        return f"{self.path_str}: {self.message}"

    @property
    def path(self) -> tuple[str | int, ...]:
        """
        Field names and sequence indices leading to the error.
        """
        return self.__path

    @property
    def path_str(self) -> str:
        """
        Path tuple formatted as dot notation.

        Examples:

        - `('items', 1, 'value') -> "items[1].value"`
        - `('user', 'name') -> "user.name"`
        - `(0, 'id') -> "[0].id"`
        - `() -> "<root>"`
        """
        if not self.__path:
            return "<root>"
        parts: list[str] = []
        for i, segment in enumerate(self.__path):
            if isinstance(segment, int):
                parts.append(f"[{segment}]")
            else:
                prefix = "." if i != 0 else ""
                parts.append(f"{prefix}{segment}")
        return "".join(parts)

    def _prepend_path(self, segment: str | int, /):
        """
        Adjust path upon bubbling up error to parent codec.
        """
        self.__path = (segment,) + self.__path


class OperationNotImplementedError(NotImplementedError):
    """
    Raised by a codec operation which a concrete codec was expected to override.
    """


@contextmanager
def error_path(segment: str | int, /) -> Generator[None, None, None]:
    """
    Attribute errors raised in the block to the given field name or index.
    """
    try:
        yield
    except CodecError as e:
        e._prepend_path(segment)
        raise
    except OperationNotImplementedError:
        raise
    except Exception as e:
        raise CodecError(f"{type(e).__name__}: {e}", cause=e, path=(segment,)) from e
