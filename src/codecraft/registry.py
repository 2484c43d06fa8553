"""
Lazily-populated registry keyed by type identity, supporting recursive
construction through forward references.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, cast

from .exceptions import CodecError

__all__ = [
    "ForwardRef",
    "LazyRegistry",
]

logger = logging.getLogger(__name__)


class ForwardRef[V]:
    """
    Placeholder handed out while the value for a name is under construction.

    Subclasses delegate their interface to `target`, which blocks until the value
    is installed or its construction fails. After a failure, each use retries the
    construction until it succeeds.
    """

    name: str
    """
    Identity of the value being constructed.
    """

    __event: threading.Event
    __value: V | None = None
    __error: BaseException | None = None
    __retry: Callable[[], V] | None = None

    def __init__(self, name: str):
        self.name = name
        self.__event = threading.Event()

    def __repr__(self) -> str:
        state = "resolved" if self.__event.is_set() else "pending"
        return f"{type(self).__name__}({self.name!r}, {state})"

    @property
    def target(self) -> V:
        """
        The constructed value, waiting for it if necessary.
        """
        self.__event.wait()
        if (error := self.__error) is not None:
            if self.__retry is not None:
                try:
                    self._set(self.__retry())
                except Exception as e:
                    error = e
                else:
                    return cast(V, self.__value)
            raise CodecError(
                f"Construction failed for '{self.name}'", cause=error
            ) from error
        return cast(V, self.__value)

    def _set(self, value: V, /):
        self.__value = value
        self.__error = None
        self.__retry = None
        self.__event.set()

    def _fail(
        self, error: BaseException, /, retry: Callable[[], V] | None = None
    ):
        self.__error = error
        self.__retry = retry
        self.__event.set()


class LazyRegistry[V]:
    """
    Thread-safe map from type identity to a lazily constructed value.

    Only the check-then-insert of a placeholder is done under the lock; values are
    constructed outside it, so construction may recursively resolve other names,
    or the same name, without deadlocking.
    """

    __kind: str
    __ref_factory: Callable[[str], V]
    __entries: dict[str, V]
    __lock: threading.Lock

    def __init__(self, kind: str, ref_factory: Callable[[str], V]):
        """
        :param kind: Description of values for logging, e.g. "codec"
        :param ref_factory: Creates a forward reference for a name; the reference
        must be an instance of both `ForwardRef` and the value type
        """
        self.__kind = kind
        self.__ref_factory = ref_factory
        self.__entries = {}
        self.__lock = threading.Lock()

    def __contains__(self, name: str) -> bool:
        return name in self.__entries

    def register(self, name: str, value: V, /):
        """
        Set value for name, replacing any existing value.
        """
        with self.__lock:
            self.__entries[name] = value

    def get(self, name: str, /) -> V | None:
        return self.__entries.get(name)

    def resolve(self, name: str, build: Callable[[], V], /) -> V:
        """
        Get the value for a name, constructing it with `build` if not present.

        A recursive request for a name under construction gets its forward
        reference. If `build` raises, the placeholder is removed so a later request
        can retry. Holders of the forward reference, such as codecs built during the
        failed construction, retry it upon use and get an error if it fails again.
        """
        if (value := self.__entries.get(name)) is not None:
            return value

        with self.__lock:
            if (value := self.__entries.get(name)) is not None:
                if isinstance(value, ForwardRef):
                    logger.debug("Forward reference to %s '%s'", self.__kind, name)
                return value
            value = self.__ref_factory(name)
            self.__entries[name] = value

        ref = cast(ForwardRef[V], value)
        logger.debug("Building %s for '%s'", self.__kind, name)

        try:
            built = build()
        except BaseException as e:
            with self.__lock:
                if self.__entries.get(name) is value:
                    del self.__entries[name]
            ref._fail(e, lambda: self.resolve(name, build))
            logger.debug("Failed to build %s for '%s': %s", self.__kind, name, e)
            raise

        with self.__lock:
            if self.__entries.get(name) is value:
                self.__entries[name] = built
        ref._set(built)
        logger.debug("Installed %s for '%s'", self.__kind, name)

        return built
