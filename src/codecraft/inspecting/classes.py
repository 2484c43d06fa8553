"""
Utilities to inspect classes: type identity, finality and storage fields.
"""

from __future__ import annotations

import inspect
from dataclasses import InitVar, dataclass
from enum import Enum
from types import MemberDescriptorType
from typing import (
    Any,
    ClassVar,
    TypeAliasType,
    get_args,
    get_origin,
    get_type_hints,
)

from ..fields import TRANSIENT_KEY, Transient
from ..typedefs import FINAL_TYPES, PrimitiveKind
from .annotations import Annotation, split_annotated
from .utils import mangle_name, safe_issubclass

__all__ = [
    "StorageField",
    "class_to_name",
    "type_name",
    "is_final",
    "get_storage_fields",
    "get_declared_attrs",
]


@dataclass(frozen=True)
class StorageField:
    """
    An attribute of an object stored in its `__dict__` or in a slot.
    """

    name: str
    """
    Name under which the field is encoded, unique within its class.
    """

    attr: str
    """
    Attribute name, after private name mangling.
    """

    annotation: Any
    """
    Declared annotation, `Any` for unannotated slots.
    """

    owner: type
    """
    Class declaring the attribute.
    """

    descriptor: MemberDescriptorType | None = None
    """
    Slot descriptor, or `None` if the attribute lives in the instance `__dict__`.
    """

    def get(self, obj: Any, /) -> Any:
        if self.descriptor is not None:
            return self.descriptor.__get__(obj, type(obj))
        return getattr(obj, self.attr)

    def set(self, obj: Any, value: Any, /):
        """
        Write the attribute directly, bypassing `__setattr__` and hence also frozen
        dataclass guards.
        """
        if self.descriptor is not None:
            self.descriptor.__set__(obj, value)
        else:
            obj.__dict__[self.attr] = value


def class_to_name(cls: type, /) -> str:
    """
    Get canonical identity of a class: its module and qualified name.
    """
    return f"{cls.__module__}.{cls.__qualname__}"


def type_name(annotation: Any, /) -> str:
    """
    Get canonical identity of an annotation, e.g. `builtins.list[builtins.int]`.
    Primitive kinds selected with `Annotated[]` are named by their kind.

    Type aliases are named by their own identity rather than expanded, so a
    recursive alias like `type Tree = dict[str, Tree]` has a finite name.
    """
    if isinstance(annotation, TypeAliasType):
        return f"{annotation.__module__}.{annotation.__name__}"
    if isinstance(origin := get_origin(annotation), TypeAliasType):
        arg_names = ", ".join(type_name(a) for a in get_args(annotation))
        return f"{type_name(origin)}[{arg_names}]"

    ann = Annotation(annotation)

    if kind := ann.find_extra(PrimitiveKind):
        return kind.value
    if ann.raw is Any:
        return "typing.Any"
    if ann.is_union:
        return " | ".join(type_name(a) for a in ann.args)
    if ann.is_literal:
        return f"typing.Literal[{", ".join(repr(a) for a in ann.args)}]"

    name = class_to_name(ann.concrete_type)
    if not ann.args:
        return name

    arg_names = ["..." if a is ... else type_name(a) for a in ann.args]
    return f"{name}[{", ".join(arg_names)}]"


def is_final(cls: type, /) -> bool:
    """
    Check whether a class can't have subclasses, in which case its values never
    need a runtime type tag.

    Final classes are the immutable builtin scalars, enums with members, and classes
    decorated with `typing.final`.
    """
    if cls in FINAL_TYPES:
        return True
    if getattr(cls, "__final__", False) is True:
        return True
    return safe_issubclass(cls, Enum) and len(cls.__members__) > 0


def get_storage_fields(cls: type, /, *, marker: str = "*") -> list[StorageField]:
    """
    Get the fields comprising an object's state, including inherited ones.

    Walks the MRO from `cls` to its bases, yielding each class's own annotated
    attributes followed by its own unannotated slots. Excluded are:

    - `ClassVar` and `InitVar` annotations
    - Attributes annotated with `Annotated[..., TRANSIENT]`
    - Dataclass fields created with `transient_field()`
    - Attributes already yielded for a derived class, if they share its storage

    An attribute with distinct storage but the same name as one already yielded
    (e.g. a slot redeclared in a subclass) gets its name prefixed with `marker`
    until unique.
    """
    fields: list[StorageField] = []
    names: set[str] = set()
    storages: set[Any] = set()

    for klass in cls.__mro__:
        if klass is object:
            continue

        for attr, annotation, descriptor in _get_own_attrs(klass):
            storage = descriptor if descriptor is not None else attr
            if storage in storages:
                continue
            storages.add(storage)

            name = attr
            while name in names:
                name = marker + name
            names.add(name)

            fields.append(StorageField(name, attr, annotation, klass, descriptor))

    return fields


def get_declared_attrs(cls: type, /) -> frozenset[str]:
    """
    Get names of the attributes annotated or slotted by a class or its bases,
    including ones excluded from storage fields such as `ClassVar` and transient
    attributes.
    """
    attrs: set[str] = set()
    for klass in cls.__mro__:
        attrs.update(inspect.get_annotations(klass))
        attrs.update(mangle_name(klass, s) for s in _get_own_slots(klass))
    return frozenset(attrs)


def _get_own_attrs(
    klass: type,
) -> list[tuple[str, Any, MemberDescriptorType | None]]:
    """
    Get attributes declared by this class itself with their annotations and slot
    descriptors.
    """
    attrs: list[tuple[str, Any, MemberDescriptorType | None]] = []

    own_annotations = inspect.get_annotations(klass)
    hints = get_type_hints(klass, include_extras=True) if own_annotations else {}
    dataclass_fields = vars(klass).get("__dataclass_fields__", {})

    for attr in own_annotations:
        hint = hints.get(attr, Any)
        if _is_excluded(hint) or _is_transient_field(dataclass_fields.get(attr)):
            continue
        descriptor = inspect.getattr_static(klass, attr, None)
        if not isinstance(descriptor, MemberDescriptorType):
            descriptor = None
        attrs.append((attr, hint, descriptor))

    for slot in _get_own_slots(klass):
        attr = mangle_name(klass, slot)
        if attr in own_annotations:
            continue
        descriptor = vars(klass).get(attr)
        if isinstance(descriptor, MemberDescriptorType):
            attrs.append((attr, Any, descriptor))

    return attrs


def _get_own_slots(klass: type) -> tuple[str, ...]:
    slots = vars(klass).get("__slots__", ())
    if isinstance(slots, str):
        slots = (slots,)
    return tuple(s for s in slots if s not in ("__dict__", "__weakref__"))


def _is_excluded(hint: Any) -> bool:
    raw, extras = split_annotated(hint)
    if any(isinstance(e, Transient) for e in extras):
        return True
    return (
        raw is ClassVar
        or get_origin(raw) is ClassVar
        or raw is InitVar
        or isinstance(raw, InitVar)
    )


def _is_transient_field(field: Any) -> bool:
    return field is not None and bool(field.metadata.get(TRANSIENT_KEY))
