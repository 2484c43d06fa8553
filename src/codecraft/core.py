"""
Codec core: resolves codecs for types and declares the hooks through which codecs
access a carrier.
"""

from __future__ import annotations

import array
import importlib
from abc import ABC, abstractmethod
from collections.abc import (
    Collection,
    Iterable,
    Mapping,
    MutableMapping,
    MutableSequence,
    MutableSet,
    Sequence,
    Set,
)
from contextlib import contextmanager
from enum import Enum
from operator import attrgetter
from typing import (
    Annotated,
    Any,
    Callable,
    Generator,
    cast,
    get_args,
    get_origin,
    get_type_hints,
)

from .codecs.builder import ObjectCodecBuilder
from .codecs.builtin import register_builtin_codecs
from .codecs.codec import (
    Codec,
    CodecRef,
    NullCodec,
    PrimitiveCodec,
    StringCodec,
    StringProxyCodec,
)
from .codecs.containers import (
    ArrayCodec,
    CollectionCodec,
    EnumCodec,
    MapCodec,
    PrimitiveArrayCodec,
    TupleCodec,
)
from .codecs.objects import (
    ArgsObjectMeta,
    FieldCodec,
    ObjectCodec,
    ReflectiveObjectMeta,
)
from .codecs.wrappers import DynamicCheckCodec, DynamicCodec, NullSafeCodec
from .config import CodecConfig
from .constructors import TypeConstructor, TypeConstructorRef
from .exceptions import CodecError, OperationNotImplementedError, error_path
from .inspecting import classes
from .inspecting.annotations import (
    Annotation,
    split_annotated,
    split_optional,
    unwrap_alias,
)
from .inspecting.classes import (
    StorageField,
    get_declared_attrs,
    get_storage_fields,
    is_final,
)
from .inspecting.generics import extract_arg, extract_args
from .inspecting.utils import safe_issubclass
from .registry import LazyRegistry
from .typedefs import DEFAULT_KINDS, PrimitiveKind

__all__ = [
    "BaseCodecCore",
    "DEFAULT_TYPE_PROXIES",
]

DEFAULT_TYPE_PROXIES: dict[type, type] = {
    Sequence: list,
    MutableSequence: list,
    Collection: list,
    Iterable: list,
    Set: set,
    MutableSet: set,
    Mapping: dict,
    MutableMapping: dict,
}
"""
Concrete types used to encode and decode fields declared with abstract collection
types.
"""

NON_CONTAINER_TYPES = (str, bytes, bytearray, array.array)
"""
Types which are collections, but not encoded as sequences of element codecs.
"""


class BaseCodecCore[E, ConfigT: CodecConfig](ABC):
    """
    Base class for codec cores, each implementing one carrier `E`.

    A core owns the registries of codecs and type constructors. Codecs are resolved
    lazily by type identity and shared across threads; a codec for a recursive type
    refers to itself through a forward reference.

    Subclasses provide the null, primitive and string codecs and implement the
    carrier hooks, the methods prefixed with `_`, which codecs use to build and
    traverse carrier nodes.
    """

    config: ConfigT
    """
    Config with which this core was created.
    """

    __config_cls: type[ConfigT]
    """
    Config class with which this core is parameterized.
    """

    __codecs: LazyRegistry[Codec[Any, E]]
    """
    Null-unsafe codecs keyed by type identity.
    """

    __null_safe_codecs: LazyRegistry[Codec[Any, E]]
    """
    Null-safe wrappers of null-unsafe codecs, keyed by type identity.
    """

    __field_codecs: LazyRegistry[Codec[Any, E]]
    """
    Codecs for field annotations, keyed by annotation identity and nullability.
    """

    __type_constructors: LazyRegistry[TypeConstructor[Any]]
    """
    Type constructors keyed by type identity.
    """

    __type_proxies: dict[type, type]
    """
    Mapping of declared types to the types whose codecs are used in their place.
    """

    __known_types: dict[str, type]
    """
    Types by identity, populated as types are named or looked up.
    """

    def __init__(self, config: ConfigT | None = None, /):
        self.config = config or self.__config_cls()
        self.__codecs = LazyRegistry("codec", CodecRef)
        self.__null_safe_codecs = LazyRegistry("null-safe codec", CodecRef)
        self.__field_codecs = LazyRegistry("field codec", CodecRef)
        self.__type_constructors = LazyRegistry(
            "type constructor", TypeConstructorRef
        )
        self.__type_proxies = (
            dict(DEFAULT_TYPE_PROXIES) if self.config.use_default_type_proxies else {}
        )
        self.__known_types = {}

        if self.config.use_builtin_codecs:
            register_builtin_codecs(self)

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        cls.__config_cls = cast(
            type[ConfigT],
            extract_arg(cls, BaseCodecCore, "ConfigT", CodecConfig),
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(config={self.config})"

    @property
    @abstractmethod
    def null_codec(self) -> NullCodec[E]:
        """
        Codec writing and detecting the null marker.
        """

    @property
    @abstractmethod
    def string_codec(self) -> StringCodec[E]: ...

    @abstractmethod
    def primitive_codec(self, kind: PrimitiveKind, /) -> PrimitiveCodec[Any, E]:
        """
        Get codec for the given primitive kind.
        """

    @property
    def byte_codec(self) -> PrimitiveCodec[int, E]:
        return self.primitive_codec(PrimitiveKind.BYTE)

    def encode(self, obj: Any, enc: E | None = None, /, *, type_: Any = None) -> E:
        """
        Encode object, tagging it with its runtime type if it differs from `type_`.

        :param enc: Node to encode into, or `None` to create a root node
        :param type_: Declared type of object, defaulting to its runtime type
        """
        if type_ is not None:
            annotation = type_
        else:
            annotation = type(obj) if obj is not None else object

        with _wrap_errors():
            codec = self.get_field_codec(annotation, nullable=True)
            return codec.encode(obj, enc if enc is not None else self._create_root())

    def decode[T](self, type_: type[T] | Any, enc: E, /) -> T:
        """
        Decode object of the given declared type from node.
        """
        with _wrap_errors():
            codec = self.get_field_codec(type_, nullable=True)
            return codec.decode(enc)

    def register_codec(self, type_or_name: Any, codec: Codec[Any, E], /):
        """
        Register codec for a type or type identity, replacing any existing codec.

        Codecs should be registered before any codec which uses them is resolved.
        """
        self.__codecs.register(self.__get_name(type_or_name), codec)

    def register_codec_builder[T](self, cls: type[T], /) -> ObjectCodecBuilder[T, E]:
        """
        Get builder for an object codec which is registered for `cls` once built.
        """
        return ObjectCodecBuilder(self, cls, register=True)

    def object_codec[T](self, cls: type[T], /) -> ObjectCodecBuilder[T, E]:
        """
        Get builder for an object codec without registering it.
        """
        return ObjectCodecBuilder(self, cls)

    def register_string_proxy_codec[T](
        self,
        cls: type[T],
        to_str: Callable[[T], str],
        from_str: Callable[[str], T],
        /,
    ):
        """
        Register codec encoding values of `cls` as strings.
        """
        self.register_codec(cls, StringProxyCodec(self, to_str, from_str))

    def register_type_constructor[T](self, cls: type[T], ctor: Callable[[], T], /):
        """
        Register function allocating instances of `cls` for reflective decoding.
        """
        name = classes.class_to_name(cls)
        self.__type_constructors.register(name, TypeConstructor(cls, ctor))

    def register_type_proxy(self, type_or_name: type | str, proxy_type: type, /):
        """
        Use the codec of `proxy_type` for values declared as `type_or_name`.
        """
        cls = (
            self.name_to_class(type_or_name)
            if isinstance(type_or_name, str)
            else type_or_name
        )
        self.__type_proxies[cls] = proxy_type

    def get_codec(
        self, name: str, build: Callable[[], Codec[Any, E]], /
    ) -> Codec[Any, E]:
        """
        Get codec for a type identity, building it if not yet registered.
        """
        return self.__codecs.resolve(name, build)

    def get_null_unsafe_codec(self, type_: Any, /) -> Codec[Any, E]:
        """
        Get codec for values of the given type, which must not be `None`.
        """
        annotation = self.remap_type(type_)
        return self.get_codec(
            self.type_name(annotation), lambda: self.__create_codec(annotation)
        )

    def get_null_safe_codec(self, type_: Any, /) -> Codec[Any, E]:
        """
        Get codec for values of the given type or `None`.
        """
        annotation = self.remap_type(type_)
        return self.__null_safe_codecs.resolve(
            self.type_name(annotation),
            lambda: self.make_null_safe_codec(self.get_null_unsafe_codec(annotation)),
        )

    def make_null_safe_codec[T](self, codec: Codec[T, E], /) -> Codec[T | None, E]:
        if isinstance(codec, NullSafeCodec):
            return codec
        return NullSafeCodec(self.null_codec, codec)

    def dynamic_codec[T](self, static_type: type[T], /) -> Codec[T, E]:
        """
        Get codec tagging values whose runtime type differs from `static_type`, or
        the codec of `static_type` if it's final.
        """
        if is_final(static_type):
            return self.get_null_unsafe_codec(static_type)
        return DynamicCodec(self, static_type)

    def dynamic_check[T](
        self,
        codec: Codec[T, E],
        static_type: type[T],
        /,
        *,
        bound: type | None = None,
    ) -> Codec[T, E]:
        """
        Wrap codec to tag values whose runtime type differs from `static_type`,
        unless it's final.

        :param bound: Base class of the types a tag may name when decoding, \
        defaulting to `static_type`
        """
        if is_final(static_type):
            return codec
        return DynamicCheckCodec(self, codec, static_type, bound)

    def get_field_codec(
        self, annotation: Any, /, *, nullable: bool | None = None
    ) -> Codec[Any, E]:
        """
        Get codec for a field with the given annotation.

        :param nullable: Whether the field may be `None`, defaulting to whether the \
        annotation is optional or is not a primitive
        """
        inner, optional = split_optional(annotation)
        ann = self.__get_annotation(inner)
        if nullable is None:
            nullable = optional or self.__get_kind(ann) is None

        name = f"{self.type_name(inner)}{'?' if nullable else ''}"
        return self.__field_codecs.resolve(
            name, lambda: self.__create_field_codec(inner, ann, nullable)
        )

    def get_type_constructor[T](self, cls: type[T], /) -> TypeConstructor[T]:
        return self.__type_constructors.resolve(
            classes.class_to_name(cls), lambda: TypeConstructor(cls)
        )

    def create_object_codec[T](self, cls: type[T], /) -> Codec[T, E]:
        """
        Create reflective codec encoding the storage fields of `cls`.
        """
        try:
            fields = get_storage_fields(cls, marker=self.config.field_name_marker)
        except (NameError, TypeError) as e:
            raise CodecError(
                f"Cannot inspect fields of {cls.__qualname__}: {e}", cause=e
            ) from e

        field_codecs: list[tuple[StorageField, Codec[Any, E]]] = []
        for field in fields:
            with error_path(field.name):
                field_codecs.append((field, self.get_field_codec(field.annotation)))

        meta = ReflectiveObjectMeta(
            field_codecs, self.get_type_constructor, get_declared_attrs(cls)
        )
        return ObjectCodec(self, cls, meta)

    def create_builder_codec[T](
        self,
        cls: type[T],
        fields: Sequence[FieldCodec[T, Any, E]],
        ctor: Callable[[list[Any]], T],
        /,
    ) -> Codec[T, E]:
        """
        Create codec encoding the given fields and decoding by passing their values
        to a constructor.
        """
        return ObjectCodec(self, cls, ArgsObjectMeta(fields, ctor))

    def class_to_name(self, cls: type, /) -> str:
        """
        Get identity of a class, as written in type tags.
        """
        name = classes.class_to_name(cls)
        self.__known_types.setdefault(name, cls)
        return name

    def type_name(self, annotation: Any, /) -> str:
        """
        Get identity of an annotation, under which its codec is registered.
        """
        try:
            return classes.type_name(annotation)
        except TypeError as e:
            raise CodecError(f"Unsupported annotation {annotation!r}: {e}") from e

    def name_to_class(self, name: str, /) -> type:
        """
        Get class from its identity, importing its module if necessary.
        """
        if (cls := self.__known_types.get(name)) is not None:
            return cls
        cls = _import_class(name)
        self.__known_types[name] = cls
        return cls

    def remap_type(self, annotation: Any, /) -> Any:
        """
        Replace the annotation's type with its proxy type if any, keeping type
        arguments and `Annotated[]` extras.
        """
        raw, extras = split_annotated(unwrap_alias(annotation))
        proxy = self.__type_proxies.get(get_origin(raw) or raw)
        if proxy is None:
            return annotation

        args = get_args(raw)
        if args and hasattr(proxy, "__class_getitem__"):
            remapped = proxy[args]
        else:
            remapped = proxy
        return Annotated[remapped, *extras] if extras else remapped

    @abstractmethod
    def _create_root(self) -> E:
        """
        Create node to encode a top-level value into.
        """

    @abstractmethod
    def _encode_tagged[T](
        self, enc: E, tag: str | None, codec: Codec[T, E], obj: T, /
    ) -> E:
        """
        Encode object with codec, tagged with the identity of its type if `tag` is
        not `None`.
        """

    @abstractmethod
    def _decode_tag(self, enc: E, /) -> tuple[str | None, E]:
        """
        Read type tag if any, returning it with the node holding the value.
        """

    @abstractmethod
    def _start_object(self, enc: E, /) -> E:
        """
        Get node for an object's fields.
        """

    @abstractmethod
    def _field_carrier(self, obj_enc: E, name: str, /) -> E:
        """
        Get node to encode a field into.
        """

    @abstractmethod
    def _end_field(self, obj_enc: E, name: str, field_enc: E, /):
        """
        Attach encoded field to object node.
        """

    @abstractmethod
    def _get_field(self, enc: E, name: str, /) -> E:
        """
        Get node of the named field from an object node.
        """

    @abstractmethod
    def _start_sequence(self, enc: E, size: int, /) -> E:
        """
        Get node for a sequence of the given size.
        """

    @abstractmethod
    def _entry_carrier(self, seq_enc: E, /) -> E:
        """
        Get node to encode the next entry into.
        """

    @abstractmethod
    def _end_entry(self, seq_enc: E, entry_enc: E, /):
        """
        Append encoded entry to sequence node.
        """

    @abstractmethod
    def _entries(self, enc: E, /) -> Generator[E, None, None]:
        """
        Iterate over entry nodes of a sequence node, each to be decoded before the
        next is requested.
        """

    def __create_codec(self, annotation: Any) -> Codec[Any, E]:
        """
        Create null-unsafe codec for a type without a registered codec.
        """
        if (unwrapped := unwrap_alias(annotation)) is not annotation:
            # codecs registered for the aliased type apply to the alias too
            return self.get_null_unsafe_codec(unwrapped)

        ann = self.__get_annotation(annotation)
        cls = ann.concrete_type

        if (kind := self.__get_kind(ann)) is not None:
            return self.primitive_codec(kind)
        if cls in (bytes, bytearray):
            return PrimitiveArrayCodec(self, cls)
        if safe_issubclass(cls, array.array):
            return ArrayCodec(self)
        if safe_issubclass(cls, Enum):
            return EnumCodec(self, cls)
        if cls is str:
            return self.string_codec
        if safe_issubclass(cls, tuple) and hasattr(cls, "_fields"):
            return self.__create_named_tuple_codec(cls)
        if safe_issubclass(cls, Mapping):
            key_ann, value_ann = self.__get_elem_args(ann, Mapping, 2)
            codec = MapCodec(
                self,
                cls,
                self.get_field_codec(key_ann),
                self.get_field_codec(value_ann),
            )
            return self.dynamic_check(codec, cls, bound=Mapping)
        if safe_issubclass(cls, tuple):
            codec = self.__create_tuple_codec(ann)
            return self.dynamic_check(codec, cls, bound=tuple)
        if safe_issubclass(cls, Collection):
            (elem_ann,) = self.__get_elem_args(ann, Collection, 1)
            codec = CollectionCodec(self, cls, self.get_field_codec(elem_ann))
            return self.dynamic_check(codec, cls, bound=Collection)

        return self.create_object_codec(cls)

    def __create_tuple_codec(self, ann: Annotation) -> Codec[Any, E]:
        cls = ann.concrete_type
        args = ann.args if cls is tuple else self.__get_elem_args(ann, tuple, None)

        if not args:
            raise CodecError(
                f"Cannot determine element types of {self.type_name(ann.raw)}"
            )
        if args[-1] is ...:
            return CollectionCodec(self, cls, self.get_field_codec(args[0]))
        return TupleCodec(self, cls, [self.get_field_codec(a) for a in args])

    def __create_named_tuple_codec(self, cls: type) -> Codec[Any, E]:
        hints = get_type_hints(cls, include_extras=True)
        fields: list[FieldCodec[Any, Any, E]] = []
        for name in cls._fields:
            with error_path(name):
                codec = self.get_field_codec(hints.get(name, Any))
            fields.append(FieldCodec(name, attrgetter(name), codec))
        return self.create_builder_codec(cls, fields, lambda args: cls(*args))

    def __create_field_codec(
        self, annotation: Any, ann: Annotation, nullable: bool
    ) -> Codec[Any, E]:
        cls = ann.concrete_type

        if ann.is_union or ann.is_literal or cls is object:
            codec = self.dynamic_codec(object)
        elif (
            self.__get_kind(ann) is not None
            or is_final(cls)
            or self.__is_container(self.remap_type(cls))
        ):
            codec = self.get_null_unsafe_codec(annotation)
        else:
            codec = self.dynamic_codec(cls)

        return self.make_null_safe_codec(codec) if nullable else codec

    def __get_elem_args(
        self, ann: Annotation, base: type, count: int | None
    ) -> tuple[Any, ...]:
        """
        Get annotations of elements from the type arguments passed to `base`.
        """
        try:
            args = extract_args(ann.raw, base)
        except TypeError:
            args = ()
        if not args or (count is not None and len(args) != count):
            raise CodecError(
                f"Cannot determine element types of {self.type_name(ann.raw)}"
            )
        return args

    def __get_kind(self, ann: Annotation) -> PrimitiveKind | None:
        if (kind := ann.find_extra(PrimitiveKind)) is not None:
            return kind
        return DEFAULT_KINDS.get(ann.concrete_type)

    def __get_annotation(self, annotation: Any) -> Annotation:
        try:
            return Annotation(annotation)
        except TypeError as e:
            raise CodecError(f"Unsupported annotation {annotation!r}: {e}") from e

    def __get_name(self, type_or_name: Any) -> str:
        if isinstance(type_or_name, str):
            return type_or_name
        return self.type_name(type_or_name)

    @staticmethod
    def __is_container(cls: Any) -> bool:
        cls = get_origin(cls) or cls
        return safe_issubclass(cls, Collection) and not safe_issubclass(
            cls, NON_CONTAINER_TYPES
        )


@contextmanager
def _wrap_errors() -> Generator[None, None, None]:
    """
    Convert unexpected exceptions raised in the block into `CodecError`.
    """
    try:
        yield
    except (CodecError, OperationNotImplementedError):
        raise
    except Exception as e:
        raise CodecError(f"{type(e).__name__}: {e}", cause=e) from e


def _import_class(name: str) -> type:
    """
    Import class by its identity, trying successively shorter module paths.
    """
    parts = name.split(".")
    for i in range(len(parts) - 1, 0, -1):
        try:
            obj: Any = importlib.import_module(".".join(parts[:i]))
        except ImportError:
            continue
        for attr in parts[i:]:
            obj = getattr(obj, attr, None)
        if isinstance(obj, type):
            return obj
    raise CodecError(f"Cannot create class from class name '{name}'")
