"""
Binary carrier: values are written sequentially to a byte buffer or a binary stream.

Fields are written in declaration order without names, so a value can only be
decoded with the same field layout it was encoded with. Strings and sequences are
prefixed with their length as a 32-bit integer; nullable values and runtime type
tags are preceded by a flag byte.
"""

from __future__ import annotations

import logging
import struct
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, BinaryIO, ClassVar, Generator, Literal

from ..codecs.codec import (
    BooleanCodec,
    ByteCodec,
    CharCodec,
    Codec,
    DoubleCodec,
    FloatCodec,
    IntCodec,
    LongCodec,
    NullCodec,
    PrimitiveCodec,
    ShortCodec,
    StringCodec,
)
from ..config import CodecConfig
from ..core import BaseCodecCore
from ..exceptions import CodecError
from ..typedefs import PrimitiveKind

__all__ = [
    "ByteConfig",
    "BaseByteIO",
    "ByteIO",
    "StreamByteIO",
    "ByteCodecCore",
    "dumps",
    "loads",
    "dump",
    "load",
]

logger = logging.getLogger(__name__)

type ByteOrder = Literal["big", "little"]

ABSENT = 0
PRESENT = 1


@dataclass(kw_only=True)
class ByteConfig(CodecConfig):
    byte_order: ByteOrder = "big"
    """
    Byte order of multi-byte values.
    """


class BaseByteIO(ABC):
    """
    Sequential writer and reader of packed values. Subclasses provide the
    underlying bytes.
    """

    __prefix: str

    def __init__(self, *, byte_order: ByteOrder = "big"):
        self.__prefix = ">" if byte_order == "big" else "<"

    @property
    @abstractmethod
    def position(self) -> int:
        """
        Number of bytes read.
        """

    @abstractmethod
    def write_bytes(self, data: bytes, /): ...

    @abstractmethod
    def read_bytes(self, size: int, /) -> bytes:
        """
        Read exactly `size` bytes, raising `CodecError` if the data ends first.
        """

    @abstractmethod
    def mark(self) -> int | None:
        """
        Get position to roll back to upon a failed write, or `None` if written
        bytes can't be discarded.
        """

    @abstractmethod
    def rollback(self, mark: int | None, /):
        """
        Discard bytes written since `mark()` returned the given position.
        """

    def write(self, fmt: str, value: Any, /):
        """
        Write a single value packed with the given `struct` format character.
        """
        self.write_bytes(struct.pack(self.__prefix + fmt, value))

    def read(self, fmt: str, /) -> Any:
        """
        Read a single value packed with the given `struct` format character.
        """
        fmt_ = self.__prefix + fmt
        return struct.unpack(fmt_, self.read_bytes(struct.calcsize(fmt_)))[0]

    def write_flag(self, value: int, /):
        self.write("B", value)

    def read_flag(self) -> bool:
        flag = self.read("B")
        if flag not in (ABSENT, PRESENT):
            raise CodecError(
                f"Invalid flag byte {flag} at position {self.position - 1}"
            )
        return flag == PRESENT

    def write_size(self, size: int, /):
        self.write("i", size)

    def read_size(self) -> int:
        size = self.read("i")
        if size < 0:
            raise CodecError(f"Invalid size {size} at position {self.position - 4}")
        return size

    def write_string(self, value: str, /):
        encoded = value.encode("utf-8")
        self.write_size(len(encoded))
        self.write_bytes(encoded)

    def read_string(self) -> str:
        return _decode_utf8(self.read_bytes(self.read_size()))


class ByteIO(BaseByteIO):
    """
    Byte buffer which is appended to when writing and consumed from a read position
    when reading.
    """

    __buffer: bytearray
    __pos: int

    def __init__(self, data: bytes = b"", /, *, byte_order: ByteOrder = "big"):
        super().__init__(byte_order=byte_order)
        self.__buffer = bytearray(data)
        self.__pos = 0

    def __repr__(self) -> str:
        return f"ByteIO(size={len(self.__buffer)}, position={self.__pos})"

    def __bytes__(self) -> bytes:
        return bytes(self.__buffer)

    @property
    def position(self) -> int:
        return self.__pos

    @property
    def remaining(self) -> int:
        """
        Number of bytes not yet read.
        """
        return len(self.__buffer) - self.__pos

    def write_bytes(self, data: bytes, /):
        self.__buffer.extend(data)

    def read_bytes(self, size: int, /) -> bytes:
        if size > self.remaining:
            raise CodecError(f"Unexpected end of data at position {self.__pos}")
        data = bytes(self.__buffer[self.__pos : self.__pos + size])
        self.__pos += size
        return data

    def mark(self) -> int:
        return len(self.__buffer)

    def rollback(self, mark: int | None, /):
        if mark is not None:
            del self.__buffer[mark:]

    def read_string(self) -> str:
        length = self.read_size()
        if length > self.remaining:
            raise CodecError(
                f"String of length {length} exceeds remaining {self.remaining} bytes"
            )
        return _decode_utf8(self.read_bytes(length))


class StreamByteIO(BaseByteIO):
    """
    Writes to and reads from a binary file object, e.g. an open file or a
    `gzip.GzipFile`. The stream is not closed.

    Bytes written by a failed encode are discarded only if the stream supports
    seeking back and truncating.
    """

    __stream: BinaryIO
    __pos: int

    def __init__(self, stream: BinaryIO, /, *, byte_order: ByteOrder = "big"):
        super().__init__(byte_order=byte_order)
        self.__stream = stream
        self.__pos = 0

    def __repr__(self) -> str:
        return f"StreamByteIO({self.__stream!r}, position={self.__pos})"

    @property
    def position(self) -> int:
        return self.__pos

    def write_bytes(self, data: bytes, /):
        self.__stream.write(data)

    def read_bytes(self, size: int, /) -> bytes:
        chunks: list[bytes] = []
        needed = size
        while needed > 0:
            chunk = self.__stream.read(needed)
            if not chunk:
                raise CodecError(f"Unexpected end of data at position {self.__pos}")
            chunks.append(chunk)
            needed -= len(chunk)
        self.__pos += size
        return b"".join(chunks)

    def mark(self) -> int | None:
        return self.__stream.tell() if self.__stream.seekable() else None

    def rollback(self, mark: int | None, /):
        if mark is None:
            return
        try:
            self.__stream.seek(mark)
            self.__stream.truncate()
        except OSError as e:
            logger.warning("Cannot discard partially written value: %s", e)


class ByteNullCodec(NullCodec[BaseByteIO]):
    """
    Writes a flag byte before each nullable value, which `is_null()` consumes.
    """

    def is_null(self, enc: BaseByteIO, /) -> bool:
        return not enc.read_flag()

    def encode(self, obj: None, enc: BaseByteIO, /) -> BaseByteIO:
        enc.write_flag(ABSENT)
        return enc

    def mark_present(self, enc: BaseByteIO, /) -> BaseByteIO:
        enc.write_flag(PRESENT)
        return enc

    def decode(self, enc: BaseByteIO, /, type_: type[None] | None = None) -> None:
        # flag was consumed by is_null()
        return None


class ByteStringCodec(StringCodec[BaseByteIO]):
    def encode_str(self, value: str, enc: BaseByteIO, /) -> BaseByteIO:
        enc.write_string(value)
        return enc

    def decode(self, enc: BaseByteIO, /, type_: type[str] | None = None) -> str:
        return enc.read_string()


class BytePrimitiveMixin:
    """
    Packs primitives with a `struct` format character.
    """

    fmt: ClassVar[str]

    def encode_prim(self, value: Any, enc: BaseByteIO, /) -> BaseByteIO:
        enc.write(self.fmt, value)
        return enc

    def decode_prim(self, enc: BaseByteIO, /) -> Any:
        return enc.read(self.fmt)


class ByteBooleanCodec(BytePrimitiveMixin, BooleanCodec[BaseByteIO]):
    fmt = "?"


class ByteByteCodec(BytePrimitiveMixin, ByteCodec[BaseByteIO]):
    fmt = "B"


class ByteCharCodec(BytePrimitiveMixin, CharCodec[BaseByteIO]):
    """
    Chars are written as their code point.
    """

    fmt = "I"

    def encode_prim(self, value: str, enc: BaseByteIO, /) -> BaseByteIO:
        return super().encode_prim(ord(value), enc)

    def decode_prim(self, enc: BaseByteIO, /) -> str:
        code = super().decode_prim(enc)
        try:
            return chr(code)
        except ValueError:
            raise CodecError(f"Invalid code point {code}") from None


class ByteShortCodec(BytePrimitiveMixin, ShortCodec[BaseByteIO]):
    fmt = "h"


class ByteIntCodec(BytePrimitiveMixin, IntCodec[BaseByteIO]):
    fmt = "i"


class ByteLongCodec(BytePrimitiveMixin, LongCodec[BaseByteIO]):
    fmt = "q"


class ByteFloatCodec(BytePrimitiveMixin, FloatCodec[BaseByteIO]):
    fmt = "f"


class ByteDoubleCodec(BytePrimitiveMixin, DoubleCodec[BaseByteIO]):
    fmt = "d"


PRIMITIVE_CODECS: tuple[type[PrimitiveCodec[Any, BaseByteIO]], ...] = (
    ByteBooleanCodec,
    ByteByteCodec,
    ByteCharCodec,
    ByteShortCodec,
    ByteIntCodec,
    ByteLongCodec,
    ByteFloatCodec,
    ByteDoubleCodec,
)


class ByteCodecCore(BaseCodecCore[BaseByteIO, ByteConfig]):
    """
    Codec core writing to and reading from a `BaseByteIO`. All codecs share the
    buffer passed to them, so hooks return it unchanged.
    """

    __null_codec: ByteNullCodec
    __string_codec: ByteStringCodec
    __primitive_codecs: dict[PrimitiveKind, PrimitiveCodec[Any, BaseByteIO]]

    def __init__(self, config: ByteConfig | None = None, /):
        super().__init__(config)
        self.__null_codec = ByteNullCodec()
        self.__string_codec = ByteStringCodec()
        self.__primitive_codecs = {c.kind: c() for c in PRIMITIVE_CODECS}

    @property
    def null_codec(self) -> ByteNullCodec:
        return self.__null_codec

    @property
    def string_codec(self) -> ByteStringCodec:
        return self.__string_codec

    def primitive_codec(
        self, kind: PrimitiveKind, /
    ) -> PrimitiveCodec[Any, BaseByteIO]:
        return self.__primitive_codecs[kind]

    def encode(
        self, obj: Any, enc: BaseByteIO | None = None, /, *, type_: Any = None
    ) -> BaseByteIO:
        """
        Encode object, discarding any bytes it wrote to `enc` if encoding fails.
        """
        if enc is None:
            return super().encode(obj, type_=type_)
        mark = enc.mark()
        try:
            return super().encode(obj, enc, type_=type_)
        except Exception:
            enc.rollback(mark)
            raise

    def _create_root(self) -> BaseByteIO:
        return ByteIO(byte_order=self.config.byte_order)

    def _encode_tagged[T](
        self,
        enc: BaseByteIO,
        tag: str | None,
        codec: Codec[T, BaseByteIO],
        obj: T,
        /,
    ) -> BaseByteIO:
        if tag is None:
            enc.write_flag(ABSENT)
        else:
            enc.write_flag(PRESENT)
            enc.write_string(tag)
        return codec.encode(obj, enc)

    def _decode_tag(self, enc: BaseByteIO, /) -> tuple[str | None, BaseByteIO]:
        tag = enc.read_string() if enc.read_flag() else None
        return tag, enc

    def _start_object(self, enc: BaseByteIO, /) -> BaseByteIO:
        return enc

    def _field_carrier(self, obj_enc: BaseByteIO, name: str, /) -> BaseByteIO:
        return obj_enc

    def _end_field(self, obj_enc: BaseByteIO, name: str, field_enc: BaseByteIO, /):
        pass

    def _get_field(self, enc: BaseByteIO, name: str, /) -> BaseByteIO:
        return enc

    def _start_sequence(self, enc: BaseByteIO, size: int, /) -> BaseByteIO:
        enc.write_size(size)
        return enc

    def _entry_carrier(self, seq_enc: BaseByteIO, /) -> BaseByteIO:
        return seq_enc

    def _end_entry(self, seq_enc: BaseByteIO, entry_enc: BaseByteIO, /):
        pass

    def _entries(self, enc: BaseByteIO, /) -> Generator[BaseByteIO, None, None]:
        for _ in range(enc.read_size()):
            yield enc


def dumps(core: ByteCodecCore, obj: Any, /, *, type_: Any = None) -> bytes:
    """
    Encode object to bytes.
    """
    enc = ByteIO(byte_order=core.config.byte_order)
    core.encode(obj, enc, type_=type_)
    return bytes(enc)


def loads[T](core: ByteCodecCore, type_: type[T] | Any, data: bytes, /) -> T:
    """
    Decode object of the given type from bytes, which must be fully consumed.
    """
    enc = ByteIO(data, byte_order=core.config.byte_order)
    obj = core.decode(type_, enc)
    if enc.remaining:
        raise CodecError(f"{enc.remaining} trailing bytes after decoded value")
    return obj


def dump(core: ByteCodecCore, obj: Any, stream: BinaryIO, /, *, type_: Any = None):
    """
    Encode object to a binary stream.
    """
    enc = StreamByteIO(stream, byte_order=core.config.byte_order)
    core.encode(obj, enc, type_=type_)


def load[T](core: ByteCodecCore, type_: type[T] | Any, stream: BinaryIO, /) -> T:
    """
    Decode object of the given type from a binary stream, leaving any following
    bytes unread.
    """
    enc = StreamByteIO(stream, byte_order=core.config.byte_order)
    return core.decode(type_, enc)


def _decode_utf8(data: bytes) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise CodecError(f"Invalid UTF-8 string: {e}", cause=e) from e
