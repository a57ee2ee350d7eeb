"""Types and helpers used to read and write data to and from the wire."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Callable, Protocol, Sequence


class TypeId(Enum):
    """Identifiers of the common data types, allowing dynamic type checks."""

    CUSTOM = auto()
    VOID = auto()
    BOOL = auto()
    I8 = auto()
    I16 = auto()
    I32 = auto()
    I64 = auto()
    U8 = auto()
    U16 = auto()
    U32 = auto()
    U64 = auto()
    F32 = auto()
    F64 = auto()


class PackingError(Exception):
    """Raised when a value cannot be packed to or unpacked from bytes."""

    def __init__(self, message: str, size: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.size = size


class _Packable(Protocol):
    size: int

    def pack(self, value: Any) -> bytes: ...

    def unpack(self, data: bytes) -> Any: ...


def _type_name(dtype: Any) -> str:
    return getattr(dtype, "name", None) or getattr(dtype, "__name__", repr(dtype))


@dataclass(frozen=True)
class PduType:
    """A data type with a fixed packed size that can be read from and written to a PDU."""

    name: str
    id: TypeId
    size: int
    encode: Callable[[Any], bytes] = field(repr=False, compare=False)
    decode: Callable[[bytes], Any] = field(repr=False, compare=False)

    @property
    def bitsize(self) -> int:
        return self.size * 8

    def pack(self, value: Any) -> bytes:
        """Serialize a value to exactly ``size`` bytes."""
        return self.encode(value)

    def unpack(self, data: bytes | bytearray | memoryview) -> Any:
        """Deserialize a value from the first ``size`` bytes of ``data``."""
        if len(data) < self.size:
            raise PackingError(f"not enough bytes for {self.name}", len(data))
        return self.decode(bytes(data[: self.size]))


def _numeric(name: str, type_id: TypeId, fmt: str) -> PduType:
    layout = struct.Struct("<" + fmt)

    def encode(value: Any) -> bytes:
        try:
            return layout.pack(value)
        except struct.error as error:
            raise PackingError(f"cannot pack {value!r} as {name}: {error}") from error

    def decode(data: bytes) -> Any:
        return layout.unpack(data)[0]

    return PduType(name, type_id, layout.size, encode, decode)


_BOOL_LAYOUT = struct.Struct("<B")


def _encode_bool(value: Any) -> bytes:
    return _BOOL_LAYOUT.pack(0b1 if value else 0b0)


def _decode_bool(data: bytes) -> bool:
    return _BOOL_LAYOUT.unpack(data[:1])[0] & 0b1 == 0b1


VOID = PduType("()", TypeId.VOID, 0, lambda value: b"", lambda data: None)
BOOL = PduType("bool", TypeId.BOOL, 1, _encode_bool, _decode_bool)
U8 = _numeric("u8", TypeId.U8, "B")
U16 = _numeric("u16", TypeId.U16, "H")
U32 = _numeric("u32", TypeId.U32, "I")
U64 = _numeric("u64", TypeId.U64, "Q")
I8 = _numeric("i8", TypeId.I8, "b")
I16 = _numeric("i16", TypeId.I16, "h")
I32 = _numeric("i32", TypeId.I32, "i")
I64 = _numeric("i64", TypeId.I64, "q")
F32 = _numeric("f32", TypeId.F32, "f")
F64 = _numeric("f64", TypeId.F64, "d")


def byte_array(size: int) -> PduType:
    """Type of a raw byte string of fixed length."""
    if size < 0:
        raise ValueError("byte array size cannot be negative")

    def encode(value: Any) -> bytes:
        packed = bytes(value)
        if len(packed) != size:
            raise PackingError(f"expected {size} bytes", len(packed))
        return packed

    return PduType(f"[u8; {size}]", TypeId.CUSTOM, size, encode, bytes)


def array(element: _Packable, count: int) -> PduType:
    """Type of a fixed-length sequence of ``count`` consecutive ``element`` values."""
    if count < 0:
        raise ValueError("array length cannot be negative")
    step = element.size

    def encode(value: Sequence[Any]) -> bytes:
        items = list(value)
        if len(items) != count:
            raise PackingError(f"expected {count} items", len(items))
        return b"".join(element.pack(item) for item in items)

    def decode(data: bytes) -> tuple:
        return tuple(element.unpack(data[i : i + step]) for i in range(0, step * count, step))

    return PduType(f"[{_type_name(element)}; {count}]", TypeId.CUSTOM, step * count, encode, decode)


class ByteField:
    """Locates a value of type ``dtype`` in a byte sequence by byte offset and length."""

    __slots__ = ("dtype", "byte", "len")

    def __init__(self, dtype: _Packable, byte: int, len: int) -> None:  # noqa: A002
        self.dtype = dtype
        self.byte = byte
        self.len = len

    @classmethod
    def simple(cls, dtype: _Packable, byte: int) -> "ByteField":
        """Build a field whose length is the nominal size of ``dtype``."""
        return cls(dtype, byte, dtype.size)

    def _check_bounds(self, data: Sequence[int]) -> None:
        if self.byte + self.len > len(data):
            raise IndexError(
                f"field 0x{self.byte:x}+{self.len} exceeds data of {len(data)} bytes"
            )

    def get(self, data: bytes | bytearray | memoryview) -> Any:
        """Extract the value located by this field."""
        self._check_bounds(data)
        return self.dtype.unpack(bytes(data[self.byte : self.byte + self.len]))

    def set(self, data: bytearray | memoryview, value: Any) -> None:
        """Write ``value`` at the place located by this field."""
        self._check_bounds(data)
        packed = self.dtype.pack(value)
        if len(packed) > self.len:
            raise PackingError("packed value does not fit in field", len(packed))
        data[self.byte : self.byte + self.len] = packed.ljust(self.len, b"\x00")

    def downcast(self) -> "ByteField":
        """Same location, with no data type."""
        return ByteField(VOID, self.byte, self.len)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ByteField):
            return NotImplemented
        return self.byte == other.byte and self.len == other.len

    def __hash__(self) -> int:
        return hash(("byte", self.byte, self.len))

    def __repr__(self) -> str:
        return f"Field<{_type_name(self.dtype)}>{{0x{self.byte:x}, {self.len}}}"


Field = ByteField


class BitField:
    """Locates a value of type ``dtype`` in a byte sequence by bit offset and bit length."""

    __slots__ = ("dtype", "bit", "len")

    _BUFFER = 16

    def __init__(self, dtype: _Packable, bit: int, len: int) -> None:  # noqa: A002
        self.dtype = dtype
        self.bit = bit
        self.len = len

    def _prepare(self, data: Sequence[int]) -> tuple[int, int]:
        if self.len >= 128:
            raise ValueError("bit fields are limited to less than 128 bits")
        first = self.bit // 8
        last = (self.bit + self.len + 7) // 8
        if last > len(data):
            raise IndexError(f"bit field {self.bit}+{self.len} exceeds data of {len(data)} bytes")
        return first, last

    def get(self, data: bytes | bytearray | memoryview) -> Any:
        """Extract the value located by this field."""
        first, last = self._prepare(data)
        chunk = int.from_bytes(bytes(data[first:last]), "little")
        bits = (chunk >> (self.bit - first * 8)) & ((1 << self.len) - 1)
        return self.dtype.unpack(bits.to_bytes(self._BUFFER, "little"))

    def set(self, data: bytearray | memoryview, value: Any) -> None:
        """Write ``value`` at the place located by this field, leaving other bits untouched."""
        first, last = self._prepare(data)
        packed = self.dtype.pack(value)
        if len(packed) > self._BUFFER:
            raise PackingError("value too big for a bit field", len(packed))
        mask = (1 << self.len) - 1
        bits = int.from_bytes(packed, "little") & mask
        shift = self.bit - first * 8
        chunk = int.from_bytes(bytes(data[first:last]), "little")
        chunk = (chunk & ~(mask << shift)) | (bits << shift)
        data[first:last] = chunk.to_bytes(last - first, "little")

    def downcast(self) -> "BitField":
        """Same location, with no data type."""
        return BitField(VOID, self.bit, self.len)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BitField):
            return NotImplemented
        return self.bit == other.bit and self.len == other.len

    def __hash__(self) -> int:
        return hash(("bit", self.bit, self.len))

    def __repr__(self) -> str:
        return f"BitField<{_type_name(self.dtype)}>{{{self.bit}, {self.len}}}"


class Cursor:
    """Sequential reader and writer over a byte buffer.

    Reading and unpacking work on any buffer; packing and writing need a writable one.
    ``remain`` and ``finish`` return views on the buffer without copying.
    """

    def __init__(self, data: bytes | bytearray | memoryview) -> None:
        self._view = memoryview(data).cast("B")
        self._position = 0

    @property
    def position(self) -> int:
        """Number of bytes already read or written."""
        return self._position

    def _advance(self, size: int) -> tuple[int, int]:
        start, end = self._position, self._position + size
        if size < 0 or end > len(self._view):
            raise PackingError(
                f"cannot access {size} bytes at position {start} of a {len(self._view)} bytes buffer",
                len(self._view) - start,
            )
        return start, end

    def _check_writable(self) -> None:
        if self._view.readonly:
            raise TypeError("cursor buffer is read-only")

    def unpack(self, dtype: _Packable) -> Any:
        """Read the next value of type ``dtype`` and advance."""
        start, end = self._advance(dtype.size)
        value = dtype.unpack(bytes(self._view[start:end]))
        self._position = end
        return value

    def read(self, size: int) -> bytes:
        """Read the next ``size`` bytes and advance."""
        start, end = self._advance(size)
        self._position = end
        return bytes(self._view[start:end])

    def pack(self, dtype: _Packable, value: Any) -> None:
        """Write ``value`` as type ``dtype`` and advance."""
        self._check_writable()
        start, end = self._advance(dtype.size)
        packed = dtype.pack(value)
        if len(packed) != dtype.size:
            raise PackingError("packed value has unexpected size", len(packed))
        self._view[start:end] = packed
        self._position = end

    def write(self, value: bytes | bytearray | memoryview) -> None:
        """Write the given bytes and advance."""
        self._check_writable()
        start, end = self._advance(len(value))
        self._view[start:end] = bytes(value)
        self._position = end

    def remain(self) -> memoryview:
        """Bytes after the current position, without advancing."""
        return self._view[self._position :]

    def finish(self) -> memoryview:
        """Bytes up to the current position."""
        return self._view[: self._position]