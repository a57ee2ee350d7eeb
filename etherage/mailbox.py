"""Frames exchanged with a slave's mailbox."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import ClassVar

from etherage.data import PackingError

# arbitrary maximum size for a mailbox buffer
MAILBOX_MAX_SIZE = 1024


class MailboxType(enum.IntEnum):
    """Protocol carried by a mailbox frame (ETG.1000.4 table 29)."""

    EXCEPTION = 0x0
    ADS = 0x1
    ETHERNET = 0x2
    CAN = 0x3
    FILE = 0x4
    SERVO = 0x5
    SPECIFIC = 0xF


class MailboxError(enum.IntEnum):
    """Error codes reported in a mailbox exception frame (ETG.1000.4 table 30)."""

    SYNTAX = 0x1
    UNSUPPORTED_PROTOCOL = 0x2
    INVALID_CHANNEL = 0x3
    SERVICE_NOT_SUPPORTED = 0x4
    INVALID_HEADER = 0x5
    SIZE_TOO_SHORT = 0x6
    NO_MORE_MEMORY = 0x7
    INVALID_SIZE = 0x8
    SERVICE_IN_WORK = 0x9


def _check_range(name: str, value: int, bits: int) -> int:
    value = int(value)
    if not 0 <= value < (1 << bits):
        raise PackingError(f"{name} {value} does not fit in {bits} bits")
    return value


def _enum_value(kind: type[enum.IntEnum], value: int) -> enum.IntEnum:
    try:
        return kind(value)
    except ValueError as error:
        raise PackingError(f"invalid {kind.__name__} value {value:#x}") from error


@dataclass(frozen=True)
class MailboxHeader:
    """Header preceding every mailbox frame (ETG.1000.4 table 29)."""

    size: ClassVar[int] = 6

    length: int
    address: int = 0
    channel: int = 0
    priority: int = 0
    ty: MailboxType = MailboxType.EXCEPTION
    count: int = 0

    def pack(self) -> bytes:
        """Serialize to 6 bytes."""
        bits = (
            _check_range("length", self.length, 16)
            | _check_range("address", self.address, 16) << 16
            | _check_range("channel", self.channel, 6) << 32
            | _check_range("priority", self.priority, 2) << 38
            | _check_range("type", self.ty, 4) << 40
            | _check_range("count", self.count, 3) << 44
        )
        return bits.to_bytes(self.size, "little")

    @classmethod
    def unpack(cls, data: bytes | bytearray | memoryview) -> "MailboxHeader":
        """Deserialize from the first 6 bytes of ``data``."""
        if len(data) < cls.size:
            raise PackingError("not enough bytes for mailbox header", len(data))
        bits = int.from_bytes(bytes(data[: cls.size]), "little")
        return cls(
            length=bits & 0xFFFF,
            address=(bits >> 16) & 0xFFFF,
            channel=(bits >> 32) & 0x3F,
            priority=(bits >> 38) & 0x3,
            ty=_enum_value(MailboxType, (bits >> 40) & 0xF),
            count=(bits >> 44) & 0x7,
        )


@dataclass(frozen=True)
class MailboxErrorFrame:
    """Body of a mailbox exception frame (ETG.1000.4 table 30)."""

    size: ClassVar[int] = 4

    ty: int
    detail: MailboxError

    def pack(self) -> bytes:
        """Serialize to 4 bytes."""
        bits = _check_range("type", self.ty, 16) | _check_range("detail", self.detail, 16) << 16
        return bits.to_bytes(self.size, "little")

    @classmethod
    def unpack(cls, data: bytes | bytearray | memoryview) -> "MailboxErrorFrame":
        """Deserialize from the first 4 bytes of ``data``."""
        if len(data) < cls.size:
            raise PackingError("not enough bytes for mailbox error frame", len(data))
        bits = int.from_bytes(bytes(data[: cls.size]), "little")
        return cls(ty=bits & 0xFFFF, detail=_enum_value(MailboxError, bits >> 16))


def next_count(count: int) -> int:
    """Next mailbox service counter: rolls from 1 to 7, never 0."""
    return count % 7 + 1