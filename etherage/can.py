"""CANopen over EtherCAT (CoE): SDO transfers through a slave's mailbox.

Each CAN frame is carried in a mailbox frame, so SDO access is not realtime.
"""

from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass
from typing import Any, ClassVar, Protocol

from etherage.data import U32, Cursor, PackingError, PduType
from etherage.error import MasterError, ProtocolError, SlaveError, from_packing_error
from etherage.mailbox import MAILBOX_MAX_SIZE, MailboxHeader, MailboxType

# maximum byte size of SDO data that can be expedited
EXPEDITED_MAX_SIZE = 4


def _check_range(name: str, value: int, bits: int) -> int:
    value = int(value)
    if not 0 <= value < (1 << bits):
        raise PackingError(f"{name} {value} does not fit in {bits} bits")
    return value


def _require(data: bytes | bytearray | memoryview, size: int, what: str) -> bytes:
    if len(data) < size:
        raise PackingError(f"not enough bytes for {what}", len(data))
    return bytes(data[:size])


class CanService(enum.IntEnum):
    """CAN service of a CoE frame; transmit is slave to master, receive is master to slave."""

    EMERGENCY = 0x1
    SDO_REQUEST = 0x2
    SDO_RESPONSE = 0x3
    TRANSMIT_PDO = 0x4
    RECEIVE_PDO = 0x5
    TRANSMIT_PDO_REMOTE_REQUEST = 0x6
    RECEIVE_PDO_REMOTE_REQUEST = 0x7
    SDO_INFORMATION = 0x8


class SdoCommandRequest(enum.IntEnum):
    """Operation requested on an SDO (ETG.1000.6 5.6.2.1-7)."""

    DOWNLOAD = 0x1
    DOWNLOAD_SEGMENT = 0x0
    UPLOAD = 0x2
    UPLOAD_SEGMENT = 0x3
    ABORT = 0x4


class SdoCommandResponse(enum.IntEnum):
    """Operation answered about an SDO (ETG.1000.6 5.6.2.1-7)."""

    DOWNLOAD = 0x3
    DOWNLOAD_SEGMENT = 0x1
    UPLOAD = 0x2
    UPLOAD_SEGMENT = 0x0
    ABORT = 0x4


class SdoAbortCode(enum.IntEnum):
    """Reason given by a slave for aborting an SDO transfer."""

    BAD_TOGGLE = 0x05_03_00_00
    TIMEOUT = 0x05_04_00_00
    UNSUPPORTED_COMMAND = 0x05_04_00_01
    OUT_OF_MEMORY = 0x05_04_00_05
    UNSUPPORTED_ACCESS = 0x06_01_00_00
    WRITE_ONLY = 0x06_01_00_01
    READ_ONLY = 0x06_01_00_02
    WRITE_ERROR = 0x06_01_00_03
    VARIABLE_LENGTH = 0x06_01_00_04
    OBJECT_TOO_BIG = 0x06_01_00_05
    LOCKED_BY_PDO = 0x06_01_00_06
    INVALID_INDEX = 0x06_02_00_00
    CANNOT_MAP = 0x06_04_00_41
    PDO_TOO_SMALL = 0x06_04_00_42
    INCOMPATIBLE_PARAMETER = 0x06_04_00_43
    INCOMPATIBLE_DEVICE = 0x06_04_00_47
    HARDWARE_ERROR = 0x06_06_00_00
    INVALID_LENGTH = 0x06_07_00_10
    SERVICE_TOO_BIG = 0x06_07_00_12
    SERVICE_TOO_SMALL = 0x06_07_00_13
    INVALID_SUB_INDEX = 0x06_09_00_11
    VALUE_OUT_OF_RANGE = 0x06_09_00_30
    VALUE_TOO_HIGH = 0x06_09_00_31
    VALUE_TOO_LOW = 0x06_09_00_32
    INVALID_RANGE = 0x06_09_00_36
    GENERAL_ERROR = 0x08_00_00_00
    REFUSED = 0x08_00_00_20
    APPLICATION_REFUSED = 0x08_00_00_21
    STATE_REFUSED = 0x08_00_00_22
    DICTIONNARY_EMPTY = 0x08_00_00_23

    def object_related(self) -> bool:
        return self >> 24 == 0x06

    def subitem_related(self) -> bool:
        return self >> 16 == 0x06_09

    def mapping_related(self) -> bool:
        return self >> 16 == 0x06_04

    def device_related(self) -> bool:
        return self >> 24 == 0x08

    def protocol_related(self) -> bool:
        return self >> 24 == 0x05


@dataclass(frozen=True)
class CoeHeader:
    """Header of every CoE frame."""

    size: ClassVar[int] = 2

    number: int = 0
    service: CanService = CanService.SDO_REQUEST

    def pack(self) -> bytes:
        bits = _check_range("number", self.number, 9) | _check_range("service", self.service, 4) << 12
        return bits.to_bytes(self.size, "little")

    @classmethod
    def unpack(cls, data: bytes | bytearray | memoryview) -> "CoeHeader":
        bits = int.from_bytes(_require(data, cls.size, "COE header"), "little")
        try:
            service = CanService(bits >> 12)
        except ValueError as error:
            raise PackingError(f"invalid CAN service {bits >> 12:#x}") from error
        return cls(number=bits & 0x1FF, service=service)


@dataclass(frozen=True)
class SdoHeader:
    """Header of an SDO operation (ETG.1000.6 5.6.2).

    ``unused`` is the count of unused bytes among the 4 data bytes of an expedited
    transfer; ``sub`` is the subindex, or for complete access 0 to include
    subindex 0 and 1 to exclude it.
    """

    size: ClassVar[int] = 4

    sized: bool = False
    expedited: bool = False
    unused: int = 0
    complete: bool = False
    command: int = 0
    index: int = 0
    sub: int = 0

    def pack(self) -> bytes:
        bits = (
            int(bool(self.sized))
            | int(bool(self.expedited)) << 1
            | _check_range("size", self.unused, 2) << 2
            | int(bool(self.complete)) << 4
            | _check_range("command", self.command, 3) << 5
            | _check_range("index", self.index, 16) << 8
            | _check_range("sub", self.sub, 8) << 24
        )
        return bits.to_bytes(self.size, "little")

    @classmethod
    def unpack(cls, data: bytes | bytearray | memoryview) -> "SdoHeader":
        raw = _require(data, cls.size, "SDO header")
        flags = raw[0]
        return cls(
            sized=bool(flags & 1),
            expedited=bool(flags >> 1 & 1),
            unused=flags >> 2 & 0x3,
            complete=bool(flags >> 4 & 1),
            command=flags >> 5,
            index=int.from_bytes(raw[1:3], "little"),
            sub=raw[3],
        )


@dataclass(frozen=True)
class SdoSegmentHeader:
    """Header of an SDO segment."""

    size: ClassVar[int] = 1

    more: bool = False
    unused: int = 0
    toggle: bool = False
    command: int = 0

    def pack(self) -> bytes:
        bits = (
            int(bool(self.more))
            | _check_range("size", self.unused, 3) << 1
            | int(bool(self.toggle)) << 4
            | _check_range("command", self.command, 3) << 5
        )
        return bytes([bits])

    @classmethod
    def unpack(cls, data: bytes | bytearray | memoryview) -> "SdoSegmentHeader":
        bits = _require(data, cls.size, "SDO segment header")[0]
        return cls(
            more=bool(bits & 1),
            unused=bits >> 1 & 0x7,
            toggle=bool(bits >> 4 & 1),
            command=bits >> 5,
        )


# maximum byte size of SDO data in one segment, bounded by the slave's mailbox buffer
SDO_SEGMENT_MAX_SIZE = MAILBOX_MAX_SIZE - MailboxHeader.size - CoeHeader.size - SdoSegmentHeader.size
# maximum byte size of SDO data in the initial download request
_SDO_INITIAL_MAX_SIZE = (
    MAILBOX_MAX_SIZE - MailboxHeader.size - CoeHeader.size - SdoHeader.size - U32.size
)


class MailboxLink(Protocol):
    """What CoE needs from a slave's mailbox."""

    slave: Any

    async def read(self, ty: MailboxType, capacity: int) -> bytes: ...

    async def write(self, ty: MailboxType, priority: int, data: bytes) -> None: ...


class Can:
    """SDO access to a slave through its mailbox.

    ``lock`` serializes mailbox use; pass the same lock to every user of the mailbox.
    """

    def __init__(self, mailbox: MailboxLink, lock: asyncio.Lock | None = None) -> None:
        self.mailbox = mailbox
        self._lock = lock if lock is not None else asyncio.Lock()

    async def sdo_read(
        self, dtype: PduType, index: int, sub: int = 0, priority: int = 0, complete: bool = False
    ) -> Any:
        """Read an SDO of any size and decode it as ``dtype``."""
        data = await self.sdo_read_slice(index, sub, priority, complete, dtype.size)
        try:
            return dtype.unpack(data)
        except PackingError as error:
            raise from_packing_error(error) from error

    async def sdo_read_slice(
        self,
        index: int,
        sub: int = 0,
        priority: int = 0,
        complete: bool = False,
        capacity: int | None = None,
    ) -> bytes:
        """Read the raw bytes of an SDO; ``capacity`` bounds the accepted size."""
        _check_priority(priority)
        async with self._lock:
            await self._send(
                priority,
                SdoHeader(
                    complete=complete, command=SdoCommandRequest.UPLOAD, index=index, sub=sub
                ).pack(),
                bytes(4),
            )
            header, frame = await self._receive_sdo_response(SdoCommandResponse.UPLOAD, index, sub)
            if not header.sized:
                raise ProtocolError("got SDO response without data size")

            if header.expedited:
                total = EXPEDITED_MAX_SIZE - header.unused
                if capacity is not None and total > capacity:
                    raise MasterError("data buffer is too small for requested SDO")
                if len(frame) < total:
                    raise ProtocolError("inconsistent expedited response data size")
                return frame[:total]

            cursor = Cursor(frame)
            total = _unpack(cursor, U32, "unable to unpack sdo size from SDO response")
            if capacity is not None and total > capacity:
                raise MasterError("read buffer is too small for requested SDO")
            received = bytearray(cursor.remain())
            if len(received) > total:
                raise ProtocolError("received more data than declared from SDO")

            toggle = False
            while len(received) < total:
                await self._send(
                    priority,
                    SdoSegmentHeader(toggle=toggle, command=SdoCommandRequest.UPLOAD_SEGMENT).pack(),
                    bytes(7),
                )
                segment_header, segment = await self._receive_sdo_segment(
                    SdoCommandResponse.UPLOAD_SEGMENT, toggle
                )
                received += segment[: total - len(received)]
                if not segment_header.more:
                    break
                toggle = not toggle
            return bytes(received)

    async def sdo_write(
        self,
        dtype: PduType,
        index: int,
        sub: int,
        priority: int,
        value: Any,
        complete: bool = False,
    ) -> None:
        """Encode ``value`` as ``dtype`` and write it to an SDO."""
        await self.sdo_write_slice(index, sub, priority, dtype.pack(value), complete)

    async def sdo_write_slice(
        self,
        index: int,
        sub: int,
        priority: int,
        data: bytes | bytearray | memoryview,
        complete: bool = False,
    ) -> None:
        """Write raw bytes to an SDO, expedited or segmented depending on size."""
        _check_priority(priority)
        data = bytes(data)
        async with self._lock:
            if len(data) <= EXPEDITED_MAX_SIZE:
                await self._send(
                    priority,
                    SdoHeader(
                        sized=True,
                        expedited=True,
                        unused=EXPEDITED_MAX_SIZE - len(data),
                        complete=complete,
                        command=SdoCommandRequest.DOWNLOAD,
                        index=index,
                        sub=sub,
                    ).pack(),
                    data.ljust(EXPEDITED_MAX_SIZE, b"\x00"),
                )
                await self._receive_sdo_response(SdoCommandResponse.DOWNLOAD, index, sub)
                return

            first, rest = data[:_SDO_INITIAL_MAX_SIZE], data[_SDO_INITIAL_MAX_SIZE:]
            await self._send(
                priority,
                SdoHeader(
                    sized=True,
                    complete=complete,
                    command=SdoCommandRequest.DOWNLOAD,
                    index=index,
                    sub=sub,
                ).pack(),
                U32.pack(len(data)),
                first,
            )
            await self._receive_sdo_response(SdoCommandResponse.DOWNLOAD, index, sub)

            toggle = False
            while rest:
                segment, rest = rest[:SDO_SEGMENT_MAX_SIZE], rest[SDO_SEGMENT_MAX_SIZE:]
                await self._send(
                    priority,
                    SdoSegmentHeader(
                        more=bool(rest),
                        toggle=toggle,
                        command=SdoCommandRequest.DOWNLOAD_SEGMENT,
                    ).pack(),
                    segment,
                )
                await self._receive_sdo_segment(SdoCommandResponse.DOWNLOAD_SEGMENT, toggle)
                toggle = not toggle

    async def _send(self, priority: int, *parts: bytes) -> None:
        frame = CoeHeader(0, CanService.SDO_REQUEST).pack() + b"".join(parts)
        await self.mailbox.write(MailboxType.CAN, priority, frame)

    async def _receive(self) -> tuple[Cursor, CanService]:
        cursor = Cursor(bytes(await self.mailbox.read(MailboxType.CAN, MAILBOX_MAX_SIZE)))
        service = _unpack(cursor, CoeHeader, "unable to unpack COE frame header").service
        return cursor, service

    def _abort(self, cursor: Cursor) -> SlaveError:
        raw = _unpack(cursor, U32, "unable to unpack SDO error code")
        try:
            code = SdoAbortCode(raw)
        except ValueError as error:
            raise ProtocolError("unable to unpack SDO error code") from error
        return SlaveError(self.mailbox.slave, code)

    async def _receive_sdo_response(
        self, expected: SdoCommandResponse, index: int, sub: int
    ) -> tuple[SdoHeader, bytes]:
        cursor, service = await self._receive()

        def check(header: SdoHeader) -> None:
            if header.index != index:
                raise ProtocolError("slave answered about wrong item")
            if header.sub != sub:
                raise ProtocolError("slave answered about wrong subitem")

        if service == CanService.SDO_RESPONSE:
            header = _unpack(cursor, SdoHeader, "unable to unpack SDO response header")
            if header.command != expected:
                raise ProtocolError("slave answered with wrong operation")
            check(header)
            return header, bytes(cursor.remain())
        if service == CanService.SDO_REQUEST:
            header = _unpack(cursor, SdoHeader, "unable to unpack SDO request header")
            if header.command != SdoCommandRequest.ABORT:
                raise ProtocolError("slave answered a COE request")
            check(header)
            raise self._abort(cursor)
        raise ProtocolError("unexpected COE service during SDO operation")

    async def _receive_sdo_segment(
        self, expected: SdoCommandResponse, toggle: bool
    ) -> tuple[SdoSegmentHeader, bytes]:
        cursor, service = await self._receive()
        if service == CanService.SDO_RESPONSE:
            header = _unpack(cursor, SdoSegmentHeader, "unable to unpack segment response header")
            if header.command != expected:
                raise ProtocolError("slave answered with wrong operation")
            if header.toggle != toggle:
                raise ProtocolError("bad toggle bit in segment received")
            return header, bytes(cursor.remain())
        if service == CanService.SDO_REQUEST:
            header = _unpack(cursor, SdoHeader, "unable to unpack request header")
            if header.command != SdoCommandRequest.ABORT:
                raise ProtocolError("slave answered a COE request")
            raise self._abort(cursor)
        raise ProtocolError("unexpected COE service during SDO segment operation")


def _unpack(cursor: Cursor, dtype: Any, message: str) -> Any:
    try:
        return cursor.unpack(dtype)
    except PackingError as error:
        raise ProtocolError(message) from error


def _check_priority(priority: int) -> None:
    if not 0 <= priority <= 3:
        raise ValueError(f"mailbox priority must be between 0 and 3, got {priority}")