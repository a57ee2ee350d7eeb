import pytest

from etherage.data import Cursor, PackingError
from etherage.mailbox import (
    MAILBOX_MAX_SIZE,
    MailboxError,
    MailboxErrorFrame,
    MailboxHeader,
    MailboxType,
    next_count,
)


def test_header_pinned_bytes():
    header = MailboxHeader(length=10, ty=MailboxType.CAN, count=1)
    assert header.pack() == bytes([0x0A, 0x00, 0x00, 0x00, 0x00, 0x13])


@pytest.mark.parametrize("ty", list(MailboxType))
def test_header_roundtrip(ty):
    header = MailboxHeader(length=512, address=0x1234, channel=5, priority=3, ty=ty, count=7)
    packed = header.pack()
    assert len(packed) == MailboxHeader.size
    assert MailboxHeader.unpack(packed) == header


def test_header_in_cursor():
    buffer = bytearray(MAILBOX_MAX_SIZE)
    cursor = Cursor(buffer)
    header = MailboxHeader(length=3, priority=1, ty=MailboxType.FILE, count=2)
    cursor.pack(MailboxHeader, header)
    cursor.write(b"abc")
    frame = bytes(cursor.finish())
    reader = Cursor(frame)
    assert reader.unpack(MailboxHeader) == header
    assert reader.read(3) == b"abc"


def test_header_invalid_type_raises():
    with pytest.raises(PackingError):
        MailboxHeader.unpack(bytes([0, 0, 0, 0, 0, 0x06]))


def test_header_short_data_raises():
    with pytest.raises(PackingError):
        MailboxHeader.unpack(bytes(5))


def test_header_out_of_range_raises():
    with pytest.raises(PackingError):
        MailboxHeader(length=1, priority=4, ty=MailboxType.CAN).pack()


@pytest.mark.parametrize("detail", list(MailboxError))
def test_error_frame_roundtrip(detail):
    frame = MailboxErrorFrame(ty=1, detail=detail)
    packed = frame.pack()
    assert len(packed) == MailboxErrorFrame.size
    assert MailboxErrorFrame.unpack(packed) == frame


def test_error_frame_invalid_detail_raises():
    with pytest.raises(PackingError):
        MailboxErrorFrame.unpack(bytes([1, 0, 0, 0]))


def test_next_count_cycles_without_zero():
    seen = []
    count = 0
    for _ in range(14):
        count = next_count(count)
        seen.append(count)
    assert seen[:7] == [1, 2, 3, 4, 5, 6, 7]
    assert seen[7:] == seen[:7]
    assert 0 not in seen


def test_next_count_wraps_after_seven():
    assert next_count(7) == 1