import pytest

from etherage.data import (
    BOOL,
    F32,
    F64,
    I8,
    I16,
    I32,
    I64,
    U8,
    U16,
    U32,
    U64,
    VOID,
    BitField,
    ByteField,
    Cursor,
    Field,
    PackingError,
    TypeId,
    array,
    byte_array,
)


@pytest.mark.parametrize(
    "dtype, value",
    [
        (U8, 200),
        (U16, 0x1234),
        (U32, 0xDEADBEEF),
        (U64, 2**63 + 5),
        (I8, -100),
        (I16, -30000),
        (I32, -(2**31)),
        (I64, 2**62),
        (F32, 0.5),
        (F64, -1.25),
    ],
)
def test_numeric_round_trip(dtype, value):
    packed = dtype.pack(value)
    assert len(packed) == dtype.size
    assert dtype.unpack(packed) == value


def test_numbers_are_little_endian():
    assert U16.pack(0x1234) == bytes([0x34, 0x12])
    assert U32.unpack(bytes([0x01, 0x00, 0x00, 0x00])) == 1


def test_type_ids():
    assert U16.id is TypeId.U16
    assert F64.id is TypeId.F64
    assert byte_array(3).id is TypeId.CUSTOM


def test_bool_uses_lowest_bit():
    assert BOOL.pack(True) == b"\x01"
    assert BOOL.pack(False) == b"\x00"
    assert BOOL.unpack(b"\x03") is True
    assert BOOL.unpack(b"\x02") is False


def test_void_is_empty():
    assert VOID.pack(None) == b""
    assert VOID.unpack(b"") is None


def test_unpack_too_short_raises():
    with pytest.raises(PackingError):
        U32.unpack(b"\x00\x01")


def test_pack_out_of_range_raises():
    with pytest.raises(PackingError):
        U8.pack(256)


def test_byte_array_round_trip_and_size_check():
    dtype = byte_array(4)
    assert dtype.unpack(dtype.pack(b"abcd")) == b"abcd"
    with pytest.raises(PackingError):
        dtype.pack(b"abc")


def test_array_round_trip():
    dtype = array(U16, 3)
    assert dtype.size == 3 * U16.size
    assert dtype.unpack(dtype.pack([1, 2, 3])) == (1, 2, 3)
    with pytest.raises(PackingError):
        dtype.pack([1, 2])


def test_byte_field_simple_uses_type_size():
    field = ByteField.simple(U32, 6)
    assert field.byte == 6
    assert field.len == U32.size


def test_byte_field_set_get_leaves_neighbours():
    data = bytearray(b"\xff" * 8)
    field = Field.simple(U16, 3)
    field.set(data, 0x0102)
    assert field.get(data) == 0x0102
    assert data[:3] == b"\xff" * 3
    assert data[5:] == b"\xff" * 3


def test_byte_field_out_of_bounds():
    with pytest.raises(IndexError):
        Field.simple(U32, 6).get(bytes(8))


def test_byte_field_equality_ignores_type():
    assert Field.simple(U16, 2) == Field.simple(I16, 2)
    assert Field.simple(U32, 2).downcast() == Field.simple(U32, 2)
    assert Field.simple(U32, 2) != Field.simple(U16, 2)


def test_byte_field_repr():
    assert repr(Field.simple(U16, 16)) == "Field<u16>{0x10, 2}"


def test_bit_field_round_trip_keeps_other_bits():
    data = bytearray(b"\xff\xff\xff")
    field = BitField(U8, 5, 7)
    field.set(data, 0)
    assert field.get(data) == 0
    field.set(data, 0x55)
    assert field.get(data) == 0x55
    other = BitField(U8, 0, 5)
    assert other.get(data) == 0b11111
    assert BitField(U16, 12, 12).get(data) == 0xFFF


def test_bit_field_masks_value():
    data = bytearray(2)
    field = BitField(U8, 3, 3)
    field.set(data, 0xFF)
    assert field.get(data) == 0b111
    assert BitField(U16, 0, 16).get(data) == 0b111 << 3


def test_bit_field_limits():
    with pytest.raises(ValueError):
        BitField(U8, 0, 128).get(bytes(32))
    with pytest.raises(IndexError):
        BitField(U8, 4, 8).get(bytes(1))


def test_bit_field_equality_and_downcast():
    assert BitField(U8, 3, 4).downcast() == BitField(U16, 3, 4)
    assert BitField(U8, 3, 4) != BitField(U8, 3, 5)


def test_cursor_pack_then_unpack():
    buffer = bytearray(16)
    writer = Cursor(buffer)
    writer.pack(U16, 0xABCD)
    writer.pack(U32, 7)
    writer.write(b"xyz")
    assert writer.position == U16.size + U32.size + 3
    assert len(writer.remain()) == 16 - writer.position
    written = bytes(writer.finish())

    reader = Cursor(written)
    assert reader.unpack(U16) == 0xABCD
    assert reader.unpack(U32) == 7
    assert bytes(reader.remain()) == b"xyz"
    assert reader.read(3) == b"xyz"
    assert bytes(reader.finish()) == written


def test_cursor_remain_is_writable_view():
    buffer = bytearray(4)
    cursor = Cursor(buffer)
    cursor.write(b"\x01")
    cursor.remain()[0] = 9
    assert buffer[1] == 9


def test_cursor_overflow_raises_without_moving():
    cursor = Cursor(bytearray(3))
    with pytest.raises(PackingError):
        cursor.pack(U32, 1)
    assert cursor.position == 0
    with pytest.raises(PackingError):
        cursor.read(4)


def test_cursor_read_only_buffer():
    cursor = Cursor(b"\x00\x00")
    with pytest.raises(TypeError):
        cursor.write(b"\x01")