# etherage

Building blocks for an EtherCAT master, written close to the protocol's own
concepts. It has no dependencies beyond the standard library.

## Modules

- **`etherage.data`**: packing and unpacking of values to and from PDU bytes.
  A `PduType` describes a fixed-size wire type. The module provides
  `VOID`, `BOOL`, `U8`, `U16`, `U32`, `U64`, `I8`, `I16`, `I32`, `I64`,
  `F32` and `F64`, all little-endian. You can build more with
  `byte_array(size)` and `array(element, count)`. `ByteField` (alias `Field`)
  locates a value by byte offset and length. `BitField` locates one by bit
  offset and bit length, under 128 bits. `Cursor` reads and writes sequential
  data in a buffer. Failures raise `PackingError`.
- **`etherage.error`**: the error hierarchy rooted at `EthercatError`. Its
  subclasses are `CommunicationError` (wraps an `OSError`), `SlaveError`
  (carries `address` and `detail`, and offers `map(callback)`), `MasterError`,
  `ProtocolError` and `EthercatTimeout`. `from_packing_error` turns a
  `PackingError` into a `ProtocolError` with the same message.
- **`etherage.eeprom`**: the standard slave EEPROM (SII) layout as fields.
  It has `pdi_control`, `address_alias`, `checksum`, `device.vendor`,
  `mailbox.standard.write.offset`, `eeprom_size`, `version` and more, and
  `categories`, the byte address where categories start.
  `read_device_identity(image)` returns vendor, product, revision and serial
  number from an EEPROM image.
- **`etherage.mailbox`**: mailbox framing. It provides `MailboxHeader` (6 bytes)
  and `MailboxErrorFrame` (4 bytes), each with `pack()` and `unpack(data)`.
  It also holds the `MailboxType` and `MailboxError` enums, and `next_count`
  for the mailbox counter, which rolls from 1 to 7.
- **`etherage.can`**: CANopen over EtherCAT. It provides `CoeHeader`,
  `SdoHeader` and `SdoSegmentHeader`, along with `CanService`,
  `SdoCommandRequest`, `SdoCommandResponse` and `SdoAbortCode`. The abort
  code has `object_related()`, `device_related()`, `protocol_related()` and
  related checks. The `Can` class performs expedited, normal and segmented
  SDO uploads and downloads.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Example

```python
from etherage.data import U16, U32, ByteField, Cursor

field = ByteField.simple(U16, 2)
buffer = bytearray(4)
field.set(buffer, 0x1234)
assert field.get(buffer) == 0x1234

cursor = Cursor(bytearray(8))
cursor.pack(U32, 7)
cursor.write(b"\x01\x02")
assert bytes(cursor.finish()) == b"\x07\x00\x00\x00\x01\x02"
```

`Can` works over any object that matches the `etherage.can.MailboxLink`
protocol. Such an object needs a `slave` attribute and two methods:
`async read(ty, capacity) -> bytes` and `async write(ty, priority, data)`.
Calls on one `Can` are serialized by an `asyncio.Lock`. Pass the same lock
to every `Can` that shares a mailbox.

```python
from etherage.can import Can
from etherage.data import U16

can = Can(mailbox_link)
value = await can.sdo_read(U16, 0x6041, 0, priority=1)
await can.sdo_write(U16, 0x6040, 0, 1, 0x000F)
```

A slave may abort an SDO transfer. This raises a `SlaveError`, and its
`detail` is an `SdoAbortCode`. A malformed or unexpected answer raises a
`ProtocolError`. A buffer that is too small raises a `MasterError`. If a
value cannot be encoded for writing, `PackingError` is raised.

## What it does not do

The package does not open network sockets, send EtherCAT frames, or drive
a slave's sync managers. It does not discover slaves, set addresses, or
run distributed clocks. The transport behind `Can` must be provided by the
caller. It has no command-line tool.