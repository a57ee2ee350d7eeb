"""Standard registers of a slave's EEPROM (Slave Information Interface).

Registers are byte fields in the EEPROM image; offsets are counted in 16-bit words.
"""

from __future__ import annotations

from types import SimpleNamespace

from etherage.data import U16, U32, Field

WORD = U16.size

# Initialization value for PDI Control register (0x140 - 0x141)
pdi_control = Field.simple(U16, WORD * 0x0000)
# Initialization value for PDI Configuration register (0x150 - 0x151)
pdi_config = Field.simple(U16, WORD * 0x0001)
# Sync impulse in multiples of 10 ns
sync_impulse = Field.simple(U16, WORD * 0x0002)
# Initialization value for the most significant word of PDI Configuration (0x152 - 0x153)
pdi_config2 = Field.simple(U16, WORD * 0x0003)
# Alias address
address_alias = Field.simple(U16, WORD * 0x0004)
# Low byte holds the CRC of words 0 to 6 (polynomial x^8+x^2+x+1, initial value 0xff)
checksum = Field.simple(U16, WORD * 0x0007)

# Standard information about the product the slave is
device = SimpleNamespace(
    vendor=Field.simple(U32, WORD * 0x0008),
    product=Field.simple(U32, WORD * 0x000A),
    revision=Field.simple(U32, WORD * 0x000C),
    serial_number=Field.simple(U32, WORD * 0x000E),
)

# Recommended mailbox configuration
mailbox = SimpleNamespace(
    bootstrap=SimpleNamespace(
        write=SimpleNamespace(
            offset=Field.simple(U16, WORD * 0x0014),
            size=Field.simple(U16, WORD * 0x0015),
        ),
        read=SimpleNamespace(
            offset=Field.simple(U16, WORD * 0x0016),
            size=Field.simple(U16, WORD * 0x0017),
        ),
    ),
    standard=SimpleNamespace(
        write=SimpleNamespace(
            offset=Field.simple(U16, WORD * 0x0018),
            size=Field.simple(U16, WORD * 0x0019),
        ),
        read=SimpleNamespace(
            offset=Field.simple(U16, WORD * 0x001A),
            size=Field.simple(U16, WORD * 0x001B),
        ),
    ),
    # bit flags of the supported mailbox protocols
    protocols=Field.simple(U16, WORD * 0x001C),
)

# Size of the EEPROM in KiBit + 1 (0 means 1 KiBit)
eeprom_size = Field.simple(U16, WORD * 0x003E)
# Version of the EEPROM layout, currently 1
version = Field.simple(U16, WORD * 0x003F)
# Byte address where categories start
categories = WORD * 0x0040


def read_device_identity(image: bytes | bytearray | memoryview) -> dict[str, int]:
    """Extract vendor, product, revision and serial number from an EEPROM image."""
    return {
        name: getattr(device, name).get(image)
        for name in ("vendor", "product", "revision", "serial_number")
    }