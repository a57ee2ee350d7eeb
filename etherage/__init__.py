"""EtherCAT master building blocks: PDU data, EEPROM layout, mailbox framing and CoE SDO access."""

__version__ = "0.5.1"
__all__ = ["data", "error", "eeprom", "mailbox", "can"]