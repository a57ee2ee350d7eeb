"""General ethercat error types."""

from __future__ import annotations

from typing import Any, Callable

from etherage.data import PackingError


class EthercatError(Exception):
    """Unexpected result in ethercat communication."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


class CommunicationError(EthercatError):
    """Failure of the communication support, exterior to the ethercat logic."""

    def __init__(self, error: OSError) -> None:
        super().__init__(str(error))
        self.error = error
        self.__cause__ = error


class SlaveError(EthercatError):
    """Error reported by a slave; ``detail`` depends on the operation."""

    def __init__(self, address: Any, detail: Any) -> None:
        super().__init__(f"slave {address!r} reported {detail!r}")
        self.address = address
        self.detail = detail

    def map(self, callback: Callable[[Any], Any]) -> "SlaveError":
        """Return the same error with its detail converted by ``callback``."""
        return SlaveError(self.address, callback(self.detail))

    def __repr__(self) -> str:
        return f"SlaveError({self.address!r}, {self.detail!r})"


class MasterError(EthercatError):
    """Error detected by the master, usually due to how it is used."""


class ProtocolError(EthercatError):
    """Error in the ethercat communication itself; the communication should be restarted."""


class EthercatTimeout(EthercatError):
    """Too much time elapsed; the operation can be retried."""


def from_packing_error(error: PackingError) -> ProtocolError:
    """Convert a packing failure into a protocol error carrying its message."""
    converted = ProtocolError(error.message)
    converted.__cause__ = error
    return converted