"""Classic CAN frames and their SocketCAN wire form."""

from __future__ import annotations

import struct
from dataclasses import dataclass, replace

CAN_EFF_FLAG = 0x80000000
"""Set in ``can_id`` for frames with a 29-bit identifier."""

CAN_RTR_FLAG = 0x40000000
CAN_ERR_FLAG = 0x20000000
CAN_ERR_MASK = 0x1FFFFFFF
"""Selects the 29 identifier bits of ``can_id``."""

CAN_MAX_DLEN = 8
"""Most data bytes a classic frame carries."""

_LAYOUT = struct.Struct("=IB3x8s")
FRAME_SIZE = _LAYOUT.size


@dataclass(frozen=True)
class CanFrame:
    """A CAN frame: the identifier with its flag bits, and up to 8 data bytes."""

    can_id: int
    data: bytes = b""

    def __post_init__(self) -> None:
        data = bytes(self.data)
        if len(data) > CAN_MAX_DLEN:
            raise ValueError(f"CAN frame data is {len(data)} bytes, at most {CAN_MAX_DLEN} allowed")
        if not 0 <= self.can_id <= 0xFFFFFFFF:
            raise ValueError(f"CAN id {self.can_id:#x} does not fit in 32 bits")
        object.__setattr__(self, "data", data)

    @property
    def dlc(self) -> int:
        """Number of data bytes."""
        return len(self.data)

    @property
    def header(self) -> int:
        """The identifier without the flag bits."""
        return self.can_id & CAN_ERR_MASK

    def pack(self) -> bytes:
        """Return the frame in the raw socket layout."""
        return _LAYOUT.pack(self.can_id, self.dlc, self.data.ljust(CAN_MAX_DLEN, b"\0"))

    @classmethod
    def unpack(cls, raw: bytes) -> CanFrame:
        """Build a frame from its raw socket layout."""
        if len(raw) != FRAME_SIZE:
            raise ValueError(f"raw CAN frame must be {FRAME_SIZE} bytes, got {len(raw)}")
        can_id, dlc, data = _LAYOUT.unpack(raw)
        if dlc > CAN_MAX_DLEN:
            raise ValueError(f"CAN frame length {dlc} exceeds {CAN_MAX_DLEN}")
        return cls(can_id, data[:dlc])

    def with_id(self, can_id: int) -> CanFrame:
        """Return a copy of the frame with a different identifier."""
        return replace(self, can_id=can_id)