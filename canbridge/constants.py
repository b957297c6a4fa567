"""Bit layout of the 29-bit extended CAN identifier used on the bus.

Every frame header starts with the common fields (mode, priority,
function and sequence).  The remaining bits are interpreted according to
the function: topic data frames use the :class:`RosTopic` layout, control
frames use the :class:`Control` layout.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

_U32 = 0xFFFFFFFF


@dataclass(frozen=True)
class Field:
    """A run of ``width`` bits starting at bit ``shift`` of a header."""

    shift: int
    width: int

    @property
    def mask(self) -> int:
        """The field's bits, in place within the header."""
        return ((1 << self.width) - 1) << self.shift

    def extract(self, header: int) -> int:
        """Return the field's value read from ``header``."""
        return (header & self.mask) >> self.shift

    def insert(self, header: int, value: int) -> int:
        """Return ``header`` with the field replaced by ``value``.

        Bits of ``value`` that do not fit in the field are dropped.
        """
        return ((header & ~self.mask) | ((value << self.shift) & self.mask)) & _U32


class Function(IntEnum):
    """What a frame carries, held in the common ``FUNC`` field."""

    ROS_TOPIC = 0
    ROS_SERVICE = 1
    CONTROL = 2
    RESERVED = 3


class ControlMode(IntEnum):
    """Kinds of control frame, held in the ``Control.MODE`` field."""

    REGISTER_NODE = 0
    DEREGISTER_NODE = 1
    SUBSCRIBE_TOPIC = 2
    UNREGISTER_TOPIC = 3
    ADVERTISE_TOPIC = 4
    UNREGISTER_PUBLISHER = 5
    ADVERTISE_SERVICE = 6
    UNREGISTER_SERVICE = 7
    PARAMETERS = 8
    CHANNEL_CONTROL = 9
    EXTENDED = 10


class Common:
    """Fields present in every frame header."""

    MODE = Field(shift=0, width=1)
    PRIORITY = Field(shift=1, width=2)
    FUNC = Field(shift=3, width=2)
    SEQ = Field(shift=5, width=3)


class RosTopic:
    """Fields of a topic data frame header."""

    MSG_NUM = Field(shift=8, width=2)
    TOPIC_ID = Field(shift=10, width=7)
    LEN = Field(shift=17, width=8)
    NID = Field(shift=25, width=4)


class Control:
    """Fields of a control frame header; which apply depends on the mode."""

    MODE = Field(shift=8, width=4)

    # register node
    MODE0_STEP = Field(shift=12, width=1)
    MODE0_HASH = Field(shift=13, width=8)

    # deregister node, topic and publisher modes
    NID = Field(shift=12, width=4)

    # subscribe and advertise
    STEP = Field(shift=16, width=1)
    HASH = Field(shift=17, width=3)
    SEQ = Field(shift=20, width=4)
    LEN = Field(shift=24, width=4)

    # unregister topic and publisher
    TOPIC_ID = Field(shift=7, width=6)

    # channel control
    MODE9_SUB_MODE = Field(shift=12, width=4)
    MODE9_STEP = Field(shift=16, width=1)