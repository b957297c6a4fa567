"""Reassembly buffers for data spread over several CAN frames."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

log = logging.getLogger(__name__)


@dataclass
class _Buffer:
    expected_frames: int = 0
    received_frames: int = 0
    data: bytearray = field(default_factory=bytearray)


class FrameBuffers:
    """Byte buffers keyed by an integer, each filled frame by frame."""

    def __init__(self) -> None:
        self._buffers: dict[int, _Buffer] = {}

    def reset(self, key: int, expected_frames: int) -> None:
        """Start a fresh buffer for ``key`` that expects ``expected_frames`` frames."""
        log.info("CAN buffers: resetting for key 0x%x", key)
        self._buffers[key] = _Buffer(expected_frames=expected_frames & 0xFF)

    def append(self, key: int, data: bytes) -> None:
        """Add one frame's data to the buffer for ``key``.

        Raises KeyError if the buffer has not been reset first.
        """
        buffer = self._buffers[key]
        log.info("CAN buffers: appending %u bytes to key 0x%x", len(data), key)
        buffer.data.extend(data)
        buffer.received_frames += 1

    def ready(self, key: int) -> bool:
        """Whether every expected frame for ``key`` has arrived."""
        buffer = self._buffers.get(key)
        return buffer is not None and buffer.expected_frames == buffer.received_frames

    def get(self, key: int) -> bytes:
        """The bytes collected so far for ``key``; KeyError if there is no buffer."""
        return bytes(self._buffers[key].data)