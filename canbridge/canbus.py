"""Raw SocketCAN port: open, write, read and close."""

from __future__ import annotations

import logging
import select
import socket

from .frame import FRAME_SIZE, CanFrame

log = logging.getLogger(__name__)

_RECV_SIZE = 64


class CanBusError(OSError):
    """Raised when the CAN socket cannot be opened, written or read."""


class CanBus:
    """A non-blocking raw CAN socket carrying one frame per datagram."""

    def __init__(self, sock: socket.socket) -> None:
        self._sock = sock

    @classmethod
    def open(cls, port: str) -> CanBus:
        """Open a raw CAN socket bound to the interface called ``port``."""
        af_can = getattr(socket, "AF_CAN", None)
        if af_can is None:
            raise CanBusError("raw CAN sockets are not available on this platform")
        try:
            sock = socket.socket(af_can, socket.SOCK_RAW, socket.CAN_RAW)
        except OSError as exc:
            raise CanBusError(f"could not open a raw CAN socket: {exc}") from exc
        try:
            sock.bind((port,))
            sock.setblocking(False)
        except (OSError, ValueError) as exc:
            sock.close()
            raise CanBusError(f"could not bind CAN port {port!r}: {exc}") from exc
        return cls(sock)

    @property
    def closed(self) -> bool:
        """Whether the socket has been closed."""
        return self._sock.fileno() < 0

    def send(self, frame: CanFrame) -> None:
        """Write one frame; raise CanBusError if it is not written whole."""
        raw = frame.pack()
        try:
            sent = self._sock.send(raw)
        except OSError as exc:
            log.info("Failed to send: %s", exc)
            raise CanBusError(f"could not send CAN frame: {exc}") from exc
        if sent != FRAME_SIZE:
            raise CanBusError(f"only {sent} of {FRAME_SIZE} frame bytes were written")
        log.info("Sent header 0x%x", frame.can_id)

    def read(self, timeout: float | None = 1.0) -> CanFrame | None:
        """Wait up to ``timeout`` seconds for a frame; None if none arrived."""
        if self.closed:
            raise CanBusError("CAN port is closed")
        readable, _, _ = select.select([self._sock], [], [], timeout)
        if not readable:
            return None
        try:
            raw = self._sock.recv(_RECV_SIZE)
        except BlockingIOError:
            return None
        except OSError as exc:
            raise CanBusError(f"could not read CAN frame: {exc}") from exc
        try:
            return CanFrame.unpack(raw)
        except ValueError as exc:
            raise CanBusError(f"malformed CAN frame: {exc}") from exc

    def close(self) -> None:
        """Close the socket."""
        self._sock.close()

    def __enter__(self) -> CanBus:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()