"""Conversion between ROS message serialisation and the CAN buffer layout.

In the CAN layout strings carry a 16-bit length and a terminating zero byte
instead of a 32-bit length, and every array is preceded by the 16-bit byte
length of its contents instead of a 32-bit element count.
"""

from __future__ import annotations

import logging
import re
import struct
import threading
from dataclasses import dataclass

log = logging.getLogger(__name__)

STRING = "string"

BUILTIN_SIZES = {
    "bool": 1,
    "int8": 1,
    "uint8": 1,
    "byte": 1,
    "char": 1,
    "int16": 2,
    "uint16": 2,
    "int32": 4,
    "uint32": 4,
    "int64": 8,
    "uint64": 8,
    "float32": 4,
    "float64": 8,
    "time": 8,
    "duration": 8,
}

_U16 = struct.Struct("<H")
_U32 = struct.Struct("<I")

_SEPARATOR = re.compile(r"^=+$")
_MSG_HEADER = re.compile(r"^MSG:\s*(\S+)")
_TYPE = re.compile(r"^([A-Za-z_][\w/]*)(?:\[(\d*)\])?$")
_NAME = re.compile(r"^\w+$")


@dataclass(frozen=True)
class MessageField:
    """One field of a message type.

    ``array_size`` is the fixed length of an array field, or None for a
    variable-length array.
    """

    name: str
    type_name: str
    is_array: bool = False
    array_size: int | None = None

    @property
    def element(self) -> MessageField:
        """The field as a single element of its base type."""
        return MessageField(self.name, self.type_name)


def _package(datatype: str) -> str:
    return datatype.split("/", 1)[0] if "/" in datatype else ""


def _resolve(base: str, package: str) -> str:
    if base in BUILTIN_SIZES or base == STRING:
        return base
    if base == "Header":
        return "std_msgs/Header"
    if "/" in base or not package:
        return base
    return f"{package}/{base}"


def parse_definition(datatype: str, definition: str) -> dict[str, list[MessageField]]:
    """Parse a full message definition into the fields of every type it holds.

    The definition of ``datatype`` comes first; the types it depends on follow,
    each after a separator line and a ``MSG: package/Type`` line.  Constants
    are left out, as they are not part of serialised messages.
    """
    current = datatype
    sections: dict[str, list[MessageField]] = {current: []}
    for raw in definition.splitlines():
        line = raw.strip()
        if _SEPARATOR.match(line):
            continue
        header = _MSG_HEADER.match(line)
        if header:
            current = header.group(1)
            sections.setdefault(current, [])
            continue
        body = line.split("#", 1)[0].strip()
        if not body:
            continue
        parts = body.split(None, 1)
        if len(parts) != 2:
            raise ValueError(f"malformed field line in {current}: {raw!r}")
        type_token, rest = parts
        if "=" in rest:
            continue
        name = rest.strip()
        type_match = _TYPE.match(type_token)
        if not type_match or not _NAME.match(name):
            raise ValueError(f"malformed field line in {current}: {raw!r}")
        base, size = type_match.groups()
        type_name = _resolve(base, _package(current))
        if size is None:
            field = MessageField(name, type_name)
        else:
            field = MessageField(name, type_name, True, int(size) if size else None)
        sections[current].append(field)
    return sections


class _Reader:
    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self.position = 0

    @property
    def exhausted(self) -> bool:
        return self.position >= len(self._data)

    def take(self, count: int) -> bytes:
        end = self.position + count
        if end > len(self._data):
            raise ValueError(f"message buffer ends after {len(self._data)} bytes, {end} needed")
        chunk = self._data[self.position:end]
        self.position = end
        return chunk

    def uint16(self) -> int:
        return _U16.unpack(self.take(_U16.size))[0]

    def uint32(self) -> int:
        return _U32.unpack(self.take(_U32.size))[0]


def _length_prefixed(body: bytes) -> bytes:
    if len(body) > 0xFFFF:
        raise ValueError(f"{len(body)} bytes do not fit a 16-bit length")
    return _U16.pack(len(body)) + body


class MessageRegistry:
    """Message types known by their fields, and conversions that use them."""

    def __init__(self) -> None:
        self._fields: dict[str, list[MessageField]] = {}
        self._lock = threading.Lock()

    def register_message(self, datatype: str, definition: str) -> None:
        """Learn ``datatype`` and every type its definition holds.

        A type already known with fields keeps the fields it had.
        """
        parsed = parse_definition(datatype, definition)
        with self._lock:
            for type_name, fields in parsed.items():
                if not self._fields.get(type_name):
                    log.info("NEW: %s", type_name)
                    self._fields[type_name] = fields

    def fields(self, datatype: str) -> list[MessageField]:
        """The fields of a registered type; KeyError if it is unknown."""
        with self._lock:
            try:
                return list(self._fields[datatype])
            except KeyError:
                raise KeyError(f"message type {datatype!r} is not registered") from None

    def to_can_buf(self, datatype: str, data: bytes) -> bytes:
        """Convert a ROS serialised message of ``datatype`` to the CAN layout."""
        return self._to_can(MessageField("x", datatype), _Reader(data))

    def to_ros_buf(self, datatype: str, data: bytes) -> bytes:
        """Convert a CAN layout message of ``datatype`` to ROS serialisation."""
        return self._to_ros(MessageField("x", datatype), _Reader(data))

    def _to_can(self, field: MessageField, reader: _Reader) -> bytes:
        if field.is_array:
            count = reader.uint32() if field.array_size is None else field.array_size
            element = field.element
            return _length_prefixed(b"".join(self._to_can(element, reader) for _ in range(count)))
        if field.type_name == STRING:
            length = reader.uint32()
            return _length_prefixed(reader.take(length) + b"\0")
        size = BUILTIN_SIZES.get(field.type_name)
        if size is not None:
            return reader.take(size)
        return b"".join(self._to_can(sub, reader) for sub in self.fields(field.type_name))

    def _to_ros(self, field: MessageField, reader: _Reader) -> bytes:
        if field.is_array:
            items = _Reader(reader.take(reader.uint16()))
            element = field.element
            parts = []
            while not items.exhausted:
                start = items.position
                parts.append(self._to_ros(element, items))
                if items.position == start:
                    raise ValueError(f"array elements of {field.type_name} hold no data")
            body = b"".join(parts)
            return body if field.array_size is not None else _U32.pack(len(parts)) + body
        if field.type_name == STRING:
            content = reader.take(reader.uint16())
            if not content:
                raise ValueError("string field is missing its terminating zero byte")
            text = content[:-1]
            return _U32.pack(len(text)) + text
        size = BUILTIN_SIZES.get(field.type_name)
        if size is not None:
            return reader.take(size)
        return b"".join(self._to_ros(sub, reader) for sub in self.fields(field.type_name))