"""Test sender: registers a node and interleaves several topic registrations."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Iterable, Sequence
from itertools import zip_longest

from .builders import build_register_node_msg, build_topic_control_msgs
from .canbus import CanBus, CanBusError
from .constants import ControlMode
from .frame import CanFrame

DEFAULT_PORT = "vcan0"

_DEMO_TOPICS = [
    (ControlMode.SUBSCRIBE_TOPIC, "/00000000000"),
    (ControlMode.ADVERTISE_TOPIC, "/11111111111"),
    (ControlMode.SUBSCRIBE_TOPIC, "/22222222222"),
    (ControlMode.ADVERTISE_TOPIC, "/33333333333"),
    (ControlMode.SUBSCRIBE_TOPIC, "/44444444444"),
    (ControlMode.ADVERTISE_TOPIC, "/55555555555"),
]


def zip_frames(sequences: Iterable[Sequence[CanFrame]]) -> list[CanFrame]:
    """Interleave the sequences: every first frame, then every second, and so on."""
    missing = object()
    return [
        frame
        for group in zip_longest(*sequences, fillvalue=missing)
        for frame in group
        if frame is not missing
    ]


def demo_frames() -> list[CanFrame]:
    """The frames the sender puts on the bus, in order."""
    sequences = [
        build_topic_control_msgs(mode, 0, hash_value, topic, "std_msgs/String")
        for hash_value, (mode, topic) in enumerate(_DEMO_TOPICS)
    ]
    return [build_register_node_msg("mynode"), *zip_frames(sequences)]


def main(argv: list[str] | None = None) -> int:
    """Send the demo frames over a CAN port."""
    parser = argparse.ArgumentParser(
        prog="canbridge-sender",
        description="Send a node registration and interleaved topic registrations.",
    )
    parser.add_argument("port", nargs="?", default=DEFAULT_PORT, help="CAN interface to use")
    args = parser.parse_args(argv)
    try:
        with CanBus.open(args.port) as bus:
            for frame in demo_frames():
                bus.send(frame)
    except CanBusError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())