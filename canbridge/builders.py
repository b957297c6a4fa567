"""Builders for the control frames a CAN device sends to the bridge."""

from __future__ import annotations

from .constants import Common, Control, ControlMode, Function
from .frame import CAN_EFF_FLAG, CAN_MAX_DLEN, CanFrame


def _as_bytes(text: str | bytes) -> bytes:
    return text.encode() if isinstance(text, str) else bytes(text)


def common_msg(mode_bit: int = 1, priority: int = 0) -> CanFrame:
    """Return an empty extended frame with the mode and priority fields set."""
    can_id = Common.MODE.insert(CAN_EFF_FLAG, mode_bit)
    can_id = Common.PRIORITY.insert(can_id, priority)
    return CanFrame(can_id)


def build_register_node_msg(node_name: str | bytes) -> CanFrame:
    """Return the frame asking the bridge to register a node called ``node_name``."""
    name = _as_bytes(node_name)
    if len(name) > CAN_MAX_DLEN:
        raise ValueError("Node names greater than 8 bytes is not yet supported")
    can_id = Common.FUNC.insert(common_msg().can_id, Function.CONTROL)
    can_id = Control.MODE.insert(can_id, ControlMode.REGISTER_NODE)
    return CanFrame(can_id, name)


def build_topic_control_msgs(
    mode: int,
    node_id: int,
    hash_value: int,
    topic_name: str | bytes,
    msg_type: str | bytes,
) -> list[CanFrame]:
    """Return the frames that subscribe to or advertise a topic.

    The payload is the topic name and the message type, each followed by a
    zero byte, split into 8-byte frames numbered by the control sequence field.
    """
    data = _as_bytes(topic_name) + b"\0" + _as_bytes(msg_type) + b"\0"
    chunks = [data[offset:offset + CAN_MAX_DLEN] for offset in range(0, len(data), CAN_MAX_DLEN)]

    can_id = Common.FUNC.insert(common_msg().can_id, Function.CONTROL)
    can_id = Control.MODE.insert(can_id, mode)
    can_id = Control.NID.insert(can_id, node_id)
    can_id = Control.HASH.insert(can_id, hash_value)
    can_id = Control.LEN.insert(can_id, len(chunks))

    return [CanFrame(Control.SEQ.insert(can_id, seq), chunk) for seq, chunk in enumerate(chunks)]