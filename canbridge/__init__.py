"""CAN frame headers, control frame builders, reassembly, message conversion and node bookkeeping."""

__version__ = "0.1.0"

__all__ = [
    "buffers",
    "builders",
    "callback_queue",
    "canbus",
    "constants",
    "frame",
    "introspection",
    "node",
    "node_manager",
    "sender",
]