"""A CAN device seen as a node: its topics, and traffic in both directions."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Protocol

from .constants import Common, Function, RosTopic
from .frame import CAN_EFF_FLAG, CAN_MAX_DLEN, CanFrame
from .introspection import MessageRegistry
from .node_manager import NodeManager

log = logging.getLogger(__name__)

_SEQ_OVERFLOW = 0b111


class _Publisher(Protocol):
    def publish(self, data: bytes) -> None: ...


class _Backend(Protocol):
    def subscribe(
        self, topic: str, topic_type: str, callback: Callable[[bytes], None]
    ) -> Callable[[], None]: ...

    def advertise(self, topic: str, topic_type: str, definition: str) -> _Publisher | None: ...


class _LoopbackPublisher:
    def __init__(self, backend: _Loopback, topic: str) -> None:
        self._backend = backend
        self._topic = topic

    def publish(self, data: bytes) -> None:
        self._backend.deliver(self._topic, data)


class _Loopback:
    """In-process topic bus: what is published is handed to local subscribers."""

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Callable[[bytes], None]]] = {}
        self._lock = threading.Lock()

    def subscribe(
        self, topic: str, topic_type: str, callback: Callable[[bytes], None]
    ) -> Callable[[], None]:
        with self._lock:
            self._subscribers.setdefault(topic, []).append(callback)

        def cancel() -> None:
            with self._lock:
                callbacks = self._subscribers.get(topic, [])
                if callback in callbacks:
                    callbacks.remove(callback)

        return cancel

    def advertise(self, topic: str, topic_type: str, definition: str) -> _LoopbackPublisher:
        return _LoopbackPublisher(self, topic)

    def deliver(self, topic: str, data: bytes) -> None:
        with self._lock:
            callbacks = list(self._subscribers.get(topic, []))
        for callback in callbacks:
            callback(data)


def encode_topic_frames(node_id: int, topic_id: int, msg_num: int, buf: bytes) -> list[CanFrame]:
    """Split a CAN-layout message into the topic data frames that carry it.

    Frames 0 to 6 carry their index in the sequence field and the frame
    count in the length field; from frame 7 on the sequence field holds 7
    and the length field holds the frame's index instead.
    """
    header = CAN_EFF_FLAG
    header = Common.MODE.insert(header, 1)
    header = Common.PRIORITY.insert(header, 0)
    header = Common.FUNC.insert(header, Function.ROS_TOPIC)
    header = RosTopic.TOPIC_ID.insert(header, topic_id)
    header = RosTopic.NID.insert(header, node_id)
    header = RosTopic.MSG_NUM.insert(header, msg_num)

    chunks = [buf[offset:offset + CAN_MAX_DLEN] for offset in range(0, len(buf), CAN_MAX_DLEN)]
    frames = []
    for index, chunk in enumerate(chunks):
        if index >= _SEQ_OVERFLOW:
            can_id = Common.SEQ.insert(header, _SEQ_OVERFLOW)
            can_id = RosTopic.LEN.insert(can_id, index)
        else:
            can_id = Common.SEQ.insert(header, index)
            can_id = RosTopic.LEN.insert(can_id, len(chunks))
        frames.append(CanFrame(can_id, chunk))
    return frames


class CanNode:
    """One CAN device's node on the ROS side.

    ``message_types`` maps each message type to its full definition.
    ``send`` is given every frame bound for the CAN bus.  ``backend`` is the
    ROS side the node subscribes and publishes through; without one the node
    uses an in-process loopback.
    """

    def __init__(
        self,
        name: str,
        node_id: int,
        manager: NodeManager,
        registry: MessageRegistry,
        send: Callable[[CanFrame], Any],
        message_types: Mapping[str, str],
        backend: _Backend | None = None,
    ) -> None:
        self.name = f"can_node/{name}"
        self.node_id = node_id
        self.started = False
        self._manager = manager
        self._registry = registry
        self._send = send
        self._message_types = message_types
        self._backend: _Backend = backend if backend is not None else _Loopback()
        self._subscriptions: dict[int, tuple[str, Callable[[], None]]] = {}
        self._publishers: dict[int, tuple[str, _Publisher]] = {}
        self._msg_num = 0
        self._lock = threading.Lock()
        log.info("CAN node name: %s, id %d", self.name, node_id)

    def start(self) -> None:
        """Mark the node as running."""
        self.started = True
        log.info("Started node %s", self.name)

    def shutdown(self) -> None:
        """Drop every subscription and publisher; calling it twice does nothing more."""
        with self._lock:
            subscriptions = list(self._subscriptions.values())
            self._subscriptions.clear()
            self._publishers.clear()
            was_started = self.started
            self.started = False
        for _, cancel in subscriptions:
            cancel()
        if was_started:
            log.info("Shut down node %s", self.name)

    def _definition(self, topic_type: str) -> str:
        try:
            definition = self._message_types[topic_type]
        except KeyError:
            raise KeyError(f"unknown message type {topic_type!r}") from None
        self._registry.register_message(topic_type, definition)
        return definition

    def _topic_id(self, request_tid: int | None) -> int:
        manager = self._manager
        if (
            request_tid is not None
            and 0 <= request_tid < manager.topics_size()
            and not manager.is_topic_claimed(request_tid)
        ):
            manager.claim_topic(request_tid)
            return request_tid
        return manager.first_free_topic()

    def register_subscriber(self, topic: str, topic_type: str, request_tid: int | None = None) -> int:
        """Subscribe to ``topic`` on behalf of the device and return its topic id.

        Messages arriving on the topic are sent to the device as topic frames.
        """
        log.info("node id %d subscribing to topic %r of type %r", self.node_id, topic, topic_type)
        self._definition(topic_type)
        topic_id = self._topic_id(request_tid)
        log.info("got topic_id %d", topic_id)

        def callback(ros_buf: bytes) -> None:
            self.on_ros_message(topic_id, ros_buf)

        cancel = self._backend.subscribe(topic, topic_type, callback)
        with self._lock:
            self._subscriptions[topic_id] = (topic_type, cancel)
        return topic_id

    def advertise_topic(self, topic: str, topic_type: str, request_tid: int | None = None) -> int:
        """Advertise ``topic`` on behalf of the device and return its topic id."""
        log.info("node id %d advertising topic %r of type %r", self.node_id, topic, topic_type)
        definition = self._definition(topic_type)
        topic_id = self._topic_id(request_tid)
        log.info("got topic_id %d", topic_id)
        publisher = self._backend.advertise(topic, topic_type, definition)
        if publisher is None:
            raise RuntimeError(f"could not advertise topic {topic!r}")
        with self._lock:
            self._publishers[topic_id] = (topic_type, publisher)
        return topic_id

    def unregister_subscriber(self, topic_id: int) -> bool:
        """Stop the subscription with ``topic_id``; False if there was none."""
        log.info("node id %d unsubscribing from topic id %d", self.node_id, topic_id)
        with self._lock:
            entry = self._subscriptions.pop(topic_id, None)
        if entry is None:
            return False
        entry[1]()
        return True

    def unregister_publisher(self, topic_id: int) -> bool:
        """Drop the publisher with ``topic_id``; False if there was none."""
        log.info("node id %d unadvertising topic id %d", self.node_id, topic_id)
        with self._lock:
            return self._publishers.pop(topic_id, None) is not None

    def publish(self, topic_id: int, can_buf: bytes) -> None:
        """Publish a message received from the device on the topic ``topic_id``."""
        with self._lock:
            try:
                topic_type, publisher = self._publishers[topic_id]
            except KeyError:
                raise KeyError(f"node {self.node_id} has no publisher for topic id {topic_id}") from None
        publisher.publish(self._registry.to_ros_buf(topic_type, can_buf))
        log.info("node id %d published message on topic id %d", self.node_id, topic_id)

    def on_ros_message(self, topic_id: int, ros_buf: bytes) -> None:
        """Send a message from the subscription ``topic_id`` to the device."""
        with self._lock:
            try:
                topic_type = self._subscriptions[topic_id][0]
            except KeyError:
                raise KeyError(f"node {self.node_id} has no subscription with topic id {topic_id}") from None
            self._msg_num = (self._msg_num + 1) % 3
            msg_num = self._msg_num
        buf = self._registry.to_can_buf(topic_type, ros_buf)
        frames: Iterable[CanFrame] = encode_topic_frames(self.node_id, topic_id, msg_num, buf)
        for frame in frames:
            self._send(frame)