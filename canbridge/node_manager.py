"""Registry of the CAN nodes known to the bridge and of the topic ids in use."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Protocol

log = logging.getLogger(__name__)

MAX_NODES = 16
"""Node ids fit the 4-bit node id field of a header."""

TOPIC_IDS = 64
"""Topic ids fit the 6-bit topic id field of a control header."""


class NoFreeIdError(LookupError):
    """Raised when every node id or topic id is already taken."""


class _Node(Protocol):
    def start(self) -> None: ...

    def shutdown(self) -> None: ...


class NodeManager:
    """Hands out node ids and topic ids, and keeps the nodes by id.

    ``node_factory(name, node_id)`` builds the node for a registration; the
    manager starts it on registration and shuts it down on deregistration.
    Topic ids are shared by every node and are never given back.
    """

    def __init__(
        self,
        node_factory: Callable[[str, int], _Node],
        max_nodes: int = MAX_NODES,
        topics: int = TOPIC_IDS,
    ) -> None:
        self._factory = node_factory
        self._max_nodes = max_nodes
        self._nodes: dict[int, _Node] = {}
        self._nodes_lock = threading.Lock()
        self._topics = [False] * topics
        self._topics_lock = threading.Lock()

    def get_node(self, node_id: int) -> _Node:
        """The node registered under ``node_id``; KeyError if there is none."""
        with self._nodes_lock:
            try:
                return self._nodes[node_id]
            except KeyError:
                raise KeyError(f"no node registered with id {node_id}") from None

    def register_node(self, name: str, hash_name: int = 0, request_nid: int | None = None) -> int:
        """Create and start a node called ``name`` and return its id.

        A requested id within range is used even if a node holds it; that node
        is shut down and replaced.  Otherwise the lowest free id is taken, and
        NoFreeIdError is raised when there is none.
        """
        with self._nodes_lock:
            if request_nid is not None and 0 <= request_nid < self._max_nodes:
                index = request_nid
            else:
                index = next((i for i in range(self._max_nodes) if i not in self._nodes), None)
                if index is None:
                    raise NoFreeIdError("no available node ids")
            old = self._nodes.pop(index, None)
            if old is not None:
                old.shutdown()
            log.info("registering node %r (hash 0x%x) as id %d", name, hash_name, index)
            node = self._factory(name, index)
            self._nodes[index] = node
            node.start()
        return index

    def deregister_node(self, node_id: int) -> bool:
        """Shut down and forget the node ``node_id``; False if there was none."""
        if not 0 <= node_id < self._max_nodes:
            log.info("attempted to deregister invalid node id %d", node_id)
            return False
        with self._nodes_lock:
            node = self._nodes.pop(node_id, None)
            if node is None:
                log.info("attempted to deregister nonexistent node id %d", node_id)
                return False
            node.shutdown()
        return True

    def first_free_topic(self) -> int:
        """Claim and return the lowest unclaimed topic id."""
        with self._topics_lock:
            for topic_id, claimed in enumerate(self._topics):
                if not claimed:
                    self._topics[topic_id] = True
                    return topic_id
        raise NoFreeIdError("no available topic ids")

    def topics_size(self) -> int:
        """How many topic ids there are."""
        return len(self._topics)

    def is_topic_claimed(self, topic_id: int) -> bool:
        """Whether ``topic_id`` has been handed out."""
        with self._topics_lock:
            return self._topics[topic_id]

    def claim_topic(self, topic_id: int) -> None:
        """Mark ``topic_id`` as handed out."""
        with self._topics_lock:
            self._topics[topic_id] = True