# canbridge

`canbridge` holds the building blocks for connecting devices on a CAN bus to a
topic-based publish/subscribe message layer. Devices register themselves as
nodes, subscribe to or advertise topics, and exchange messages split across
several CAN frames. This package describes the frame header layout, builds the
control frames a device sends, reassembles multi-frame payloads, converts
message bodies between the serialised layout and the compact bus layout, and
keeps track of nodes and topic ids.

It talks to Linux SocketCAN interfaces (real `can0` devices or virtual `vcan0`
ones) and needs nothing beyond the Python standard library.

## Installation

```
pip install canbridge
```

Python 3.10 or newer is required.

## Command

### `canbridge-sender`

A test tool that opens a CAN interface (`vcan0` unless another is given),
sends a node registration for a node named `mynode` and then a series of
interleaved subscribe and advertise requests for six topics:

```
canbridge-sender
canbridge-sender can1
```

It exits with status 1 and a message on standard error if the interface cannot
be opened or a frame cannot be written.

To use it on a machine without CAN hardware, create a virtual interface first
(as root):

```
ip link add dev vcan0 type vcan
ip link set up vcan0
```

## Library use

### Header fields

`canbridge.constants` describes the layout of the 29-bit extended CAN
identifier. Each field is a `Field` that reads itself from a header or returns
a header with itself written in:

```python
from canbridge.constants import Common, Control, ControlMode, Function

header = 0
header = Common.FUNC.insert(header, Function.CONTROL)
header = Control.MODE.insert(header, ControlMode.SUBSCRIBE_TOPIC)
assert Control.MODE.extract(header) == ControlMode.SUBSCRIBE_TOPIC
```

`Common` holds the fields shared by every frame (`MODE`, `PRIORITY`, `FUNC`,
`SEQ`), `RosTopic` the fields of topic data frames and `Control` the fields of
control frames. `Function` and `ControlMode` name the values of the function
and control mode fields.

### Frames and builders

`canbridge.frame.CanFrame` is an immutable CAN frame of at most 8 data bytes,
with `pack()` and `unpack()` for the SocketCAN wire layout and `with_id()` for
a copy under another identifier. `canbridge.builders` creates the control
frames a device sends:

```python
from canbridge.builders import build_register_node_msg, build_topic_control_msgs
from canbridge.constants import ControlMode

register = build_register_node_msg("mynode")       # names up to 8 bytes
frames = build_topic_control_msgs(
    ControlMode.ADVERTISE_TOPIC, 0, 1, "/chatter", "std_msgs/String"
)
```

`canbridge.sender.zip_frames` interleaves several frame sequences into one
list, and `demo_frames()` returns the frames `canbridge-sender` sends.

### Talking to the bus

```python
from canbridge.canbus import CanBus

with CanBus.open("vcan0") as bus:
    bus.send(register)
    frame = bus.read(1.0)     # None if nothing arrived in time
```

Failures raise `canbridge.canbus.CanBusError`.

### Reassembly, conversion and nodes

- `canbridge.buffers.FrameBuffers` collects frame payloads under a key until
  the expected number of frames has arrived.
- `canbridge.introspection.MessageRegistry` learns message definitions
  (`parse_definition` reads them) and converts message bodies between the
  serialised layout and the bus layout with `to_can_buf` and `to_ros_buf`.
- `canbridge.node_manager.NodeManager` hands out node ids and topic ids and
  keeps the nodes built by the factory it is given.
- `canbridge.node.CanNode` is one registered device: it subscribes and
  advertises topics through a backend (an in-process loopback when none is
  given), publishes payloads received from the device, and turns messages on
  its subscriptions into topic data frames handed to its `send` callable.
  `encode_topic_frames` does that splitting on its own.
- `canbridge.callback_queue.CallbackQueue` queues callbacks for later
  invocation, with removal by id and optional waiting.

## What the package does not do

There is no long-running bridge process: nothing here reads frames from the bus
and dispatches them to nodes, answers registration requests on the bus, or
resets the nodes on start-up. Frames produced by `CanNode` are handed to
whatever `send` callable you supply, with no background sending thread. The
default node backend only delivers messages within the same process; a
connection to an external message layer has to be supplied as a backend.

## Running the tests

```
pip install "canbridge[test]"
pytest
```