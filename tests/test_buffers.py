import pytest

from canbridge.buffers import FrameBuffers


def test_collects_frames_until_ready():
    buffers = FrameBuffers()
    buffers.reset(7, 3)
    chunks = [b"12345678", b"abcdefgh", b"xy"]
    for index, chunk in enumerate(chunks):
        assert not buffers.ready(7)
        buffers.append(7, chunk)
        assert buffers.get(7) == b"".join(chunks[: index + 1])
    assert buffers.ready(7)


def test_unknown_key_not_ready():
    assert FrameBuffers().ready(42) is False


def test_append_without_reset_raises():
    with pytest.raises(KeyError):
        FrameBuffers().append(1, b"data")


def test_get_without_reset_raises():
    with pytest.raises(KeyError):
        FrameBuffers().get(1)


def test_reset_discards_previous_contents():
    buffers = FrameBuffers()
    buffers.reset(1, 1)
    buffers.append(1, b"old")
    assert buffers.ready(1)
    buffers.reset(1, 2)
    assert buffers.get(1) == b""
    assert not buffers.ready(1)


def test_keys_are_independent():
    buffers = FrameBuffers()
    buffers.reset(1, 1)
    buffers.reset(2, 2)
    buffers.append(1, b"a")
    buffers.append(2, b"b")
    assert buffers.ready(1)
    assert not buffers.ready(2)
    assert buffers.get(1) == b"a"
    assert buffers.get(2) == b"b"


def test_zero_expected_frames_is_ready_at_once():
    buffers = FrameBuffers()
    buffers.reset(3, 0)
    assert buffers.ready(3)
    buffers.append(3, b"z")
    assert not buffers.ready(3)