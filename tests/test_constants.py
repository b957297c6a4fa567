import pytest

from canbridge.constants import Common, Control, ControlMode, Field, Function, RosTopic

ALL_ONES = 0xFFFFFFFF


@pytest.mark.parametrize(
    "field, expected",
    [
        (Common.MODE, 0x1),
        (Common.PRIORITY, 0x3 << 1),
        (Common.FUNC, 0x3 << 3),
        (Common.SEQ, 0x7 << 5),
        (RosTopic.TOPIC_ID, 0x7F << 10),
        (RosTopic.LEN, 0xFF << 17),
        (Control.MODE0_HASH, 0xFF << 13),
        (Control.TOPIC_ID, 0x3F << 7),
    ],
)
def test_masks_match_documented_layout(field, expected):
    assert field.insert(0, ALL_ONES) == expected
    assert field.insert(ALL_ONES, 0) == ALL_ONES & ~expected
    assert field.mask == expected


def test_enumerations_land_in_their_fields():
    assert Common.FUNC.insert(0, Function.CONTROL) == 2 << 3
    assert Control.MODE.insert(0, ControlMode.SUBSCRIBE_TOPIC) == 2 << 8
    assert Control.MODE.insert(0, ControlMode.ADVERTISE_TOPIC) == 4 << 8
    assert Control.MODE.insert(0, ControlMode.CHANNEL_CONTROL) == 9 << 8
    assert Control.MODE.insert(0, ControlMode.EXTENDED) == 10 << 8
    assert Control.MODE.extract(10 << 8) == ControlMode.EXTENDED


@pytest.mark.parametrize(
    "field",
    [Common.MODE, Common.PRIORITY, Common.FUNC, Common.SEQ,
     RosTopic.MSG_NUM, RosTopic.TOPIC_ID, RosTopic.LEN, RosTopic.NID,
     Control.MODE, Control.NID, Control.STEP, Control.HASH, Control.SEQ, Control.LEN],
)
def test_insert_extract_round_trip(field):
    for value in range(1 << field.width):
        header = field.insert(0, value)
        assert field.extract(header) == value
        assert header & ~field.mask == 0


def test_insert_leaves_other_bits_alone():
    header = 0xFFFFFFFF
    updated = Common.FUNC.insert(header, 0)
    assert updated | Common.FUNC.mask == header
    assert Common.FUNC.extract(updated) == 0
    assert Common.SEQ.extract(updated) == Common.SEQ.extract(header)


def test_insert_drops_overflowing_bits():
    field = Field(shift=4, width=2)
    header = field.insert(0, 0b111)
    assert field.extract(header) == 0b11
    assert header & ~field.mask == 0


def test_insert_replaces_previous_value():
    header = Control.MODE.insert(0, ControlMode.EXTENDED)
    header = Control.MODE.insert(header, ControlMode.ADVERTISE_TOPIC)
    assert Control.MODE.extract(header) == ControlMode.ADVERTISE_TOPIC


def test_fields_combine_independently():
    header = Common.MODE.insert(0, 1)
    header = Common.FUNC.insert(header, Function.CONTROL)
    header = Control.MODE.insert(header, ControlMode.SUBSCRIBE_TOPIC)
    header = Control.NID.insert(header, 5)
    assert Common.MODE.extract(header) == 1
    assert Common.FUNC.extract(header) == Function.CONTROL
    assert Control.MODE.extract(header) == ControlMode.SUBSCRIBE_TOPIC
    assert Control.NID.extract(header) == 5
    assert Common.PRIORITY.extract(header) == 0