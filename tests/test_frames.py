import pytest

from krec_core import (
    ActuatorCommand,
    ActuatorState,
    DecodeError,
    DuplicateActuatorError,
    EmptyImuError,
    IMUQuaternion,
    IMUValues,
    KRecFrame,
    UnknownActuatorError,
    ValidationError,
    Vec3,
    build_frame,
    decode_frame,
    encode_frame,
    validate_frame,
)


def _full_frame() -> KRecFrame:
    return build_frame(
        1_500,
        [ActuatorState(1, online=True, position=30.0, voltage=24.0), ActuatorState(2)],
        [ActuatorCommand(2, position=1.0, velocity=0.0, torque=0.5)],
        IMUValues(accel=Vec3(0, 0, 9.81), quaternion=IMUQuaternion()),
        video_timestamp=1_490,
        video_frame_number=12,
        inference_step=3,
    )


def test_frame_round_trip(header):
    frame = _full_frame()
    validate_frame(frame, header.registry)
    assert decode_frame(encode_frame(frame)) == frame


def test_empty_frame_round_trip():
    frame = build_frame(0)
    decoded = decode_frame(encode_frame(frame))
    assert decoded == frame
    assert decoded.imu_values is None
    assert decoded.actuator_states == ()


def test_frame_lists_become_tuples():
    frame = build_frame(5, [ActuatorState(1)])
    assert isinstance(frame.actuator_states, tuple)
    with pytest.raises(AttributeError):
        frame.real_timestamp = 6


def test_frame_helpers():
    frame = _full_frame()
    assert frame.has_imu_values()
    assert frame.has_actuator_commands()
    assert frame.actuator_state_count() == 2
    assert frame.state_for(1).position == 30.0
    assert frame.command_for(1) is None
    assert frame.command_for(2).torque == 0.5
    assert frame.has_video


def test_unknown_state_actuator(header):
    frame = build_frame(1, [ActuatorState(1), ActuatorState(9)])
    with pytest.raises(UnknownActuatorError) as excinfo:
        validate_frame(frame, header.registry)
    assert excinfo.value.actuator_id == 9
    assert excinfo.value.field == "actuator_states"


def test_unknown_command_actuator(header):
    frame = build_frame(1, commands=[ActuatorCommand(4, 0.0, 0.0, 0.0)])
    with pytest.raises(UnknownActuatorError) as excinfo:
        validate_frame(frame, header.registry)
    assert excinfo.value.actuator_id == 4
    assert excinfo.value.field == "actuator_commands"


def test_states_and_commands_may_cover_disjoint_actuators(header):
    frame = build_frame(1, [ActuatorState(1)], [ActuatorCommand(2, 0.0, 0.0, 0.0)])
    validate_frame(frame, header.registry)


def test_duplicate_state_actuator(header):
    frame = build_frame(1, [ActuatorState(1), ActuatorState(1, online=True)])
    with pytest.raises(DuplicateActuatorError) as excinfo:
        validate_frame(frame, header.registry)
    assert excinfo.value.actuator_id == 1


def test_duplicate_command_actuator(header):
    cmd = ActuatorCommand(2, 0.0, 0.0, 0.0)
    frame = build_frame(1, [ActuatorState(2)], [cmd, cmd])
    with pytest.raises(DuplicateActuatorError) as excinfo:
        validate_frame(frame, header.registry)
    assert excinfo.value.field == "actuator_commands"


def test_unknown_id_checked_before_duplicates(header):
    frame = build_frame(1, [ActuatorState(1), ActuatorState(1), ActuatorState(5)])
    with pytest.raises(UnknownActuatorError):
        validate_frame(frame, header.registry)


def test_empty_imu_rejected(header):
    # Scenario C
    frame = build_frame(1, [ActuatorState(1)], imu=IMUValues())
    with pytest.raises(EmptyImuError):
        validate_frame(frame, header.registry)


def test_empty_imu_stays_present_on_the_wire():
    frame = build_frame(1, imu=IMUValues())
    decoded = decode_frame(encode_frame(frame))
    assert decoded.imu_values == IMUValues()


def test_frame_rejects_wrong_member_types():
    with pytest.raises(ValidationError):
        build_frame(1, [ActuatorCommand(1, 0.0, 0.0, 0.0)])
    with pytest.raises(ValidationError):
        build_frame(-1)


def test_unknown_frame_field_ignored():
    frame = _full_frame()
    assert decode_frame(encode_frame(frame) + b"\x98\x06\x01") == frame


def test_truncated_frame_bytes():
    data = encode_frame(_full_frame())
    with pytest.raises(DecodeError) as excinfo:
        decode_frame(data[:-3], offset=100)
    assert excinfo.value.offset == 100
    assert excinfo.value.message_type == "KRecFrame"
