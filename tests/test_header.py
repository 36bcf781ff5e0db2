import pytest

from krec_core import (
    ActuatorConfig,
    DuplicateActuatorConfigError,
    KRecHeader,
    ValidationError,
    build_header,
    decode_header,
    encode_header,
    revise_header,
)
from krec_core.schema import KRecHeaderMessage


def test_duplicate_config_id_rejected():
    # Scenario D
    with pytest.raises(DuplicateActuatorConfigError) as excinfo:
        build_header("t", "p", "s", [ActuatorConfig(1, name="hip"), ActuatorConfig(1, name="knee")], 0)
    assert excinfo.value.actuator_id == 1


def test_uuid_assigned_once(header):
    assert len(header.uuid) == 36
    revised = revise_header(header, task="run")
    assert revised.uuid == header.uuid
    assert revised.task == "run"


def test_explicit_uuid_kept():
    h = build_header("t", "p", "s", [], 0, uuid="rec-1")
    assert h.uuid == "rec-1"


def test_end_timestamp_unset_until_finalize(header):
    assert header.end_timestamp is None
    assert not header.is_finalized


def test_registry_snapshot(header):
    assert set(header.registry) == {1, 2}
    assert header.registry[1].name == "hip"
    assert 3 not in header.registry


def test_revise_cannot_touch_identity(header):
    with pytest.raises(ValidationError):
        revise_header(header, uuid="other")
    with pytest.raises(ValidationError):
        revise_header(header, end_timestamp=5)


def test_revise_revalidates_configs(header):
    with pytest.raises(DuplicateActuatorConfigError):
        revise_header(header, actuator_configs=[ActuatorConfig(4), ActuatorConfig(4)])


def test_header_round_trip(header):
    decoded = decode_header(encode_header(header))
    assert decoded == header
    assert decoded.end_timestamp is None
    assert decoded.registry[1].kd == 0.0
    assert decoded.registry[2].kp is None


def test_zero_end_timestamp_is_not_unset():
    h = KRecHeader(uuid="u", task="", robot_platform="", robot_serial="", start_timestamp=0, end_timestamp=0)
    decoded = decode_header(encode_header(h))
    assert decoded.end_timestamp == 0
    assert decoded.is_finalized


def test_end_before_start_rejected():
    with pytest.raises(ValidationError):
        KRecHeader(uuid="u", task="", robot_platform="", robot_serial="", start_timestamp=10, end_timestamp=5)


def test_decode_enforces_config_uniqueness():
    msg = KRecHeaderMessage(uuid="u", start_timestamp=1)
    msg.actuator_configs.add(actuator_id=3)
    msg.actuator_configs.add(actuator_id=3)
    with pytest.raises(DuplicateActuatorConfigError):
        decode_header(msg.SerializeToString())


def test_start_timestamp_must_be_uint64():
    with pytest.raises(ValidationError):
        build_header("t", "p", "s", [], -5)
    with pytest.raises(ValidationError):
        build_header("t", "p", "s", [], None)
