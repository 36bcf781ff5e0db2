import io

import pytest

from conftest import frame_at
from krec_core import ActuatorState, IMUValues, RecordingReader, build_frame
from krec_core.container import write_stream
from krec_core.protocol import REC_HEADER_LEN
from krec_verify import verify_recording
from krec_verify.logic import content_root


@pytest.fixture
def saved(tmp_path, recording):
    recording.append(frame_at(1_100))
    recording.append(frame_at(1_200, 1, 2))
    recording.finalize(1_300)
    path = tmp_path / "ok.krec"
    recording.save(path)
    return path


def _raw(path, header, frames, end=None):
    sink = io.BytesIO()
    write_stream(sink, header, frames, end)
    path.write_bytes(sink.getvalue())
    return path


def test_pass_report(saved, recording):
    r = verify_recording(saved, require_finalized=True)
    assert r["status"] == "PASS"
    assert r["error_count"] == 0
    assert r["uuid"] == recording.header.uuid
    assert r["frames"] == 2
    assert r["actuators"] == 2
    assert r["finalized"] is True
    assert r["end_timestamp"] == 1_300
    assert r["scan"]["corrupt_records"] == 0
    assert r["warnings"] == []
    assert len(r["content_root"]) == 64


def test_content_root_is_stable(saved):
    assert verify_recording(saved)["content_root"] == verify_recording(saved)["content_root"]
    assert content_root({}) == content_root({})


def test_missing_file(tmp_path):
    r = verify_recording(tmp_path / "absent.krec")
    assert r["status"] == "FAIL"
    assert r["errors"][0]["code"] == "E_FILE_MISSING"


def test_corrupt_frame_reports_offset(saved):
    data = bytearray(saved.read_bytes())
    with RecordingReader.open(saved) as reader:
        offset = reader.scan()[1]["offset"]
    data[offset + REC_HEADER_LEN + 2] ^= 0x01
    saved.write_bytes(bytes(data))

    r = verify_recording(saved)
    assert r["status"] == "FAIL"
    err = r["errors"][0]
    assert err["code"] == "E_DECODE"
    assert err["offset"] == offset
    assert err["message_type"] == "KRecFrame"
    assert r["frames_read"] == 1

    recovered = verify_recording(saved, recover=True)
    assert recovered["status"] == "PASS"
    assert recovered["frames"] == 1
    assert recovered["scan"]["corrupt_records"] == 1
    assert recovered["warnings"]


def test_truncated_file(saved):
    saved.write_bytes(saved.read_bytes()[:-3])
    r = verify_recording(saved)
    assert r["errors"][0]["code"] == "E_TRUNCATED"


def test_unknown_actuator_in_file(tmp_path, header):
    path = _raw(tmp_path / "bad.krec", header, [frame_at(1_100, 7)])
    r = verify_recording(path)
    assert r["status"] == "FAIL"
    err = r["errors"][0]
    assert err["code"] == "E_UNKNOWN_ACTUATOR"
    assert err["actuator_id"] == 7
    assert err["field"] == "actuator_states"
    assert r["frames_read"] == 0


def test_empty_imu_in_file(tmp_path, header):
    frame = build_frame(1_100, [ActuatorState(1)], imu=IMUValues())
    r = verify_recording(_raw(tmp_path / "imu.krec", header, [frame]))
    assert r["errors"][0]["code"] == "E_EMPTY_IMU"


def test_ordering_in_file(tmp_path, header):
    path = _raw(tmp_path / "order.krec", header, [frame_at(1_200), frame_at(1_100)])
    r = verify_recording(path)
    err = r["errors"][0]
    assert err["code"] == "E_ORDERING"
    assert err["expected"] == 1_200
    assert err["got"] == 1_100
    assert r["frames_read"] == 1


def test_require_finalized(tmp_path, header):
    path = _raw(tmp_path / "open.krec", header, [frame_at(1_100)])
    assert verify_recording(path)["status"] == "PASS"
    r = verify_recording(path, require_finalized=True)
    assert r["status"] == "FAIL"
    assert r["errors"][0]["code"] == "E_NOT_FINALIZED"


def test_end_before_last_frame_in_file(tmp_path, header):
    path = _raw(tmp_path / "end.krec", header, [frame_at(1_500)], end=1_200)
    err = verify_recording(path)["errors"][0]
    assert err["code"] == "E_INVALID_END_TIMESTAMP"
    assert err["minimum"] == 1_500
