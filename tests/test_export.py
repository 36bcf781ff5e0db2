import json

import pandas as pd
import pyarrow.parquet as pq
import pytest

from krec_core import ActuatorCommand, ActuatorState, IMUValues, Vec3, build_frame
from krec_export import actuator_table, export_recording, header_dict, imu_table


@pytest.fixture
def filled(recording):
    recording.append(
        build_frame(
            1_100,
            [ActuatorState(1, online=True, position=10.0), ActuatorState(2, online=False)],
            [ActuatorCommand(1, position=11.0, velocity=0.0, torque=0.5)],
            IMUValues(accel=Vec3(0.0, 0.0, 9.81)),
            video_timestamp=1_090,
            video_frame_number=1,
        )
    )
    recording.append(build_frame(1_200, [ActuatorState(1, online=True, position=12.0)]))
    recording.finalize(1_300)
    return recording


def test_actuator_table(filled):
    df = actuator_table(filled)
    assert len(df) == 4
    assert list(df["kind"]) == ["state", "state", "command", "state"]
    assert list(df["frame"]) == [0, 0, 0, 1]

    knee = df[(df["kind"] == "state") & (df["actuator_id"] == 2)].iloc[0]
    assert pd.isna(knee["position"])
    assert knee["online"] == False  # noqa: E712

    cmd = df[df["kind"] == "command"].iloc[0]
    assert cmd["position"] == 11.0
    assert cmd["torque"] == 0.5


def test_imu_table_skips_frames_without_imu(filled):
    df = imu_table(filled)
    assert len(df) == 1
    row = df.iloc[0]
    assert row["accel_z"] == 9.81
    assert pd.isna(row["gyro_x"])
    assert pd.isna(row["quat_w"])


def test_header_dict_omits_absent_config_fields(filled):
    d = header_dict(filled.header)
    assert d["end_timestamp"] == 1_300
    hip, knee = d["actuator_configs"]
    assert hip == {"actuator_id": 1, "kp": 40.0, "kd": 0.0, "name": "hip"}
    assert knee == {"actuator_id": 2, "name": "knee"}


def test_export_recording(tmp_path, filled):
    out = tmp_path / "export"
    summary = export_recording(filled, out)
    assert summary == {
        "frames": 2,
        "actuator_rows": 4,
        "imu_rows": 1,
        "files": ["header.json", "actuators.parquet", "imu.parquet"],
    }

    header = json.loads((out / "header.json").read_text())
    assert header["uuid"] == filled.header.uuid

    table = pq.read_table(out / "actuators.parquet")
    assert table.num_rows == 4
    assert str(table.schema.field("actuator_id").type) == "uint32"
    positions = table.column("position").to_pylist()
    assert positions[1] is None
    assert positions[0] == 10.0


def test_export_empty_recording(tmp_path, recording):
    summary = export_recording(recording, tmp_path / "empty")
    assert summary["files"] == ["header.json"]
    assert not (tmp_path / "empty" / "actuators.parquet").exists()
