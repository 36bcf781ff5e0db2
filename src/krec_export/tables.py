"""Tabular views of a recording, and parquet export."""
from __future__ import annotations

import dataclasses
import json
from pathlib import Path

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq

from krec_core.header import KRecHeader
from krec_core.recording import Recording

CANONICAL_JSON_KW = {"sort_keys": True, "separators": (",", ":"), "ensure_ascii": False}

FRAME_COLUMNS = [
    ("frame", pa.int64()),
    ("real_timestamp", pa.uint64()),
    ("video_timestamp", pa.uint64()),
    ("video_frame_number", pa.uint64()),
    ("inference_step", pa.uint64()),
]

ACTUATOR_SCHEMA = pa.schema(
    FRAME_COLUMNS
    + [
        ("kind", pa.string()),
        ("actuator_id", pa.uint32()),
        ("online", pa.bool_()),
        ("position", pa.float64()),
        ("velocity", pa.float64()),
        ("torque", pa.float64()),
        ("temperature", pa.float64()),
        ("voltage", pa.float32()),
        ("current", pa.float32()),
    ]
)

IMU_SCHEMA = pa.schema(
    FRAME_COLUMNS
    + [(f"{vec}_{axis}", pa.float64()) for vec in ("accel", "gyro", "mag") for axis in "xyz"]
    + [(f"quat_{axis}", pa.float64()) for axis in "xyzw"]
)


def _frame_cols(index: int, frame) -> dict:
    return {
        "frame": index,
        "real_timestamp": frame.real_timestamp,
        "video_timestamp": frame.video_timestamp,
        "video_frame_number": frame.video_frame_number,
        "inference_step": frame.inference_step,
    }


def actuator_table(recording: Recording) -> pd.DataFrame:
    """One row per actuator state or command. Absent values are missing, never 0."""
    rows: list[dict] = []
    for i, frame in enumerate(recording.iterate()):
        base = _frame_cols(i, frame)
        for s in frame.actuator_states:
            rows.append({
                **base,
                "kind": "state",
                "actuator_id": s.actuator_id,
                "online": s.online,
                "position": s.position,
                "velocity": s.velocity,
                "torque": s.torque,
                "temperature": s.temperature,
                "voltage": s.voltage,
                "current": s.current,
            })
        for c in frame.actuator_commands:
            rows.append({
                **base,
                "kind": "command",
                "actuator_id": c.actuator_id,
                "online": None,
                "position": c.position,
                "velocity": c.velocity,
                "torque": c.torque,
                "temperature": None,
                "voltage": None,
                "current": None,
            })
    return pd.DataFrame(rows, columns=ACTUATOR_SCHEMA.names)


def imu_table(recording: Recording) -> pd.DataFrame:
    """One row per frame that carries IMU values."""
    rows: list[dict] = []
    for i, frame in enumerate(recording.iterate()):
        imu = frame.imu_values
        if imu is None:
            continue
        row = _frame_cols(i, frame)
        for name in ("accel", "gyro", "mag"):
            vec = getattr(imu, name)
            for axis in "xyz":
                row[f"{name}_{axis}"] = None if vec is None else getattr(vec, axis)
        for axis in "xyzw":
            row[f"quat_{axis}"] = None if imu.quaternion is None else getattr(imu.quaternion, axis)
        rows.append(row)
    return pd.DataFrame(rows, columns=IMU_SCHEMA.names)


def header_dict(header: KRecHeader) -> dict:
    """JSON-ready header. Absent optional config fields are left out."""
    configs = []
    for config in header.actuator_configs:
        configs.append({k: v for k, v in dataclasses.asdict(config).items() if v is not None})
    return {
        "uuid": header.uuid,
        "task": header.task,
        "robot_platform": header.robot_platform,
        "robot_serial": header.robot_serial,
        "start_timestamp": header.start_timestamp,
        "end_timestamp": header.end_timestamp,
        "actuator_configs": configs,
    }


def write_parquet(df: pd.DataFrame, schema: pa.Schema, path: Path) -> bool:
    if df.empty:
        return False
    table = pa.Table.from_pandas(df, schema=schema, preserve_index=False)
    pq.write_table(table, path)
    return True


def export_recording(recording: Recording, out_path: Path) -> dict:
    """Write header.json, actuators.parquet and imu.parquet under ``out_path``.

    Tables with no rows are not written.
    """
    out_path = Path(out_path)
    out_path.mkdir(parents=True, exist_ok=True)

    header_bytes = json.dumps(header_dict(recording.header), **CANONICAL_JSON_KW).encode("utf-8")
    (out_path / "header.json").write_bytes(header_bytes)

    actuators = actuator_table(recording)
    imu = imu_table(recording)
    written = ["header.json"]
    if write_parquet(actuators, ACTUATOR_SCHEMA, out_path / "actuators.parquet"):
        written.append("actuators.parquet")
    if write_parquet(imu, IMU_SCHEMA, out_path / "imu.parquet"):
        written.append("imu.parquet")

    return {
        "frames": recording.frame_count,
        "actuator_rows": len(actuators),
        "imu_rows": len(imu),
        "files": written,
    }
