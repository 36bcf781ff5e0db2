"""Plain-text renderings of recordings and frames."""
from __future__ import annotations


def _opt(value) -> str:
    return "None" if value is None else repr(value)


def render_recording(recording) -> str:
    """Header, actuator configs and a frame summary."""
    header = recording.header
    frames = recording.frames
    lines = [
        "KRec Recording",
        "==============",
        "",
        f"Task: {header.task}",
        f"Robot Platform: {header.robot_platform}",
        f"Robot Serial: {header.robot_serial}",
        f"UUID: {header.uuid}",
        f"Start Timestamp: {header.start_timestamp}",
        f"End Timestamp: {header.end_timestamp if header.is_finalized else 'not finalized'}",
        "",
        f"Actuator Configs ({len(header.actuator_configs)})",
        "----------------",
    ]
    for config in header.actuator_configs:
        name = f"{config.name} " if config.name is not None else ""
        lines.append(
            f"ID {config.actuator_id}: {name}(kp={_opt(config.kp)}, kd={_opt(config.kd)}, "
            f"ki={_opt(config.ki)}, max_torque={_opt(config.max_torque)})"
        )

    lines += ["", f"Frames ({len(frames)})", "------------"]
    if frames:
        first, last = frames[0], frames[-1]
        lines.append(f"Time range: {first.real_timestamp} to {last.real_timestamp}")
        lines += [
            "",
            "First frame details:",
            f"  Video timestamp: {first.video_timestamp}",
            f"  Video frame number: {first.video_frame_number}",
            f"  Inference step: {first.inference_step}",
            f"  Actuator states: {len(first.actuator_states)}",
            f"  Actuator commands: {len(first.actuator_commands)}",
        ]
        if first.imu_values is not None:
            lines.append("  Has IMU values: yes")
    return "\n".join(lines) + "\n"


def render_frame(frame, index: int) -> str:
    """Every field of one frame."""
    lines = [
        f"Frame {index}",
        "=========",
        "",
        f"Real timestamp: {frame.real_timestamp}",
        f"Video timestamp: {frame.video_timestamp}",
        f"Video frame number: {frame.video_frame_number}",
        f"Inference step: {frame.inference_step}",
        "",
        f"Actuator States ({len(frame.actuator_states)})",
        "---------------",
    ]
    for s in frame.actuator_states:
        lines.append(
            f"ID {s.actuator_id}: online={s.online}, pos={_opt(s.position)}, vel={_opt(s.velocity)}, "
            f"torque={_opt(s.torque)}, temp={_opt(s.temperature)}, volt={_opt(s.voltage)}, curr={_opt(s.current)}"
        )

    if frame.actuator_commands:
        lines += ["", f"Actuator Commands ({len(frame.actuator_commands)})", "-----------------"]
        for c in frame.actuator_commands:
            lines.append(f"ID {c.actuator_id}: pos={c.position}, vel={c.velocity}, torque={c.torque}")

    imu = frame.imu_values
    if imu is not None:
        lines += ["", "IMU Values", "----------"]
        for label, vec in (("Accel", imu.accel), ("Gyro", imu.gyro), ("Mag", imu.mag)):
            if vec is not None:
                lines.append(f"{label}: x={vec.x}, y={vec.y}, z={vec.z}")
        if imu.quaternion is not None:
            q = imu.quaternion
            lines.append(f"Quaternion: x={q.x}, y={q.y}, z={q.z}, w={q.w}")
    return "\n".join(lines) + "\n"
