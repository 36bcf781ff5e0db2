import math, random, time, uuid
from pathlib import Path

from krec_core import (
    ActuatorCommand,
    ActuatorConfig,
    ActuatorState,
    IMUQuaternion,
    IMUValues,
    Recording,
    Vec3,
    build_frame,
    build_header,
)

# --- CONFIGURATION ---
FPS = 30
VIDEO_FPS = 15
FRAMES = 90
STEP_NS = 1_000_000_000 // FPS

# Simulated leg: (actuator_id, name, kp, kd)
ACTUATORS = [
    (1, "hip", 40.0, 1.5),
    (2, "knee", 35.0, 1.2),
    (3, "ankle", 20.0, None),
]


def generate_session(out_dir, finalize=True, seed=None):
    rng = random.Random(seed)
    sess_id = str(uuid.uuid4())
    path = Path(out_dir) / f"recording-{sess_id[:8]}.krec"
    path.parent.mkdir(parents=True, exist_ok=True)

    start = time.time_ns()
    header = build_header(
        task="walk_forward",
        robot_platform="sim-leg",
        robot_serial=f"SIM-{rng.randint(100, 999)}",
        actuator_configs=[
            ActuatorConfig(aid, kp=kp, kd=kd, max_torque=30.0, name=name) for aid, name, kp, kd in ACTUATORS
        ],
        start_timestamp=start,
        uuid=sess_id,
    )

    print(f"Generating: {sess_id} (Finalize={finalize})")

    recording = Recording.create(path, header, durable=True)
    with recording:
        for i in range(FRAMES):
            t = start + i * STEP_NS
            phase = 2 * math.pi * i / FPS
            states = [
                ActuatorState(
                    aid,
                    online=True,
                    position=30.0 * math.sin(phase + aid),
                    velocity=30.0 * math.cos(phase + aid),
                    torque=rng.uniform(-2.0, 2.0),
                    temperature=35.0 + rng.random(),
                    voltage=24.0,
                    current=rng.uniform(0.5, 1.5),
                )
                for aid, _, _, _ in ACTUATORS
            ]
            commands = [
                ActuatorCommand(aid, position=30.0 * math.sin(phase + aid + 0.1), velocity=0.0, torque=0.0)
                for aid, _, _, _ in ACTUATORS
            ]
            imu = IMUValues(
                accel=Vec3(0.0, 0.0, 9.81 + rng.gauss(0, 0.05)),
                gyro=Vec3(rng.gauss(0, 0.01), rng.gauss(0, 0.01), 0.0),
                quaternion=IMUQuaternion(0.0, 0.0, math.sin(phase / 20), math.cos(phase / 20)),
            )
            # Video runs at half rate; its counters repeat between captures.
            video_frame = i * VIDEO_FPS // FPS
            recording.append(
                build_frame(
                    t,
                    states,
                    commands,
                    imu,
                    video_timestamp=start + video_frame * (1_000_000_000 // VIDEO_FPS),
                    video_frame_number=video_frame,
                    inference_step=i + 1,
                )
            )
        if finalize:
            recording.finalize(start + FRAMES * STEP_NS)

    print(f"GENERATED: {path}")
    return path


if __name__ == "__main__":
    import sys

    # Usage:
    #   python tools/sim_recording.py OUT_DIR [--runs N] [--open] [--seed S]

    args = [a for a in sys.argv[1:] if a]

    def pop_flag(arg_list: list[str], flag: str) -> tuple[bool, list[str]]:
        """Remove a boolean flag from an argv-style list."""
        if flag in arg_list:
            return True, [a for a in arg_list if a != flag]
        return False, arg_list

    def pop_value(arg_list: list[str], flag: str):
        if flag not in arg_list:
            return None, arg_list
        i = arg_list.index(flag)
        if i + 1 >= len(arg_list):
            raise SystemExit(f"{flag} requires a value")
        return int(arg_list[i + 1]), arg_list[:i] + arg_list[i + 2:]

    leave_open, args = pop_flag(args, "--open")
    runs, args = pop_value(args, "--runs")
    seed, args = pop_value(args, "--seed")

    out = args[0] if len(args) > 0 else "recordings"
    for _ in range(runs or 1):
        generate_session(out, finalize=not leave_open, seed=seed)
