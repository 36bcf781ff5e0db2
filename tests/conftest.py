from __future__ import annotations

import pytest

from krec_core import ActuatorConfig, ActuatorState, Recording, build_frame, build_header


@pytest.fixture
def header():
    return build_header(
        task="walk_forward",
        robot_platform="test-leg",
        robot_serial="SN-001",
        actuator_configs=[
            ActuatorConfig(1, kp=40.0, kd=0.0, name="hip"),
            ActuatorConfig(2, name="knee"),
        ],
        start_timestamp=1_000,
    )


@pytest.fixture
def recording(header):
    return Recording.open(header)


def frame_at(ts: int, *actuator_ids: int, **kwargs):
    states = [ActuatorState(aid, online=True, position=float(ts)) for aid in (actuator_ids or (1,))]
    return build_frame(ts, states, **kwargs)
