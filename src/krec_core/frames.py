"""KRecFrame: one captured timestep, and its codec and validation."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

from .errors import DecodeError, DuplicateActuatorError, EmptyImuError, UnknownActuatorError, ValidationError
from .schema import KRecFrameMessage
from .values import (
    ActuatorCommand,
    ActuatorState,
    IMUValues,
    check_uint,
    command_from_message,
    command_to_message,
    imu_from_message,
    imu_to_message,
    parse_message,
    state_from_message,
    state_to_message,
)


@dataclass(frozen=True)
class KRecFrame:
    """One timestep of actuator states, commands and IMU data.

    ``video_timestamp == 0`` means no aligned video for this frame.
    """

    real_timestamp: int
    video_timestamp: int = 0
    video_frame_number: int = 0
    inference_step: int = 0
    actuator_states: tuple = field(default_factory=tuple)
    actuator_commands: tuple = field(default_factory=tuple)
    imu_values: Optional[IMUValues] = None

    def __post_init__(self):
        for name in ("real_timestamp", "video_timestamp", "video_frame_number", "inference_step"):
            check_uint(f"KRecFrame.{name}", getattr(self, name))
        states = tuple(self.actuator_states)
        commands = tuple(self.actuator_commands)
        if not all(isinstance(s, ActuatorState) for s in states):
            raise ValidationError("actuator_states must hold ActuatorState values")
        if not all(isinstance(c, ActuatorCommand) for c in commands):
            raise ValidationError("actuator_commands must hold ActuatorCommand values")
        if self.imu_values is not None and not isinstance(self.imu_values, IMUValues):
            raise ValidationError("imu_values must be an IMUValues or None")
        object.__setattr__(self, "actuator_states", states)
        object.__setattr__(self, "actuator_commands", commands)

    @property
    def has_video(self) -> bool:
        return self.video_timestamp != 0

    def has_imu_values(self) -> bool:
        return self.imu_values is not None

    def has_actuator_commands(self) -> bool:
        return bool(self.actuator_commands)

    def actuator_state_count(self) -> int:
        return len(self.actuator_states)

    def state_for(self, actuator_id: int) -> Optional[ActuatorState]:
        for state in self.actuator_states:
            if state.actuator_id == actuator_id:
                return state
        return None

    def command_for(self, actuator_id: int) -> Optional[ActuatorCommand]:
        for command in self.actuator_commands:
            if command.actuator_id == actuator_id:
                return command
        return None


def build_frame(
    real_timestamp: int,
    states: Iterable[ActuatorState] = (),
    commands: Iterable[ActuatorCommand] = (),
    imu: Optional[IMUValues] = None,
    *,
    video_timestamp: int = 0,
    video_frame_number: int = 0,
    inference_step: int = 0,
) -> KRecFrame:
    """Assemble a frame. Referential checks happen in :func:`validate_frame`."""
    return KRecFrame(
        real_timestamp=real_timestamp,
        video_timestamp=video_timestamp,
        video_frame_number=video_frame_number,
        inference_step=inference_step,
        actuator_states=tuple(states),
        actuator_commands=tuple(commands),
        imu_values=imu,
    )


def _check_references(items, field_name: str, registry: Mapping) -> None:
    for item in items:
        if item.actuator_id not in registry:
            raise UnknownActuatorError(item.actuator_id, field_name)


def _check_unique(items, field_name: str) -> None:
    seen = set()
    for item in items:
        if item.actuator_id in seen:
            raise DuplicateActuatorError(item.actuator_id, field_name)
        seen.add(item.actuator_id)


def validate_frame(frame: KRecFrame, registry: Mapping) -> None:
    """Check ``frame`` against the header's actuator registry.

    Checks run in a fixed order and stop at the first failure: unknown
    actuator ids, then duplicate ids, then an empty IMU block.
    """
    _check_references(frame.actuator_states, "actuator_states", registry)
    _check_references(frame.actuator_commands, "actuator_commands", registry)
    _check_unique(frame.actuator_states, "actuator_states")
    _check_unique(frame.actuator_commands, "actuator_commands")
    if frame.imu_values is not None and frame.imu_values.is_empty:
        raise EmptyImuError()


def frame_to_message(frame: KRecFrame):
    msg = KRecFrameMessage()
    msg.real_timestamp = frame.real_timestamp
    msg.video_timestamp = frame.video_timestamp
    msg.video_frame_number = frame.video_frame_number
    msg.inference_step = frame.inference_step
    for state in frame.actuator_states:
        state_to_message(state, msg.actuator_states.add())
    for command in frame.actuator_commands:
        command_to_message(command, msg.actuator_commands.add())
    if frame.imu_values is not None:
        imu_to_message(frame.imu_values, msg.imu_values)
    return msg


def frame_from_message(msg) -> KRecFrame:
    return KRecFrame(
        real_timestamp=msg.real_timestamp,
        video_timestamp=msg.video_timestamp,
        video_frame_number=msg.video_frame_number,
        inference_step=msg.inference_step,
        actuator_states=tuple(state_from_message(m) for m in msg.actuator_states),
        actuator_commands=tuple(command_from_message(m) for m in msg.actuator_commands),
        imu_values=imu_from_message(msg.imu_values) if msg.HasField("imu_values") else None,
    )


def encode_frame(frame: KRecFrame) -> bytes:
    return frame_to_message(frame).SerializeToString()


def decode_frame(data: bytes, offset: int | None = None) -> KRecFrame:
    msg = parse_message(KRecFrameMessage, data, offset)
    try:
        return frame_from_message(msg)
    except ValidationError as e:
        raise DecodeError(str(e), offset=offset, message_type="KRecFrame") from e
