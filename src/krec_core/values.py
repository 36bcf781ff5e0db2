"""KRec leaf value types and their codec.

Optional scalars are ``None`` when absent. ``0.0`` is a real value and is
kept apart from absence on the wire: a control loop reads an absent gain as
"use the default gain" and a zero gain as "disable this term".

Fields declared ``float`` on the wire are narrowed to single precision when
the value is built, so what you hold is exactly what a reader decodes.
"""
from __future__ import annotations

import math
import struct
from dataclasses import dataclass
from typing import Iterable, Optional

from google.protobuf.message import DecodeError as ProtoDecodeError

from .errors import DecodeError, ValidationError
from .protocol import UINT32_MAX, UINT64_MAX
from .schema import (
    ActuatorCommandMessage,
    ActuatorConfigMessage,
    ActuatorStateMessage,
    IMUQuaternionMessage,
    IMUValuesMessage,
    Vec3Message,
)


def check_uint(name: str, value, maximum: int = UINT64_MAX) -> int:
    """Reject anything that is not an integer in ``[0, maximum]``."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer, got {type(value).__name__}")
    if value < 0 or value > maximum:
        raise ValidationError(f"{name} {value} is outside [0, {maximum}]")
    return value


def _double(name: str, value) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{name} must be a number, got {type(value).__name__}")
    value = float(value)
    # NaN != NaN: values must compare equal after a round trip.
    if math.isnan(value):
        raise ValidationError(f"{name} must not be NaN")
    return value


def _single(name: str, value) -> float:
    """Round a number to IEEE-754 single precision."""
    value = _double(name, value)
    try:
        return struct.unpack("<f", struct.pack("<f", value))[0]
    except OverflowError:
        raise ValidationError(f"{name} {value} does not fit a 32-bit float") from None


def _opt(convert, name: str, value):
    return None if value is None else convert(name, value)


def _set(obj, name: str, value) -> None:
    object.__setattr__(obj, name, value)


def _coords(cls_name: str, values: Iterable, count: int) -> list[float]:
    coords = [_double(cls_name, v) for v in values]
    if len(coords) != count:
        raise ValidationError(f"{cls_name} needs exactly {count} values, got {len(coords)}")
    return coords


@dataclass(frozen=True)
class Vec3:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def __post_init__(self):
        for name in ("x", "y", "z"):
            _set(self, name, _double(f"Vec3.{name}", getattr(self, name)))

    @classmethod
    def from_iterable(cls, values: Iterable) -> "Vec3":
        return cls(*_coords("Vec3", values, 3))


@dataclass(frozen=True)
class IMUQuaternion:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 1.0

    def __post_init__(self):
        for name in ("x", "y", "z", "w"):
            _set(self, name, _double(f"IMUQuaternion.{name}", getattr(self, name)))

    @classmethod
    def from_iterable(cls, values: Iterable) -> "IMUQuaternion":
        return cls(*_coords("IMUQuaternion", values, 4))


@dataclass(frozen=True)
class IMUValues:
    accel: Optional[Vec3] = None
    gyro: Optional[Vec3] = None
    mag: Optional[Vec3] = None
    quaternion: Optional[IMUQuaternion] = None

    def __post_init__(self):
        for name in ("accel", "gyro", "mag"):
            value = getattr(self, name)
            if value is not None and not isinstance(value, Vec3):
                _set(self, name, Vec3.from_iterable(value))
        if self.quaternion is not None and not isinstance(self.quaternion, IMUQuaternion):
            _set(self, "quaternion", IMUQuaternion.from_iterable(self.quaternion))

    @property
    def is_empty(self) -> bool:
        return self.accel is None and self.gyro is None and self.mag is None and self.quaternion is None


@dataclass(frozen=True)
class ActuatorConfig:
    """Static per-actuator calibration. ``actuator_id`` is the registry key."""

    actuator_id: int
    kp: Optional[float] = None
    kd: Optional[float] = None
    ki: Optional[float] = None
    max_torque: Optional[float] = None  # Nm
    name: Optional[str] = None

    def __post_init__(self):
        check_uint("ActuatorConfig.actuator_id", self.actuator_id, UINT32_MAX)
        for field in ("kp", "kd", "ki", "max_torque"):
            _set(self, field, _opt(_double, f"ActuatorConfig.{field}", getattr(self, field)))
        if self.name is not None and not isinstance(self.name, str):
            raise ValidationError("ActuatorConfig.name must be a string")


@dataclass(frozen=True)
class ActuatorState:
    """Observed telemetry for one actuator."""

    actuator_id: int
    online: bool = False
    position: Optional[float] = None     # degrees
    velocity: Optional[float] = None     # degrees/second
    torque: Optional[float] = None       # Nm
    temperature: Optional[float] = None  # Celsius
    voltage: Optional[float] = None      # volts, single precision
    current: Optional[float] = None      # amperes, single precision

    def __post_init__(self):
        check_uint("ActuatorState.actuator_id", self.actuator_id, UINT32_MAX)
        if not isinstance(self.online, bool):
            raise ValidationError(f"ActuatorState.online must be a bool, got {type(self.online).__name__}")
        for field in ("position", "velocity", "torque", "temperature"):
            _set(self, field, _opt(_double, f"ActuatorState.{field}", getattr(self, field)))
        for field in ("voltage", "current"):
            _set(self, field, _opt(_single, f"ActuatorState.{field}", getattr(self, field)))


@dataclass(frozen=True)
class ActuatorCommand:
    """Commanded setpoints for one actuator. All three are required."""

    actuator_id: int
    position: float
    velocity: float
    torque: float

    def __post_init__(self):
        check_uint("ActuatorCommand.actuator_id", self.actuator_id, UINT32_MAX)
        for field in ("position", "velocity", "torque"):
            value = getattr(self, field)
            if value is None:
                raise ValidationError(
                    f"ActuatorCommand {self.actuator_id} has no {field} setpoint"
                )
            _set(self, field, _single(f"ActuatorCommand.{field}", value))


# --- message mapping ---

def _copy_optional(src, dst, fields) -> None:
    for field in fields:
        value = getattr(src, field)
        if value is not None:
            setattr(dst, field, value)


def _read_optional(msg, fields) -> dict:
    return {field: getattr(msg, field) for field in fields if msg.HasField(field)}


def vec3_to_message(value: Vec3, msg=None):
    msg = Vec3Message() if msg is None else msg
    msg.x, msg.y, msg.z = value.x, value.y, value.z
    return msg


def vec3_from_message(msg) -> Vec3:
    return Vec3(msg.x, msg.y, msg.z)


def quaternion_to_message(value: IMUQuaternion, msg=None):
    msg = IMUQuaternionMessage() if msg is None else msg
    msg.x, msg.y, msg.z, msg.w = value.x, value.y, value.z, value.w
    return msg


def quaternion_from_message(msg) -> IMUQuaternion:
    return IMUQuaternion(msg.x, msg.y, msg.z, msg.w)


def imu_to_message(value: IMUValues, msg=None):
    msg = IMUValuesMessage() if msg is None else msg
    # Present on the parent even when every axis is absent.
    msg.SetInParent()
    for name in ("accel", "gyro", "mag"):
        vec = getattr(value, name)
        if vec is not None:
            sub = getattr(msg, name)
            sub.SetInParent()
            vec3_to_message(vec, sub)
    if value.quaternion is not None:
        msg.quaternion.SetInParent()
        quaternion_to_message(value.quaternion, msg.quaternion)
    return msg


def imu_from_message(msg) -> IMUValues:
    return IMUValues(
        accel=vec3_from_message(msg.accel) if msg.HasField("accel") else None,
        gyro=vec3_from_message(msg.gyro) if msg.HasField("gyro") else None,
        mag=vec3_from_message(msg.mag) if msg.HasField("mag") else None,
        quaternion=quaternion_from_message(msg.quaternion) if msg.HasField("quaternion") else None,
    )


_CONFIG_OPTIONAL = ("kp", "kd", "ki", "max_torque", "name")
_STATE_OPTIONAL = ("position", "velocity", "torque", "temperature", "voltage", "current")


def config_to_message(value: ActuatorConfig, msg=None):
    msg = ActuatorConfigMessage() if msg is None else msg
    msg.actuator_id = value.actuator_id
    _copy_optional(value, msg, _CONFIG_OPTIONAL)
    return msg


def config_from_message(msg) -> ActuatorConfig:
    return ActuatorConfig(msg.actuator_id, **_read_optional(msg, _CONFIG_OPTIONAL))


def state_to_message(value: ActuatorState, msg=None):
    msg = ActuatorStateMessage() if msg is None else msg
    msg.actuator_id = value.actuator_id
    msg.online = value.online
    _copy_optional(value, msg, _STATE_OPTIONAL)
    return msg


def state_from_message(msg) -> ActuatorState:
    return ActuatorState(msg.actuator_id, msg.online, **_read_optional(msg, _STATE_OPTIONAL))


def command_to_message(value: ActuatorCommand, msg=None):
    msg = ActuatorCommandMessage() if msg is None else msg
    msg.actuator_id = value.actuator_id
    msg.position = value.position
    msg.velocity = value.velocity
    msg.torque = value.torque
    return msg


def command_from_message(msg) -> ActuatorCommand:
    return ActuatorCommand(msg.actuator_id, msg.position, msg.velocity, msg.torque)


_CODECS = {
    Vec3: (Vec3Message, vec3_to_message, vec3_from_message),
    IMUQuaternion: (IMUQuaternionMessage, quaternion_to_message, quaternion_from_message),
    IMUValues: (IMUValuesMessage, imu_to_message, imu_from_message),
    ActuatorConfig: (ActuatorConfigMessage, config_to_message, config_from_message),
    ActuatorState: (ActuatorStateMessage, state_to_message, state_from_message),
    ActuatorCommand: (ActuatorCommandMessage, command_to_message, command_from_message),
}


def parse_message(message_cls, data: bytes, offset: int | None = None):
    """Parse ``data`` into a new ``message_cls``. Unknown fields are skipped."""
    msg = message_cls()
    try:
        msg.ParseFromString(bytes(data))
    except ProtoDecodeError as e:
        raise DecodeError(
            f"cannot decode {message_cls.DESCRIPTOR.name}: {e}",
            offset=offset,
            message_type=message_cls.DESCRIPTOR.name,
        ) from e
    return msg


def encode_value(value) -> bytes:
    """Encode a leaf value to its wire bytes."""
    try:
        _, to_message, _ = _CODECS[type(value)]
    except KeyError:
        raise TypeError(f"not a KRec value type: {type(value).__name__}") from None
    return to_message(value).SerializeToString()


def decode_value(cls, data: bytes, offset: int | None = None):
    """Decode wire bytes into a leaf value of type ``cls``."""
    message_cls, _, from_message = _CODECS[cls]
    msg = parse_message(message_cls, data, offset)
    try:
        return from_message(msg)
    except ValidationError as e:
        raise DecodeError(str(e), offset=offset, message_type=message_cls.DESCRIPTOR.name) from e
