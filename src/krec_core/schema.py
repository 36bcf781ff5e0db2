"""KRec wire schema.

The message layout of ``krec.proto`` expressed as protobuf descriptors and
turned into message classes at import time. Field numbers and presence are
the wire contract; do not renumber.
"""
from __future__ import annotations

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

from .protocol import PROTO_PACKAGE

_F = descriptor_pb2.FieldDescriptorProto

DOUBLE = _F.TYPE_DOUBLE
FLOAT = _F.TYPE_FLOAT
UINT32 = _F.TYPE_UINT32
UINT64 = _F.TYPE_UINT64
BOOL = _F.TYPE_BOOL
STRING = _F.TYPE_STRING
MESSAGE = _F.TYPE_MESSAGE

# (name, number, type, message type or None, presence)
# presence: "" plain proto3 scalar, "optional" explicit presence, "repeated"
_MESSAGES = {
    "Vec3": [
        ("x", 1, DOUBLE, None, ""),
        ("y", 2, DOUBLE, None, ""),
        ("z", 3, DOUBLE, None, ""),
    ],
    "IMUQuaternion": [
        ("x", 1, DOUBLE, None, ""),
        ("y", 2, DOUBLE, None, ""),
        ("z", 3, DOUBLE, None, ""),
        ("w", 4, DOUBLE, None, ""),
    ],
    "IMUValues": [
        ("accel", 1, MESSAGE, "Vec3", "optional"),
        ("gyro", 2, MESSAGE, "Vec3", "optional"),
        ("mag", 3, MESSAGE, "Vec3", "optional"),
        ("quaternion", 4, MESSAGE, "IMUQuaternion", "optional"),
    ],
    "ActuatorConfig": [
        ("actuator_id", 1, UINT32, None, ""),
        ("kp", 2, DOUBLE, None, "optional"),
        ("kd", 3, DOUBLE, None, "optional"),
        ("ki", 4, DOUBLE, None, "optional"),
        ("max_torque", 5, DOUBLE, None, "optional"),  # Nm
        ("name", 6, STRING, None, "optional"),
    ],
    "ActuatorState": [
        ("actuator_id", 1, UINT32, None, ""),
        ("online", 2, BOOL, None, ""),
        ("position", 3, DOUBLE, None, "optional"),     # degrees
        ("velocity", 4, DOUBLE, None, "optional"),     # degrees/second
        ("torque", 5, DOUBLE, None, "optional"),       # Nm
        ("temperature", 6, DOUBLE, None, "optional"),  # Celsius
        ("voltage", 7, FLOAT, None, "optional"),       # volts
        ("current", 8, FLOAT, None, "optional"),       # amperes
    ],
    "ActuatorCommand": [
        ("actuator_id", 1, UINT32, None, ""),
        ("position", 2, FLOAT, None, ""),
        ("velocity", 3, FLOAT, None, ""),
        ("torque", 4, FLOAT, None, ""),
    ],
    "KRecFrame": [
        ("real_timestamp", 1, UINT64, None, ""),
        ("video_timestamp", 2, UINT64, None, ""),
        ("video_frame_number", 3, UINT64, None, ""),
        ("inference_step", 4, UINT64, None, ""),
        ("actuator_states", 5, MESSAGE, "ActuatorState", "repeated"),
        ("actuator_commands", 6, MESSAGE, "ActuatorCommand", "repeated"),
        ("imu_values", 7, MESSAGE, "IMUValues", "optional"),
    ],
    "KRecHeader": [
        ("uuid", 1, STRING, None, ""),
        ("task", 2, STRING, None, ""),
        ("robot_platform", 3, STRING, None, ""),
        ("robot_serial", 4, STRING, None, ""),
        ("start_timestamp", 5, UINT64, None, ""),
        # Explicit presence keeps "not finalized" apart from a real 0.
        # Same wire encoding as a plain uint64.
        ("end_timestamp", 6, UINT64, None, "optional"),
        ("actuator_configs", 7, MESSAGE, "ActuatorConfig", "repeated"),
    ],
}


def _build_file() -> descriptor_pb2.FileDescriptorProto:
    fdp = descriptor_pb2.FileDescriptorProto(
        name="krec.proto",
        package=PROTO_PACKAGE,
        syntax="proto3",
    )
    for msg_name, fields in _MESSAGES.items():
        msg = fdp.message_type.add(name=msg_name)
        for name, number, ftype, type_name, presence in fields:
            field = msg.field.add(
                name=name,
                number=number,
                type=ftype,
                label=_F.LABEL_REPEATED if presence == "repeated" else _F.LABEL_OPTIONAL,
            )
            if type_name is not None:
                field.type_name = f".{PROTO_PACKAGE}.{type_name}"
            if presence == "optional":
                # proto3 `optional` is a synthetic single-field oneof.
                field.proto3_optional = True
                field.oneof_index = len(msg.oneof_decl)
                msg.oneof_decl.add(name=f"_{name}")
    return fdp


FILE_DESCRIPTOR_PROTO = _build_file()

_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(FILE_DESCRIPTOR_PROTO.SerializeToString())


def _message_class(name: str):
    return message_factory.GetMessageClass(_pool.FindMessageTypeByName(f"{PROTO_PACKAGE}.{name}"))


Vec3Message = _message_class("Vec3")
IMUQuaternionMessage = _message_class("IMUQuaternion")
IMUValuesMessage = _message_class("IMUValues")
ActuatorConfigMessage = _message_class("ActuatorConfig")
ActuatorStateMessage = _message_class("ActuatorState")
ActuatorCommandMessage = _message_class("ActuatorCommand")
KRecFrameMessage = _message_class("KRecFrame")
KRecHeaderMessage = _message_class("KRecHeader")
