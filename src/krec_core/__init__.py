"""KRec Core - recording format, codecs and validation."""
from .container import FileSink, RecordingReader
from .errors import (
    ClosedRecordingError,
    CorruptRecordWarning,
    DecodeError,
    DuplicateActuatorConfigError,
    DuplicateActuatorError,
    DuplicateFrameError,
    EmptyImuError,
    HeaderFrozenError,
    InvalidEndTimestampError,
    IoError,
    KRecError,
    OrderingError,
    TruncatedRecordError,
    UnknownActuatorError,
    ValidationError,
)
from .frames import KRecFrame, build_frame, decode_frame, encode_frame, validate_frame
from .header import ActuatorRegistry, KRecHeader, build_header, decode_header, encode_header, revise_header
from .recording import Recording, RecordingState
from .values import (
    ActuatorCommand,
    ActuatorConfig,
    ActuatorState,
    IMUQuaternion,
    IMUValues,
    Vec3,
    decode_value,
    encode_value,
)

__all__ = [
    "ActuatorCommand", "ActuatorConfig", "ActuatorRegistry", "ActuatorState",
    "ClosedRecordingError", "CorruptRecordWarning", "DecodeError",
    "DuplicateActuatorConfigError", "DuplicateActuatorError", "DuplicateFrameError",
    "EmptyImuError", "FileSink", "HeaderFrozenError", "IMUQuaternion", "IMUValues",
    "InvalidEndTimestampError", "IoError", "KRecError", "KRecFrame", "KRecHeader",
    "OrderingError", "Recording", "RecordingReader", "RecordingState",
    "TruncatedRecordError", "UnknownActuatorError", "ValidationError", "Vec3",
    "build_frame", "build_header", "decode_frame", "decode_header", "decode_value",
    "encode_frame", "encode_header", "encode_value", "revise_header", "validate_frame",
]
