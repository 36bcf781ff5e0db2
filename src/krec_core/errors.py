"""KRec error taxonomy.

Every error carries a stable ``code`` so reports and CLIs can name failures
without parsing messages.
"""
from __future__ import annotations


class KRecError(Exception):
    code = "E_KREC"


class ValidationError(KRecError, ValueError):
    """Malformed or referentially inconsistent header or frame."""

    code = "E_VALIDATION"


class UnknownActuatorError(ValidationError):
    code = "E_UNKNOWN_ACTUATOR"

    def __init__(self, actuator_id: int, field: str = "actuator_states"):
        self.actuator_id = actuator_id
        self.field = field
        super().__init__(f"{field} references unknown actuator_id {actuator_id}")


class DuplicateActuatorError(ValidationError):
    code = "E_DUPLICATE_ACTUATOR"

    def __init__(self, actuator_id: int, field: str = "actuator_states"):
        self.actuator_id = actuator_id
        self.field = field
        super().__init__(f"actuator_id {actuator_id} appears more than once in {field}")


class EmptyImuError(ValidationError):
    code = "E_EMPTY_IMU"

    def __init__(self):
        super().__init__("imu_values is present but accel, gyro, mag and quaternion are all absent")


class DuplicateActuatorConfigError(ValidationError):
    code = "E_DUPLICATE_ACTUATOR_CONFIG"

    def __init__(self, actuator_id: int):
        self.actuator_id = actuator_id
        super().__init__(f"actuator_configs contains actuator_id {actuator_id} more than once")


class InvalidEndTimestampError(ValidationError):
    code = "E_INVALID_END_TIMESTAMP"

    def __init__(self, end_timestamp: int, minimum: int):
        self.end_timestamp = end_timestamp
        self.minimum = minimum
        super().__init__(f"end_timestamp {end_timestamp} is before {minimum}")


class HeaderFrozenError(ValidationError):
    code = "E_HEADER_FROZEN"


class OrderingError(KRecError, ValueError):
    """Timestamp or counter regression between consecutive frames."""

    code = "E_ORDERING"

    def __init__(self, field: str, expected: int, got: int, message: str | None = None):
        self.field = field
        self.expected = expected
        self.got = got
        super().__init__(message or f"{field} expected >={expected}, got {got}")


class DuplicateFrameError(OrderingError):
    code = "E_DUPLICATE_FRAME"

    def __init__(self, real_timestamp: int, message: str | None = None):
        super().__init__(
            "real_timestamp",
            real_timestamp + 1,
            real_timestamp,
            message or f"frame at real_timestamp {real_timestamp} differs from the frame already recorded there",
        )


class ClosedRecordingError(KRecError, RuntimeError):
    code = "E_CLOSED_RECORDING"


class DecodeError(KRecError, ValueError):
    """Corrupt or truncated bytes. ``offset`` is the absolute byte offset of the bad record."""

    code = "E_DECODE"

    def __init__(self, message: str, offset: int | None = None, message_type: str | None = None):
        self.offset = offset
        self.message_type = message_type
        where = []
        if message_type is not None:
            where.append(message_type)
        if offset is not None:
            where.append(f"offset {offset}")
        if where:
            message = f"{message} ({' at '.join(where)})"
        super().__init__(message)


class TruncatedRecordError(DecodeError):
    """The stream ends inside a record."""

    code = "E_TRUNCATED"


class IoError(KRecError, OSError):
    code = "E_IO"


class CorruptRecordWarning(UserWarning):
    pass
