"""KRecHeader: recording identity, task metadata and the actuator registry."""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Mapping, Optional

from .errors import DecodeError, DuplicateActuatorConfigError, ValidationError
from .ids import new_recording_uuid
from .schema import KRecHeaderMessage
from .values import ActuatorConfig, check_uint, config_from_message, config_to_message, parse_message


class ActuatorRegistry(Mapping):
    """Read-only ``actuator_id -> ActuatorConfig`` snapshot of a header's configs."""

    def __init__(self, configs: Iterable[ActuatorConfig]):
        by_id: dict[int, ActuatorConfig] = {}
        for config in configs:
            if config.actuator_id in by_id:
                raise DuplicateActuatorConfigError(config.actuator_id)
            by_id[config.actuator_id] = config
        self._by_id = by_id

    def __getitem__(self, actuator_id: int) -> ActuatorConfig:
        return self._by_id[actuator_id]

    def __iter__(self) -> Iterator[int]:
        return iter(self._by_id)

    def __len__(self) -> int:
        return len(self._by_id)

    def __repr__(self) -> str:
        return f"ActuatorRegistry({sorted(self._by_id)})"


@dataclass(frozen=True)
class KRecHeader:
    uuid: str
    task: str
    robot_platform: str
    robot_serial: str
    start_timestamp: int
    actuator_configs: tuple = field(default_factory=tuple)
    # None until the recording is finalized.
    end_timestamp: Optional[int] = None
    registry: ActuatorRegistry = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        for name in ("uuid", "task", "robot_platform", "robot_serial"):
            if not isinstance(getattr(self, name), str):
                raise ValidationError(f"KRecHeader.{name} must be a string")
        if not self.uuid:
            raise ValidationError("KRecHeader.uuid must not be empty")
        check_uint("KRecHeader.start_timestamp", self.start_timestamp)
        if self.end_timestamp is not None:
            check_uint("KRecHeader.end_timestamp", self.end_timestamp)
            if self.end_timestamp < self.start_timestamp:
                raise ValidationError(
                    f"end_timestamp {self.end_timestamp} is before start_timestamp {self.start_timestamp}"
                )
        configs = tuple(self.actuator_configs)
        if not all(isinstance(c, ActuatorConfig) for c in configs):
            raise ValidationError("actuator_configs must hold ActuatorConfig values")
        object.__setattr__(self, "actuator_configs", configs)
        object.__setattr__(self, "registry", ActuatorRegistry(configs))

    @property
    def is_finalized(self) -> bool:
        return self.end_timestamp is not None


def build_header(
    task: str,
    robot_platform: str,
    robot_serial: str,
    actuator_configs: Iterable[ActuatorConfig],
    start_timestamp: int,
    uuid: str | None = None,
) -> KRecHeader:
    """Build a validated header. A UUID4 is assigned when ``uuid`` is None."""
    return KRecHeader(
        uuid=uuid if uuid is not None else new_recording_uuid(),
        task=task,
        robot_platform=robot_platform,
        robot_serial=robot_serial,
        start_timestamp=start_timestamp,
        actuator_configs=tuple(actuator_configs),
    )


def revise_header(header: KRecHeader, **changes) -> KRecHeader:
    """Return a re-validated copy of ``header`` with ``changes`` applied.

    Identity and the finalize timestamp are not revisable.
    """
    for name in ("uuid", "end_timestamp", "registry"):
        if name in changes:
            raise ValidationError(f"{name} cannot be revised")
    return dataclasses.replace(header, **changes)


def header_to_message(header: KRecHeader):
    msg = KRecHeaderMessage()
    msg.uuid = header.uuid
    msg.task = header.task
    msg.robot_platform = header.robot_platform
    msg.robot_serial = header.robot_serial
    msg.start_timestamp = header.start_timestamp
    if header.end_timestamp is not None:
        msg.end_timestamp = header.end_timestamp
    for config in header.actuator_configs:
        config_to_message(config, msg.actuator_configs.add())
    return msg


def header_from_message(msg) -> KRecHeader:
    return KRecHeader(
        uuid=msg.uuid,
        task=msg.task,
        robot_platform=msg.robot_platform,
        robot_serial=msg.robot_serial,
        start_timestamp=msg.start_timestamp,
        actuator_configs=tuple(config_from_message(m) for m in msg.actuator_configs),
        end_timestamp=msg.end_timestamp if msg.HasField("end_timestamp") else None,
    )


def encode_header(header: KRecHeader) -> bytes:
    return header_to_message(header).SerializeToString()


def decode_header(data: bytes, offset: int | None = None) -> KRecHeader:
    """Decode a header.

    A duplicate actuator id is a registry violation, not byte corruption,
    so it surfaces as :class:`DuplicateActuatorConfigError`.
    """
    msg = parse_message(KRecHeaderMessage, data, offset)
    try:
        return header_from_message(msg)
    except DuplicateActuatorConfigError:
        raise
    except ValidationError as e:
        raise DecodeError(str(e), offset=offset, message_type="KRecHeader") from e
