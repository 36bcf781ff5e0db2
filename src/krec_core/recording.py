"""Recording: one header plus an append-only, ordered sequence of frames."""
from __future__ import annotations

import dataclasses
import enum
import threading
from pathlib import Path
from typing import Iterator, Optional

from .container import FileSink, RecordingReader, end_record, frame_record, header_record, write_stream
from .display import render_frame, render_recording
from .errors import (
    ClosedRecordingError,
    DuplicateFrameError,
    HeaderFrozenError,
    InvalidEndTimestampError,
    IoError,
    OrderingError,
    ValidationError,
)
from .frames import KRecFrame, validate_frame
from .header import KRecHeader, revise_header
from .protocol import (
    DEFAULT_DUPLICATE_POLICY,
    DUPLICATE_ALLOW,
    DUPLICATE_POLICIES,
    DUPLICATE_REJECT,
    MAGIC_FILE,
)
from .values import check_uint


class RecordingState(enum.Enum):
    OPEN = "open"
    FINALIZED = "finalized"


def check_ordering(
    prev: KRecFrame,
    frame: KRecFrame,
    last_video: Optional[KRecFrame] = None,
    last_step: int = 0,
) -> None:
    """Raise OrderingError if ``frame`` may not follow ``prev``.

    Video counters are compared with ``last_video``, the latest committed
    frame that carried video, and only when ``frame`` carries video too.
    ``inference_step`` is compared with ``last_step``, the latest non-zero
    step, and only when ``frame`` has a non-zero step. Frames without video
    or without a step in between do not reset either counter.
    """
    if frame.real_timestamp < prev.real_timestamp:
        raise OrderingError("real_timestamp", prev.real_timestamp, frame.real_timestamp)
    if last_video is not None and frame.has_video:
        if frame.video_timestamp < last_video.video_timestamp:
            raise OrderingError("video_timestamp", last_video.video_timestamp, frame.video_timestamp)
        if frame.video_frame_number < last_video.video_frame_number:
            raise OrderingError("video_frame_number", last_video.video_frame_number, frame.video_frame_number)
    if last_step and frame.inference_step and frame.inference_step < last_step:
        raise OrderingError("inference_step", last_step, frame.inference_step)


class Recording:
    """A KRec recording.

    Lifecycle is ``OPEN`` -> ``FINALIZED``; there is no way back. Frames are
    validated against the header's actuator registry and the previous frame
    before they become visible, and are never changed afterwards.

    When a byte ``sink`` is attached, the file magic and header record are
    written at open, every accepted frame is written before it is committed
    in memory, and finalize writes the terminator record. A sink ``OSError``
    surfaces as :class:`IoError`, leaves the recording unchanged, and blocks
    further appends: the sink's contents past the last committed frame are
    unknown.

    One lock covers validate + write + commit, so concurrent appends cannot
    interleave. Readers get a snapshot of the frames committed so far.
    """

    def __init__(
        self,
        header: KRecHeader,
        sink=None,
        duplicate_policy: str = DEFAULT_DUPLICATE_POLICY,
    ):
        if not isinstance(header, KRecHeader):
            raise ValidationError("Recording needs a KRecHeader")
        if header.is_finalized:
            raise ValidationError("cannot open a recording with a finalized header")
        if duplicate_policy not in DUPLICATE_POLICIES:
            raise ValueError(f"Unknown duplicate policy '{duplicate_policy}'. Known: {', '.join(DUPLICATE_POLICIES)}")

        self._header = header
        self._frames: list[KRecFrame] = []
        self._last_video: Optional[KRecFrame] = None
        self._last_step = 0
        self._state = RecordingState.OPEN
        self._lock = threading.Lock()
        self.duplicate_policy = duplicate_policy
        self.sink = sink
        self._sink_failed = False

        if sink is not None:
            self._write(MAGIC_FILE + header_record(header))

    @classmethod
    def open(cls, header: KRecHeader, sink=None, duplicate_policy: str = DEFAULT_DUPLICATE_POLICY) -> "Recording":
        return cls(header, sink=sink, duplicate_policy=duplicate_policy)

    @classmethod
    def create(cls, path: Path, header: KRecHeader, durable: bool = False, **kwargs) -> "Recording":
        """Open a recording that streams every record to the file at ``path``."""
        try:
            sink = FileSink(path, durable=durable)
        except OSError as e:
            raise IoError(f"cannot create {path}: {e}") from e
        try:
            return cls(header, sink=sink, **kwargs)
        except BaseException:
            sink.close()
            raise

    # --- state ---

    @property
    def header(self) -> KRecHeader:
        return self._header

    @property
    def state(self) -> RecordingState:
        return self._state

    @property
    def is_finalized(self) -> bool:
        return self._state is RecordingState.FINALIZED

    @property
    def end_timestamp(self) -> Optional[int]:
        return self._header.end_timestamp

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def frames(self) -> tuple:
        with self._lock:
            return tuple(self._frames)

    def __len__(self) -> int:
        return len(self._frames)

    def __getitem__(self, index: int) -> KRecFrame:
        return self._frames[index]

    def __repr__(self) -> str:
        h = self._header
        return (
            f"KRec(uuid={h.uuid}, task={h.task}, platform={h.robot_platform}, serial={h.robot_serial}, "
            f"actuators={len(h.actuator_configs)}, frames={len(self._frames)}, state={self._state.value})"
        )

    # --- sink ---

    def _write(self, data: bytes) -> None:
        try:
            self.sink.write(data)
            flush = getattr(self.sink, "flush", None)
            if flush is not None:
                flush()
        except OSError as e:
            self._sink_failed = True
            raise IoError(f"sink write failed: {e}") from e

    # --- operations ---

    def revise_header(self, **changes) -> KRecHeader:
        """Edit header fields before recording starts."""
        with self._lock:
            if self._frames or self._state is not RecordingState.OPEN:
                raise HeaderFrozenError("header is frozen once the first frame is appended")
            if self.sink is not None:
                raise HeaderFrozenError("header was already written to the sink")
            self._header = revise_header(self._header, **changes)
            return self._header

    def append(self, frame: KRecFrame) -> bool:
        """Validate and commit ``frame``.

        Returns False when ``frame`` is an identical re-append of the last
        frame (a no-op), True when it was added.
        """
        if not isinstance(frame, KRecFrame):
            raise ValidationError(f"expected KRecFrame, got {type(frame).__name__}")
        with self._lock:
            if self._state is RecordingState.FINALIZED:
                raise ClosedRecordingError("recording is finalized; no further appends")
            if self._sink_failed:
                raise IoError("sink failed on an earlier write; recording integrity unknown")

            validate_frame(frame, self._header.registry)

            if self._frames:
                prev = self._frames[-1]
                check_ordering(prev, frame, self._last_video, self._last_step)
                if frame.real_timestamp == prev.real_timestamp and self.duplicate_policy != DUPLICATE_ALLOW:
                    if self.duplicate_policy == DUPLICATE_REJECT:
                        raise OrderingError(
                            "real_timestamp",
                            prev.real_timestamp + 1,
                            frame.real_timestamp,
                            f"real_timestamp {frame.real_timestamp} repeats the previous frame",
                        )
                    if frame == prev:
                        return False
                    raise DuplicateFrameError(frame.real_timestamp)

            if self.sink is not None:
                self._write(frame_record(len(self._frames), frame))
            self._frames.append(frame)
            if frame.has_video:
                self._last_video = frame
            if frame.inference_step:
                self._last_step = frame.inference_step
            return True

    def finalize(self, end_timestamp: int) -> KRecHeader:
        """Close the recording at ``end_timestamp``. Terminal."""
        check_uint("end_timestamp", end_timestamp)
        with self._lock:
            if self._state is RecordingState.FINALIZED:
                raise ClosedRecordingError("recording is already finalized")
            if end_timestamp < self._header.start_timestamp:
                raise InvalidEndTimestampError(end_timestamp, self._header.start_timestamp)
            if self._frames and end_timestamp < self._frames[-1].real_timestamp:
                raise InvalidEndTimestampError(end_timestamp, self._frames[-1].real_timestamp)

            # After a failed write the sink may end in a partial record; the
            # terminator is then kept in memory only.
            if self.sink is not None and not self._sink_failed:
                self._write(end_record(len(self._frames), end_timestamp))
            self._header = dataclasses.replace(self._header, end_timestamp=end_timestamp)
            self._state = RecordingState.FINALIZED
            return self._header

    def iterate(self) -> Iterator[KRecFrame]:
        """Frames committed so far, in order. Call again to start over."""
        with self._lock:
            snapshot = tuple(self._frames)
        return iter(snapshot)

    def __iter__(self) -> Iterator[KRecFrame]:
        return self.iterate()

    def close(self) -> None:
        """Close the attached sink, if it can be closed."""
        close = getattr(self.sink, "close", None)
        if close is not None:
            close()

    def __enter__(self) -> "Recording":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # --- persistence ---

    def save(self, path: Path) -> None:
        with self._lock:
            header, frames = self._header, tuple(self._frames)
        try:
            with FileSink(path) as sink:
                write_stream(sink, header, frames, header.end_timestamp)
        except OSError as e:
            raise IoError(f"cannot save recording to {path}: {e}") from e

    @classmethod
    def load(cls, path: Path, recover: bool = False, duplicate_policy: str = DEFAULT_DUPLICATE_POLICY) -> "Recording":
        """Read a recording, validating every frame as it is appended."""
        try:
            reader = RecordingReader.open(path, recover=recover)
        except OSError as e:
            raise IoError(f"cannot open {path}: {e}") from e
        with reader:
            return cls.from_reader(reader, duplicate_policy=duplicate_policy)

    @classmethod
    def from_reader(cls, reader: RecordingReader, duplicate_policy: str = DEFAULT_DUPLICATE_POLICY) -> "Recording":
        # The end timestamp is re-applied through finalize below.
        header = dataclasses.replace(reader.header, end_timestamp=None)
        recording = cls(header, duplicate_policy=duplicate_policy)
        recording.replay(reader)
        return recording

    def replay(self, reader: RecordingReader) -> None:
        """Append every frame ``reader`` yields, then finalize if the stream was.

        Stops at the first rejected frame; frames before it stay committed.
        """
        for frame in reader.iter_frames():
            self.append(frame)
        if reader.finalized:
            self.finalize(reader.end_timestamp)

    # --- display ---

    def display(self) -> str:
        return render_recording(self)

    def display_frame(self, frame_number: int) -> str:
        frames = self.frames
        if not 0 <= frame_number < len(frames):
            raise IndexError(f"Frame number {frame_number} out of range (0-{len(frames) - 1})")
        return render_frame(frames[frame_number], frame_number)
