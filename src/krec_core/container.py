"""KRec container: length-prefixed records on a byte sink or source.

Layout::

    "KREC"                                  file magic
    [KRHD | ver | 0     | len | crc] header  KRecHeader message
    [KRFR | ver | index | len | crc] frame   KRecFrame message, repeated
    [KREN | ver | count | 8   | crc] end     uint64 end_timestamp, only when finalized

End of stream without a terminator is an unfinalized recording.
"""
from __future__ import annotations

import os
import struct
import zlib
from pathlib import Path
from typing import BinaryIO, Iterable, Iterator
from warnings import warn

from .errors import CorruptRecordWarning, DecodeError, TruncatedRecordError
from .frames import KRecFrame, decode_frame, encode_frame
from .header import KRecHeader, decode_header, encode_header
from .ids import content_hash
from .protocol import (
    DEFAULT_MAX_GARBAGE_BYTES,
    DEFAULT_MAX_RECORD_SIZE,
    DEFAULT_MAX_RESYNC_BYTES,
    END_PAYLOAD_FMT,
    END_PAYLOAD_LEN,
    FILE_HEADER_LEN,
    MAGIC_END_REC,
    MAGIC_FILE,
    MAGIC_FRAME_REC,
    MAGIC_HEADER_REC,
    RECORD_MAGICS,
    REC_HEADER_FMT,
    REC_HEADER_LEN,
    UINT32_MAX,
    VERSION,
)

RECORD_TYPES = {
    MAGIC_HEADER_REC: "KRecHeader",
    MAGIC_FRAME_REC: "KRecFrame",
    MAGIC_END_REC: "Terminator",
}


def encode_record(magic: bytes, seq: int, payload: bytes) -> bytes:
    # Seq wraps at 2**32; it is a drift check, not an index.
    header = struct.pack(REC_HEADER_FMT, magic, VERSION, seq & UINT32_MAX, len(payload), zlib.crc32(payload))
    return header + payload


def header_record(header: KRecHeader) -> bytes:
    return encode_record(MAGIC_HEADER_REC, 0, encode_header(header))


def frame_record(index: int, frame: KRecFrame) -> bytes:
    return encode_record(MAGIC_FRAME_REC, index, encode_frame(frame))


def end_record(frame_count: int, end_timestamp: int) -> bytes:
    return encode_record(MAGIC_END_REC, frame_count, struct.pack(END_PAYLOAD_FMT, end_timestamp))


def write_stream(sink, header: KRecHeader, frames: Iterable[KRecFrame], end_timestamp: int | None = None) -> int:
    """Write a complete stream to ``sink``. Returns the number of frames written."""
    sink.write(MAGIC_FILE)
    sink.write(header_record(header))
    count = 0
    for frame in frames:
        sink.write(frame_record(count, frame))
        count += 1
    if end_timestamp is not None:
        sink.write(end_record(count, end_timestamp))
    flush = getattr(sink, "flush", None)
    if flush is not None:
        flush()
    return count


class FileSink:
    """File-backed byte sink.

    With ``durable=True`` every flush is followed by an fdatasync, so a
    record the recording reports as committed survives a crash.
    """

    def __init__(self, path: Path, durable: bool = False):
        self.path = Path(path)
        self.durable = durable
        self._f = open(self.path, "wb")

    def write(self, data: bytes) -> None:
        self._f.write(data)

    def flush(self) -> None:
        self._f.flush()
        if self.durable:
            os.fdatasync(self._f.fileno()) if hasattr(os, "fdatasync") else os.fsync(self._f.fileno())

    def close(self) -> None:
        if not self._f.closed:
            self._f.flush()
            self._f.close()

    @property
    def closed(self) -> bool:
        return self._f.closed

    def __enter__(self) -> "FileSink":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class RecordingReader:
    """Reads a KRec stream: header eagerly, frames on demand.

    - The source must be seekable. Every call to :meth:`iter_frames` starts
      again from the first frame record, so iteration is restartable.
    - Strict mode (default) raises :class:`DecodeError` on the first bad
      record, with its byte offset and record type.
    - ``recover=True`` skips bad records with a :class:`CorruptRecordWarning`
      and resynchronises on the next record magic.

    A reader holds one file position; do not iterate it from two threads.
    """

    def __init__(
        self,
        source: BinaryIO,
        recover: bool = False,
        max_record_size: int = DEFAULT_MAX_RECORD_SIZE,
    ):
        self.source = source
        self.recover = recover
        self.max_record_size = max_record_size
        self.scan_stats = {
            "corrupt_records": 0,
            "garbage_bytes": 0,
            "resyncs": 0,
            "records": 0,
            "seq_gaps": 0,
        }
        self.frame_index: dict[int, dict] = {}
        self._owned = False

        start = source.tell()
        magic = source.read(FILE_HEADER_LEN)
        if magic != MAGIC_FILE:
            raise DecodeError(f"invalid file magic {magic!r}", offset=start, message_type="KRec")

        header_off = source.tell()
        rec = self._read_record(header_off)
        if rec is None:
            raise DecodeError("missing header record", offset=header_off, message_type="KRecHeader")
        rec_magic, _, payload = rec
        if rec_magic != MAGIC_HEADER_REC:
            raise DecodeError(
                f"expected header record, found {RECORD_TYPES[rec_magic]}",
                offset=header_off,
                message_type="KRecHeader",
            )
        self.header = decode_header(payload, offset=header_off + REC_HEADER_LEN)
        self.frames_offset = source.tell()

        # Known once a pass over the frames has reached the end of the stream.
        self.end_timestamp: int | None = None
        self.finalized = False
        self.frame_count: int | None = None

    @classmethod
    def open(cls, path: Path, recover: bool = False, **kwargs) -> "RecordingReader":
        f = open(path, "rb")
        try:
            reader = cls(f, recover=recover, **kwargs)
        except BaseException:
            f.close()
            raise
        reader._owned = True
        return reader

    def close(self) -> None:
        if self._owned:
            self.source.close()

    def __enter__(self) -> "RecordingReader":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _read_record(self, start_off: int):
        """Read one record at the current position.

        Returns (magic, seq, payload), or None on clean EOF.
        Raises DecodeError on any defect.
        """
        header = self.source.read(REC_HEADER_LEN)
        if len(header) == 0:
            return None
        if len(header) < REC_HEADER_LEN:
            raise TruncatedRecordError(f"truncated record header ({len(header)} bytes)", offset=start_off)

        magic, ver, seq, dlen, crc = struct.unpack(REC_HEADER_FMT, header)
        if magic not in RECORD_MAGICS:
            raise DecodeError(f"corrupt record magic {magic!r}", offset=start_off)
        rtype = RECORD_TYPES[magic]
        if ver != VERSION:
            raise DecodeError(f"unsupported record version {int(ver)}", offset=start_off, message_type=rtype)
        if dlen > self.max_record_size:
            raise DecodeError(
                f"record payload size {int(dlen)} exceeds limit {self.max_record_size}",
                offset=start_off,
                message_type=rtype,
            )

        payload = self.source.read(dlen)
        if len(payload) != dlen:
            raise TruncatedRecordError(
                f"torn payload ({len(payload)} of {int(dlen)} bytes)", offset=start_off, message_type=rtype
            )
        if zlib.crc32(payload) != crc:
            raise DecodeError("payload checksum mismatch", offset=start_off, message_type=rtype)
        return magic, int(seq), payload

    def _resync_to_magic(self, start_pos: int) -> int:
        """Scan forward to find the next record magic.

        Returns the absolute offset where a magic starts, or -1 if none is found within budget.
        """
        chunk_size = 64 * 1024  # 64KB
        scanned = 0

        # Keep a small overlap so a magic split across chunks can still be found.
        overlap = max(len(m) for m in RECORD_MAGICS) - 1
        prev_tail = b""

        self.source.seek(start_pos)
        while scanned < DEFAULT_MAX_RESYNC_BYTES:
            chunk = self.source.read(chunk_size)
            if not chunk:
                return -1

            hay = prev_tail + chunk
            hits = [p for p in (hay.find(m) for m in RECORD_MAGICS) if p != -1]
            if hits:
                # source.tell() is at end of chunk; compute absolute offset of match.
                end_off = self.source.tell()
                start_of_hay = end_off - len(hay)
                return start_of_hay + min(hits)

            prev_tail = hay[-overlap:] if overlap > 0 else b""
            scanned += len(chunk)

        return -1

    def _records(self) -> Iterator[tuple[int, bytes, int, bytes]]:
        """Yield (offset, magic, seq, payload) for every record after the header."""
        self.source.seek(self.frames_offset)
        while True:
            start_off = self.source.tell()
            try:
                rec = self._read_record(start_off)
            except TruncatedRecordError as e:
                if not self.recover:
                    raise
                self.scan_stats["corrupt_records"] += 1
                warn(f"{e}. Stopping scan.", CorruptRecordWarning)
                return
            except DecodeError as e:
                if not self.recover:
                    raise
                self.scan_stats["corrupt_records"] += 1
                warn(f"{e}. Resyncing.", CorruptRecordWarning)

                next_off = self._resync_to_magic(start_off + 1)
                if next_off == -1:
                    warn("Unable to resync record stream. Stopping scan.", CorruptRecordWarning)
                    return

                garbage = next_off - start_off
                self.scan_stats["garbage_bytes"] += int(garbage)
                self.scan_stats["resyncs"] += 1
                if garbage > DEFAULT_MAX_GARBAGE_BYTES:
                    warn(f"Large garbage span during resync: {garbage} bytes", CorruptRecordWarning)

                self.source.seek(next_off)
                continue

            if rec is None:
                return
            magic, seq, payload = rec
            self.scan_stats["records"] += 1
            yield start_off, magic, seq, payload

    def iter_frames(self) -> Iterator[KRecFrame]:
        """Lazily decode frames from the start of the stream."""
        for stat in self.scan_stats:
            self.scan_stats[stat] = 0
        self.frame_index = {}
        count = 0
        for offset, magic, seq, payload in self._records():
            payload_off = offset + REC_HEADER_LEN
            if magic == MAGIC_HEADER_REC:
                err = DecodeError("unexpected second header record", offset=offset, message_type="KRecHeader")
                if not self.recover:
                    raise err
                warn(f"{err}. Skipping.", CorruptRecordWarning)
                self.scan_stats["corrupt_records"] += 1
                continue

            if magic == MAGIC_END_REC:
                if len(payload) != END_PAYLOAD_LEN:
                    raise DecodeError("bad terminator payload", offset=offset, message_type="Terminator")
                if seq != (count & UINT32_MAX) and not self.recover:
                    raise DecodeError(f"terminator frame count {seq} does not match {count} frames",
                                      offset=offset, message_type="Terminator")
                (self.end_timestamp,) = struct.unpack(END_PAYLOAD_FMT, payload)
                self.finalized = True
                self.frame_count = count
                return

            if seq != (count & UINT32_MAX):
                if not self.recover:
                    raise DecodeError(f"frame sequence drift (found {seq}, expected {count})", offset=offset,
                                      message_type="KRecFrame")
                self.scan_stats["seq_gaps"] += 1

            try:
                frame = decode_frame(payload, offset=payload_off)
            except DecodeError as e:
                if not self.recover:
                    raise
                warn(f"{e}. Skipping.", CorruptRecordWarning)
                self.scan_stats["corrupt_records"] += 1
                continue

            self.frame_index[count] = {
                "offset": int(offset),
                "length": int(REC_HEADER_LEN + len(payload)),
                "content_hash": content_hash(payload),
                "status": "VERIFIED",
            }
            count += 1
            yield frame

        # Stream ended without a terminator: not finalized, unless the
        # header itself carries the end timestamp.
        self.frame_count = count
        self.end_timestamp = self.header.end_timestamp
        self.finalized = self.header.end_timestamp is not None

    def __iter__(self) -> Iterator[KRecFrame]:
        return self.iter_frames()

    def scan(self) -> dict:
        """Walk the whole stream and return the frame index."""
        for _ in self.iter_frames():
            pass
        return dict(self.frame_index)

    def get_scan_stats(self) -> dict:
        return dict(self.scan_stats)
