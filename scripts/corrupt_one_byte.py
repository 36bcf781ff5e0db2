import struct
import sys
from pathlib import Path

from krec_core.protocol import FILE_HEADER_LEN, REC_HEADER_FMT, REC_HEADER_LEN


def record_offset(b: bytes, index: int) -> int:
    """Offset of the index-th record after the header record."""
    off = FILE_HEADER_LEN
    for _ in range(index + 1):
        _, _, _, dlen, _ = struct.unpack(REC_HEADER_FMT, b[off:off + REC_HEADER_LEN])
        off += REC_HEADER_LEN + dlen
    return off


def main():
    if len(sys.argv) not in (2, 3):
        print("Usage: corrupt_one_byte.py <file.krec> [frame_index]")
        raise SystemExit(2)

    p = Path(sys.argv[1])
    frame = int(sys.argv[2]) if len(sys.argv) == 3 else 0
    b = bytearray(p.read_bytes())

    # Flip the third payload byte of the chosen frame record.
    # The record CRC no longer matches, so readers must reject or skip it.
    idx = record_offset(bytes(b), frame) + REC_HEADER_LEN + 2
    if idx >= len(b):
        print("File too small to corrupt safely.")
        raise SystemExit(2)
    b[idx] ^= 0x01
    p.write_bytes(bytes(b))
    print(f"Corrupted 1 byte at offset {idx} in {p}")


if __name__ == "__main__":
    main()
