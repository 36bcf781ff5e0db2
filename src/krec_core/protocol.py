"""KRec protocol constants.

Single source of truth for on-disk magic values and record layouts.
Keep this file stable. Writer and reader must remain synchronized.
"""

# File and record magics
MAGIC_FILE       = b"KREC"  # File header
MAGIC_HEADER_REC = b"KRHD"  # KRecHeader record
MAGIC_FRAME_REC  = b"KRFR"  # KRecFrame record
MAGIC_END_REC    = b"KREN"  # Terminator record (finalize end_timestamp)

RECORD_MAGICS = (MAGIC_HEADER_REC, MAGIC_FRAME_REC, MAGIC_END_REC)

VERSION = 1

FILE_HEADER_LEN = 4

# Record: [Magic(4) | Ver(1) | Seq(4) | Length(4) | CRC32(4)] = 17 bytes
REC_HEADER_FMT = "<4sBIII"
REC_HEADER_LEN = 17

# Terminator payload: end_timestamp
END_PAYLOAD_FMT = "<Q"
END_PAYLOAD_LEN = 8

# Default safety bounds
DEFAULT_MAX_RECORD_SIZE = 64 * 1024 * 1024  # 64 MiB

# Resynchronization bounds
DEFAULT_MAX_RESYNC_BYTES = 64 * 1024 * 1024  # 64 MiB scan window per corruption event
DEFAULT_MAX_GARBAGE_BYTES = 256 * 1024  # 256 KiB maximum tolerated garbage between records

# Integer widths on the wire
UINT32_MAX = 2**32 - 1
UINT64_MAX = 2**64 - 1

# Equal real_timestamp handling on append
DUPLICATE_IDENTICAL = "identical"  # identical re-append is a no-op, anything else is an error
DUPLICATE_ALLOW = "allow"          # equal timestamps are kept as separate frames
DUPLICATE_REJECT = "reject"        # equal timestamps are always an error

DUPLICATE_POLICIES = (DUPLICATE_IDENTICAL, DUPLICATE_ALLOW, DUPLICATE_REJECT)
DEFAULT_DUPLICATE_POLICY = DUPLICATE_IDENTICAL

# Proto package of the wire schema
PROTO_PACKAGE = "krec.proto"
