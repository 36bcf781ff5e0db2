"""KRec identity functions."""
from __future__ import annotations

import base64
import hashlib
import uuid


def new_recording_uuid() -> str:
    """Assign a recording UUID. Called once per recording, never regenerated."""
    return str(uuid.uuid4())


def _hash(b: bytes, prefix: str) -> str:
    """Compute truncated SHA-256 hash with base32 encoding."""
    h = hashlib.sha256(b).digest()[:15]
    return prefix + base64.b32encode(h).decode("ascii").lower().rstrip("=")


def content_hash(payload: bytes) -> str:
    """Deterministic ID of a record payload."""
    return _hash(payload, "r_")
