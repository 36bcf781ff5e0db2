import dataclasses
import hashlib
import warnings
from pathlib import Path

from krec_core.container import RecordingReader
from krec_core.errors import CorruptRecordWarning, KRecError
from krec_core.recording import Recording
from .const import ERRORS

CANONICAL_JSON_KW = {"sort_keys": True, "separators": (",", ":"), "ensure_ascii": False}

_CONTEXT = ("offset", "message_type", "actuator_id", "field", "expected", "got", "end_timestamp", "minimum")


def _fail(errors: list, **extra) -> dict:
    return {"status": "FAIL", "error_count": len(errors), "errors": errors, **extra}


def _error(exc: KRecError) -> dict:
    code = exc.code if exc.code in ERRORS else "E_VALIDATION"
    err = {"code": code, "message": ERRORS[code], "detail": str(exc)}
    for name in _CONTEXT:
        value = getattr(exc, name, None)
        if value is not None:
            err[name] = value
    return err


def content_root(frame_index: dict) -> str:
    acc = hashlib.sha256()
    for seq in sorted(frame_index):
        acc.update(frame_index[seq]["content_hash"].encode("ascii"))
    return acc.hexdigest()


def verify_recording(path: Path, require_finalized: bool = False, recover: bool = False) -> dict:
    errors = []
    path = Path(path)
    if not path.exists():
        errors.append({"code": "E_FILE_MISSING", "message": ERRORS["E_FILE_MISSING"], "path": str(path)})
        return _fail(errors)

    try:
        reader = RecordingReader.open(path, recover=recover)
    except OSError as e:
        errors.append({"code": "E_IO", "message": ERRORS["E_IO"], "detail": str(e)})
        return _fail(errors)
    except KRecError as e:
        errors.append(_error(e))
        return _fail(errors)

    with reader, warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", CorruptRecordWarning)
        # frames_read counts committed frames, not the rejected one.
        recording = Recording(dataclasses.replace(reader.header, end_timestamp=None))
        try:
            recording.replay(reader)
        except KRecError as e:
            errors.append(_error(e))
            return _fail(errors, frames_read=recording.frame_count, scan=reader.get_scan_stats())

    if require_finalized and not recording.is_finalized:
        errors.append({"code": "E_NOT_FINALIZED", "message": ERRORS["E_NOT_FINALIZED"]})
        return _fail(errors, frames_read=recording.frame_count, scan=reader.get_scan_stats())

    header = recording.header
    return {
        "status": "PASS",
        "error_count": 0,
        "errors": [],
        "uuid": header.uuid,
        "frames": recording.frame_count,
        "actuators": len(header.actuator_configs),
        "finalized": recording.is_finalized,
        "end_timestamp": header.end_timestamp,
        "content_root": content_root(reader.frame_index),
        "scan": reader.get_scan_stats(),
        "warnings": [str(w.message) for w in caught],
    }
