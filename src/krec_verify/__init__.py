"""KRec Verify - integrity report for recordings."""
from .logic import verify_recording

__all__ = ["verify_recording"]
