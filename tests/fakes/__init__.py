"""Exports for test fakes."""

from .auth import FakeAuthBackend
from .sleep import RecordingSleeper
from .transport import FakeTransport, failing, ok

__all__ = [
    "FakeAuthBackend",
    "FakeTransport",
    "RecordingSleeper",
    "failing",
    "ok",
]
