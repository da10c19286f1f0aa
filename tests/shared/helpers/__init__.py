"""
Shared Helpers - Fakes used across the test suite.
"""

from .fakes import FakeRemoteStore, RecordingViewer, change_payload

__all__ = [
    "FakeRemoteStore",
    "RecordingViewer",
    "change_payload",
]
