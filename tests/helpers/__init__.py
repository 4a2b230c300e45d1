"""Test doubles for the notification engine."""

from .fakes import (
    FailingSender,
    FakeClock,
    FakeTaskRepository,
    GatedSender,
    RecordingSender,
    RecordingStore,
    wait_until,
)

__all__ = [
    "FakeClock",
    "RecordingSender",
    "FailingSender",
    "GatedSender",
    "RecordingStore",
    "FakeTaskRepository",
    "wait_until",
]
