"""Mock package for testing."""

from tests.mocks.presentation import FakePresentation, RecordedEntry, RecordingSink

__all__ = [
    "FakePresentation",
    "RecordedEntry",
    "RecordingSink",
]
