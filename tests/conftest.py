"""Shared fixtures."""

import pytest

from fakes import FakeClock, RecordingSleep


@pytest.fixture
def clock() -> FakeClock:
    """Create a fake monotonic clock."""
    return FakeClock()


@pytest.fixture
def sleep(clock: FakeClock) -> RecordingSleep:
    """Create a sleep that advances the fake clock."""
    return RecordingSleep(clock)
