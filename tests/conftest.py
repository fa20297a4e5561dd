"""Common fixtures."""

import pytest


class ManualClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, millis: int) -> None:
        self.now += millis


@pytest.fixture
def clock() -> ManualClock:
    """Create a manual clock."""
    return ManualClock()
