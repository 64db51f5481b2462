"""Shared test configuration."""

import os
from datetime import date

import pytest

# Keep the bot module from creating a sqlite file when it is imported
os.environ.setdefault("OOSAN_DB_PATH", ":memory:")


class FixedRandom:
    """Replays a fixed sequence of samples, repeating the last one."""

    def __init__(self, *samples: float) -> None:
        self.samples = list(samples) or [0.0]
        self.calls = 0

    def __call__(self) -> float:
        index = min(self.calls, len(self.samples) - 1)
        self.calls += 1
        return self.samples[index]


@pytest.fixture
def today() -> date:
    return date(2024, 3, 10)


@pytest.fixture
def fixed_random():
    return FixedRandom
