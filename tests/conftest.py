import os
from datetime import datetime, timedelta, timezone

import pytest

# The limiter is built at import time; keep it out of the way of the API tests.
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from adops.core.config import Config  # noqa: E402


class FakeClock:
    """Settable stand-in for the coordinator's wall clock."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(autouse=True)
def reset_config():
    yield
    Config.reset()
