from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
from fastapi.testclient import TestClient

from api import create_app
from library import Library


class FakeClock:
    """Manually advanced clock for deterministic timestamps."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 1) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def lib(clock):
    # Fresh repository per test, no shared state to clear
    return Library(clock=clock)


@pytest.fixture
def client(lib):
    with TestClient(create_app(lib)) as test_client:
        yield test_client
