"""Shared fixtures: settings factory, fake clock and recorded sleeps."""

import os
from pathlib import Path

import httpx
import pytest

from court_finder.config import Settings

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SAMPLE_DATA = PROJECT_ROOT / "sample_data"
BASE_URL = "https://vbs.example.test"


class FakeClock:
    """Monotonic clock advanced by hand or by :class:`FakeSleep`."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSleep:
    """Records sleep durations and moves the paired clock forward."""

    def __init__(self, clock: FakeClock):
        self._clock = clock
        self.calls = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        self._clock.advance(seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_sleep(clock):
    return FakeSleep(clock)


@pytest.fixture
def make_settings(monkeypatch, tmp_path):
    """Build settings isolated from the caller's environment and working directory."""
    monkeypatch.chdir(tmp_path)
    for name in list(os.environ):
        if name.upper().startswith("COURTFINDER_"):
            monkeypatch.delenv(name, raising=False)

    def factory(**overrides):
        values = dict(
            base_url=BASE_URL,
            fetch_attempts=1,
            fetch_backoff_seconds=0,
            wait_ms=5_000,
            poll_interval_ms=500,
            redirect_timeout_ms=1_000,
            settle_ms=0,
            label_settle_ms=0,
            sample_data_dir=SAMPLE_DATA,
        )
        values.update(overrides)
        return Settings(**values)

    return factory


@pytest.fixture
def settings(make_settings):
    return make_settings()


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))
