"""Shared pytest fixtures for the uptime-guard test suite."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from uptime_guard.config import Settings
from uptime_guard.kv import InMemoryKVStore

if TYPE_CHECKING:
    from uptime_guard.models import ProbeResult


# ---------------------------------------------------------------------------
# Time helpers
# ---------------------------------------------------------------------------


class FakeClock:
    """Manually advanced epoch clock (seconds)."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)

    @property
    def calls_ms(self) -> list[int]:
        return [round(s * 1000) for s in self.calls]


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


# ---------------------------------------------------------------------------
# Collaborator fakes
# ---------------------------------------------------------------------------


class RecordingNotifier:
    """Notifier that stores messages and can fail a set number of times."""

    def __init__(self, failures: int = 0) -> None:
        self.messages: list[str] = []
        self.attempts = 0
        self._failures = failures

    async def send(self, text: str) -> None:
        self.attempts += 1
        if self.attempts <= self._failures:
            raise RuntimeError(f"delivery failure {self.attempts}")
        self.messages.append(text)


class FailingKVStore:
    """Store whose every command raises."""

    def __init__(self) -> None:
        self.calls = 0

    async def get(self, key: str) -> str | None:
        self.calls += 1
        raise ConnectionError("kv unreachable")

    async def set(self, key: str, value: str) -> None:
        self.calls += 1
        raise ConnectionError("kv unreachable")


class ScriptedProber:
    """Prober returning a scripted sequence of results (last one repeats)."""

    def __init__(self, *results: ProbeResult) -> None:
        self._results = list(results)
        self.calls = 0

    async def probe(self, url: str, timeout_ms: int) -> ProbeResult:
        self.calls += 1
        index = min(self.calls, len(self._results)) - 1
        return self._results[index]


@pytest.fixture()
def memory_store() -> InMemoryKVStore:
    return InMemoryKVStore()


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


# ---------------------------------------------------------------------------
# Configuration fixture
# ---------------------------------------------------------------------------


@pytest.fixture()
def fast_settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    """Settings with zero backoff so retry paths run instantly."""
    for name in ("UPTIME_GUARD_API__CRON_SECRET", "UPTIME_GUARD_KV__BACKEND"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings()
    settings.monitor.url = "https://site.test/"
    settings.monitor.timeout_ms = 2_000
    settings.monitor.probe_base_delay_ms = 0
    settings.alerts.store_base_delay_ms = 0
    settings.alerts.notify_base_delay_ms = 0
    return settings
