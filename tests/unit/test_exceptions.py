"""Unit tests for uptime_guard.exceptions - centralized exception hierarchy."""

from __future__ import annotations

import pytest

from uptime_guard.exceptions import (
    ConfigurationError,
    KVStoreError,
    NotificationError,
    ProbeConnectionError,
    UptimeGuardError,
)
from uptime_guard.models import ProbeResult


class TestUptimeGuardError:
    """Base exception class tests."""

    def test_inherits_from_exception(self) -> None:
        assert issubclass(UptimeGuardError, Exception)

    @pytest.mark.parametrize(
        "cls", [ConfigurationError, KVStoreError, NotificationError]
    )
    def test_subclasses_caught_by_base(self, cls: type[UptimeGuardError]) -> None:
        with pytest.raises(UptimeGuardError, match="sub error"):
            raise cls("sub error")


class TestProbeConnectionError:
    """ProbeConnectionError carries the failed probe result."""

    def test_carries_result(self) -> None:
        result = ProbeResult(ok=False, status=0, elapsed_ms=3, error="ConnectError: x")
        exc = ProbeConnectionError(result)
        assert exc.result is result
        assert str(exc) == "Health check failed: ConnectError: x"
        assert isinstance(exc, UptimeGuardError)
