"""Centralized exception hierarchy for the uptime-guard package.

All domain-specific exceptions inherit from ``UptimeGuardError`` so
callers can catch the entire family with a single ``except`` clause.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uptime_guard.models import ProbeResult


class UptimeGuardError(Exception):
    """Base exception for all uptime-guard errors."""


# ---------------------------------------------------------------------------
# Configuration errors
# ---------------------------------------------------------------------------


class ConfigurationError(UptimeGuardError):
    """Raised when settings are incomplete for the requested backend."""


# ---------------------------------------------------------------------------
# Infrastructure errors
# ---------------------------------------------------------------------------


class KVStoreError(UptimeGuardError):
    """Raised when the shared key-value store rejects or fails a command."""


class NotificationError(UptimeGuardError):
    """Raised when the notification sink fails to deliver a message."""


# ---------------------------------------------------------------------------
# Probe errors
# ---------------------------------------------------------------------------


class ProbeConnectionError(UptimeGuardError):
    """Raised when a probe could not reach the target at all.

    Carries the probe result so the caller can still report it once
    retries are exhausted.
    """

    def __init__(self, result: ProbeResult) -> None:
        super().__init__(f"Health check failed: {result.error}")
        self.result = result
