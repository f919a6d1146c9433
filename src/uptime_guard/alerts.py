"""Cooldown-based alert throttling backed by a shared key-value store.

The last permitted alert time (epoch milliseconds) lives in the store so
that independent invocations share one cooldown window. The read-then-write
is not atomic; two concurrent checks may both decide to alert.
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING

import structlog

from uptime_guard.retry import SleepFn, capture, retry

if TYPE_CHECKING:
    from collections.abc import Callable

    from uptime_guard.config import AlertSettings
    from uptime_guard.kv import KVStore

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

_DEFAULT_KEY = "health:lastAlert"
_DEFAULT_COOLDOWN_SECONDS = 15 * 60


class AlertRateLimiter:
    """Permit at most one alert per cooldown window.

    Store failures (after retries) fail open: ``should_alert`` returns
    True rather than silently suppressing every alert.

    Attributes:
        key: Store key holding the last-alert timestamp.
        cooldown_seconds: Minimum time between two permitted alerts.
    """

    def __init__(
        self,
        store: KVStore,
        *,
        key: str = _DEFAULT_KEY,
        cooldown_seconds: float = _DEFAULT_COOLDOWN_SECONDS,
        retries: int = 1,
        base_delay_ms: int = 300,
        clock: Callable[[], float] = time.time,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.key = key
        self.cooldown_seconds = cooldown_seconds
        self._store = store
        self._retries = retries
        self._base_delay_ms = base_delay_ms
        self._clock = clock
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        store: KVStore,
        settings: AlertSettings,
        *,
        sleep: SleepFn = asyncio.sleep,
    ) -> AlertRateLimiter:
        """Build a limiter from alert settings."""
        return cls(
            store,
            key=settings.store_key,
            cooldown_seconds=settings.cooldown_seconds,
            retries=settings.store_retries,
            base_delay_ms=settings.store_base_delay_ms,
            sleep=sleep,
        )

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _parse_timestamp(self, raw: str | None) -> int:
        if raw is None:
            return 0
        try:
            return int(float(raw))
        except (ValueError, OverflowError):
            logger.warning("alert_timestamp_unparseable", key=self.key, value=raw)
            return 0

    async def _decide(self) -> bool:
        raw = await retry(
            lambda: self._store.get(self.key),
            self._retries,
            self._base_delay_ms,
            sleep=self._sleep,
            label="kv_get",
        )
        last_ms = self._parse_timestamp(raw)
        now_ms = self._now_ms()
        if now_ms - last_ms <= self.cooldown_seconds * 1000:
            logger.info(
                "alert_suppressed",
                key=self.key,
                seconds_since_last=round((now_ms - last_ms) / 1000),
            )
            return False

        await retry(
            lambda: self._store.set(self.key, str(now_ms)),
            self._retries,
            self._base_delay_ms,
            sleep=self._sleep,
            label="kv_set",
        )
        return True

    async def should_alert(self) -> bool:
        """Decide whether an alert may be sent now, recording it if so."""
        outcome = await capture(self._decide)
        if outcome.error is not None:
            logger.warning(
                "alert_store_unavailable",
                key=self.key,
                error=outcome.error.model_dump(exclude_none=True),
            )
            return True
        return bool(outcome.value)
