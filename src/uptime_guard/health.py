"""Health check orchestration: probe, classify, throttle, alert.

One ``HealthMonitor.run`` call is one cron tick. Nothing is kept between
runs except the last-alert timestamp held by the rate limiter's store.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from uptime_guard.alerts import AlertRateLimiter
from uptime_guard.exceptions import ProbeConnectionError
from uptime_guard.kv import build_kv_store
from uptime_guard.logging import check_logging_context
from uptime_guard.models import HealthReport, ProbeResult
from uptime_guard.notify import TelegramNotifier, format_alert_message
from uptime_guard.prober import HealthProber
from uptime_guard.retry import SleepFn, capture, retry

if TYPE_CHECKING:
    from collections.abc import Callable

    import httpx

    from uptime_guard.config import AlertSettings, MonitorSettings, Settings
    from uptime_guard.kv import KVStore
    from uptime_guard.notify import Notifier

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


class HealthMonitor:
    """Compose prober, retry policy, rate limiter and notifier."""

    def __init__(
        self,
        settings: MonitorSettings,
        prober: HealthProber,
        limiter: AlertRateLimiter,
        notifier: Notifier,
        *,
        alert_settings: AlertSettings | None = None,
        sleep: SleepFn = asyncio.sleep,
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        self._settings = settings
        self._prober = prober
        self._limiter = limiter
        self._notifier = notifier
        self._notify_retries = alert_settings.notify_retries if alert_settings else 1
        self._notify_base_delay_ms = (
            alert_settings.notify_base_delay_ms if alert_settings else 500
        )
        self._sleep = sleep
        self._now = now

    async def probe(self) -> ProbeResult:
        """Probe the target, retrying only connection-level failures.

        Slow or non-200 responses are returned on the first attempt so
        that retried successes never mask real degradation.
        """
        url = self._settings.url
        timeout_ms = self._settings.timeout_ms

        async def _attempt() -> ProbeResult:
            result = await self._prober.probe(url, timeout_ms)
            if result.connection_failed:
                raise ProbeConnectionError(result)
            return result

        try:
            return await retry(
                _attempt,
                self._settings.probe_retries,
                self._settings.probe_base_delay_ms,
                sleep=self._sleep,
                label="probe",
            )
        except ProbeConnectionError as exc:
            return exc.result

    def classify(self, result: ProbeResult) -> bool:
        """Healthy iff the target answered 200 within the slow threshold."""
        return result.ok and result.elapsed_ms <= self._settings.slow_threshold_ms

    async def _send_alert(self, result: ProbeResult, checked_at: datetime) -> bool:
        message = format_alert_message(
            self._settings.site_name, self._settings.url, result, checked_at
        )
        outcome = await capture(
            lambda: retry(
                lambda: self._notifier.send(message),
                self._notify_retries,
                self._notify_base_delay_ms,
                sleep=self._sleep,
                label="notify",
            )
        )
        if outcome.error is not None:
            logger.error(
                "alert_delivery_failed",
                error=outcome.error.model_dump(exclude_none=True),
            )
            return False
        return True

    async def run(self) -> HealthReport:
        """Run one health check and alert on degradation if permitted."""
        url = self._settings.url
        with check_logging_context(url=url) as log:
            result = await self.probe()
            healthy = self.classify(result)
            log.info(
                "health_check_completed",
                status=result.status,
                ms=result.elapsed_ms,
                healthy=healthy,
            )

            checked_at = self._now()
            alerted = False
            if not healthy and await self._limiter.should_alert():
                alerted = await self._send_alert(result, checked_at)

            return HealthReport.from_probe(
                result,
                site=self._settings.site_name,
                url=url,
                timestamp=checked_at.isoformat(),
                healthy=healthy,
                alerted=alerted,
            )


def build_monitor(
    settings: Settings,
    client: httpx.AsyncClient,
    *,
    kv_store: KVStore | None = None,
    notifier: Notifier | None = None,
) -> HealthMonitor:
    """Wire a monitor from settings, sharing one HTTP client.

    ``kv_store`` and ``notifier`` override the configured backends.
    """
    store = kv_store if kv_store is not None else build_kv_store(settings.kv, client)
    sink = notifier
    if sink is None:
        sink = TelegramNotifier.from_settings(settings.telegram, client=client)
    return HealthMonitor(
        settings.monitor,
        HealthProber(client),
        AlertRateLimiter.from_settings(store, settings.alerts),
        sink,
        alert_settings=settings.alerts,
    )
