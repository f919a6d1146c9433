"""Single-shot HTTP reachability and latency probe."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable

import httpx
import structlog

from uptime_guard.models import ErrorInfo, ProbeResult

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


class HealthProber:
    """Issue bounded-timeout GET requests and classify the outcome.

    ``probe`` never raises for ordinary failures: connection errors,
    timeouts and protocol errors are all folded into the returned
    ``ProbeResult`` with ``status=0``.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._client = client
        self._clock = clock

    async def probe(self, url: str, timeout_ms: int) -> ProbeResult:
        """GET ``url`` and report status and elapsed time.

        The request, body included, is cancelled once ``timeout_ms``
        elapses.
        """
        start = self._clock()
        try:
            async with asyncio.timeout(timeout_ms / 1000):
                response = await self._client.get(url)
        except TimeoutError:
            return ProbeResult(
                ok=False,
                status=0,
                elapsed_ms=self._elapsed_ms(start),
                error=f"TimeoutError: request aborted after {timeout_ms} ms",
            )
        except Exception as exc:
            logger.debug("probe_request_failed", url=url, error=repr(exc))
            return ProbeResult(
                ok=False,
                status=0,
                elapsed_ms=self._elapsed_ms(start),
                error=str(ErrorInfo.from_exception(exc)),
            )

        return ProbeResult(
            ok=response.status_code == 200,
            status=response.status_code,
            elapsed_ms=self._elapsed_ms(start),
        )

    def _elapsed_ms(self, start: float) -> int:
        return max(0, round((self._clock() - start) * 1000))
