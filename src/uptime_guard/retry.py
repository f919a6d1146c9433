"""Retry executor with linear backoff.

Wraps an awaitable factory in ``tenacity.AsyncRetrying``. The operation is
invoked once and then up to ``retries`` more times while it raises; the
delay before attempt ``i + 1`` is ``base_delay_ms * i``. When every attempt
fails, the last exception propagates unchanged.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from uptime_guard.models import AttemptOutcome, ErrorInfo

if TYPE_CHECKING:
    from tenacity import RetryCallState

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]

_DEFAULT_RETRIES = 3
_DEFAULT_BASE_DELAY_MS = 500


def _log_before_sleep(label: str | None) -> Callable[[RetryCallState], None]:
    def _before_sleep(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.warning(
            "retry_attempt_failed",
            operation=label,
            attempt=retry_state.attempt_number,
            delay_ms=round(delay * 1000),
            error=str(ErrorInfo.from_exception(exc)) if exc else None,
        )

    return _before_sleep


async def retry(
    operation: Callable[[], Awaitable[T]],
    retries: int = _DEFAULT_RETRIES,
    base_delay_ms: int = _DEFAULT_BASE_DELAY_MS,
    *,
    sleep: SleepFn = asyncio.sleep,
    label: str | None = None,
) -> T:
    """Run ``operation`` with up to ``retries`` additional attempts.

    Any ``Exception`` triggers a retry; callers raise only for conditions
    worth retrying. The operation may run several times, so it must be
    safe to repeat.

    Args:
        operation: Zero-argument callable returning an awaitable.
        retries: Additional attempts after the first (``>= 0``).
        base_delay_ms: Linear backoff step in milliseconds (``>= 0``).
        sleep: Async sleep used between attempts, in seconds.
        label: Optional operation name for log entries.

    Returns:
        The first successful result.

    Raises:
        ValueError: If ``retries`` or ``base_delay_ms`` is negative.
        Exception: The final attempt's exception, unchanged.
    """
    if retries < 0:
        msg = f"retries must be >= 0, got {retries}"
        raise ValueError(msg)
    if base_delay_ms < 0:
        msg = f"base_delay_ms must be >= 0, got {base_delay_ms}"
        raise ValueError(msg)

    step = base_delay_ms / 1000
    retrying = AsyncRetrying(
        sleep=sleep,
        stop=stop_after_attempt(retries + 1),
        wait=wait_incrementing(start=step, increment=step),
        retry=retry_if_exception_type(Exception),
        before_sleep=_log_before_sleep(label),
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            return await operation()

    # AsyncRetrying either returns from inside the loop or re-raises.
    raise AssertionError("unreachable")  # pragma: no cover


async def capture(operation: Callable[[], Awaitable[T]]) -> AttemptOutcome:
    """Run ``operation`` once and fold any ``Exception`` into an outcome."""
    try:
        value = await operation()
    except Exception as exc:
        return AttemptOutcome(error=ErrorInfo.from_exception(exc))
    return AttemptOutcome(value=value)
