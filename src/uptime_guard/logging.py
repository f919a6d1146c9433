"""structlog configuration and per-check logging context.

Provides check ID generation, a context manager that binds the check ID
to every log entry of one health run, and structured log configuration
for console and JSON output with optional file logging.
"""

from __future__ import annotations

import logging
import sys
import uuid
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


def generate_check_id() -> str:
    """Generate a unique identifier for one health check run."""
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# structlog configuration
# ---------------------------------------------------------------------------


_VALID_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

# httpx logs every request URL at INFO; Telegram URLs embed the bot token.
_QUIET_LOGGERS = ("httpx", "httpcore")


def _renderer(fmt: str) -> list[structlog.types.Processor]:
    if fmt == "json":
        return [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    return [structlog.dev.ConsoleRenderer()]


def _install_handlers(
    numeric_level: int,
    log_file: str | Path | None,
    formatter: logging.Formatter,
) -> None:
    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(str(log_file), encoding="utf-8"))
    for handler in handlers:
        handler.setLevel(numeric_level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def configure_logging(
    level: str = "INFO",
    fmt: str = "console",
    log_file: str | Path | None = None,
    check_id: str | None = None,
) -> None:
    """Route structlog through the stdlib root logger.

    Safe to call more than once; handlers are replaced, not stacked.

    Args:
        level: Log level name, case-insensitive.
        fmt: ``"console"`` for humans or ``"json"`` for log shippers.
        log_file: Optional file receiving the same entries as stderr.
        check_id: Optional check ID bound to every entry.

    Raises:
        ValueError: If ``level`` is not a recognized log level.
    """
    level_upper = level.upper()
    if level_upper not in _VALID_LEVELS:
        msg = f"Invalid log level: {level!r}. Must be one of {sorted(_VALID_LEVELS)}"
        raise ValueError(msg)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )
    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *_renderer(fmt),
        ],
    )
    _install_handlers(getattr(logging, level_upper), log_file, formatter)

    if check_id:
        structlog.contextvars.bind_contextvars(check_id=check_id)


# ---------------------------------------------------------------------------
# Check logging context manager
# ---------------------------------------------------------------------------


@contextmanager
def check_logging_context(
    check_id: str | None = None,
    **extra: Any,
) -> Iterator[structlog.stdlib.BoundLogger]:
    """Bind a check ID (and extra fields) to every log entry in the block.

    Logs ``check_start`` and ``check_end`` around the block and
    ``check_error`` if it raises.

    Args:
        check_id: Identifier to bind; a fresh UUID4 when omitted.
        **extra: Additional key-value pairs to bind.

    Yields:
        A bound structlog logger with check context.

    Example::

        with check_logging_context(url=url) as log:
            log.info("probing_target")
    """
    bound_id = check_id or generate_check_id()
    structlog.contextvars.bind_contextvars(check_id=bound_id, **extra)

    log: structlog.stdlib.BoundLogger = structlog.get_logger("uptime_guard.check")
    log.info("check_start")

    try:
        yield log
    except Exception:
        log.exception("check_error")
        raise
    finally:
        log.info("check_end")
        structlog.contextvars.unbind_contextvars("check_id", *extra.keys())
