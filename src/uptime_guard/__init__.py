"""uptime-guard: Cron-driven site health checks with throttled Telegram alerts."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("uptime-guard")
except PackageNotFoundError:
    __version__ = "0.1.0"

__all__ = ["__version__"]
