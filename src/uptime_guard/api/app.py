"""FastAPI application exposing the cron health endpoint."""

from __future__ import annotations

import secrets

import httpx
import structlog
from fastapi import Depends, FastAPI, Header, HTTPException
from fastapi.responses import JSONResponse

from uptime_guard import __version__
from uptime_guard.config import Settings
from uptime_guard.exceptions import NotificationError
from uptime_guard.health import build_monitor
from uptime_guard.kv import KVStore
from uptime_guard.notify import Notifier, TelegramNotifier

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    kv_store: KVStore | None = None,
    notifier: Notifier | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """Create and configure the FastAPI server app.

    The KV store, notifier and HTTP client may be injected; otherwise
    they are built from settings. The monitor (and its store) is built
    once so an in-memory store persists across requests.
    """
    app_settings = settings or Settings.load()

    app = FastAPI(title="uptime-guard API", version=__version__)

    owns_client = http_client is None
    client = http_client or httpx.AsyncClient(follow_redirects=True, timeout=None)
    monitor = build_monitor(app_settings, client, kv_store=kv_store, notifier=notifier)
    telegram = (
        notifier
        if isinstance(notifier, TelegramNotifier)
        else TelegramNotifier.from_settings(app_settings.telegram, client=client)
    )

    app.state.settings = app_settings
    app.state.monitor = monitor
    app.state.http_client = client

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        if owns_client:
            await client.aclose()

    async def verify_cron(
        authorization: str | None = Header(default=None, alias="Authorization"),
    ) -> None:
        secret = app_settings.api.cron_secret
        if not secret:
            return
        expected = f"Bearer {secret}"
        if authorization is None or not secrets.compare_digest(
            authorization.encode(), expected.encode()
        ):
            logger.warning("cron_auth_rejected")
            raise HTTPException(status_code=401, detail="Unauthorized")

    cron_dep = Depends(verify_cron)

    @app.get("/health")
    async def liveness() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/api/cron/health", dependencies=[cron_dep])
    @app.get("/api/health", dependencies=[cron_dep])
    async def cron_health() -> JSONResponse:
        report = await monitor.run()
        return JSONResponse(report.to_payload(), status_code=200)

    @app.get("/api/health/telegram")
    async def telegram_health() -> JSONResponse:
        try:
            bot = await telegram.get_me()
        except NotificationError as exc:
            return JSONResponse({"ok": False, "error": str(exc)}, status_code=500)
        return JSONResponse({"ok": True, "username": bot.get("username")})

    return app
