"""Alert delivery through a Telegram bot."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import httpx
import structlog

from uptime_guard.exceptions import NotificationError

if TYPE_CHECKING:
    from datetime import datetime

    from uptime_guard.config import TelegramSettings
    from uptime_guard.models import ProbeResult

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


class Notifier(Protocol):
    """A sink that accepts a formatted text message."""

    async def send(self, text: str) -> None: ...


class NullNotifier:
    """Notifier that only logs; used when alerts are disabled."""

    async def send(self, text: str) -> None:
        logger.info("notification_discarded", length=len(text))


class TelegramNotifier:
    """Send messages with the Telegram Bot API ``sendMessage`` method.

    A notifier without a bot token or chat id is a no-op that logs
    ``notification_skipped``.
    """

    def __init__(
        self,
        bot_token: str | None,
        chat_id: str | None,
        *,
        parse_mode: str = "Markdown",
        api_base: str = "https://api.telegram.org",
        client: httpx.AsyncClient,
        timeout: float = 10.0,
    ) -> None:
        self._bot_token = bot_token
        self._chat_id = chat_id
        self._parse_mode = parse_mode
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout
        self._client = client

    @classmethod
    def from_settings(
        cls,
        settings: TelegramSettings,
        client: httpx.AsyncClient,
    ) -> TelegramNotifier:
        return cls(
            settings.bot_token,
            settings.chat_id,
            parse_mode=settings.parse_mode,
            api_base=settings.api_base,
            client=client,
            timeout=settings.timeout,
        )

    @property
    def configured(self) -> bool:
        return bool(self._bot_token and self._chat_id)

    def _method_url(self, method: str) -> str:
        return f"{self._api_base}/bot{self._bot_token}/{method}"

    async def _call(self, method: str, payload: dict[str, Any] | None = None) -> Any:
        try:
            if payload is None:
                response = await self._client.get(
                    self._method_url(method), timeout=self._timeout
                )
            else:
                response = await self._client.post(
                    self._method_url(method), json=payload, timeout=self._timeout
                )
        except httpx.HTTPError as exc:
            raise NotificationError(f"Telegram {method} failed: {exc}") from exc

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}
        if response.is_error or not data.get("ok"):
            description = data.get("description") or f"HTTP {response.status_code}"
            raise NotificationError(f"Telegram {method} rejected: {description}")
        return data.get("result")

    async def send(self, text: str) -> None:
        """Deliver ``text`` to the configured chat.

        Raises:
            NotificationError: If Telegram rejects the message or the
                request fails.
        """
        if not self.configured:
            logger.info("notification_skipped", reason="telegram_not_configured")
            return

        await self._call(
            "sendMessage",
            {
                "chat_id": self._chat_id,
                "text": text,
                "parse_mode": self._parse_mode,
                "disable_web_page_preview": True,
            },
        )
        logger.info("notification_sent", channel="telegram", length=len(text))

    async def get_me(self) -> dict[str, Any]:
        """Return the bot's own user record (connectivity self-check).

        Raises:
            NotificationError: If the bot token or chat id is missing, or
                Telegram rejects the call.
        """
        if not self.configured:
            raise NotificationError("Missing Telegram bot token or chat id")
        result = await self._call("getMe")
        return result if isinstance(result, dict) else {}


def format_alert_message(
    site: str,
    url: str,
    result: ProbeResult,
    checked_at: datetime,
) -> str:
    """Render the Markdown body of a site health alert."""
    lines = [
        "*Site Health Alert* 🚨",
        "",
        f"*Site:* {site}",
        f"*URL:* {url}",
        f"*Status:* {result.status}",
        f"*Response:* {result.elapsed_ms} ms",
    ]
    if result.error:
        lines.append(f"*Error:* {result.error}")
    lines.append(f"*Checked:* {checked_at.isoformat()}")
    lines.append("*Type:* Automated health check")
    return "\n".join(lines)
