"""End-to-end health flow against a mocked target, KV REST store and Telegram."""

from __future__ import annotations

import json

import httpx
import pytest
import respx

from uptime_guard.config import Settings
from uptime_guard.health import build_monitor

TARGET = "https://site.test/"
KV_URL = "https://kv.test/api"
SEND_URL = "https://api.telegram.org/bot123:abc/sendMessage"


class _KVBackend:
    """Tiny Upstash-style responder keeping state between calls."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        command = json.loads(request.content)
        if command[0] == "GET":
            return httpx.Response(200, json={"result": self.data.get(command[1])})
        self.data[command[1]] = command[2]
        return httpx.Response(200, json={"result": "OK"})


@pytest.fixture()
def settings(fast_settings: Settings) -> Settings:
    fast_settings.kv.backend = "rest"
    fast_settings.kv.rest_url = KV_URL
    fast_settings.kv.rest_token = "kv-token"
    fast_settings.telegram.bot_token = "123:abc"
    fast_settings.telegram.chat_id = "42"
    return fast_settings


class TestHealthFlow:
    """Probe -> classify -> throttle -> notify."""

    @respx.mock
    @pytest.mark.asyncio()
    async def test_healthy_target_sends_no_notification(
        self, settings: Settings
    ) -> None:
        respx.get(TARGET).mock(return_value=httpx.Response(200))
        kv = respx.post(KV_URL)
        telegram = respx.post(SEND_URL)

        async with httpx.AsyncClient() as client:
            report = await build_monitor(settings, client).run()

        payload = report.to_payload()
        assert payload["ok"] is True
        assert payload["status"] == 200
        assert payload["healthy"] is True
        assert kv.called is False
        assert telegram.called is False

    @respx.mock
    @pytest.mark.asyncio()
    async def test_503_alerts_once_then_suppresses(self, settings: Settings) -> None:
        backend = _KVBackend()
        respx.get(TARGET).mock(return_value=httpx.Response(503))
        respx.post(KV_URL).mock(side_effect=backend)
        telegram = respx.post(SEND_URL).mock(
            return_value=httpx.Response(200, json={"ok": True, "result": {}})
        )

        async with httpx.AsyncClient() as client:
            monitor = build_monitor(settings, client)
            first = await monitor.run()
            second = await monitor.run()

        assert first.healthy is False
        assert first.alerted is True
        assert second.alerted is False
        assert telegram.call_count == 1
        assert "health:lastAlert" in backend.data
        text = json.loads(telegram.calls.last.request.content)["text"]
        assert "*Status:* 503" in text

    @respx.mock
    @pytest.mark.asyncio()
    async def test_kv_outage_fails_open(self, settings: Settings) -> None:
        respx.get(TARGET).mock(return_value=httpx.Response(500))
        respx.post(KV_URL).mock(return_value=httpx.Response(503, text="down"))
        telegram = respx.post(SEND_URL).mock(
            return_value=httpx.Response(200, json={"ok": True, "result": {}})
        )

        async with httpx.AsyncClient() as client:
            monitor = build_monitor(settings, client)
            await monitor.run()
            await monitor.run()

        assert telegram.call_count == 2

    @respx.mock
    @pytest.mark.asyncio()
    async def test_telegram_outage_does_not_fail_check(
        self, settings: Settings
    ) -> None:
        respx.get(TARGET).mock(return_value=httpx.Response(503))
        respx.post(KV_URL).mock(side_effect=_KVBackend())
        telegram = respx.post(SEND_URL).mock(
            return_value=httpx.Response(502, text="bad gateway")
        )

        async with httpx.AsyncClient() as client:
            report = await build_monitor(settings, client).run()

        assert report.healthy is False
        assert report.alerted is False
        assert telegram.call_count == 2
