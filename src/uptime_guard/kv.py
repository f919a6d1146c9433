"""Shared key-value store used to persist alert state across invocations.

Two backends are provided: an in-memory dict for tests and single-process
deployments, and a REST client for the Upstash Redis protocol (the wire
format behind Vercel KV).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import httpx
import structlog

from uptime_guard.exceptions import ConfigurationError, KVStoreError

if TYPE_CHECKING:
    from uptime_guard.config import KVSettings

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


@runtime_checkable
class KVStore(Protocol):
    """Minimal async key-value interface."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...


class InMemoryKVStore:
    """Process-local store backed by a dict."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value


class RestKVStore:
    """Upstash-compatible REST client.

    Each command is POSTed to the base URL as a JSON array
    (``["GET", key]``) with a bearer token; replies carry either
    ``result`` or ``error``.
    """

    def __init__(
        self,
        url: str,
        token: str,
        *,
        client: httpx.AsyncClient,
        timeout: float = 5.0,
    ) -> None:
        self._url = url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {token}"}
        self._timeout = timeout
        self._client = client

    async def _command(self, *args: str) -> Any:
        try:
            response = await self._client.post(
                self._url,
                json=list(args),
                headers=self._headers,
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            raise KVStoreError(f"KV {args[0]} request failed: {exc}") from exc

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if response.is_error or "error" in body:
            detail = body.get("error") or f"HTTP {response.status_code}"
            raise KVStoreError(f"KV {args[0]} rejected: {detail}")
        return body.get("result")

    async def get(self, key: str) -> str | None:
        result = await self._command("GET", key)
        return None if result is None else str(result)

    async def set(self, key: str, value: str) -> None:
        await self._command("SET", key, value)


def build_kv_store(
    settings: KVSettings,
    client: httpx.AsyncClient,
) -> KVStore:
    """Create the store selected by ``settings.backend``.

    Raises:
        ConfigurationError: If the REST backend lacks a URL or token.
    """
    if settings.backend == "memory":
        logger.debug("kv_backend_selected", backend="memory")
        return InMemoryKVStore()

    if not settings.rest_url or not settings.rest_token:
        raise ConfigurationError(
            "kv.backend='rest' requires kv.rest_url and kv.rest_token"
        )
    logger.debug("kv_backend_selected", backend="rest", url=settings.rest_url)
    return RestKVStore(
        settings.rest_url,
        settings.rest_token,
        client=client,
        timeout=settings.timeout,
    )
