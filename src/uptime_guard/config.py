"""Configuration with 4-layer resolution: defaults -> YAML -> env -> CLI.

Uses pydantic-settings with YamlConfigSettingsSource for layered configuration.
Supports ``.env`` file loading, ``UPTIME_GUARD_`` prefixed env vars, and
nested delimiter ``__`` for overriding sub-model fields, e.g.
``UPTIME_GUARD_MONITOR__URL=https://example.com``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, ClassVar, Literal

import structlog
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

try:
    from pydantic_settings import YamlConfigSettingsSource
except ImportError:  # pragma: no cover
    YamlConfigSettingsSource = None  # type: ignore[assignment, misc]

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Sub-models
# ---------------------------------------------------------------------------


class MonitorSettings(BaseModel):
    """Target site and probe policy."""

    site_name: str = "AIMindOS"
    url: str = "https://aimindos.com"
    timeout_ms: int = Field(
        default=10_000, gt=0, description="Abort the probe after this many ms."
    )
    slow_threshold_ms: int = Field(
        default=5_000, gt=0, description="Responses slower than this are unhealthy."
    )
    probe_retries: int = Field(default=2, ge=0, le=10)
    probe_base_delay_ms: int = Field(default=1_000, ge=0)


class AlertSettings(BaseModel):
    """Alert throttling and delivery retry policy."""

    cooldown_seconds: int = Field(
        default=900, gt=0, description="Minimum time between two alerts."
    )
    key: str = "health:lastAlert"
    key_namespace: str = Field(
        default="", description="Optional prefix for the last-alert key."
    )
    store_retries: int = Field(default=1, ge=0, le=10)
    store_base_delay_ms: int = Field(default=300, ge=0)
    notify_retries: int = Field(default=1, ge=0, le=10)
    notify_base_delay_ms: int = Field(default=500, ge=0)

    @property
    def store_key(self) -> str:
        """Fully-qualified key holding the last-alert timestamp."""
        if not self.key_namespace:
            return self.key
        return f"{self.key_namespace}:{self.key}"


class KVSettings(BaseModel):
    """Shared key-value store backend."""

    backend: Literal["memory", "rest"] = "memory"
    rest_url: str | None = Field(
        default=None, description="Upstash/Vercel KV REST endpoint."
    )
    rest_token: str | None = None
    timeout: float = Field(
        default=5.0, gt=0.0, description="Per-command timeout in seconds."
    )


class TelegramSettings(BaseModel):
    """Telegram bot used as the notification sink."""

    bot_token: str | None = None
    chat_id: str | None = None
    parse_mode: Literal["Markdown", "MarkdownV2", "HTML"] = "Markdown"
    api_base: str = "https://api.telegram.org"
    timeout: float = Field(default=10.0, gt=0.0)


class APISettings(BaseModel):
    """FastAPI server settings."""

    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)
    cron_secret: str | None = Field(
        default=None,
        description="Require 'Authorization: Bearer <secret>' on cron requests.",
    )


class LoggingSettings(BaseModel):
    """Logging / observability configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["console", "json"] = "console"
    file: Path | None = None


# ---------------------------------------------------------------------------
# Main Settings (4-layer resolution)
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    """Top-level application settings.

    Resolution order (last wins):
        1. Field defaults (defined above)
        2. YAML config file (``config.yaml`` or ``--config`` path)
        3. Environment variables (prefixed ``UPTIME_GUARD_``)
        4. CLI overrides (applied programmatically after loading)
    """

    model_config = SettingsConfigDict(
        env_prefix="UPTIME_GUARD_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        yaml_file="config.yaml",
        yaml_file_encoding="utf-8",
        extra="ignore",
    )

    _config_path_override: ClassVar[Path | None] = None

    monitor: MonitorSettings = Field(default_factory=MonitorSettings)
    alerts: AlertSettings = Field(default_factory=AlertSettings)
    kv: KVSettings = Field(default_factory=KVSettings)
    telegram: TelegramSettings = Field(default_factory=TelegramSettings)
    api: APISettings = Field(default_factory=APISettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customise settings source priority.

        Resolution order (first = highest priority):
            init_settings (CLI) > env_settings > dotenv (.env) > yaml > defaults

        Args:
            settings_cls: The settings class.
            init_settings: Init / programmatic overrides.
            env_settings: Environment variable source.
            dotenv_settings: Dotenv file source (.env).
            file_secret_settings: Secret file source (unused).

        Returns:
            Ordered tuple of settings sources (first = highest priority).
        """
        sources: list[PydanticBaseSettingsSource] = [
            init_settings,
            env_settings,
            dotenv_settings,
        ]

        if YamlConfigSettingsSource is not None:
            yaml_file = cls._config_path_override or settings_cls.model_config.get(
                "yaml_file", "config.yaml"
            )
            sources.append(YamlConfigSettingsSource(settings_cls, yaml_file=yaml_file))

        return tuple(sources)

    @classmethod
    def load(cls, config_path: Path | None = None, **overrides: Any) -> Settings:
        """Load settings with optional config path and CLI overrides.

        Args:
            config_path: Optional path to a YAML config file.
            **overrides: Key-value CLI overrides applied at highest priority.

        Returns:
            Fully-resolved Settings instance.

        Raises:
            ValidationError: If any setting value fails validation.
        """
        cls._config_path_override = config_path
        try:
            return cls(**overrides)
        finally:
            cls._config_path_override = None


def format_validation_error(exc: ValidationError) -> str:
    """Format a Pydantic ValidationError into a user-friendly message.

    Args:
        exc: The validation error to format.

    Returns:
        A multi-line string with each error on its own line.
    """
    lines: list[str] = []
    for error in exc.errors():
        loc = " -> ".join(str(part) for part in error["loc"])
        msg = error["msg"]
        raw_input = error.get("input")
        if raw_input is not None:
            lines.append(f"  {loc}: {msg} (got {raw_input!r})")
        else:
            lines.append(f"  {loc}: {msg}")
    return "Configuration error:\n" + "\n".join(lines)
