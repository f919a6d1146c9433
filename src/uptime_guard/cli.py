"""Typer CLI entry point for uptime-guard."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Annotated, Any

import httpx
import structlog
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from uptime_guard import __version__
from uptime_guard.api.server import run_server
from uptime_guard.config import Settings, format_validation_error
from uptime_guard.exceptions import ConfigurationError
from uptime_guard.health import build_monitor
from uptime_guard.logging import configure_logging
from uptime_guard.models import HealthReport
from uptime_guard.notify import NullNotifier

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    name="uptime-guard",
    help="Cron-driven site health checks with throttled Telegram alerts.",
    no_args_is_help=True,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_settings(
    config_path: Path | None = None,
    **overrides: Any,
) -> Settings:
    """Load settings with error handling and user-friendly messages."""
    from pydantic import ValidationError

    try:
        return Settings.load(config_path=config_path, **overrides)
    except ValidationError as exc:
        err_console.print(
            Panel(
                format_validation_error(exc),
                title="Configuration Error",
                border_style="red",
            )
        )
        raise typer.Exit(code=1) from exc


def _display_report(report: HealthReport) -> None:
    table = Table(title=f"Health: {report.site}", show_lines=True)
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    verdict = "[green]HEALTHY[/green]" if report.healthy else "[red]UNHEALTHY[/red]"
    table.add_row("Result", verdict)
    table.add_row("URL", report.url)
    table.add_row("Status", str(report.status))
    table.add_row("Response", f"{report.elapsed_ms} ms")
    if report.error:
        table.add_row("Error", report.error)
    table.add_row("Alerted", "yes" if report.alerted else "no")
    table.add_row("Checked", report.timestamp)
    console.print(table)


async def _run_check(settings: Settings, *, alert: bool) -> HealthReport:
    async with httpx.AsyncClient(follow_redirects=True, timeout=None) as client:
        monitor = build_monitor(
            settings,
            client,
            notifier=None if alert else NullNotifier(),
        )
        return await monitor.run()


def _version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]uptime-guard[/bold] {__version__}")
        raise typer.Exit


@app.callback()
def common(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=_version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """uptime-guard global options."""


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def check(
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to config YAML file."),
    ] = None,
    url: Annotated[
        str | None,
        typer.Option("--url", help="Override the monitored URL."),
    ] = None,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the raw JSON payload."),
    ] = False,
    no_alert: Annotated[
        bool,
        typer.Option("--no-alert", help="Never deliver notifications."),
    ] = False,
) -> None:
    """Run one health check; exit 0 when healthy, 1 otherwise."""
    settings = _load_settings(config)
    if url:
        settings.monitor.url = url
    configure_logging(
        level=settings.logging.level,
        fmt=settings.logging.format,
        log_file=settings.logging.file,
    )

    try:
        report = asyncio.run(_run_check(settings, alert=not no_alert))
    except ConfigurationError as exc:
        err_console.print(f"[red]Configuration error:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    if as_json:
        console.print_json(json.dumps(report.to_payload()))
    else:
        _display_report(report)

    raise typer.Exit(code=0 if report.healthy else 1)


@app.command()
def serve(
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to config YAML file."),
    ] = None,
    host: Annotated[
        str | None,
        typer.Option("--host", help="Bind address."),
    ] = None,
    port: Annotated[
        int | None,
        typer.Option("--port", help="Bind port."),
    ] = None,
) -> None:
    """Serve the health endpoint over HTTP."""
    settings = _load_settings(config)
    if host:
        settings.api.host = host
    if port:
        settings.api.port = port
    configure_logging(
        level=settings.logging.level,
        fmt=settings.logging.format,
        log_file=settings.logging.file,
    )
    logger.info("server_starting", host=settings.api.host, port=settings.api.port)
    run_server(settings)


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
