"""Typer application and main entry point for the CLI.

Runs the Codex usage probe once and prints the snapshot.
"""

import asyncio
from typing import Annotated

import typer

from quotaprobe.config.manager import ConfigManager
from quotaprobe.probes.codex import CodexUsageProbe
from quotaprobe.probes.errors import CLINotFoundError
from quotaprobe.probes.models import UsageSnapshot
from quotaprobe.utils.console import (
    build_quota_table,
    console,
    print_error,
    print_info,
    show_version,
)
from quotaprobe.utils.errors import ExitCode, QuotaProbeError
from quotaprobe.utils.logging import setup_logging

# Create Typer app
app = typer.Typer(
    name="quotaprobe",
    help="QUOTAPROBE - Check remaining usage quota of AI assistant CLIs",
    add_completion=False,
    no_args_is_help=False,
)


def version_callback(value: bool) -> None:
    """Display version and exit."""
    if value:
        show_version()
        raise typer.Exit()


def _print_snapshot(snapshot: UsageSnapshot) -> None:
    rows = [
        (quota.quota_type.display_name, quota.percent_remaining, quota.reset_text or "-")
        for quota in snapshot.quotas
    ]
    console.print(build_quota_table(f"{snapshot.provider_id} usage", rows))
    console.print(f"[dim]Captured at {snapshot.captured_at:%Y-%m-%d %H:%M:%S} UTC[/dim]")


@app.command()
def main(
    binary: Annotated[
        str | None,
        typer.Option(
            "--binary",
            "-b",
            help="Codex CLI executable name or path (default: from config)",
        ),
    ] = None,
    timeout: Annotated[
        float | None,
        typer.Option(
            "--timeout",
            "-t",
            min=0.1,
            help="Timeout in seconds for each probe path (default: from config)",
        ),
    ] = None,
    show_config: Annotated[
        bool,
        typer.Option(
            "--config",
            help="Show current configuration and exit",
        ),
    ] = False,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-v",
            callback=version_callback,
            is_eager=True,
            help="Show version information",
        ),
    ] = None,
) -> None:
    """QUOTAPROBE - Check remaining Codex usage quota.

    Asks the Codex CLI for its rate limits over JSON-RPC, falling back to
    its interactive /status screen, and prints the remaining percentages.
    """
    setup_logging()

    try:
        config = ConfigManager()
        settings = config.load()

        if show_config:
            config.show()
            raise typer.Exit()

        if binary is not None:
            settings.codex_binary = binary
        if timeout is not None:
            settings.probe_timeout_seconds = timeout

        probe = CodexUsageProbe.from_settings(settings)
        if not probe.is_available():
            raise CLINotFoundError(settings.codex_binary)

        print_info(f"Probing {probe.provider_id} usage...")
        snapshot = asyncio.run(probe.probe())
        _print_snapshot(snapshot)

    except QuotaProbeError as e:
        print_error(str(e))
        raise typer.Exit(e.exit_code) from e

    except KeyboardInterrupt as e:
        print_info("\nOperation cancelled by user")
        raise typer.Exit(ExitCode.GENERAL_ERROR) from e


__all__ = [
    "app",
    "main",
    "version_callback",
]
