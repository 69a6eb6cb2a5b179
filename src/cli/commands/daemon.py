"""Daemon CLI commands."""

import time
from typing import Optional

import click
from rich.console import Console

from cli.logging_config import setup_logging
from cli.utils import get_components
from reports.errors import GenerationFailure

console = Console()


@click.group()
def daemon():
    """Manage background scheduler."""
    pass


@daemon.command("start")
@click.option("--cron", default=None, help="Cron expression (default from config: 1 0 * * *)")
@click.option("--warm/--no-warm", default=True, help="Generate today's report at startup")
def daemon_start(cron: Optional[str], warm: bool):
    """Run the daily report scheduler in the foreground."""
    c = get_components()
    log_cfg = c["config"].get("logging", {})
    setup_logging(json_mode=True, level=log_cfg.get("level", "INFO"), log_file=c["paths"]["log_file"])

    scheduler = c["scheduler"]
    if cron:
        scheduler.cron = cron
    scheduler.start()
    console.print(f"[green]Started[/] scheduler with cron: {scheduler.cron} ({scheduler.timezone})")

    if warm:
        try:
            scheduler.run_daily()
        except GenerationFailure as e:
            console.print(f"[yellow]Startup generation failed:[/] {e}")
    console.print("Press Ctrl+C to stop")

    try:
        while True:
            time.sleep(60)
    except KeyboardInterrupt:
        scheduler.stop()
        console.print("\n[yellow]Stopped[/]")


@daemon.command("run-once")
def daemon_run_once():
    """Run today's generation once (for cron/launchd integration)."""
    c = get_components()
    try:
        artifact = c["scheduler"].run_daily()
    except GenerationFailure as e:
        console.print(f"[red]Generation failed:[/] {e}")
        raise SystemExit(1)
    console.print(f"{artifact.date_key}: {artifact.status} (revision {artifact.revision})")
