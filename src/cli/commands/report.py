"""Daily report CLI commands."""

import json
from typing import Optional

import click
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from cli.utils import get_components
from reports.errors import GenerationFailure

console = Console()

_STATUS_STYLE = {"fresh": "green", "stale": "yellow", "generating": "cyan"}


def _print_artifact(artifact) -> None:
    style = _STATUS_STYLE.get(str(artifact.status), "white")
    console.print(f"\n[bold]{artifact.title or artifact.date_key}[/]")
    console.print(
        f"[{style}]{artifact.status}[/] | revision {artifact.revision} | "
        f"confidence {artifact.confidence_tier or 'n/a'} | {artifact.source}"
    )
    if artifact.error:
        console.print(f"[yellow]Last generation failed:[/] {artifact.error}")
    if not artifact.persisted:
        console.print("[red]Not cached:[/] the report store rejected the write")
    console.print()
    console.print(Markdown(artifact.content))


@click.group()
def report():
    """Show and manage cached daily reports."""
    pass


@report.command("show")
@click.argument("date_key", required=False)
@click.option("--json", "as_json", is_flag=True, help="Print the artifact as JSON")
def report_show(date_key: Optional[str], as_json: bool):
    """Show the report for DATE_KEY (YYYY-MM-DD, default today)."""
    c = get_components()
    try:
        artifact = c["coordinator"].get_or_generate(date_key)
    except ValueError:
        raise click.BadParameter(f"expected YYYY-MM-DD, got {date_key}", param_hint="DATE_KEY")
    except GenerationFailure as e:
        console.print(f"[red]No report available:[/] {e}")
        raise SystemExit(1)

    if as_json:
        click.echo(json.dumps(artifact.to_dict(), indent=2, default=str))
    else:
        _print_artifact(artifact)


@report.command("regenerate")
@click.argument("date_key", required=False)
def report_regenerate(date_key: Optional[str]):
    """Regenerate the report for DATE_KEY even if it is fresh."""
    c = get_components()
    try:
        with console.status("Gathering sources..."):
            artifact = c["scheduler"].force_regenerate(date_key)
    except ValueError:
        raise click.BadParameter(f"expected YYYY-MM-DD, got {date_key}", param_hint="DATE_KEY")
    except GenerationFailure as e:
        console.print(f"[red]Generation failed:[/] {e}")
        raise SystemExit(1)

    if artifact.error:
        console.print(f"[yellow]Generation failed, kept revision {artifact.revision}:[/] {artifact.error}")
    else:
        console.print(
            f"[green]Regenerated[/] {artifact.date_key} (revision {artifact.revision}, "
            f"{artifact.generation_duration_ms} ms)"
        )


@report.command("list")
@click.option("--days", type=int, default=7, show_default=True, help="How far back to look")
@click.option("--json", "as_json", is_flag=True, help="Print summaries as JSON")
def report_list(days: int, as_json: bool):
    """List cached reports, newest first."""
    c = get_components()
    artifacts = c["store"].list_recent(days)

    if as_json:
        click.echo(json.dumps([a.summary() for a in artifacts], indent=2))
        return
    if not artifacts:
        console.print(f"[dim]No reports in the last {days} day(s)[/]")
        return

    table = Table(show_header=True)
    table.add_column("Date")
    table.add_column("Status")
    table.add_column("Rev", justify="right")
    table.add_column("Confidence")
    table.add_column("Source")
    for a in artifacts:
        style = _STATUS_STYLE.get(str(a.status), "white")
        table.add_row(
            a.date_key,
            f"[{style}]{a.status}[/]",
            str(a.revision),
            a.confidence_tier or "-",
            a.source,
        )
    console.print(table)


@report.command("sweep")
@click.option("--retain-days", type=int, default=None, help="Keep this many days (default from config)")
def report_sweep(retain_days: Optional[int]):
    """Delete reports older than the retention window."""
    c = get_components()
    deleted = c["scheduler"].sweep(retain_days)
    console.print(f"Deleted {deleted} old report(s)")


@report.command("status")
def report_status():
    """Show scheduler, cache and source health."""
    c = get_components()
    status = c["scheduler"].get_status()

    table = Table(show_header=False)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    table.add_row("Scheduler", "running" if status["scheduler_running"] else "stopped")
    table.add_row("Cron", f"{status['cron']} ({status['timezone']})")
    table.add_row("Last run", status["last_run"] or "-")
    table.add_row("Next run", status["next_run"] or "-")
    summary = status["current_artifact_summary"]
    if summary:
        table.add_row("Today", f"{summary['status']} (revision {summary['revision']})")
    else:
        table.add_row("Today", "[dim]not generated[/]")
    stats = status["stats"]
    table.add_row("Reports (30d)", str(stats["total_reports"]))
    table.add_row("Avg duration", f"{stats['avg_duration_ms']} ms")
    console.print(table)

    sources = status.get("sources") or []
    if sources:
        health = Table(show_header=True)
        health.add_column("Source")
        health.add_column("Status")
        health.add_column("Runs", justify="right")
        health.add_column("Error rate", justify="right")
        health.add_column("Last error")
        for row in sources:
            style = {"healthy": "green", "degraded": "yellow"}.get(row["status"], "red")
            health.add_row(
                row["source_id"],
                f"[{style}]{row['status']}[/]",
                str(row["total_runs"]),
                f"{row['error_rate']}%",
                (row.get("last_error") or "")[:40],
            )
        console.print(health)
