"""Live consensus CLI command."""

import json
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from cli.utils import get_components
from forecast.clock import format_clock
from forecast.models import Location
from reports.clock import parse_date_key

console = Console()


@click.command()
@click.option("--lat", type=float, default=None, help="Latitude (default from config)")
@click.option("--lng", type=float, default=None, help="Longitude (default from config)")
@click.option("--date", "date_key", default=None, help="YYYY-MM-DD (default today)")
@click.option("--json", "as_json", is_flag=True, help="Print the schedule as JSON")
def consensus(lat: Optional[float], lng: Optional[float], date_key: Optional[str], as_json: bool):
    """Compute feeding windows from all sources without caching."""
    c = get_components()
    base = c["location"]
    location = base
    if lat is not None or lng is not None:
        location = Location(
            latitude=base.latitude if lat is None else lat,
            longitude=base.longitude if lng is None else lng,
            name="",
            timezone=base.timezone,
        )
    try:
        day = parse_date_key(date_key) if date_key else None
    except ValueError:
        raise click.BadParameter(f"expected YYYY-MM-DD, got {date_key}", param_hint="--date")

    with console.status("Querying sources..."):
        schedule = c["coordinator"].build_schedule(location, day)

    if as_json:
        click.echo(json.dumps(schedule.to_dict(), indent=2))
        return

    table = Table(show_header=True, title=f"Feeding windows {schedule.date.isoformat()}")
    table.add_column("Kind")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Quality")
    table.add_column("Sources")
    for entry in schedule.entries:
        table.add_row(
            str(entry.kind),
            format_clock(entry.merged_start),
            format_clock(entry.merged_end),
            str(entry.quality),
            ", ".join(entry.sources),
        )
    console.print(table)
    console.print(
        f"Confidence [bold]{schedule.confidence_tier}[/] "
        f"({schedule.sources_used}/{schedule.sources_attempted} sources)"
    )
    if schedule.moon_phase:
        console.print(f"Moon: {schedule.moon_phase}")
    for err in schedule.errors:
        console.print(f"[yellow]{err['source_id']}:[/] {err['message']}")
