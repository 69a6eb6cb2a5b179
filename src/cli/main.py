"""CLI entry point for fishing-forecast."""

import click

from cli.commands import consensus, daemon, report
from cli.config import load_config
from cli.logging_config import setup_logging


@click.group()
@click.version_option(version="0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def cli(verbose: bool):
    """Fishing forecast - consensus feeding times and cached daily reports."""
    try:
        config = load_config()
    except ValueError as e:
        raise click.ClickException(str(e))
    log_cfg = config.get("logging", {})
    setup_logging(
        json_mode=log_cfg.get("json", False),
        level="DEBUG" if verbose else log_cfg.get("level", "INFO"),
    )


cli.add_command(report)
cli.add_command(consensus)
cli.add_command(daemon)


if __name__ == "__main__":
    cli()
