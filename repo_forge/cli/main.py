"""Main CLI entry point for repo-forge."""

import click
from typing import Optional
from rich.console import Console

from repo_forge import __version__
from repo_forge.config.settings import get_settings
from repo_forge.ingest.sources import available_formats
from repo_forge.utils.logging import setup_logging, get_logger
from repo_forge.cli.ingest import ingest
from repo_forge.cli.store import store_group


# Create Rich console for output
console = Console()
logger = get_logger(__name__)


@click.group()
@click.version_option(version=__version__, prog_name="repo-forge")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    help="Set the logging level"
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False),
    help="Append warnings and per-item failures to this operator log"
)
@click.pass_context
def cli(ctx: click.Context, log_level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """
    Repository Forge - batch ingest of descriptive records into a
    digital object repository.

    Reads MODS records from a directory, zip archive or CSV list, derives
    Dublin Core, and creates one repository object per record.
    """
    ctx.ensure_object(dict)

    app_overrides = {}
    if log_level:
        app_overrides["log_level"] = log_level
    if log_file:
        app_overrides["log_file"] = log_file
    config_overrides = {"app": app_overrides} if app_overrides else {}

    try:
        settings = get_settings(config_overrides)
        ctx.obj["settings"] = settings

        setup_logging(settings.app.log_level, console, log_file=settings.app.log_file)

        logger.debug(f"Loaded configuration: backend={settings.repository.backend}, "
                     f"Neo4j URI={settings.neo4j.uri}")
        logger.debug(f"Default namespace: {settings.app.default_namespace}")

    except Exception as e:
        console.print(f"[red]Error loading configuration: {e}[/red]")
        ctx.exit(1)


@cli.command()
def version() -> None:
    """Display version information."""
    console.print(f"[bold green]repo-forge[/bold green] version [bold]{__version__}[/bold]")


@cli.command()
def formats() -> None:
    """List the registered import source formats."""
    for name in available_formats():
        console.print(f"  {name}")


cli.add_command(ingest)
cli.add_command(store_group)


def main() -> None:
    """Entry point for the CLI application."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        console.print(f"[red]Error: {e}[/red]")
        exit(1)


if __name__ == "__main__":
    main()
