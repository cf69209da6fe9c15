"""Ingest command for repo-forge CLI."""

import sys
import click
from pathlib import Path
from typing import Optional, Tuple
from rich.console import Console
from rich.table import Table

from repo_forge.config.settings import get_settings
from repo_forge.ingest.exceptions import SourceError, TransformError
from repo_forge.ingest.pipeline import BatchPipeline
from repo_forge.ingest.sources import available_formats, create_source
from repo_forge.models.batch import BatchResult
from repo_forge.store.exceptions import StoreConnectionError
from repo_forge.store.factory import get_repository_client
from repo_forge.utils.logging import get_logger

console = Console()
logger = get_logger(__name__)


@click.command()
@click.option(
    "--source",
    required=True,
    type=click.Path(exists=True, path_type=Path),
    help="Directory, zip archive or CSV file to import"
)
@click.option(
    "--format", "source_format",
    required=True,
    type=click.Choice(available_formats()),
    help="Source format"
)
@click.option(
    "--parent",
    help="Identifier of the collection the objects become members of"
)
@click.option(
    "--namespace",
    help="Default PID namespace for new objects (default from config)"
)
@click.option(
    "--content-model", "content_models",
    multiple=True,
    help="Content model assigned to every object (repeatable)"
)
@click.option(
    "--defer-commit",
    is_flag=True,
    help="Preprocess every item first, then commit in a second pass"
)
@click.option(
    "--items-per-step",
    type=click.IntRange(min=1),
    help="Items preprocessed per pipeline step (default from config)"
)
@click.option(
    "--transform",
    help="Stylesheet path or bundled transform name for the derived document"
)
@click.option(
    "--memory-store",
    is_flag=True,
    help="Write to an in-memory store instead of Neo4j (dry run)"
)
def ingest(
    source: Path,
    source_format: str,
    parent: Optional[str] = None,
    namespace: Optional[str] = None,
    content_models: Tuple[str, ...] = (),
    defer_commit: bool = False,
    items_per_step: Optional[int] = None,
    transform: Optional[str] = None,
    memory_store: bool = False
) -> None:
    """
    Ingest records from SOURCE into the repository.

    Each record becomes one repository object carrying its MODS record and
    a derived Dublin Core record, and, when --parent is given, an
    isMemberOf relationship to that collection.
    """

    try:
        overrides = {}
        ingest_overrides = {}
        if defer_commit:
            ingest_overrides["commit_immediately"] = False
        if items_per_step:
            ingest_overrides["items_per_step"] = items_per_step
        if transform:
            ingest_overrides["transform"] = transform
        if ingest_overrides:
            overrides["ingest"] = ingest_overrides
        if memory_store:
            overrides["repository"] = {"backend": "memory"}

        config = get_settings(overrides)

        target_namespace = namespace or config.app.default_namespace
        try:
            config.validate_namespace(target_namespace)
        except ValueError as e:
            console.print(f"[red]Invalid namespace: {e}[/red]")
            sys.exit(1)

        console.print(f"[bold blue]Repository Forge Batch Ingest[/bold blue]")
        console.print(f"Source: {source} ({source_format})")
        console.print(f"Namespace: {target_namespace}")
        if parent:
            console.print(f"Parent: {parent}")
        if content_models:
            console.print(f"Content models: {', '.join(content_models)}")
        if memory_store:
            console.print("[yellow]Mode: DRY RUN (in-memory store)[/yellow]")
        if defer_commit:
            console.print("[cyan]Mode: DEFERRED COMMIT[/cyan]")
        console.print()

        client = get_repository_client(config)
        with client:
            with create_source(source_format, source, target_namespace, list(content_models)) as import_source:
                pipeline = BatchPipeline(client, parent_id=parent, config=config)

                console.print("[bold]Starting ingest pipeline...[/bold]")
                result = pipeline.run(import_source)

        _display_results(result)

        if result.error_count > 0:
            console.print(f"[yellow]WARNING: {result.error_count} objects failed to ingest[/yellow]")

        console.print("[bold green]✓ Ingest completed[/bold green]")

    except (SourceError, TransformError, StoreConnectionError) as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        sys.exit(1)
    except Exception as e:
        console.print(f"[red]Unexpected error: {e}[/red]")
        logger.exception("Ingest failed")
        sys.exit(3)


def _display_results(result: BatchResult) -> None:
    """Display ingest results summary."""
    metrics = result.metrics
    console.print("\n[bold]Ingest Results Summary[/bold]")

    table = Table(title="Processing Statistics")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", style="green")

    table.add_row("Items Expected", str(metrics.items_expected))
    table.add_row("Items Extracted", str(metrics.items_extracted))
    table.add_row("Entries Skipped", str(metrics.items_missing))
    table.add_row("Objects Committed", str(result.committed_count))
    table.add_row("Objects Failed", str(result.error_count))
    table.add_row("Missing Documents", str(metrics.missing_documents))
    table.add_row("Identifier Refills", str(metrics.identifier_refills))

    console.print(table)

    console.print(f"\n[bold]Performance:[/bold]")
    console.print(f"  Total Time: {metrics.processing_time:.1f}s")
    console.print(f"  Preprocess Time: {metrics.preprocess_time:.1f}s")
    console.print(f"  Commit Time: {metrics.commit_time:.1f}s")
    console.print(f"  Success Rate: {metrics.success_rate:.1f}%")

    if result.errors:
        console.print(f"\n[red]Recent Errors:[/red]")
        for error in result.errors[-5:]:
            console.print(f"  • {error}")
        if len(result.errors) > 5:
            console.print(f"  ... and {len(result.errors) - 5} more")
