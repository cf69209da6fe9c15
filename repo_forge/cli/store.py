"""Repository store management CLI commands."""

import click
from rich.console import Console

from repo_forge.config.settings import get_settings
from repo_forge.store.factory import (
    get_repository_client,
    get_schema_manager
)
from repo_forge.store.exceptions import RepositoryError, StoreConnectionError

console = Console()


@click.group(name="store")
def store_group():
    """Repository store management commands."""
    pass


@store_group.command(name="init")
def init_store():
    """Create the constraints and indexes the repository store relies on.

    Safe to run repeatedly.
    """
    try:
        config = get_settings()
        client = get_repository_client(config)
        schema_mgr = get_schema_manager(client)

        console.print(f"[blue]Connecting to Neo4j at {config.neo4j.uri}...[/blue]")
        client.connect()

        console.print("[blue]Creating store schema...[/blue]")
        schema_mgr.create_schema()
        console.print("[green]✓[/green] Schema created successfully")

        client.close()

    except StoreConnectionError as e:
        console.print(f"[red]✗ Connection Error:[/red] {e}", style="bold red")
        console.print("\n[yellow]Hint:[/yellow] Make sure Neo4j is running and NEO4J_URI is correct")
        raise click.Abort()
    except RepositoryError as e:
        console.print(f"[red]✗ Store Error:[/red] {e}", style="bold red")
        raise click.Abort()


@store_group.command(name="status")
@click.option(
    "--namespace",
    default=None,
    help="Show statistics for specific namespace"
)
def store_status(namespace: str):
    """Show store connection status and object counts."""
    try:
        config = get_settings()
        if namespace:
            config.validate_namespace(namespace)

        client = get_repository_client(config)
        schema_mgr = get_schema_manager(client)

        console.print(f"[blue]Connecting to Neo4j at {config.neo4j.uri}...[/blue]")
        client.connect()

        if client.verify_connectivity():
            console.print(f"[green]✓[/green] Connected to Neo4j at {config.neo4j.uri}\n")
        else:
            console.print(f"[yellow]⚠[/yellow] Connected, but the store did not answer a test query\n")

        stats = schema_mgr.get_statistics(namespace)
        console.print("[blue]Store Statistics:[/blue]")
        if namespace:
            console.print(f"  Namespace: {namespace}")
        console.print(f"  Objects: {stats.get('objects', 0)}")
        console.print(f"  Datastreams: {stats.get('datastreams', 0)}")

        client.close()

    except ValueError as e:
        console.print(f"[red]✗ Error:[/red] {e}", style="bold red")
        raise click.Abort()
    except StoreConnectionError as e:
        console.print(f"[red]✗ Connection Error:[/red] {e}", style="bold red")
        console.print("\n[yellow]Hint:[/yellow] Make sure Neo4j is running and NEO4J_URI is correct")
        raise click.Abort()
    except RepositoryError as e:
        console.print(f"[red]✗ Store Error:[/red] {e}", style="bold red")
        raise click.Abort()
