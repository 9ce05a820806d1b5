"""Command Line Interface for the Consultation service.

Typer commands for setting up the store and the search index, rebuilding the
index from the store, and running the API server.
"""

import logging

import typer
from rich.console import Console
from rich.table import Table

from consultation_service.api.dependencies import get_repository, get_search_index
from consultation_service.domain.services import ConsultationService
from consultation_service.infrastructure.settings import settings

app = typer.Typer(
    name="consultations",
    help="Consultation service: REST CRUD and search over consultations",
    add_completion=False
)
console = Console()


def _print_configuration() -> None:
    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("Application", settings.app_name)
    table.add_row("Database", settings.db_config.db_type)
    if settings.db_config.db_type == "duckdb":
        table.add_row("Database path", settings.db_config.db_path or ":memory:")
    else:
        table.add_row("Database host", str(settings.db_config.host))
    table.add_row("Search index", settings.search_config.index_path or ":memory:")
    console.print(table)


@app.command("init-db")
def init_db(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Create the consultation table and the search index."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    _print_configuration()

    result = get_repository().initialize_schema()
    if not result.is_success():
        console.print(f"[red]✗[/red] Failed to initialize database: {result.error}")
        raise typer.Exit(code=1)
    console.print("[green]✓[/green] Database schema ready")

    result = get_search_index().initialize()
    if not result.is_success():
        console.print(f"[red]✗[/red] Failed to initialize search index: {result.error}")
        raise typer.Exit(code=1)
    console.print("[green]✓[/green] Search index ready")


@app.command()
def reindex(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Rebuild the search index from the relational store."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    service = ConsultationService(get_repository(), get_search_index())
    with console.status("[bold green]Reindexing consultations..."):
        result = service.reindex()

    if not result.is_success():
        console.print(f"[red]✗[/red] Reindex failed: {result.error}")
        raise typer.Exit(code=1)
    console.print(f"[green]✓[/green] Indexed {result.value} consultations")


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host", help="Bind address"),
    port: int = typer.Option(8080, "--port", "-p", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
) -> None:
    """Run the API server."""
    import uvicorn

    console.print(f"[bold blue]{settings.app_name}[/bold blue] listening on {host}:{port}{settings.api_prefix}")
    uvicorn.run(
        "consultation_service.api.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower()
    )


if __name__ == "__main__":
    app()
