"""Database management CLI commands."""

import typer
from rich.console import Console

from gatehouse.cli.runner import run_with_services
from gatehouse.database import drop_db, init_db
from gatehouse.services.container import Services

console = Console()
app = typer.Typer(help="Database management commands")


@app.command("init")
def init():
    """Create any missing tables."""
    console.print("[dim]Creating tables...[/dim]")

    async def _init(services: Services) -> None:
        await init_db(services.engine)

    run_with_services(_init)
    console.print("[green]Database ready![/green]")


@app.command("drop")
def drop(
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation"),
):
    """Drop all tables.

    WARNING: This will delete all data!
    """
    if not force:
        console.print("[bold red]WARNING:[/bold red] This will delete ALL accounts and sessions!")
        if not typer.confirm("Are you sure you want to continue?"):
            console.print("[dim]Cancelled[/dim]")
            raise typer.Exit(0)

    async def _drop(services: Services) -> None:
        await drop_db(services.engine)

    run_with_services(_drop)
    console.print("[green]All tables dropped.[/green]")
