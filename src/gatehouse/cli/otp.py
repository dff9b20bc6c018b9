"""One-time passcode maintenance commands."""

import typer
from rich.console import Console

from gatehouse.cli.runner import run_with_services
from gatehouse.services.container import Services

console = Console()
app = typer.Typer(help="One-time passcode commands")


@app.command("purge")
def purge():
    """Delete expired verification codes."""

    async def _purge(services: Services) -> int:
        return await services.otp.purge_expired()

    count = run_with_services(_purge)
    console.print(f"[green]Purged {count} expired code(s)[/green]")
