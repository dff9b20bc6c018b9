"""User management CLI commands."""

from typing import NoReturn

import typer
from rich.console import Console
from rich.table import Table

from gatehouse.cli.runner import run_with_services
from gatehouse.models import Account, AuthSession
from gatehouse.schemas.auth import RegisterRequest
from gatehouse.schemas.common import OperationResult
from gatehouse.services.container import Services

console = Console()
app = typer.Typer(help="User management commands")


def _fail(message: str | None) -> NoReturn:
    console.print(f"[red]Error:[/red] {message}")
    raise typer.Exit(1)


async def _require_account(services: Services, email: str) -> Account:
    account = await services.accounts.find_by_email(email.strip().lower())
    if account is None:
        _fail(f"User {email} not found")
    return account


@app.command("list")
def list_users():
    """List all accounts."""

    async def _list(services: Services) -> list[Account]:
        return await services.accounts.list_all()

    accounts = run_with_services(_list)

    table = Table(title="Users")
    table.add_column("ID", style="cyan")
    table.add_column("Email", style="green")
    table.add_column("Username")
    table.add_column("Kind", style="magenta")
    table.add_column("Created", style="dim")

    for account in accounts:
        created = account.created_at.strftime("%Y-%m-%d") if account.created_at else "-"
        table.add_row(account.id, account.email, account.username, account.account_kind.value, created)

    console.print(table)


@app.command("create")
def create_user(
    email: str = typer.Argument(..., help="User email"),
    username: str = typer.Argument(..., help="Username"),
    password: str = typer.Option(..., prompt=True, hide_input=True, confirmation_prompt=True),
    display_name: str | None = typer.Option(None, "--display-name", "-n", help="Display name"),
):
    """Create a password account."""

    async def _create(services: Services) -> OperationResult:
        return await services.identity.register(
            RegisterRequest(
                email=email,
                username=username,
                account_type="email",
                password=password,
                display_name=display_name,
            )
        )

    result = run_with_services(_create)
    if not result.succeeded:
        _fail(result.error_message)
    console.print(f"[green]Created user:[/green] {email} ({username})")


@app.command("set-password")
def set_password(
    email: str = typer.Argument(..., help="User email"),
    password: str = typer.Option(..., prompt=True, hide_input=True, confirmation_prompt=True),
):
    """Set a new password for a password account."""

    async def _set(services: Services) -> OperationResult:
        return await services.identity.update_password(email, password)

    result = run_with_services(_set)
    if not result.succeeded:
        _fail(result.error_message)
    console.print(f"[green]Password updated for:[/green] {email}")


@app.command("sessions")
def list_sessions(email: str = typer.Argument(..., help="User email")):
    """Show a user's active sessions."""

    async def _sessions(services: Services) -> list[AuthSession]:
        account = await _require_account(services, email)
        return await services.sessions.list_sessions(account.id)

    sessions = run_with_services(_sessions)

    table = Table(title=f"Sessions for {email}")
    table.add_column("Session", style="cyan")
    table.add_column("Device")
    table.add_column("Location")
    table.add_column("Created", style="dim")
    table.add_column("Expires", style="dim")

    for session in sessions:
        table.add_row(
            f"{session.session_id[:8]}...",
            session.device or "-",
            session.location or "-",
            session.created_at.strftime("%Y-%m-%d %H:%M"),
            session.expires_at.strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)


@app.command("revoke-sessions")
def revoke_sessions(email: str = typer.Argument(..., help="User email")):
    """Sign a user out everywhere."""

    async def _revoke(services: Services) -> int:
        account = await _require_account(services, email)
        return await services.sessions.revoke_all(account.id)

    count = run_with_services(_revoke)
    console.print(f"[green]Revoked {count} session(s) for:[/green] {email}")


@app.command("delete")
def delete_user(
    email: str = typer.Argument(..., help="User email"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation"),
):
    """Delete an account, its profile and all of its sessions."""
    if not force and not typer.confirm(f"Delete {email} and everything attached to it?"):
        console.print("[dim]Cancelled[/dim]")
        raise typer.Exit(0)

    async def _delete(services: Services) -> OperationResult:
        account = await _require_account(services, email)
        return await services.identity.delete_account(account.id)

    result = run_with_services(_delete)
    if not result.succeeded:
        _fail(result.error_message)
    console.print(f"[green]Deleted user:[/green] {email}")


@app.command("block")
def block_user(email: str = typer.Argument(..., help="User email")):
    """Block an account and sign it out everywhere."""

    async def _block(services: Services) -> OperationResult:
        return await services.identity.set_blocked(email, True)

    result = run_with_services(_block)
    if not result.succeeded:
        _fail(result.error_message)
    console.print(f"[green]Blocked:[/green] {email}")


@app.command("unblock")
def unblock_user(email: str = typer.Argument(..., help="User email")):
    """Allow a blocked account to sign in again."""

    async def _unblock(services: Services) -> OperationResult:
        return await services.identity.set_blocked(email, False)

    result = run_with_services(_unblock)
    if not result.succeeded:
        _fail(result.error_message)
    console.print(f"[green]Unblocked:[/green] {email}")
