"""Library account management CLI commands."""

import typer
from rich.console import Console
from rich.table import Table

from src.library.core.exceptions import LibraryError
from src.library.core.models.actor import Role
from src.library.core.services import (
    DbManageService,
    DbSessionService,
    UserManagementService,
)

console = Console()

# Create the users subcommand app
users_app = typer.Typer(help="Manage library accounts")


def _database() -> DbSessionService:
    """Open the configured database, creating missing tables."""
    db = DbSessionService()
    DbManageService(db.engine).create_all()
    return db


@users_app.command("create")
def create_user(
    username: str = typer.Argument(..., help="Username for the new account"),
    password: str = typer.Option(
        ..., "--password", "-p", prompt=True, hide_input=True, help="Password"
    ),
    role: Role = typer.Option(Role.USER, "--role", "-r", help="Account role"),
) -> None:
    """Create an account. This is the way to bootstrap administrators."""
    with _database().session_scope() as session:
        try:
            user = UserManagementService(session).register(
                username, password, role, allow_admin=True
            )
        except LibraryError as e:
            console.print(f"[red]❌ Failed to create user: {e.message}[/red]")
            raise typer.Exit(code=1) from e

    console.print(
        f"[green]✅ Created {user.role.value} '{user.username}' ({user.id})[/green]"
    )


@users_app.command("list")
def list_users() -> None:
    """List all accounts."""
    with _database().session_scope() as session:
        users = UserManagementService(session).list_users()

    if not users:
        console.print("[yellow]No users found[/yellow]")
        return

    table = Table(title="Library accounts")
    table.add_column("ID", style="cyan")
    table.add_column("Username", style="green")
    table.add_column("Role", style="magenta")
    table.add_column("Created", style="blue")

    for user in users:
        table.add_row(
            user.id,
            user.username,
            user.role.value,
            user.created_at.strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)
    console.print(f"\n[green]Found {len(users)} users[/green]")
