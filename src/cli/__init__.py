"""Main CLI application module."""

import typer
from rich.console import Console

from .user_commands import users_app

console = Console()

# Create the main CLI application
app = typer.Typer(
    help="📚 Library API CLI - database and account administration",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Register command groups
app.add_typer(users_app, name="users")


@app.command(name="init-db")
def init_db_command() -> None:
    """Create all database tables."""
    from src.library.runtime.init_db import init_db

    init_db()
    console.print("[green]✅ Database initialized[/green]")


@app.command(name="serve")
def serve(
    host: str | None = typer.Option(None, help="Host to bind (default: app.host)"),
    port: int | None = typer.Option(None, help="Port to bind (default: app.port)"),
    reload: bool = typer.Option(False, help="Enable auto-reload on code changes"),
) -> None:
    """Start the API server with uvicorn."""
    import uvicorn

    from src.library.runtime.context import get_config

    config = get_config()
    uvicorn.run(
        "src.library.api.http.app:app",
        host=host or config.app.host,
        port=port or config.app.port,
        reload=reload,
        access_log=False,  # We handle access logging in middleware
    )


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
