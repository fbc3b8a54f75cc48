"""Estate CRM CLI - serve the app, create tables, inspect configuration."""

import asyncio
import logging

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import BackendMode, resolve_backend_mode, settings

app = typer.Typer(
    name="estate-crm",
    help="Estate CRM - multi-tenant real estate CRM dashboard",
    no_args_is_help=True,
)
console = Console()


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging")):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


@app.command("serve")
def serve(
    port: int = typer.Option(8030, "--port", "-p", help="Port to run on"),
    host: str = typer.Option("127.0.0.1", "--host", help="Host to bind to"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Launch the Estate CRM web UI."""
    import uvicorn

    if resolve_backend_mode(settings) is BackendMode.DEGRADED:
        console.print("[yellow]Backend not configured: the auth gate will be open.[/yellow]")
    console.print(f"[bold cyan]Starting Estate CRM at http://{host}:{port}[/bold cyan]")
    uvicorn.run("estate_crm.app:app", host=host, port=port, reload=reload)


@app.command("init-db")
def init_db():
    """Create all tables on the configured backend."""
    from .database import backend
    from .models import Base

    async def _create():
        async with backend.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        await backend.dispose()

    asyncio.run(_create())
    console.print(f"[green]Tables created on {backend.engine.url.render_as_string(hide_password=True)}[/green]")


@app.command("config")
def show_config():
    """Show the resolved backend mode and settings (secrets masked)."""
    mode = resolve_backend_mode(settings)
    table = Table(title="Estate CRM configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    colour = "green" if mode is BackendMode.READY else "yellow"
    table.add_row("backend mode", f"[{colour}]{mode.value}[/{colour}]")
    table.add_row("environment", settings.environment)
    table.add_row("backend_url", "set" if settings.backend_url.strip() else "[red]missing[/red]")
    table.add_row("backend_anon_key", "set" if settings.backend_anon_key.strip() else "[red]missing[/red]")
    table.add_row("service_role_key", "set" if settings.service_role_key.strip() else "-")
    table.add_row("site_url", settings.site_url)
    table.add_row("security_fail_closed", str(settings.security_fail_closed))
    table.add_row("tenant_slug", settings.tenant_slug or "(auto)")
    table.add_row("storage_dir", str(settings.storage_path))
    console.print(table)


if __name__ == "__main__":
    app()
