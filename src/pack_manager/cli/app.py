"""Typer CLI root application with serve command."""

import typer

from pack_manager.core.config import get_settings
from pack_manager.core.logging import setup_logging

app = typer.Typer(name="pack-manager", help="Content pack manifest and operation tracking CLI")


@app.callback()
def _main_callback() -> None:
    """Initialize logging for all CLI commands."""
    settings = get_settings()
    setup_logging(settings.log_level, log_dir=settings.log_dir)


@app.command()
def serve(
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload for development"),
    host: str = typer.Option("127.0.0.1", "--host", help="Bind host"),
    port: int = typer.Option(8000, "--port", help="Bind port"),
) -> None:
    """Start the API server."""
    import uvicorn

    uvicorn.run(
        "pack_manager.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


def _register_subcommands() -> None:
    """Register all CLI subcommand groups."""
    from pack_manager.cli.db_cmd import db_app
    from pack_manager.cli.manifest_cmd import manifest_app
    from pack_manager.cli.operations_cmd import operations_app

    app.add_typer(db_app, name="db", help="Database migration commands")
    app.add_typer(manifest_app, name="manifest", help="Manifest inspection commands")
    app.add_typer(operations_app, name="operations", help="Background operation status commands")


_register_subcommands()
