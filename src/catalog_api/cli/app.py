"""Typer CLI root application with serve command."""

import typer

from catalog_api.core.config import get_settings
from catalog_api.core.logging import setup_logging

app = typer.Typer(name="catalog-api", help="Dataset catalog API CLI")


@app.callback()
def _main_callback() -> None:
    """Initialize logging for all CLI commands."""
    settings = get_settings()
    setup_logging(settings.log_level, log_dir=settings.log_dir)


@app.command()
def serve(
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload for development"),
    host: str = typer.Option("0.0.0.0", "--host", help="Bind host"),  # noqa: S104
    port: int = typer.Option(22000, "--port", help="Bind port"),
) -> None:
    """Start the API server."""
    import uvicorn

    uvicorn.run(
        "catalog_api.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


def _register_subcommands() -> None:
    """Register all CLI subcommand groups."""
    from catalog_api.cli.cache_cmd import cache_app
    from catalog_api.cli.db_cmd import db_app
    from catalog_api.cli.token_cmd import token_app

    app.add_typer(db_app, name="db", help="Database migration commands")
    app.add_typer(token_app, name="token", help="Service token commands")
    app.add_typer(cache_app, name="cache", help="CDN cache commands")


_register_subcommands()
