"""Database migration CLI commands using Alembic programmatically."""

from typing import TYPE_CHECKING

import typer
from loguru import logger

if TYPE_CHECKING:
    from alembic.config import Config

db_app = typer.Typer()

_CONFIG_OPTION = typer.Option("alembic.ini", "--config", "-c", help="Path to alembic.ini")


def _alembic_config(path: str) -> "Config":
    from alembic.config import Config

    return Config(path)


@db_app.command()
def upgrade(
    revision: str = typer.Argument("head", help="Target revision"),
    config: str = _CONFIG_OPTION,
) -> None:
    """Apply catalog schema migrations up to the target revision."""
    from alembic import command

    logger.info("Upgrading catalog schema to {}", revision)
    command.upgrade(_alembic_config(config), revision)
    logger.info("Catalog schema upgrade complete")


@db_app.command()
def downgrade(
    revision: str = typer.Argument("-1", help="Target revision"),
    config: str = _CONFIG_OPTION,
) -> None:
    """Roll the catalog schema back to the target revision."""
    from alembic import command

    logger.info("Downgrading catalog schema to {}", revision)
    command.downgrade(_alembic_config(config), revision)
    logger.info("Catalog schema downgrade complete")


@db_app.command()
def current(config: str = _CONFIG_OPTION) -> None:
    """Show the catalog schema's current migration revision."""
    from alembic import command

    command.current(_alembic_config(config), verbose=True)
