"""Database migration CLI commands using Alembic programmatically."""

import sys
from typing import TYPE_CHECKING

import typer
from loguru import logger

if TYPE_CHECKING:
    from alembic.config import Config

db_app = typer.Typer()

ConfigOption = typer.Option("alembic.ini", "--config", help="Alembic configuration file")


def _alembic_config(config_path: str) -> "Config":
    """Build an Alembic config writing to the current stdout.

    Logging stays with Loguru, so env.py skips its ``fileConfig`` setup.
    """
    from alembic.config import Config

    config = Config(config_path, stdout=sys.stdout)
    config.attributes["configure_logger"] = False
    return config


@db_app.command()
def upgrade(
    revision: str = typer.Argument("head", help="Target revision"),
    config_path: str = ConfigOption,
) -> None:
    """Create or migrate the operations table up to the target revision."""
    from alembic import command

    logger.info("Upgrading operations database to {}", revision)
    command.upgrade(_alembic_config(config_path), revision)
    logger.info("Database upgrade complete")


@db_app.command()
def downgrade(
    revision: str = typer.Argument("-1", help="Target revision"),
    config_path: str = ConfigOption,
) -> None:
    """Rollback the operations database to the target revision."""
    from alembic import command

    logger.info("Downgrading operations database to {}", revision)
    command.downgrade(_alembic_config(config_path), revision)
    logger.info("Database downgrade complete")


@db_app.command()
def current(config_path: str = ConfigOption) -> None:
    """Show the current database migration revision."""
    from alembic import command

    command.current(_alembic_config(config_path), verbose=True)
