"""
Alembic migration runner for application startup.
"""
import logging
from pathlib import Path

from sqlalchemy.exc import OperationalError
from alembic import command
from alembic.config import Config

from database import DATABASE_URL

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
ALEMBIC_INI = BASE_DIR / "alembic.ini"


def get_alembic_config(database_url: str = DATABASE_URL) -> Config:
    """Alembic config pointing at this project's scripts, whatever the working directory."""
    alembic_cfg = Config(str(ALEMBIC_INI))
    alembic_cfg.set_main_option("script_location", str(BASE_DIR / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", database_url)
    return alembic_cfg


def run_migrations(database_url: str = DATABASE_URL) -> None:
    """
    Upgrade the database to the latest revision.
    Connection failures are raised to the caller; any other migration error
    is logged and startup continues on the existing schema.
    """
    try:
        logger.info("Running Alembic migrations...")
        command.upgrade(get_alembic_config(database_url), "head")
        logger.info("Alembic migrations completed successfully")
    except OperationalError as e:
        logger.error(f"Failed to connect to database during migrations: {e}")
        raise
    except Exception as e:
        logger.error(f"Unexpected error during Alembic migrations: {e}", exc_info=True)
