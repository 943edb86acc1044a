"""
Engine, session factory and declarative Base for the storefront database.

The URL comes from settings (environment or .env). Without one, a local
SQLite file is used so the API and its migrations run out of the box.
"""
import logging
from pathlib import Path
from typing import Any, Dict

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import QueuePool

from config import settings

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
DEFAULT_SQLITE_PATH = BASE_DIR / "storefront.db"

# Some hosting environments store the value as "DATABASE_URL=..."
URL_PREFIX = "DATABASE_URL="


def resolve_database_url(raw_url: str) -> str:
    url = (raw_url or "").strip()
    if url.startswith(URL_PREFIX):
        url = url[len(URL_PREFIX):].strip()

    if not url:
        url = f"sqlite:///{DEFAULT_SQLITE_PATH.as_posix()}"
        logger.warning("DATABASE_URL not set. Falling back to SQLite at %s", DEFAULT_SQLITE_PATH)
    return url


def engine_options(url: str) -> Dict[str, Any]:
    """SQLite gets a thread-shared connection; server databases get a sized pool."""
    options: Dict[str, Any] = {
        "echo": False,
        "future": True,
        "pool_pre_ping": True,
    }
    if url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
    else:
        options.update(
            poolclass=QueuePool,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_recycle=settings.DB_POOL_RECYCLE,
        )
    return options


DATABASE_URL = resolve_database_url(settings.DATABASE_URL)

engine = create_engine(DATABASE_URL, **engine_options(DATABASE_URL))

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)

Base = declarative_base()

if DATABASE_URL.startswith("sqlite"):
    logger.info("Database configured with SQLite at %s", DATABASE_URL)
else:
    logger.info(
        "Database connection pool configured: size=%s, max_overflow=%s",
        settings.DB_POOL_SIZE, settings.DB_MAX_OVERFLOW
    )
