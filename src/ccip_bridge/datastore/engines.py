"""Database engine factory.

Builds the async SQLAlchemy engine behind the transfer store:
- SQLite (aiosqlite driver), the default
- any other async DSN (e.g. PostgreSQL via asyncpg) with pool settings
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

if TYPE_CHECKING:
    from ccip_bridge.config.settings import DatabaseConfig


def is_sqlite(dsn: str) -> bool:
    """Return True for SQLite connection strings."""
    return make_url(dsn).get_backend_name() == "sqlite"


def ensure_sqlite_directory(dsn: str) -> None:
    """Create the parent directory of a file-backed SQLite database."""
    database = make_url(dsn).database
    if not database or database == ":memory:" or database.startswith("file:"):
        return
    Path(database).parent.mkdir(parents=True, exist_ok=True)


def create_engine(config: DatabaseConfig) -> AsyncEngine:
    """Create an async SQLAlchemy engine from database configuration.

    Args:
        config: Database configuration with DSN, pool settings, etc.

    Returns:
        A configured ``AsyncEngine`` ready for use.
    """
    kwargs: dict = {
        "echo": config.debug_sql,
    }

    if is_sqlite(config.dsn):
        ensure_sqlite_directory(config.dsn)
    else:
        kwargs["pool_size"] = config.max_idle_connections
        kwargs["max_overflow"] = config.max_open_connections - config.max_idle_connections
        kwargs["pool_pre_ping"] = True

    return create_async_engine(config.dsn, **kwargs)
