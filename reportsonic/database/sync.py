"""
database/sync.py

Synchronous engine for operator scripts (init, seed, purge) that run outside
the event loop. The async driver in DATABASE_URL is swapped for its
blocking counterpart.
"""

from sqlalchemy import Engine, create_engine

from reportsonic.core.config import settings

SYNC_DRIVERS = {
    "mysql+aiomysql": "mysql+pymysql",
    "postgresql+asyncpg": "postgresql+psycopg2",
    "sqlite+aiosqlite": "sqlite",
}


def sync_database_url(url: str) -> str:
    for async_prefix, sync_prefix in SYNC_DRIVERS.items():
        if url.startswith(async_prefix):
            return sync_prefix + url[len(async_prefix):]
    return url


def get_sync_engine() -> Engine:
    """Creates the synchronous engine for the configured database."""
    return create_engine(sync_database_url(settings.db_url), pool_pre_ping=True)
