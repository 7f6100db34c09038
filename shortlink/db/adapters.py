"""Database adapter selection."""

from sqlalchemy.engine import make_url

from shortlink.db.interface import DatabaseAdapter
from shortlink.db.postgres_adapter import PostgreSQLAdapter
from shortlink.db.sqlite_adapter import SQLiteAdapter

_ADAPTERS: dict[str, type[DatabaseAdapter]] = {
    "sqlite": SQLiteAdapter,
    "postgresql": PostgreSQLAdapter,
}


def get_database_adapter(database_url: str) -> DatabaseAdapter:
    """
    Factory function to get the database adapter for a connection string.

    Raises:
        ValueError: If the database dialect is not supported
    """
    dialect = make_url(database_url).get_backend_name()
    try:
        return _ADAPTERS[dialect]()
    except KeyError:
        raise ValueError(f"Unsupported database dialect: {dialect}") from None
