"""
SQLite Database Adapter

SQLite is a file-based database that's perfect for:
- Local development
- Testing (in-memory databases)
- Single-instance deployments

Key characteristics:
- File-based (single .db file)
- No server required
- Single writer at a time (file locking)
"""

from typing import Any

from sqlalchemy.pool import NullPool

from shortlink.db.interface import DatabaseAdapter


class SQLiteAdapter(DatabaseAdapter):
    """SQLite database adapter implementation."""

    def get_pool_class(self) -> type[NullPool]:
        """
        SQLite uses NullPool because a file-based database doesn't benefit
        from connection pooling.
        """
        return NullPool

    def get_connect_args(self) -> dict[str, Any]:
        # Required for async SQLite operations
        return {"check_same_thread": False}

    def get_engine_kwargs(self) -> dict[str, Any]:
        return {"echo": False}

    def get_dialect_name(self) -> str:
        return "sqlite"
