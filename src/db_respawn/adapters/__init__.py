"""Dialect adapters package.

Provides the ``DbAdapter`` Protocol and one pure SQL-generating adapter per
supported engine.  ``get_db_adapter()`` resolves the name configured in
``RespawnerOptions.db_adapter`` to an adapter instance.

Usage:
    from db_respawn.adapters import DbAdapter, get_db_adapter

    adapter = get_db_adapter("postgres")
"""

from db_respawn.adapters.base import DbAdapter
from db_respawn.adapters.mysql import MySQLAdapter
from db_respawn.adapters.postgres import PostgresAdapter
from db_respawn.adapters.sqlite import SQLiteAdapter
from db_respawn.adapters.sqlserver import SqlServerAdapter

ADAPTERS: dict[str, type] = {
    "sqlite": SQLiteAdapter,
    "postgres": PostgresAdapter,
    "mysql": MySQLAdapter,
    "sqlserver": SqlServerAdapter,
}


def get_db_adapter(name: str) -> DbAdapter:
    """Create the adapter registered under ``name``.

    Raises:
        ValueError: If no adapter is registered under ``name``.
    """
    try:
        return ADAPTERS[name]()
    except KeyError:
        available = ", ".join(ADAPTERS)
        raise ValueError(
            f"Unknown database adapter '{name}'. Available: {available}"
        ) from None


__all__ = [
    "DbAdapter",
    "SQLiteAdapter",
    "PostgresAdapter",
    "MySQLAdapter",
    "SqlServerAdapter",
    "ADAPTERS",
    "get_db_adapter",
]
