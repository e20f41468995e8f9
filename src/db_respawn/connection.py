"""Connection boundary.

Defines the ``DatabaseConnection`` Protocol the respawner talks to, and thin
wrappers for the async drivers it supports out of the box:

- ``SQLAlchemyConnection``: ``sqlalchemy.ext.asyncio.AsyncConnection``
  (any dialect: aiosqlite, asyncpg, aiomysql, aioodbc, ...)
- ``PsycopgConnection``: ``psycopg.AsyncConnection``

The wrappers never commit, roll back, or close: the connection and its
transaction belong to the caller.

Usage:
    from sqlalchemy.ext.asyncio import create_async_engine
    from db_respawn.connection import as_database_connection

    engine = create_async_engine("sqlite+aiosqlite:///test.db")
    async with engine.connect() as conn:
        connection = as_database_connection(conn)
        rows = await connection.fetch_all("SELECT name FROM sqlite_master")
"""

from typing import Any, Protocol, runtime_checkable

import psycopg
from sqlalchemy.ext.asyncio import AsyncConnection


@runtime_checkable
class DatabaseConnection(Protocol):
    """What the respawner needs from a live connection.

    Commands are complete SQL text; no parameter binding is involved.
    """

    async def fetch_all(self, sql: str) -> list[tuple]:
        """Run a query and return every row as a tuple."""
        ...

    async def execute(self, sql: str) -> None:
        """Run a command whose result is not needed."""
        ...


class SQLAlchemyConnection:
    """``DatabaseConnection`` over a SQLAlchemy ``AsyncConnection``.

    Statements go through ``exec_driver_sql`` so that colons and percent
    signs in the SQL text are never mistaken for bind parameters.
    """

    def __init__(self, connection: AsyncConnection) -> None:
        self._connection = connection

    async def fetch_all(self, sql: str) -> list[tuple]:
        result = await self._connection.exec_driver_sql(sql)
        return [tuple(row) for row in result.fetchall()]

    async def execute(self, sql: str) -> None:
        await self._connection.exec_driver_sql(sql)


class PsycopgConnection:
    """``DatabaseConnection`` over a ``psycopg.AsyncConnection``."""

    def __init__(self, connection: psycopg.AsyncConnection) -> None:
        self._connection = connection

    async def fetch_all(self, sql: str) -> list[tuple]:
        async with self._connection.cursor() as cur:
            await cur.execute(sql)
            return [tuple(row) for row in await cur.fetchall()]

    async def execute(self, sql: str) -> None:
        await self._connection.execute(sql)


def as_database_connection(connection: Any) -> DatabaseConnection:
    """Wrap a driver connection in the matching ``DatabaseConnection``.

    Objects that already implement the protocol are returned unchanged.

    Raises:
        TypeError: If ``connection`` is of an unsupported type.
    """
    if isinstance(connection, AsyncConnection):
        return SQLAlchemyConnection(connection)
    if isinstance(connection, psycopg.AsyncConnection):
        return PsycopgConnection(connection)
    if isinstance(connection, DatabaseConnection):
        return connection
    raise TypeError(
        f"Unsupported connection type: {type(connection).__name__}. "
        "Pass a SQLAlchemy AsyncConnection, a psycopg AsyncConnection, "
        "or an object with async fetch_all() and execute() methods."
    )
