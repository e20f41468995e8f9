"""Respawner: discover once, reset many times.

``Respawner.create()`` runs discovery against a live connection, plans the
deletion order, and renders the engine's SQL.  The result is frozen:
``reset()`` re-runs the cached commands against whatever connection it is
given and never queries the catalog again, so schema changes made after
creation are not picked up.

The respawner holds no connection.  Connections are supplied per call and
stay caller-managed, including their transactions.

Usage:
    from sqlalchemy.ext.asyncio import create_async_engine
    from db_respawn import Respawner, RespawnerOptions

    engine = create_async_engine("sqlite+aiosqlite:///test.db")
    async with engine.connect() as conn:
        respawner = await Respawner.create(
            conn, RespawnerOptions(db_adapter="sqlite", tables_to_ignore=["schema_migrations"])
        )

    # In each test's setup
    async with engine.begin() as conn:
        await respawner.reset(conn)
"""

import asyncio
import logging
from collections.abc import Awaitable, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

from db_respawn.adapters import DbAdapter, get_db_adapter
from db_respawn.config.models import RespawnerOptions
from db_respawn.connection import DatabaseConnection, as_database_connection
from db_respawn.errors import DiscoveryError
from db_respawn.graph.builder import build_graph, plan_deletion
from db_respawn.graph.models import DeletionPlan, Relationship, Table, TemporalTable

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _with_timeout(awaitable: Awaitable[T], timeout: float | None) -> T:
    if timeout is None:
        return await awaitable
    return await asyncio.wait_for(awaitable, timeout)


# ------------------------------------------------------------------
# Discovery helpers
# ------------------------------------------------------------------


async def _discover(
    connection: DatabaseConnection,
    sql: str,
    options: RespawnerOptions,
    what: str,
) -> list[tuple]:
    """Run one discovery query, converting any failure to ``DiscoveryError``."""
    try:
        rows = await _with_timeout(connection.fetch_all(sql), options.command_timeout)
    except Exception as e:
        raise DiscoveryError(f"{what} discovery failed: {e}", command_text=sql) from e
    logger.debug(f"{what} discovery returned {len(rows)} rows")
    return rows


def _parse_tables(rows: Sequence[tuple], sql: str) -> list[Table]:
    tables = []
    for row in rows:
        if len(row) < 2 or not row[1]:
            raise DiscoveryError(f"Malformed table row: {row!r}", command_text=sql)
        try:
            tables.append(Table(row[0], row[1]))
        except ValueError as e:
            raise DiscoveryError(
                f"Malformed table row: {row!r}", command_text=sql
            ) from e
    return tables


def _parse_relationships(rows: Sequence[tuple], sql: str) -> list[Relationship]:
    relationships = []
    for row in rows:
        if len(row) < 4 or not row[1] or not row[3]:
            raise DiscoveryError(
                f"Malformed relationship row: {row!r}", command_text=sql
            )
        name = row[4] if len(row) > 4 and row[4] else ""
        try:
            relationships.append(
                Relationship(Table(row[0], row[1]), Table(row[2], row[3]), name)
            )
        except ValueError as e:
            raise DiscoveryError(
                f"Malformed relationship row: {row!r}", command_text=sql
            ) from e
    return relationships


def _parse_temporal_tables(rows: Sequence[tuple], sql: str) -> list[TemporalTable]:
    temporal = []
    for row in rows:
        if len(row) < 4 or not row[1] or not row[3]:
            raise DiscoveryError(
                f"Malformed temporal table row: {row!r}", command_text=sql
            )
        try:
            Table(row[0], row[1])
            Table(row[2], row[3])
        except ValueError as e:
            raise DiscoveryError(
                f"Malformed temporal table row: {row!r}", command_text=sql
            ) from e
        temporal.append(TemporalTable(row[0], row[1], row[2], row[3]))
    return temporal


# ------------------------------------------------------------------
# Respawner
# ------------------------------------------------------------------


@dataclass(frozen=True)
class Respawner:
    """A frozen deletion plan plus the SQL rendered from it.

    Build one with ``await Respawner.create(connection, options)``; the
    constructor itself does no discovery.

    Attributes:
        options: Options the respawner was created with.
        adapter: Dialect adapter selected by ``options.db_adapter``.
        deletion_plan: Planned tables, in delete order.
        delete_commands: Suspension preamble, deletes, restoration postamble.
        reseed_commands: Identity/sequence resets (empty without reseed).
        temporal_tables: System-versioned tables among the planned tables.
        turn_off_versioning_commands: Run before the deletes.
        turn_on_versioning_commands: Run after the deletes, even on failure.
    """

    options: RespawnerOptions
    adapter: DbAdapter
    deletion_plan: DeletionPlan
    delete_commands: tuple[str, ...]
    reseed_commands: tuple[str, ...] = ()
    temporal_tables: tuple[TemporalTable, ...] = ()
    turn_off_versioning_commands: tuple[str, ...] = ()
    turn_on_versioning_commands: tuple[str, ...] = ()

    @property
    def tables_to_delete(self) -> tuple[Table, ...]:
        return self.deletion_plan.tables_to_delete

    @property
    def delete_sql(self) -> str:
        """The delete script as one text block, for logging on failure."""
        return "\n".join(self.delete_commands)

    @property
    def reseed_sql(self) -> str | None:
        if not self.options.with_reseed:
            return None
        return "\n".join(self.reseed_commands)

    @classmethod
    async def create(cls, connection: Any, options: RespawnerOptions) -> "Respawner":
        """Discover tables and foreign keys and freeze a respawner.

        Runs table discovery, relationship discovery, planning, and
        rendering, in that order.  With ``options.with_reseed`` the adapter's
        reseed check runs before the reseed commands are rendered.
        Temporal tables are discovered too when
        ``options.check_temporal_tables`` is set and the engine has them;
        on other engines the option is skipped.

        Args:
            connection: Live connection (SQLAlchemy ``AsyncConnection``,
                psycopg ``AsyncConnection``, or any ``DatabaseConnection``).
            options: What to delete and how.

        Returns:
            A ready ``Respawner``.

        Raises:
            DiscoveryError: If any discovery query fails, times out, or
                returns malformed rows.  No respawner is produced.
        """
        adapter = get_db_adapter(options.db_adapter)
        db = as_database_connection(connection)

        table_sql = adapter.build_table_command_text(options)
        tables = _parse_tables(
            await _discover(db, table_sql, options, "Table"), table_sql
        )

        relationship_sql = adapter.build_relationship_command_text(options)
        relationships = _parse_relationships(
            await _discover(db, relationship_sql, options, "Relationship"),
            relationship_sql,
        )

        graph = build_graph(
            tables,
            relationships,
            case_sensitive=adapter.case_sensitive_identifiers,
        )
        plan = plan_deletion(graph)

        logger.debug(
            f"Planned {len(plan.tables_to_delete)} tables "
            f"({len(plan.cyclic_tables)} cyclic): "
            f"{', '.join(str(t) for t in plan.tables_to_delete)}"
        )

        delete_commands = tuple(adapter.build_delete_commands(plan, options))
        reseed_commands: tuple[str, ...] = ()
        if options.with_reseed and plan.tables_to_delete:
            check_sql = adapter.build_reseed_check_command_text()
            if check_sql is None or await _discover(
                db, check_sql, options, "Reseed check"
            ):
                reseed_commands = tuple(
                    adapter.build_reseed_commands(plan.tables_to_delete)
                )
            else:
                logger.debug("Reseed check returned no rows, skipping reseed")

        temporal_tables: tuple[TemporalTable, ...] = ()
        turn_off: tuple[str, ...] = ()
        turn_on: tuple[str, ...] = ()
        if options.check_temporal_tables:
            if adapter.supports_temporal_tables:
                temporal_sql = adapter.build_temporal_table_command_text(options)
                discovered = _parse_temporal_tables(
                    await _discover(db, temporal_sql, options, "Temporal table"),
                    temporal_sql,
                )
                planned = {
                    t.key(adapter.case_sensitive_identifiers)
                    for t in plan.tables_to_delete
                }
                temporal_tables = tuple(
                    t
                    for t in discovered
                    if t.table.key(adapter.case_sensitive_identifiers) in planned
                )
                if temporal_tables:
                    turn_off = tuple(
                        adapter.build_turn_off_system_versioning_commands(temporal_tables)
                    )
                    turn_on = tuple(
                        adapter.build_turn_on_system_versioning_commands(temporal_tables)
                    )
            else:
                logger.debug(
                    f"Adapter '{adapter.name}' has no temporal tables; "
                    "check_temporal_tables skipped"
                )

        return cls(
            options=options,
            adapter=adapter,
            deletion_plan=plan,
            delete_commands=delete_commands,
            reseed_commands=reseed_commands,
            temporal_tables=temporal_tables,
            turn_off_versioning_commands=turn_off,
            turn_on_versioning_commands=turn_on,
        )

    async def reset(self, connection: Any) -> None:
        """Empty every planned table on ``connection``.

        Runs the cached commands in order: turn versioning off (if any
        temporal tables), deletes, reseeds, then turns versioning back on
        even if a delete failed.  Nothing is rediscovered.

        A cancelled or failed reset may leave tables partially emptied
        unless the caller runs it inside its own transaction.

        Args:
            connection: Live connection compatible with the discovered schema.

        Raises:
            Exception: Whatever the driver raises for a failing command,
                unwrapped.  Inspect ``delete_sql`` for diagnostics.
        """
        db = as_database_connection(connection)

        logger.debug(f"Resetting {len(self.deletion_plan.tables_to_delete)} tables")

        for command in self.turn_off_versioning_commands:
            await self._execute(db, command)
        try:
            for command in self.delete_commands + self.reseed_commands:
                await self._execute(db, command)
        finally:
            for command in self.turn_on_versioning_commands:
                await self._execute(db, command)

    async def _execute(self, db: DatabaseConnection, command: str) -> None:
        await _with_timeout(db.execute(command), self.options.command_timeout)
