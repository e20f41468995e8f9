"""SQLite dialect adapter.

Discovers tables from ``sqlite_master`` and foreign keys from the
``pragma_foreign_key_list`` table-valued function (SQLite 3.16+).

SQLite has a single implicit schema per database file: rows report the
schema as NULL and schema filters compare against ``main``.  Identifiers
are case-insensitive, while the catalog compares text in binary collation,
so every filter goes through ``lower()``.

Deletes run inside a savepoint with ``PRAGMA defer_foreign_keys`` on, so
foreign keys are checked once, when the outermost transaction commits and
every planned table is already empty.  Unlike ``PRAGMA foreign_keys``, this
works inside an open transaction and switches itself off at commit, leaving
the connection's enforcement setting untouched.

``AUTOINCREMENT`` counters live in ``sqlite_sequence``, which only exists
once such a table has been created; reseeding is skipped when it is absent.

Usage:
    from db_respawn.adapters.sqlite import SQLiteAdapter

    adapter = SQLiteAdapter()
    sql = adapter.build_table_command_text(options)
"""

from collections.abc import Iterable

from db_respawn.adapters.base import render_delete_statement
from db_respawn.adapters.filters import (
    quote_literal,
    relationship_predicates,
    table_predicates,
    where_clause,
)
from db_respawn.config.models import RespawnerOptions
from db_respawn.errors import UnsupportedFeatureError
from db_respawn.graph.models import DeletionPlan, Table, TemporalTable

_MAIN_SCHEMA = "'main'"
_SAVEPOINT = "respawn"


class SQLiteAdapter:
    """SQLite implementation of the ``DbAdapter`` protocol."""

    name = "sqlite"
    case_sensitive_identifiers = False
    supports_temporal_tables = False

    @staticmethod
    def quote_identifier(identifier: str) -> str:
        return '"' + identifier.replace('"', '""') + '"'

    def quote_table(self, table: Table) -> str:
        # The implicit schema is never rendered; attached databases are not discovered
        return self.quote_identifier(table.name)

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def build_table_command_text(self, options: RespawnerOptions) -> str:
        predicates = [
            "t.type = 'table'",
            "t.name NOT LIKE 'sqlite_%'",
        ] + table_predicates(options, _MAIN_SCHEMA, "t.name", fold_case=True)

        return (
            "SELECT NULL AS table_schema, t.name AS table_name\n"
            "FROM sqlite_master t"
            + where_clause(predicates)
        )

    def build_relationship_command_text(self, options: RespawnerOptions) -> str:
        # SQLite does not name foreign keys; synthesize a stable label per table and id
        predicates = ["m.type = 'table'"] + relationship_predicates(
            options,
            _MAIN_SCHEMA,
            "m.name",
            _MAIN_SCHEMA,
            'p."table"',
            fold_case=True,
        )

        return (
            "SELECT DISTINCT\n"
            "    NULL AS parent_schema,\n"
            "    m.name AS parent_table,\n"
            "    NULL AS referenced_schema,\n"
            '    p."table" AS referenced_table,\n'
            "    'FK_' || m.name || '_' || p.id AS constraint_name\n"
            "FROM sqlite_master m\n"
            "JOIN pragma_foreign_key_list(m.name) p"
            + where_clause(predicates)
        )

    def build_temporal_table_command_text(self, options: RespawnerOptions) -> str:
        raise UnsupportedFeatureError("SQLite has no system-versioned tables")

    # ------------------------------------------------------------------
    # Delete / reseed
    # ------------------------------------------------------------------

    def build_delete_commands(
        self, plan: DeletionPlan, options: RespawnerOptions
    ) -> list[str]:
        commands = [f"SAVEPOINT {_SAVEPOINT};", "PRAGMA defer_foreign_keys = ON;"]
        for table in plan.tables_to_delete:
            commands.append(
                render_delete_statement(
                    table, options, f"DELETE FROM {self.quote_table(table)};"
                )
            )
        commands.append(f"RELEASE {_SAVEPOINT};")
        return commands

    def build_reseed_check_command_text(self) -> str:
        """Query that returns a row only if ``sqlite_sequence`` exists."""
        return (
            "SELECT 1 FROM sqlite_master "
            "WHERE type = 'table' AND name = 'sqlite_sequence'"
        )

    def build_reseed_commands(self, tables: Iterable[Table]) -> list[str]:
        """Forget the ``AUTOINCREMENT`` counter of each table.

        Plain rowid tables need nothing: once emptied they restart at 1.
        """
        return [
            "DELETE FROM sqlite_sequence "
            f"WHERE lower(name) = {quote_literal(table.name.lower())};"
            for table in tables
        ]

    # ------------------------------------------------------------------
    # Temporal tables
    # ------------------------------------------------------------------

    def build_turn_off_system_versioning_commands(
        self, temporal_tables: Iterable[TemporalTable]
    ) -> list[str]:
        raise UnsupportedFeatureError("SQLite has no system-versioned tables")

    def build_turn_on_system_versioning_commands(
        self, temporal_tables: Iterable[TemporalTable]
    ) -> list[str]:
        raise UnsupportedFeatureError("SQLite has no system-versioned tables")
