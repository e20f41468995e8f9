"""PostgreSQL dialect adapter.

Discovers tables and foreign keys from ``pg_catalog``.  System schemas
(``pg_*`` and ``information_schema``) and partitions are never returned;
a partitioned table is emptied through its parent.

Identifiers are case-sensitive: the catalog stores the exact spelling and
filters compare against it.

Referential integrity is suspended per table with
``ALTER TABLE ... DISABLE TRIGGER ALL`` on the cyclic tables only, which
requires a role allowed to disable system triggers (usually the owner with
superuser rights).

Usage:
    from db_respawn.adapters.postgres import PostgresAdapter

    adapter = PostgresAdapter()
    commands = adapter.build_delete_commands(plan, options)
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


class PostgresAdapter:
    """PostgreSQL implementation of the ``DbAdapter`` protocol."""

    name = "postgres"
    case_sensitive_identifiers = True
    supports_temporal_tables = False

    @staticmethod
    def quote_identifier(identifier: str) -> str:
        return '"' + identifier.replace('"', '""') + '"'

    def quote_table(self, table: Table) -> str:
        if table.schema:
            return f"{self.quote_identifier(table.schema)}.{self.quote_identifier(table.name)}"
        return self.quote_identifier(table.name)

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def build_table_command_text(self, options: RespawnerOptions) -> str:
        predicates = [
            "c.relkind IN ('r', 'p')",
            "NOT c.relispartition",
            "n.nspname !~ '^pg_'",
            "n.nspname <> 'information_schema'",
        ] + table_predicates(options, "n.nspname", "c.relname")

        return (
            "SELECT n.nspname AS table_schema, c.relname AS table_name\n"
            "FROM pg_catalog.pg_class c\n"
            "JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace"
            + where_clause(predicates)
        )

    def build_relationship_command_text(self, options: RespawnerOptions) -> str:
        predicates = ["con.contype = 'f'"] + relationship_predicates(
            options,
            "fk_ns.nspname",
            "fk_tbl.relname",
            "pk_ns.nspname",
            "pk_tbl.relname",
        )

        return (
            "SELECT\n"
            "    fk_ns.nspname AS parent_schema,\n"
            "    fk_tbl.relname AS parent_table,\n"
            "    pk_ns.nspname AS referenced_schema,\n"
            "    pk_tbl.relname AS referenced_table,\n"
            "    con.conname AS constraint_name\n"
            "FROM pg_catalog.pg_constraint con\n"
            "JOIN pg_catalog.pg_class fk_tbl ON fk_tbl.oid = con.conrelid\n"
            "JOIN pg_catalog.pg_namespace fk_ns ON fk_ns.oid = fk_tbl.relnamespace\n"
            "JOIN pg_catalog.pg_class pk_tbl ON pk_tbl.oid = con.confrelid\n"
            "JOIN pg_catalog.pg_namespace pk_ns ON pk_ns.oid = pk_tbl.relnamespace"
            + where_clause(predicates)
        )

    def build_temporal_table_command_text(self, options: RespawnerOptions) -> str:
        raise UnsupportedFeatureError("PostgreSQL has no system-versioned tables")

    # ------------------------------------------------------------------
    # Delete / reseed
    # ------------------------------------------------------------------

    def build_delete_commands(
        self, plan: DeletionPlan, options: RespawnerOptions
    ) -> list[str]:
        cyclic = plan.ordered_cyclic_tables

        commands = [
            f"ALTER TABLE {self.quote_table(table)} DISABLE TRIGGER ALL;"
            for table in cyclic
        ]
        for table in plan.tables_to_delete:
            commands.append(
                render_delete_statement(
                    table, options, f"DELETE FROM {self.quote_table(table)};"
                )
            )
        commands.extend(
            f"ALTER TABLE {self.quote_table(table)} ENABLE TRIGGER ALL;"
            for table in cyclic
        )
        return commands

    def build_reseed_check_command_text(self) -> None:
        return None

    def build_reseed_commands(self, tables: Iterable[Table]) -> list[str]:
        """Restart every serial/identity sequence owned by ``tables`` at 1."""
        commands = []
        for table in tables:
            relation = quote_literal(self.quote_table(table))
            commands.append(
                f"SELECT setval(pg_get_serial_sequence({relation}, a.attname), 1, false)\n"
                "FROM pg_catalog.pg_attribute a\n"
                f"WHERE a.attrelid = CAST({relation} AS regclass)\n"
                "  AND a.attnum > 0\n"
                "  AND NOT a.attisdropped\n"
                f"  AND pg_get_serial_sequence({relation}, a.attname) IS NOT NULL;"
            )
        return commands

    # ------------------------------------------------------------------
    # Temporal tables
    # ------------------------------------------------------------------

    def build_turn_off_system_versioning_commands(
        self, temporal_tables: Iterable[TemporalTable]
    ) -> list[str]:
        raise UnsupportedFeatureError("PostgreSQL has no system-versioned tables")

    def build_turn_on_system_versioning_commands(
        self, temporal_tables: Iterable[TemporalTable]
    ) -> list[str]:
        raise UnsupportedFeatureError("PostgreSQL has no system-versioned tables")
