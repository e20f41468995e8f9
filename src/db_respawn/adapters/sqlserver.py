"""SQL Server dialect adapter.

Discovers tables, foreign keys, and system-versioned (temporal) tables from
the ``sys`` catalog views.  Referential integrity is suspended per
constraint: only the foreign keys inside the cyclic group are switched to
``NOCHECK`` and re-validated afterwards with ``WITH CHECK CHECK``.

Temporal tables need SQL Server 2016 or later.  History tables are ordinary
tables once versioning is off, so they are emptied like any other table.

Usage:
    from db_respawn.adapters.sqlserver import SqlServerAdapter

    adapter = SqlServerAdapter()
    off = adapter.build_turn_off_system_versioning_commands(temporal_tables)
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
from db_respawn.graph.models import DeletionPlan, Relationship, Table, TemporalTable


class SqlServerAdapter:
    """SQL Server implementation of the ``DbAdapter`` protocol."""

    name = "sqlserver"
    case_sensitive_identifiers = False
    supports_temporal_tables = True

    @staticmethod
    def quote_identifier(identifier: str) -> str:
        return "[" + identifier.replace("]", "]]") + "]"

    def quote_table(self, table: Table) -> str:
        if table.schema:
            return f"{self.quote_identifier(table.schema)}.{self.quote_identifier(table.name)}"
        return self.quote_identifier(table.name)

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def build_table_command_text(self, options: RespawnerOptions) -> str:
        predicates = ["t.is_ms_shipped = 0"] + table_predicates(
            options, "s.name", "t.name"
        )

        return (
            "SELECT s.name AS table_schema, t.name AS table_name\n"
            "FROM sys.tables t\n"
            "INNER JOIN sys.schemas s ON s.schema_id = t.schema_id"
            + where_clause(predicates)
        )

    def build_relationship_command_text(self, options: RespawnerOptions) -> str:
        predicates = relationship_predicates(
            options, "ps.name", "pt.name", "rs.name", "rt.name"
        )

        return (
            "SELECT\n"
            "    ps.name AS parent_schema,\n"
            "    pt.name AS parent_table,\n"
            "    rs.name AS referenced_schema,\n"
            "    rt.name AS referenced_table,\n"
            "    fk.name AS constraint_name\n"
            "FROM sys.foreign_keys fk\n"
            "INNER JOIN sys.tables pt ON pt.object_id = fk.parent_object_id\n"
            "INNER JOIN sys.schemas ps ON ps.schema_id = pt.schema_id\n"
            "INNER JOIN sys.tables rt ON rt.object_id = fk.referenced_object_id\n"
            "INNER JOIN sys.schemas rs ON rs.schema_id = rt.schema_id"
            + where_clause(predicates)
        )

    def build_temporal_table_command_text(self, options: RespawnerOptions) -> str:
        predicates = ["t.temporal_type = 2"] + table_predicates(
            options, "s.name", "t.name"
        )

        return (
            "SELECT\n"
            "    s.name AS table_schema,\n"
            "    t.name AS table_name,\n"
            "    hs.name AS history_table_schema,\n"
            "    ht.name AS history_table_name\n"
            "FROM sys.tables t\n"
            "INNER JOIN sys.schemas s ON s.schema_id = t.schema_id\n"
            "INNER JOIN sys.tables ht ON ht.object_id = t.history_table_id\n"
            "INNER JOIN sys.schemas hs ON hs.schema_id = ht.schema_id"
            + where_clause(predicates)
        )

    # ------------------------------------------------------------------
    # Delete / reseed
    # ------------------------------------------------------------------

    def _constraint_targets(
        self, relationships: Iterable[Relationship]
    ) -> list[tuple[str, str]]:
        """``(table, constraint)`` pairs, one per distinct constraint."""
        targets: list[tuple[str, str]] = []
        for rel in relationships:
            constraint = self.quote_identifier(rel.name) if rel.name else "ALL"
            target = (self.quote_table(rel.parent_table), constraint)
            if target not in targets:
                targets.append(target)
        return targets

    def build_delete_commands(
        self, plan: DeletionPlan, options: RespawnerOptions
    ) -> list[str]:
        targets = self._constraint_targets(plan.cyclic_relationships)

        commands = [
            f"ALTER TABLE {table} NOCHECK CONSTRAINT {constraint};"
            for table, constraint in targets
        ]
        for table in plan.tables_to_delete:
            commands.append(
                render_delete_statement(
                    table, options, f"DELETE {self.quote_table(table)};"
                )
            )
        commands.extend(
            f"ALTER TABLE {table} WITH CHECK CHECK CONSTRAINT {constraint};"
            for table, constraint in targets
        )
        return commands

    def build_reseed_check_command_text(self) -> None:
        return None

    def build_reseed_commands(self, tables: Iterable[Table]) -> list[str]:
        """Reseed identity columns that have handed out at least one value.

        A table whose identity was never used keeps its seed, so the next
        insert still receives the seed value instead of seed + increment.
        """
        commands = []
        for table in tables:
            name = "N" + quote_literal(self.quote_table(table))
            commands.append(
                "IF EXISTS (SELECT 1 FROM sys.identity_columns "
                f"WHERE object_id = OBJECT_ID({name}) AND last_value IS NOT NULL) "
                f"DBCC CHECKIDENT ({name}, RESEED, 0);"
            )
        return commands

    # ------------------------------------------------------------------
    # Temporal tables
    # ------------------------------------------------------------------

    def build_turn_off_system_versioning_commands(
        self, temporal_tables: Iterable[TemporalTable]
    ) -> list[str]:
        return [
            f"ALTER TABLE {self.quote_table(t.table)} SET (SYSTEM_VERSIONING = OFF);"
            for t in temporal_tables
        ]

    def build_turn_on_system_versioning_commands(
        self, temporal_tables: Iterable[TemporalTable]
    ) -> list[str]:
        return [
            f"ALTER TABLE {self.quote_table(t.table)} SET (SYSTEM_VERSIONING = ON "
            f"(HISTORY_TABLE = {self.quote_table(t.history_table)}));"
            for t in temporal_tables
        ]
