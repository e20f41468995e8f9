"""MySQL / MariaDB dialect adapter.

Discovers tables from ``information_schema.TABLES`` and foreign keys from
``information_schema.REFERENTIAL_CONSTRAINTS``.  In MySQL a schema is a
database: unless ``schemas_to_include`` selects databases explicitly, only
the connection's current database (``DATABASE()``) is discovered.

Referential integrity is toggled for the session with
``SET FOREIGN_KEY_CHECKS``.
"""

from collections.abc import Iterable

from db_respawn.adapters.base import render_delete_statement
from db_respawn.adapters.filters import (
    relationship_predicates,
    table_predicates,
    where_clause,
)
from db_respawn.config.models import RespawnerOptions
from db_respawn.errors import UnsupportedFeatureError
from db_respawn.graph.models import DeletionPlan, Table, TemporalTable

_SYSTEM_SCHEMAS = "('mysql', 'performance_schema', 'information_schema', 'sys')"


def _current_database_only(options: RespawnerOptions) -> bool:
    # schemas_to_exclude wins over schemas_to_include
    return bool(options.schemas_to_exclude) or not options.schemas_to_include


class MySQLAdapter:
    """MySQL implementation of the ``DbAdapter`` protocol."""

    name = "mysql"
    case_sensitive_identifiers = False
    supports_temporal_tables = False

    @staticmethod
    def quote_identifier(identifier: str) -> str:
        return "`" + identifier.replace("`", "``") + "`"

    def quote_table(self, table: Table) -> str:
        if table.schema:
            return f"{self.quote_identifier(table.schema)}.{self.quote_identifier(table.name)}"
        return self.quote_identifier(table.name)

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def build_table_command_text(self, options: RespawnerOptions) -> str:
        predicates = [
            "t.TABLE_TYPE = 'BASE TABLE'",
            f"t.TABLE_SCHEMA NOT IN {_SYSTEM_SCHEMAS}",
        ]
        if _current_database_only(options):
            predicates.append("t.TABLE_SCHEMA = DATABASE()")
        predicates += table_predicates(options, "t.TABLE_SCHEMA", "t.TABLE_NAME")

        return (
            "SELECT t.TABLE_SCHEMA AS table_schema, t.TABLE_NAME AS table_name\n"
            "FROM information_schema.TABLES t"
            + where_clause(predicates)
        )

    def build_relationship_command_text(self, options: RespawnerOptions) -> str:
        predicates: list[str] = []
        if _current_database_only(options):
            predicates.append("rc.CONSTRAINT_SCHEMA = DATABASE()")
        predicates += relationship_predicates(
            options,
            "rc.CONSTRAINT_SCHEMA",
            "rc.TABLE_NAME",
            "rc.UNIQUE_CONSTRAINT_SCHEMA",
            "rc.REFERENCED_TABLE_NAME",
        )

        return (
            "SELECT\n"
            "    rc.CONSTRAINT_SCHEMA AS parent_schema,\n"
            "    rc.TABLE_NAME AS parent_table,\n"
            "    rc.UNIQUE_CONSTRAINT_SCHEMA AS referenced_schema,\n"
            "    rc.REFERENCED_TABLE_NAME AS referenced_table,\n"
            "    rc.CONSTRAINT_NAME AS constraint_name\n"
            "FROM information_schema.REFERENTIAL_CONSTRAINTS rc"
            + where_clause(predicates)
        )

    def build_temporal_table_command_text(self, options: RespawnerOptions) -> str:
        raise UnsupportedFeatureError("System-versioned tables are not supported for MySQL")

    # ------------------------------------------------------------------
    # Delete / reseed
    # ------------------------------------------------------------------

    def build_delete_commands(
        self, plan: DeletionPlan, options: RespawnerOptions
    ) -> list[str]:
        commands = ["SET FOREIGN_KEY_CHECKS = 0;"]
        for table in plan.tables_to_delete:
            commands.append(
                render_delete_statement(
                    table, options, f"DELETE FROM {self.quote_table(table)};"
                )
            )
        commands.append("SET FOREIGN_KEY_CHECKS = 1;")
        return commands

    def build_reseed_check_command_text(self) -> None:
        return None

    def build_reseed_commands(self, tables: Iterable[Table]) -> list[str]:
        return [
            f"ALTER TABLE {self.quote_table(table)} AUTO_INCREMENT = 1;"
            for table in tables
        ]

    # ------------------------------------------------------------------
    # Temporal tables
    # ------------------------------------------------------------------

    def build_turn_off_system_versioning_commands(
        self, temporal_tables: Iterable[TemporalTable]
    ) -> list[str]:
        raise UnsupportedFeatureError("System-versioned tables are not supported for MySQL")

    def build_turn_on_system_versioning_commands(
        self, temporal_tables: Iterable[TemporalTable]
    ) -> list[str]:
        raise UnsupportedFeatureError("System-versioned tables are not supported for MySQL")
