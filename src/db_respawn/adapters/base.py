"""Dialect adapter protocol definition.

Defines the ``DbAdapter`` Protocol that every engine-specific adapter
implements.  Adapters are pure text generators: they never touch a
connection.  The respawner executes what they return.

Discovery queries return rows with a fixed column layout so the graph
builder can read them the same way for every engine:

- tables: ``(schema, name)``
- relationships: ``(parent_schema, parent_name, referenced_schema,
  referenced_name, constraint_name)``
- temporal tables: ``(schema, name, history_schema, history_name)``

Usage:
    from db_respawn.adapters.base import DbAdapter

    def discovery_queries(adapter: DbAdapter, options) -> list[str]:
        return [
            adapter.build_table_command_text(options),
            adapter.build_relationship_command_text(options),
        ]
"""

from collections.abc import Iterable
from typing import Protocol

from db_respawn.config.models import RespawnerOptions
from db_respawn.graph.models import DeletionPlan, Table, TemporalTable


class DbAdapter(Protocol):
    """Engine-specific SQL generation.

    Attributes:
        name: Adapter name as used in ``RespawnerOptions.db_adapter``.
        case_sensitive_identifiers: Whether the engine distinguishes
            ``Foo`` from ``foo``.
        supports_temporal_tables: Whether the engine has system-versioned
            tables.  When False the temporal builders raise
            ``UnsupportedFeatureError``.
    """

    name: str
    case_sensitive_identifiers: bool
    supports_temporal_tables: bool

    def build_table_command_text(self, options: RespawnerOptions) -> str:
        """Query listing candidate tables as ``(schema, name)`` rows."""
        ...

    def build_relationship_command_text(self, options: RespawnerOptions) -> str:
        """Query listing foreign keys between candidate tables."""
        ...

    def build_temporal_table_command_text(self, options: RespawnerOptions) -> str:
        """Query listing system-versioned tables and their history tables.

        Raises:
            UnsupportedFeatureError: If the engine has no temporal tables.
        """
        ...

    def build_delete_commands(
        self, plan: DeletionPlan, options: RespawnerOptions
    ) -> list[str]:
        """Suspension preamble, one delete per planned table, restoration postamble."""
        ...

    def build_reseed_check_command_text(self) -> str | None:
        """Query gating the reseed commands, or ``None`` when they always apply.

        Reseeding is skipped when the query returns no rows.
        """
        ...

    def build_reseed_commands(self, tables: Iterable[Table]) -> list[str]:
        """Reset identity/auto-increment counters.  Empty list if not applicable."""
        ...

    def build_turn_off_system_versioning_commands(
        self, temporal_tables: Iterable[TemporalTable]
    ) -> list[str]:
        """Commands that turn system versioning off.

        Raises:
            UnsupportedFeatureError: If the engine has no temporal tables.
        """
        ...

    def build_turn_on_system_versioning_commands(
        self, temporal_tables: Iterable[TemporalTable]
    ) -> list[str]:
        """Commands that turn system versioning back on.

        Raises:
            UnsupportedFeatureError: If the engine has no temporal tables.
        """
        ...


def render_delete_statement(
    table: Table, options: RespawnerOptions, default: str
) -> str:
    """Use the caller's ``format_delete_statement`` hook if one is set."""
    if options.format_delete_statement is not None:
        return options.format_delete_statement(table)
    return default
