"""Plan data classes for the deletion planner.

This module contains the engine-agnostic data model:
- Identity: Table, TemporalTable
- Edges: Relationship
- Planner output: Graph, DeletionPlan

Nothing here knows SQL syntax.  Adapters render these objects; the graph
builder (``db_respawn.graph.builder``) produces them.
"""

from dataclasses import dataclass, field

# Opening quote -> closing quote, per engine convention
_IDENTIFIER_QUOTES = {'"': '"', "`": "`", "[": "]"}


def _unquote(identifier: str) -> str:
    """Strip one pair of surrounding identifier quotes, if present."""
    identifier = identifier.strip()
    if len(identifier) >= 2:
        closing = _IDENTIFIER_QUOTES.get(identifier[0])
        if closing is not None and identifier[-1] == closing:
            return identifier[1:-1]
    return identifier


# ============================================================================
# Identity
# ============================================================================


@dataclass(frozen=True)
class Table:
    """Canonical identifier for a table.

    Surrounding identifier quotes are stripped on construction, so
    ``Table(None, '"Foo"')`` and ``Table(None, "Foo")`` are equal.

    Example:
        >>> Table("dbo", "Orders").qualified_name
        'dbo.Orders'
        >>> Table(None, "[Orders]") == Table(None, "Orders")
        True
    """

    schema: str | None
    name: str

    def __post_init__(self) -> None:
        name = _unquote(self.name or "")
        if not name:
            raise ValueError("Table name must not be empty")
        schema = _unquote(self.schema) if self.schema else None
        object.__setattr__(self, "name", name)
        object.__setattr__(self, "schema", schema or None)

    @property
    def qualified_name(self) -> str:
        """Human-readable ``schema.name`` (or ``name`` without a schema)."""
        if self.schema:
            return f"{self.schema}.{self.name}"
        return self.name

    @property
    def sort_key(self) -> tuple[str, str, str, str]:
        """Deterministic ordering key: case-folded qualified name first."""
        schema = self.schema or ""
        return (schema.casefold(), self.name.casefold(), schema, self.name)

    def key(self, case_sensitive: bool = False) -> tuple[str, str]:
        """Identity key used by the graph builder.

        Args:
            case_sensitive: True if the engine distinguishes ``Foo`` from
                ``foo``.  Otherwise both parts are case-folded.
        """
        schema = self.schema or ""
        if case_sensitive:
            return (schema, self.name)
        return (schema.casefold(), self.name.casefold())

    def __str__(self) -> str:
        return self.qualified_name


@dataclass(frozen=True)
class TemporalTable:
    """A system-versioned table and the history table that backs it."""

    schema: str | None
    name: str
    history_table_schema: str | None
    history_table_name: str

    @property
    def table(self) -> Table:
        return Table(self.schema, self.name)

    @property
    def history_table(self) -> Table:
        return Table(self.history_table_schema, self.history_table_name)


# ============================================================================
# Edges
# ============================================================================


@dataclass(frozen=True)
class Relationship:
    """Foreign key edge: rows in ``parent_table`` reference ``referenced_table``.

    ``parent_table`` has to be emptied before ``referenced_table`` (or the
    constraint suspended).  ``name`` is the constraint name where the engine
    exposes one; it is diagnostic only.
    """

    parent_table: Table
    referenced_table: Table
    name: str = ""

    @property
    def is_self_reference(self) -> bool:
        return self.parent_table == self.referenced_table

    def __str__(self) -> str:
        label = f" ({self.name})" if self.name else ""
        return f"{self.parent_table} -> {self.referenced_table}{label}"


# ============================================================================
# Planner output
# ============================================================================


@dataclass(frozen=True)
class Graph:
    """Index-based table graph.

    Attributes:
        tables: Tables sorted by ``Table.sort_key``.  A table's position is
            its index in ``edges``.
        relationships: Relationships with both ends in ``tables``, using the
            same ``Table`` objects.
        edges: ``(parent_index, referenced_index)`` pairs, parallel to
            ``relationships``.
    """

    tables: tuple[Table, ...] = ()
    relationships: tuple[Relationship, ...] = ()
    edges: tuple[tuple[int, int], ...] = ()


@dataclass(frozen=True)
class DeletionPlan:
    """Safe order in which tables may be emptied.

    Attributes:
        tables_to_delete: Every planned table exactly once, in delete order.
        cyclic_tables: Tables that have to be deleted with referential
            integrity suspended: the unresolvable remainder of the peeling
            plus every self-referencing table.
        cyclic_relationships: Relationships with both ends in
            ``cyclic_tables`` (the constraints to suspend on engines that
            toggle per constraint).
    """

    tables_to_delete: tuple[Table, ...] = ()
    cyclic_tables: frozenset[Table] = field(default_factory=frozenset)
    cyclic_relationships: tuple[Relationship, ...] = ()

    @property
    def requires_suspension(self) -> bool:
        """True if any table must be deleted with constraints suspended."""
        return bool(self.cyclic_tables)

    @property
    def ordered_cyclic_tables(self) -> list[Table]:
        """``cyclic_tables`` in plan order, for deterministic rendering."""
        return [t for t in self.tables_to_delete if t in self.cyclic_tables]
