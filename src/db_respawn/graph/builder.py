"""Graph builder: turn discovered tables and foreign keys into a delete order.

Pure logic -- no I/O, no SQL, no database connections.

The order is computed by Kahn-style peeling over the "references" edges:
a table can be emptied once no remaining table references it.  Tables that
can never be peeled (cycles, and everything a cycle references) are appended
as one group that is deleted with referential integrity suspended.

Usage:
    from db_respawn.graph.builder import build_graph, plan_deletion
    from db_respawn.graph.models import Relationship, Table

    bob, foo = Table(None, "Bob"), Table(None, "Foo")
    graph = build_graph([bob, foo], [Relationship(foo, bob, "FK_FOO_BOB")])
    plan = plan_deletion(graph)
    plan.tables_to_delete
    # (Table(schema=None, name='Foo'), Table(schema=None, name='Bob'))
"""

from collections.abc import Iterable

from db_respawn.graph.models import DeletionPlan, Graph, Relationship, Table


def build_graph(
    tables: Iterable[Table],
    relationships: Iterable[Relationship],
    *,
    case_sensitive: bool = False,
) -> Graph:
    """Assemble tables and relationships into an index-based graph.

    Tables are de-duplicated by ``Table.key(case_sensitive)``; the first
    spelling seen wins.  Relationships are re-pointed at those canonical
    tables.  A relationship with an end outside the table set is dropped:
    the table was filtered out, and that exclusion is authoritative.

    Args:
        tables: Candidate tables from table discovery.
        relationships: Foreign keys from relationship discovery.
        case_sensitive: Whether the engine distinguishes identifier case.

    Returns:
        ``Graph`` with tables sorted by ``Table.sort_key``.
    """
    canonical: dict[tuple[str, str], Table] = {}
    for table in tables:
        canonical.setdefault(table.key(case_sensitive), table)

    ordered = sorted(canonical.values(), key=lambda t: t.sort_key)
    index = {table.key(case_sensitive): i for i, table in enumerate(ordered)}

    markers: set[tuple[int, int, str]] = set()
    for rel in relationships:
        parent = index.get(rel.parent_table.key(case_sensitive))
        referenced = index.get(rel.referenced_table.key(case_sensitive))
        if parent is None or referenced is None:
            continue
        markers.add((parent, referenced, rel.name))

    # Sorted so the plan does not depend on discovery row order
    ordered_markers = sorted(markers)
    kept = tuple(
        Relationship(ordered[parent], ordered[referenced], name)
        for parent, referenced, name in ordered_markers
    )
    edges = tuple((parent, referenced) for parent, referenced, _ in ordered_markers)

    return Graph(tables=tuple(ordered), relationships=kept, edges=edges)


def plan_deletion(graph: Graph) -> DeletionPlan:
    """Compute a deletion order for ``graph``.

    1. For every table count the *other* tables that still reference it.
       Self loops never count.
    2. Peel every table whose count is zero (ties by index, i.e. by
       qualified name), then decrement the tables they reference.
    3. If tables remain but none is at zero, the remainder is appended as
       one group, ordered by qualified name, and flagged as cyclic.

    Self-referencing tables keep their peeled position but are flagged as
    cyclic too, since deleting their rows trips their own constraint.

    Never fails: cycles are common in real schemas.

    Args:
        graph: Graph from ``build_graph()``.

    Returns:
        ``DeletionPlan`` listing every table exactly once.
    """
    count = len(graph.tables)

    # referenced_by[i]: tables that reference i; references[i]: tables i references
    referenced_by: list[set[int]] = [set() for _ in range(count)]
    references: list[set[int]] = [set() for _ in range(count)]
    self_referencing: set[int] = set()

    for parent, referenced in graph.edges:
        if parent == referenced:
            self_referencing.add(parent)
            continue
        referenced_by[referenced].add(parent)
        references[parent].add(referenced)

    pending = [len(parents) for parents in referenced_by]
    remaining = set(range(count))
    order: list[int] = []

    while remaining:
        ready = sorted(i for i in remaining if pending[i] == 0)
        if not ready:
            break
        for i in ready:
            remaining.discard(i)
            order.append(i)
        for i in ready:
            for referenced in references[i]:
                pending[referenced] -= 1

    cyclic = set(remaining) | self_referencing
    order.extend(sorted(remaining))

    cyclic_tables = frozenset(graph.tables[i] for i in cyclic)
    cyclic_relationships = tuple(
        rel
        for rel, (parent, referenced) in zip(graph.relationships, graph.edges)
        if parent in cyclic and referenced in cyclic
    )

    return DeletionPlan(
        tables_to_delete=tuple(graph.tables[i] for i in order),
        cyclic_tables=cyclic_tables,
        cyclic_relationships=cyclic_relationships,
    )


def build_deletion_plan(
    tables: Iterable[Table],
    relationships: Iterable[Relationship],
    *,
    case_sensitive: bool = False,
) -> DeletionPlan:
    """Build the graph and plan it in one call."""
    graph = build_graph(tables, relationships, case_sensitive=case_sensitive)
    return plan_deletion(graph)
