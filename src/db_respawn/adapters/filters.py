"""Include/ignore/schema predicates shared by every dialect adapter.

Pure string templating.  Each adapter supplies the column expressions for a
table's schema and name in its own catalog; this module turns
``RespawnerOptions`` into ``WHERE`` predicates over them.

Rules:
- ``tables_to_include``: unqualified entries match by name in every schema,
  qualified entries match schema and name.  Entries are OR'ed together.
- ``tables_to_ignore``: the negation of the same shape.
- ``schemas_to_exclude`` if non-empty, otherwise ``schemas_to_include``.

Usage:
    from db_respawn.adapters.filters import table_predicates

    predicates = table_predicates(options, "t.table_schema", "t.table_name")
    where = " AND ".join(predicates)
"""

from collections.abc import Iterable, Sequence

from db_respawn.config.models import RespawnerOptions
from db_respawn.graph.models import Table


def quote_literal(value: str) -> str:
    """Render ``value`` as a single-quoted SQL string literal."""
    return "'" + value.replace("'", "''") + "'"


def _literal(value: str, fold_case: bool) -> str:
    return quote_literal(value.lower() if fold_case else value)


def _column(expression: str, fold_case: bool) -> str:
    return f"lower({expression})" if fold_case else expression


def _in_list(values: Iterable[str], fold_case: bool) -> str:
    return ", ".join(_literal(v, fold_case) for v in values)


def _matches_any(
    tables: Sequence[Table],
    schema_column: str,
    name_column: str,
    fold_case: bool,
) -> str:
    """Predicate that is true when the row is one of ``tables``."""
    unqualified = [t.name for t in tables if t.schema is None]
    qualified = [t for t in tables if t.schema is not None]

    parts: list[str] = []
    if unqualified:
        parts.append(
            f"{_column(name_column, fold_case)} IN ({_in_list(unqualified, fold_case)})"
        )
    for table in qualified:
        parts.append(
            f"({_column(schema_column, fold_case)} = {_literal(table.schema, fold_case)}"
            f" AND {_column(name_column, fold_case)} = {_literal(table.name, fold_case)})"
        )

    if len(parts) == 1:
        return parts[0]
    return "(" + " OR ".join(parts) + ")"


def table_predicates(
    options: RespawnerOptions,
    schema_column: str,
    name_column: str,
    fold_case: bool = False,
) -> list[str]:
    """Build the predicates that select the candidate tables.

    Args:
        options: Respawner options holding the filters.
        schema_column: SQL expression yielding the table's schema.
        name_column: SQL expression yielding the table's name.
        fold_case: Compare through ``lower()`` on both sides, for catalogs
            whose collation is case-sensitive but whose engine is not.

    Returns:
        Predicates to be AND'ed together.  Empty when nothing is filtered.
    """
    predicates: list[str] = []

    if options.tables_to_ignore:
        predicates.append(
            "NOT "
            + _wrap(
                _matches_any(options.tables_to_ignore, schema_column, name_column, fold_case)
            )
        )

    if options.tables_to_include:
        predicates.append(
            _matches_any(options.tables_to_include, schema_column, name_column, fold_case)
        )

    if options.schemas_to_exclude:
        predicates.append(
            f"{_column(schema_column, fold_case)} NOT IN "
            f"({_in_list(options.schemas_to_exclude, fold_case)})"
        )
    elif options.schemas_to_include:
        predicates.append(
            f"{_column(schema_column, fold_case)} IN "
            f"({_in_list(options.schemas_to_include, fold_case)})"
        )

    return predicates


def relationship_predicates(
    options: RespawnerOptions,
    parent_schema_column: str,
    parent_name_column: str,
    referenced_schema_column: str,
    referenced_name_column: str,
    fold_case: bool = False,
) -> list[str]:
    """Apply ``table_predicates`` to both ends of a relationship."""
    return table_predicates(
        options, parent_schema_column, parent_name_column, fold_case
    ) + table_predicates(
        options, referenced_schema_column, referenced_name_column, fold_case
    )


def where_clause(predicates: Sequence[str]) -> str:
    """Join predicates into a ``WHERE`` clause (empty string if none)."""
    if not predicates:
        return ""
    return "\nWHERE " + "\n  AND ".join(predicates)


def _wrap(predicate: str) -> str:
    if predicate.startswith("("):
        return predicate
    return f"({predicate})"
