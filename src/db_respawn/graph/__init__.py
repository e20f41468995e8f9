"""Table graph and deletion planning.

Provides the engine-agnostic identity model (``Table``, ``Relationship``,
``TemporalTable``) and the planner that turns them into a ``DeletionPlan``.

Usage:
    from db_respawn.graph import Table, Relationship, build_deletion_plan
"""

from db_respawn.graph.builder import build_deletion_plan, build_graph, plan_deletion
from db_respawn.graph.models import (
    DeletionPlan,
    Graph,
    Relationship,
    Table,
    TemporalTable,
)

__all__ = [
    "Table",
    "TemporalTable",
    "Relationship",
    "Graph",
    "DeletionPlan",
    "build_graph",
    "plan_deletion",
    "build_deletion_plan",
]
