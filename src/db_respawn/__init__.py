"""db-respawn: reset database state between test runs.

Deletes every row from a selected set of tables in an order that never
violates foreign keys, suspending enforcement only where the schema has
cycles.  Discovery runs once per respawner; resets reuse the frozen SQL.

Usage:
    from db_respawn import Respawner, RespawnerOptions, Table

    respawner = await Respawner.create(conn, RespawnerOptions(
        db_adapter="postgres",
        tables_to_ignore=[Table("public", "schema_migrations")],
    ))
    await respawner.reset(conn)
"""

__version__ = "0.1.0"

# Respawner
from db_respawn.respawner import Respawner

# Config
from db_respawn.config.loader import load_respawn_config
from db_respawn.config.models import RespawnConfig, RespawnerOptions, RespawnProfile

# Graph
from db_respawn.graph.builder import build_deletion_plan, build_graph, plan_deletion
from db_respawn.graph.models import DeletionPlan, Relationship, Table, TemporalTable

# Adapters / connections
from db_respawn.adapters import DbAdapter, get_db_adapter
from db_respawn.connection import DatabaseConnection, as_database_connection

# Errors
from db_respawn.errors import DiscoveryError, RespawnError, UnsupportedFeatureError

__all__ = [
    # Respawner
    "Respawner",
    # Config
    "RespawnerOptions",
    "RespawnProfile",
    "RespawnConfig",
    "load_respawn_config",
    # Graph
    "Table",
    "TemporalTable",
    "Relationship",
    "DeletionPlan",
    "build_graph",
    "plan_deletion",
    "build_deletion_plan",
    # Adapters / connections
    "DbAdapter",
    "get_db_adapter",
    "DatabaseConnection",
    "as_database_connection",
    # Errors
    "RespawnError",
    "DiscoveryError",
    "UnsupportedFeatureError",
]
