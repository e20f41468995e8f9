"""Configuration management: respawner options, TOML profiles, and loading.

Usage:
    >>> from db_respawn.config import RespawnerOptions, load_respawn_config
"""

from db_respawn.config.loader import load_respawn_config
from db_respawn.config.models import (
    AdapterName,
    ProfileOptions,
    RespawnConfig,
    RespawnerOptions,
    RespawnProfile,
)

__all__ = [
    "load_respawn_config",
    "AdapterName",
    "RespawnerOptions",
    "ProfileOptions",
    "RespawnProfile",
    "RespawnConfig",
]
