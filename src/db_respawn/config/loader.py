"""TOML loader for respawn.toml profiles."""

import tomllib
from pathlib import Path

from db_respawn.config.models import RespawnConfig, RespawnProfile

DEFAULT_CONFIG_FILE = "respawn.toml"


def load_respawn_config(config_path: Path | None = None) -> RespawnConfig:
    """Load respawn profiles from a TOML file.

    Args:
        config_path: Path to respawn.toml (default: ./respawn.toml)

    Returns:
        RespawnConfig with all profiles

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config format is invalid
    """
    if config_path is None:
        config_path = Path.cwd() / DEFAULT_CONFIG_FILE

    if not config_path.exists():
        raise FileNotFoundError(
            f"Respawn config not found: {config_path}\n"
            f"Copy respawn.toml.example to respawn.toml and configure your profiles."
        )

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    profiles_data = data.get("profiles", {})
    if not isinstance(profiles_data, dict):
        raise ValueError(f"[profiles] must be a table in {config_path.name}")

    # Parse profiles
    profiles = {}
    for name, profile_data in profiles_data.items():
        profiles[name] = RespawnProfile(**profile_data)

    return RespawnConfig(profiles=profiles)
