"""Profile resolution, engine creation, and respawner factory.

Profiles live in ``respawn.toml``.  The active profile comes from the
``RESPAWN_PROFILE`` environment variable (optionally prefixed, e.g.
``APP_RESPAWN_PROFILE`` with ``env_prefix="APP_"``) or an explicit name.

Usage:
    from db_respawn.factory import create_respawner, create_engine

    respawner, engine = await create_respawner("test")
    async with engine.begin() as conn:
        await respawner.reset(conn)
    await engine.dispose()
"""

import os
from pathlib import Path
from typing import Any
from urllib.parse import quote

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from db_respawn.adapters import get_db_adapter
from db_respawn.config.loader import load_respawn_config
from db_respawn.config.models import AdapterName, RespawnerOptions, RespawnProfile
from db_respawn.respawner import Respawner

__all__ = [
    "ProfileNotFoundError",
    "get_active_profile_name",
    "get_profile",
    "resolve_url",
    "infer_adapter_name",
    "build_options",
    "create_engine",
    "create_respawner",
    "get_db_adapter",
]

# URL scheme prefix -> (async driver scheme, adapter name)
_SCHEMES: dict[str, tuple[str, AdapterName]] = {
    "postgres": ("postgresql+asyncpg", "postgres"),
    "postgresql": ("postgresql+asyncpg", "postgres"),
    "sqlite": ("sqlite+aiosqlite", "sqlite"),
    "mysql": ("mysql+aiomysql", "mysql"),
    "mariadb": ("mysql+aiomysql", "mysql"),
    "mssql": ("mssql+aioodbc", "sqlserver"),
}


class ProfileNotFoundError(Exception):
    """Raised when no respawn profile is configured or the name is unknown."""

    pass


# ============================================================================
# Profile Resolution
# ============================================================================


def get_active_profile_name(env_prefix: str = "") -> str:
    """Get active profile name from the environment.

    Args:
        env_prefix: Prefix for the environment variable lookup
            (``"APP_"`` reads ``APP_RESPAWN_PROFILE``).

    Returns:
        Profile name

    Raises:
        ProfileNotFoundError: If the variable is not set
    """
    var_name = f"{env_prefix}RESPAWN_PROFILE"
    env_profile = os.environ.get(var_name)
    if env_profile:
        return env_profile

    raise ProfileNotFoundError(
        "No respawn profile configured.\n"
        f"Set {var_name}=<name> or pass --profile <name>."
    )


def get_profile(
    profile_name: str | None = None,
    env_prefix: str = "",
    config_path: Path | None = None,
) -> tuple[str, RespawnProfile]:
    """Get profile name and configuration.

    Returns:
        Tuple of (profile_name, RespawnProfile)

    Raises:
        ProfileNotFoundError: If no profile configured or not in respawn.toml
        FileNotFoundError: If respawn.toml does not exist
    """
    if profile_name is None:
        profile_name = get_active_profile_name(env_prefix=env_prefix)

    config = load_respawn_config(config_path)

    if profile_name not in config.profiles:
        available = ", ".join(config.profiles.keys())
        raise ProfileNotFoundError(
            f"Profile '{profile_name}' not found in respawn.toml.\n"
            f"Available profiles: {available}"
        )

    return profile_name, config.profiles[profile_name]


# ============================================================================
# URL / Adapter Resolution
# ============================================================================


def _split_scheme(url: str) -> tuple[str, str]:
    scheme, sep, rest = url.partition("://")
    if not sep:
        raise ValueError(f"Not a database URL: {url!r}")
    return scheme, rest


def resolve_url(profile: RespawnProfile) -> str:
    """Resolve profile URL with password substitution and async driver.

    Handles ``[YOUR-PASSWORD]`` placeholders and normalizes the scheme to
    an async SQLAlchemy driver:

    - ``postgres://`` / ``postgresql://`` -> ``postgresql+asyncpg://``
    - ``sqlite://`` -> ``sqlite+aiosqlite://``
    - ``mysql://`` / ``mariadb://`` -> ``mysql+aiomysql://``
    - ``mssql://`` -> ``mssql+aioodbc://``

    URLs that already name a driver (``dialect+driver://``) are kept.

    Example:
        >>> resolve_url(RespawnProfile(url="postgres://u:[YOUR-PASSWORD]@h/db", db_password="p@ss"))
        'postgresql+asyncpg://u:p%40ss@h/db'
    """
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))

    scheme, rest = _split_scheme(url)
    if "+" not in scheme and scheme in _SCHEMES:
        scheme = _SCHEMES[scheme][0]
    return f"{scheme}://{rest}"


def infer_adapter_name(profile: RespawnProfile) -> AdapterName:
    """Adapter configured on the profile, or inferred from its URL scheme.

    Raises:
        ValueError: If the scheme maps to no known adapter
    """
    if profile.adapter is not None:
        return profile.adapter

    scheme, _ = _split_scheme(profile.url)
    dialect = scheme.split("+", 1)[0]
    if dialect not in _SCHEMES:
        raise ValueError(
            f"Cannot infer adapter from URL scheme '{scheme}'. "
            "Set 'adapter' on the profile."
        )
    return _SCHEMES[dialect][1]


def build_options(profile: RespawnProfile) -> RespawnerOptions:
    """Turn a profile's ``[options]`` table into ``RespawnerOptions``."""
    return RespawnerOptions(
        db_adapter=infer_adapter_name(profile),
        **profile.options.model_dump(),
    )


# ============================================================================
# Engine / Respawner Factory
# ============================================================================


def create_engine(database_url: str, **kwargs: Any) -> AsyncEngine:
    """Create an async SQLAlchemy engine.

    Default pool settings (server databases only; SQLite keeps the
    dialect's own pool):

    - ``pool_size=5``
    - ``max_overflow=10``
    - ``pool_pre_ping=True``: Validate connections before checkout.
    - ``pool_recycle=300``: Recycle connections every 5 minutes.

    Args:
        database_url: URL with an async driver (see ``resolve_url``).
        **kwargs: Forwarded to ``create_async_engine``; override defaults.
    """
    defaults: dict[str, Any] = {"echo": False}
    if not database_url.startswith("sqlite"):
        defaults.update(
            {
                "pool_size": 5,
                "max_overflow": 10,
                "pool_pre_ping": True,
                "pool_recycle": 300,
            }
        )
    # Caller kwargs override defaults
    merged = {**defaults, **kwargs}

    return create_async_engine(database_url, **merged)


async def create_respawner(
    profile_name: str | None = None,
    env_prefix: str = "",
    config_path: Path | None = None,
) -> tuple[Respawner, AsyncEngine]:
    """Create a respawner for a configured profile.

    Discovery runs on a fresh connection from a new engine.  The engine is
    returned so the caller can reset against it and dispose of it.

    Returns:
        Tuple of (Respawner, AsyncEngine)

    Raises:
        ProfileNotFoundError: If no profile configured
        DiscoveryError: If discovery fails (the engine is disposed first)
    """
    _, profile = get_profile(profile_name, env_prefix=env_prefix, config_path=config_path)
    options = build_options(profile)
    engine = create_engine(resolve_url(profile))

    try:
        async with engine.connect() as conn:
            respawner = await Respawner.create(conn, options)
    except BaseException:
        await engine.dispose()
        raise

    return respawner, engine
