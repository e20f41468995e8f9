"""Pydantic models for respawner options and profile configuration."""

from collections.abc import Callable
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from db_respawn.graph.models import Table

AdapterName = Literal["sqlite", "postgres", "mysql", "sqlserver"]


def _coerce_table(value: Any) -> Any:
    """Accept a bare name, a (schema, name) pair, or a mapping as a Table."""
    if isinstance(value, str):
        return Table(None, value)
    if isinstance(value, (tuple, list)) and len(value) == 2:
        return Table(value[0], value[1])
    if isinstance(value, dict):
        return Table(value.get("schema"), value["name"])
    return value


# ============================================================================
# Respawner Options
# ============================================================================


class RespawnerOptions(BaseModel):
    """What a respawner deletes and how.

    Immutable once constructed.  Empty include/exclude collections mean
    "no filtering".

    Table entries accept ``Table`` objects, plain strings (matched by name
    across every schema), ``(schema, name)`` pairs or ``{"schema", "name"}``
    mappings.

    When both ``schemas_to_exclude`` and ``schemas_to_include`` are set,
    the exclude list wins and the include list is not applied.

    Example:
        >>> options = RespawnerOptions(db_adapter="sqlite", tables_to_ignore=["Foo"])
        >>> options.tables_to_ignore
        (Table(schema=None, name='Foo'),)
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    db_adapter: AdapterName
    tables_to_include: tuple[Table, ...] = ()
    tables_to_ignore: tuple[Table, ...] = ()
    schemas_to_include: tuple[str, ...] = ()
    schemas_to_exclude: tuple[str, ...] = ()
    with_reseed: bool = False
    check_temporal_tables: bool = False
    command_timeout: float | None = Field(default=None, gt=0)
    format_delete_statement: Callable[[Table], str] | None = None

    @field_validator("tables_to_include", "tables_to_ignore", mode="before")
    @classmethod
    def _coerce_tables(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, (str, Table)):
            value = [value]
        return tuple(_coerce_table(item) for item in value)

    @field_validator("schemas_to_include", "schemas_to_exclude", mode="before")
    @classmethod
    def _coerce_schemas(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, str):
            return (value,)
        return tuple(value)

    @model_validator(mode="after")
    def _check_include_ignore_overlap(self) -> "RespawnerOptions":
        overlap = set(self.tables_to_include) & set(self.tables_to_ignore)
        if overlap:
            names = ", ".join(sorted(t.qualified_name for t in overlap))
            raise ValueError(
                f"Tables cannot be both included and ignored: {names}"
            )
        return self


# ============================================================================
# Configuration Models
# ============================================================================


class ProfileOptions(BaseModel):
    """Respawner options as written in a profile (adapter comes from the profile)."""

    tables_to_include: list[str | dict[str, str] | list[str]] = Field(
        default_factory=list
    )
    tables_to_ignore: list[str | dict[str, str] | list[str]] = Field(
        default_factory=list
    )
    schemas_to_include: list[str] = Field(default_factory=list)
    schemas_to_exclude: list[str] = Field(default_factory=list)
    with_reseed: bool = False
    check_temporal_tables: bool = False
    command_timeout: float | None = None


class RespawnProfile(BaseModel):
    """Database profile from respawn.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution
    adapter: AdapterName | None = None  # Inferred from the URL scheme when omitted
    options: ProfileOptions = Field(default_factory=ProfileOptions)


class RespawnConfig(BaseModel):
    """Complete configuration from respawn.toml."""

    profiles: dict[str, RespawnProfile]
