"""CLI module for inspecting and running database resets.

Usage:
    db-respawn profiles
    RESPAWN_PROFILE=test db-respawn plan
    db-respawn plan --profile test
    db-respawn reset --profile test --confirm

Commands:
    profiles  - List available profiles
    plan      - Discover tables and show the deletion order
    reset     - Delete all rows from the discovered tables
"""

import argparse
import asyncio
import sys

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from db_respawn.config.loader import load_respawn_config
from db_respawn.errors import DiscoveryError
from db_respawn.factory import (
    ProfileNotFoundError,
    create_respawner,
    infer_adapter_name,
)
from db_respawn.respawner import Respawner

console = Console()


# ============================================================================
# Rendering helpers
# ============================================================================


def _print_plan(respawner: Respawner, show_sql: bool = False) -> None:
    """Print the deletion order, flagging tables deleted with suspended constraints."""
    plan = respawner.deletion_plan

    order_table = Table(title="Deletion Plan", show_header=True, header_style="bold")
    order_table.add_column("#", justify="right", style="dim")
    order_table.add_column("Table")
    order_table.add_column("Constraints")

    for i, table in enumerate(plan.tables_to_delete, start=1):
        suspended = table in plan.cyclic_tables
        order_table.add_row(
            str(i),
            table.qualified_name,
            "[yellow]suspended[/yellow]" if suspended else "",
        )

    console.print(order_table)

    if plan.cyclic_relationships:
        console.print(
            f"[dim]Cyclic relationships:[/dim] "
            f"{', '.join(str(rel) for rel in plan.cyclic_relationships)}"
        )

    if respawner.temporal_tables:
        console.print(
            f"[dim]System-versioned tables:[/dim] "
            f"{', '.join(str(t.table) for t in respawner.temporal_tables)}"
        )

    if show_sql:
        console.print()
        console.print("[bold]Delete script:[/bold]")
        console.print(respawner.delete_sql, markup=False, highlight=False)
        if respawner.reseed_sql:
            console.print("[bold]Reseed script:[/bold]")
            console.print(respawner.reseed_sql, markup=False, highlight=False)


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_plan(args: argparse.Namespace) -> int:
    """Async implementation for plan command.

    Returns:
        0 on success, 1 on failure.
    """
    env_prefix = getattr(args, "env_prefix", "")

    try:
        respawner, engine = await create_respawner(
            profile_name=args.profile, env_prefix=env_prefix
        )
    except (ProfileNotFoundError, FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1
    except DiscoveryError as e:
        console.print(f"[bold red]x[/bold red] {escape(str(e))}")
        return 1

    await engine.dispose()

    _print_plan(respawner, show_sql=True)
    return 0


async def _async_reset(args: argparse.Namespace) -> int:
    """Async implementation for reset command.

    Shows the plan, then deletes only when ``--confirm`` is given.  The
    reset runs inside one transaction and commits on success.

    Returns:
        0 on success, 1 on failure.
    """
    env_prefix = getattr(args, "env_prefix", "")

    try:
        respawner, engine = await create_respawner(
            profile_name=args.profile, env_prefix=env_prefix
        )
    except (ProfileNotFoundError, FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1
    except DiscoveryError as e:
        console.print(f"[bold red]x[/bold red] {escape(str(e))}")
        return 1

    try:
        _print_plan(respawner)

        if not args.confirm:
            console.print()
            console.print(
                "[dim]To delete all rows, add[/dim] [cyan]--confirm[/cyan] "
                "[dim]flag.[/dim]"
            )
            return 0

        console.print()
        console.print("Resetting database...", style="dim")
        try:
            async with engine.begin() as conn:
                await respawner.reset(conn)
        except Exception as e:
            console.print(f"[bold red]x[/bold red] Reset failed: {escape(str(e))}")
            console.print("\n[bold]Delete script:[/bold]")
            console.print(respawner.delete_sql, markup=False, highlight=False)
            return 1

        console.print(
            f"[bold green]v[/bold green] Reset "
            f"{len(respawner.tables_to_delete)} tables."
        )
        return 0
    finally:
        await engine.dispose()


# ============================================================================
# Sync command wrappers
# ============================================================================


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from respawn.toml.

    Reads only local TOML config -- no database calls.

    Returns:
        0 on success, 1 if respawn.toml not found.
    """
    try:
        config = load_respawn_config()
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1

    table = Table(title="Respawn Profiles", show_header=True, header_style="bold")
    table.add_column("Profile")
    table.add_column("Adapter")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        try:
            adapter = infer_adapter_name(profile)
        except ValueError:
            adapter = "[yellow]unknown[/yellow]"
        table.add_row(name, adapter, profile.description or "")

    console.print(table)
    return 0


def cmd_plan(args: argparse.Namespace) -> int:
    """Show the deletion plan.  Wraps the async implementation with ``asyncio.run()``."""
    return asyncio.run(_async_plan(args))


def cmd_reset(args: argparse.Namespace) -> int:
    """Reset the database.  Wraps the async implementation with ``asyncio.run()``."""
    return asyncio.run(_async_reset(args))


# ============================================================================
# Main entry point
# ============================================================================


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        prog="db-respawn",
        description="Reset database state between test runs",
    )

    # Global option: --env-prefix
    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix APP_ reads APP_RESPAWN_PROFILE)"
        ),
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # profiles command
    p_profiles = subparsers.add_parser(
        "profiles",
        help="List available profiles",
    )
    p_profiles.set_defaults(func=cmd_profiles)

    # plan command
    p_plan = subparsers.add_parser(
        "plan",
        help="Discover tables and show the deletion order and SQL",
    )
    p_plan.add_argument("--profile", "-p", default=None, help="Profile name")
    p_plan.set_defaults(func=cmd_plan)

    # reset command
    p_reset = subparsers.add_parser(
        "reset",
        help="Delete all rows from the discovered tables",
    )
    p_reset.add_argument("--profile", "-p", default=None, help="Profile name")
    p_reset.add_argument(
        "--confirm",
        action="store_true",
        help="Actually delete (without it only the plan is shown)",
    )
    p_reset.set_defaults(func=cmd_reset)

    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
