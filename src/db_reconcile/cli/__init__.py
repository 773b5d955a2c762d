"""CLI module for declarative schema reconciliation.

Provides commands for profile listing, live table listing, and planning or
applying a ``schema.toml`` declaration against the active profile.

Usage:
    db-reconcile profiles
    DB_PROFILE=local db-reconcile tables
    DB_PROFILE=local db-reconcile plan --schema-file schema.toml
    DB_PROFILE=local db-reconcile reconcile --schema-file schema.toml --confirm
    db-reconcile --env-prefix APP_ --profile staging plan

Commands:
    profiles   - List available profiles
    tables     - List live tables of the active profile
    plan       - Show the change set a reconciliation pass would commit
    reconcile  - Apply the declaration (requires --confirm)
"""

import argparse
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from db_reconcile.config.loader import load_db_config
from db_reconcile.errors import ReconcileError
from db_reconcile.events import ConsoleEventSink
from db_reconcile.factory import ProfileNotFoundError, get_active_profile_name, get_backend
from db_reconcile.schema.declaration import load_schema_file, reconcile_declaration
from db_reconcile.schema.reconciler import SchemaReconciler
from db_reconcile.schema.transaction import ChangeCommand, SchemaTransaction

console = Console()


# ============================================================================
# Helpers
# ============================================================================


def _error_text(e: Exception) -> str:
    # KeyError wraps its message in quotes
    return str(e.args[0]) if isinstance(e, KeyError) and e.args else str(e)


def _schema_path(args: argparse.Namespace) -> tuple[Path, bool]:
    """Resolve the schema file and quiet flag from args and db.toml."""
    config = load_db_config()
    schema_file = getattr(args, "schema_file", None) or config.schema_file
    return Path(schema_file), config.quiet


def _change_table(transaction: SchemaTransaction) -> Table:
    """Render the pending change set as a rich table."""
    table = Table(title="Pending Schema Changes", show_header=True, header_style="bold")
    table.add_column("Table", style="dim")
    table.add_column("Command")
    table.add_column("New fields")
    table.add_column("New indexes")
    table.add_column("Altered fields")
    table.add_column("Altered indexes")

    for name, changes in transaction.changes.items():
        command = (
            "[bold green]CREATE[/bold green]"
            if changes.command == ChangeCommand.CREATE
            else "[bold yellow]ALTER[/bold yellow]"
        )
        table.add_row(
            name,
            command,
            ", ".join(changes.new_fields),
            ", ".join(changes.new_indexes),
            ", ".join(changes.altered_fields),
            ", ".join(changes.altered_indexes),
        )
    return table


def _run_pass(args: argparse.Namespace, apply: bool) -> int:
    """Plan (and optionally commit) one pass over the schema file.

    Returns:
        0 on success, 1 on failure.
    """
    env_prefix = getattr(args, "env_prefix", "")
    try:
        schema_path, quiet = _schema_path(args)
        declaration = load_schema_file(schema_path)
        backend = get_backend(profile_name=getattr(args, "profile", None), env_prefix=env_prefix)
    except (FileNotFoundError, ProfileNotFoundError, KeyError, ValueError, ReconcileError) as e:
        console.print(f"[red]Error: {_error_text(e)}[/red]")
        return 1

    reconciler = SchemaReconciler(
        backend,
        events=ConsoleEventSink(console),
        quiet=quiet,
        dry_run=not apply,
    )

    try:
        console.print(f"Reconciling against [bold cyan]{schema_path}[/bold cyan]...", style="dim")
        reconciler.begin_schema_update()
        try:
            reconcile_declaration(reconciler, declaration)
        except BaseException:
            reconciler.abort_schema_update()
            raise

        transaction = reconciler.transaction
        if transaction.is_empty:
            reconciler.abort_schema_update()
            console.print()
            if reconciler.immediate_changes == 0:
                console.print("[bold green]v[/bold green] Schema is up to date - no changes needed")
            elif apply:
                console.print(
                    f"[bold green]v[/bold green] No DDL pending - applied "
                    f"{reconciler.immediate_changes} rename(s)/remap(s) listed above"
                )
            else:
                console.print(
                    f"[yellow]No DDL pending - {reconciler.immediate_changes} rename(s)/remap(s) "
                    f"listed above would run with[/yellow] [cyan]db-reconcile reconcile --confirm[/cyan]"
                )
            return 0

        console.print()
        console.print(_change_table(transaction))

        if not apply:
            reconciler.abort_schema_update()
            console.print("\n[dim]Dry run. Run[/dim] [cyan]db-reconcile reconcile --confirm[/cyan] [dim]to apply.[/dim]")
            return 0

        calls = reconciler.end_schema_update()
        console.print()
        console.print(f"[bold green]v[/bold green] Applied changes to {calls} table(s)")
        return 0
    except ReconcileError as e:
        console.print(f"\n[red]Error: {e}[/red]")
        return 1
    finally:
        backend.close()


# ============================================================================
# Command implementations
# ============================================================================


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from db.toml.

    Reads only local TOML config -- no database calls.

    Args:
        args: Parsed CLI arguments.

    Returns:
        0 on success, 1 if db.toml not found.
    """
    try:
        config = load_db_config()
    except FileNotFoundError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    try:
        current = getattr(args, "profile", None) or get_active_profile_name(
            getattr(args, "env_prefix", "")
        )
    except ProfileNotFoundError:
        current = None

    table = Table(title="Database Profiles", show_header=True, header_style="bold")
    table.add_column("", width=2)
    table.add_column("Profile")
    table.add_column("Provider")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        marker = "[bold green]*[/bold green]" if name == current else " "
        name_style = "bold cyan" if name == current else ""
        table.add_row(
            marker,
            f"[{name_style}]{name}[/{name_style}]" if name_style else name,
            profile.provider,
            profile.description or "",
        )

    console.print(table)

    if current:
        console.print(f"\n[bold green]*[/bold green] = active profile")

    return 0


def cmd_tables(args: argparse.Namespace) -> int:
    """List live tables of the active profile.

    Args:
        args: Parsed CLI arguments.

    Returns:
        0 on success, 1 on failure.
    """
    try:
        backend = get_backend(
            profile_name=getattr(args, "profile", None),
            env_prefix=getattr(args, "env_prefix", ""),
        )
    except (FileNotFoundError, ProfileNotFoundError, KeyError, ValueError) as e:
        console.print(f"[red]Error: {_error_text(e)}[/red]")
        return 1

    try:
        names = sorted(backend.list_tables())
    except ReconcileError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1
    finally:
        backend.close()

    table = Table(title="Live Tables", show_header=True, header_style="bold")
    table.add_column("Table")
    for name in names:
        style = "dim" if name.startswith("_obsolete_") else ""
        table.add_row(f"[{style}]{name}[/{style}]" if style else name)

    console.print(table)
    console.print(f"\n{len(names)} table(s)")
    return 0


def cmd_plan(args: argparse.Namespace) -> int:
    """Show the change set for the schema file without applying it.

    Args:
        args: Parsed CLI arguments.

    Returns:
        0 on success, 1 on failure.
    """
    return _run_pass(args, apply=False)


def cmd_reconcile(args: argparse.Namespace) -> int:
    """Apply the schema file to the active profile.

    Without ``--confirm`` this behaves like ``plan``.

    Args:
        args: Parsed CLI arguments.

    Returns:
        0 on success, 1 on failure.
    """
    return _run_pass(args, apply=bool(getattr(args, "confirm", False)))


# ============================================================================
# Main entry point
# ============================================================================


def main() -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        prog="db-reconcile",
        description="Declarative schema reconciliation toolkit",
    )

    # Global option: --env-prefix
    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix APP_ reads APP_DB_PROFILE)"
        ),
    )
    parser.add_argument(
        "--profile",
        default=None,
        help="Profile from db.toml (overrides the DB_PROFILE env var)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # profiles command
    p_profiles = subparsers.add_parser(
        "profiles",
        help="List available profiles",
    )
    p_profiles.set_defaults(func=cmd_profiles)

    # tables command
    p_tables = subparsers.add_parser(
        "tables",
        help="List live tables of the active profile",
    )
    p_tables.set_defaults(func=cmd_tables)

    # plan command
    p_plan = subparsers.add_parser(
        "plan",
        help="Show pending schema changes without applying them",
    )
    p_plan.add_argument(
        "--schema-file",
        default=None,
        help="Path to schema.toml (default: [schema] file in db.toml)",
    )
    p_plan.set_defaults(func=cmd_plan)

    # reconcile command
    p_reconcile = subparsers.add_parser(
        "reconcile",
        help="Apply the schema declaration to the database",
    )
    p_reconcile.add_argument(
        "--schema-file",
        default=None,
        help="Path to schema.toml (default: [schema] file in db.toml)",
    )
    p_reconcile.add_argument(
        "--confirm",
        action="store_true",
        help="Apply changes (without it, only show the plan)",
    )
    p_reconcile.set_defaults(func=cmd_reconcile)

    args = parser.parse_args()
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
