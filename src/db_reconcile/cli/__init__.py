"""CLI module for declarative table reconciliation.

Provides commands for listing database profiles, planning the DDL that
brings a table in line with its declared spec, and applying that plan.

Usage:
    DB_PROFILE=local db-reconcile plan --table-file users.yaml
    db-reconcile plan --profile local --table-file users.yaml
    db-reconcile apply --profile local --table-file users.yaml --confirm
    db-reconcile profiles

Commands:
    profiles  - List available profiles
    plan      - Show the statements needed to reconcile a table
    apply     - Plan and (with --confirm) execute the statements
"""

import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from db_reconcile.config.loader import load_db_config
from db_reconcile.config.models import DatabaseConfig
from db_reconcile.errors import ExecutionError, ReconcileError
from db_reconcile.factory import ProfileNotFoundError, get_database_url
from db_reconcile.schema.executor import apply_statements
from db_reconcile.schema.loader import load_table_spec
from db_reconcile.schema.planner import plan_table

console = Console()


def _load_config(args: argparse.Namespace) -> DatabaseConfig:
    config_path = Path(args.config) if args.config else None
    return load_db_config(config_path)


def _print_plan(table_name: str, statements: list[str]) -> None:
    if not statements:
        console.print(
            f"[bold green]v[/bold green] Table [cyan]{table_name}[/cyan] is up to date"
        )
        return

    console.print(f"[bold]Plan for table[/bold] [cyan]{table_name}[/cyan]:")
    for step, statement in enumerate(statements, start=1):
        console.print(f"  {step}. {statement}", markup=False, highlight=False)


def _plan(args: argparse.Namespace) -> tuple[str, DatabaseConfig, str, list[str]]:
    """Load config and table spec, resolve the profile and build the plan."""
    config = _load_config(args)
    database_url = get_database_url(
        args.profile, config=config, env_prefix=args.env_prefix
    )
    spec = load_table_spec(args.table_file)
    statements = plan_table(
        database_url, spec.name, spec, schema_name=config.schema_name
    )
    return database_url, config, spec.name, statements


# ============================================================================
# Command handlers
# ============================================================================


def cmd_profiles(args: argparse.Namespace) -> int:
    """List profiles configured in db.toml.

    Returns:
        0 on success, 1 if the config cannot be loaded.
    """
    try:
        config = _load_config(args)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1

    table = Table(title="Database Profiles", show_header=True, header_style="bold")
    table.add_column("Profile", style="cyan")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        table.add_row(name, profile.description)

    console.print(table)
    return 0


def cmd_plan(args: argparse.Namespace) -> int:
    """Print the plan for a table spec.

    Returns:
        0 on success, 1 on failure.
    """
    try:
        _, _, table_name, statements = _plan(args)
    except (FileNotFoundError, ValueError, ProfileNotFoundError, ReconcileError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1

    _print_plan(table_name, statements)
    return 0


def cmd_apply(args: argparse.Namespace) -> int:
    """Plan a table spec and, with ``--confirm``, execute the plan.

    Returns:
        0 on success (or when confirmation is missing), 1 on failure.
    """
    try:
        database_url, config, table_name, statements = _plan(args)
    except (FileNotFoundError, ValueError, ProfileNotFoundError, ReconcileError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1

    _print_plan(table_name, statements)
    if not statements:
        return 0

    if not args.confirm:
        console.print()
        console.print(
            "[dim]To apply the plan, add[/dim] [cyan]--confirm[/cyan] [dim]flag.[/dim]"
        )
        return 0

    transactional = args.transactional or config.transactional
    console.print()
    console.print("[bold]Applying plan...[/bold]")

    try:
        executed = apply_statements(database_url, statements, transactional=transactional)
    except ExecutionError as e:
        console.print(f"[bold red]x[/bold red] {escape(str(e))}")
        if transactional:
            console.print("[dim]The transaction was rolled back.[/dim]")
        else:
            console.print(
                f"[yellow]{e.executed} statement(s) before the failure remain applied. "
                f"Re-run plan before retrying.[/yellow]"
            )
        return 1
    except ReconcileError as e:
        console.print(f"[bold red]x[/bold red] {escape(str(e))}")
        return 1

    console.print(f"[bold green]v[/bold green] Applied {executed} statement(s)")
    return 0


# ============================================================================
# Main entry point
# ============================================================================


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        prog="db-reconcile",
        description="Declarative table reconciliation for PostgreSQL",
    )

    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix APP_ reads APP_DB_PROFILE)"
        ),
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to db.toml (default: ./db.toml)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
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
        help="Show the statements needed to reconcile a table",
    )
    p_plan.add_argument(
        "--table-file",
        required=True,
        help="Path to YAML/JSON table spec",
    )
    p_plan.add_argument(
        "--profile",
        default=None,
        help="Profile name from db.toml (default: DB_PROFILE env var)",
    )
    p_plan.set_defaults(func=cmd_plan)

    # apply command
    p_apply = subparsers.add_parser(
        "apply",
        help="Plan and execute the statements for a table",
    )
    p_apply.add_argument(
        "--table-file",
        required=True,
        help="Path to YAML/JSON table spec",
    )
    p_apply.add_argument(
        "--profile",
        default=None,
        help="Profile name from db.toml (default: DB_PROFILE env var)",
    )
    p_apply.add_argument(
        "--confirm",
        action="store_true",
        help="Execute the plan",
    )
    p_apply.add_argument(
        "--transactional",
        action="store_true",
        help="Run the whole plan in one transaction (all or nothing)",
    )
    p_apply.set_defaults(func=cmd_apply)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
