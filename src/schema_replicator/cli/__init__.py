"""CLI module for schema replication.

Clones the table/column/key shape of a source PostgreSQL schema into a
target schema.  Every connection parameter can be given as a flag or an
environment variable (a ``.env`` file in the working directory is loaded
first); flags win.

Usage:
    schema-replicator init
    schema-replicator replace --dry-run
    schema-replicator replace --yes --exclude spatial_ref_sys
    schema-replicator diff
    schema-replicator --source-profile prod --target-profile dev replace
    schema-replicator profiles

Commands:
    init      - Write a .env template with every setting
    replace   - Drop every target table and recreate the source tables
    diff      - Report tables that are new or removed (no changes made)
    profiles  - List connection profiles from db.toml
"""

import argparse
import asyncio
import logging
import sys
from collections.abc import Callable
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.status import Status
from rich.table import Table

from schema_replicator.config.loader import (
    SETTINGS_FLAGS,
    SettingFlag,
    get_profile,
    load_db_config,
    resolve_replication_config,
    validate_replication_config,
    write_env_template,
)
from schema_replicator.config.models import ReplicationConfig
from schema_replicator.errors import ConfigurationError, ReplicationError
from schema_replicator.factory import build_replicator, get_introspector
from schema_replicator.schema.comparator import compare_tables

console = Console()

REPLACE_WARNING = (
    "replacing a database is permanent and will remove all data. are you sure?"
)


# ============================================================================
# Interactive helpers
# ============================================================================


def prompt_yes_no(
    question: str,
    input_fn: Callable[[str], str] = input,
) -> bool:
    """Ask a yes/no question until the answer is y, yes, n or no.

    End of input counts as "no".

    Args:
        question: Prompt text (``" (y/n): "`` is appended).
        input_fn: Line reader, replaceable in tests.

    Returns:
        True for yes, False for no.
    """
    while True:
        try:
            answer = input_fn(f"{question} (y/n): ")
        except EOFError:
            return False

        answer = answer.strip().lower()
        if answer in ("y", "yes"):
            return True
        if answer in ("n", "no"):
            return False


class StatusSink:
    """Progress sink backed by a ``rich`` spinner.

    The spinner starts on the first update so it never overlaps the
    confirmation prompt.
    """

    def __init__(self, console: Console) -> None:
        self._console = console
        self._status: Status | None = None

    def __call__(self, message: str) -> None:
        if self._status is None:
            self._status = self._console.status(escape(message))
            self._status.start()
        else:
            self._status.update(escape(message))

    def stop(self) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None


def _flag_help(flag: SettingFlag) -> str:
    required = " (required)" if flag.required else ""
    return f"{flag.help}{required} [env: {flag.env_var}]"


def _parse_excluded(value: str | None) -> set[str]:
    if not value:
        return set()
    return {name.strip() for name in value.split(",") if name.strip()}


def _resolve_config(args: argparse.Namespace) -> ReplicationConfig:
    """Build and validate the ReplicationConfig for parsed arguments.

    Raises:
        ConfigurationError: On missing settings or an unknown profile.
        FileNotFoundError: If a profile is requested without db.toml.
    """
    source_profile = target_profile = None
    if args.source_profile or args.target_profile:
        db_config = load_db_config(Path(args.config))
        if args.source_profile:
            source_profile = get_profile(db_config, args.source_profile)
        if args.target_profile:
            target_profile = get_profile(db_config, args.target_profile)

    config = resolve_replication_config(
        overrides=vars(args),
        env_prefix=args.env_prefix,
        source_profile=source_profile,
        target_profile=target_profile,
    )
    validate_replication_config(config)
    return config


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_replace(args: argparse.Namespace) -> int:
    """Async implementation for replace command.

    Args:
        args: Parsed arguments with yes, dry_run, exclude and connection
            settings.

    Returns:
        0 on success or when declined, 1 on failure.
    """
    try:
        config = _resolve_config(args)
    except (ConfigurationError, FileNotFoundError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1

    if args.yes:
        confirm = lambda: True  # noqa: E731
    else:
        confirm = lambda: prompt_yes_no(REPLACE_WARNING)  # noqa: E731

    status = StatusSink(console)
    replicator = build_replicator(
        config,
        confirm=confirm,
        on_progress=status,
        excluded_tables=_parse_excluded(args.exclude),
        connect_timeout=args.connect_timeout,
    )

    try:
        result = await replicator.run(dry_run=args.dry_run)
    except ReplicationError as e:
        status.stop()  # clear the spinner line before printing
        console.print()
        console.print(f"[bold red]x[/bold red] {escape(str(e))}")
        console.print(f"  [dim]Final state: {replicator.state.value}[/dim]")
        return 1
    finally:
        status.stop()

    if result.aborted:
        console.print("Aborted. No changes made.", style="dim")
        return 0

    if result.dry_run:
        console.print()
        console.print("[bold]Planned statements:[/bold]")
        for sql in result.statements:
            console.print(sql, markup=False, highlight=False)
        console.print()
        console.print("[bold yellow]DRY RUN[/bold yellow] - No changes made.")
        return 0

    console.print()
    console.print("[bold green]v Schema replicated![/bold green]")
    console.print(f"  Tables dropped: {result.tables_dropped}")
    console.print(f"  Tables created: {result.tables_created}")
    console.print(f"  Columns created: {result.columns_created}")
    console.print(f"  Primary keys added: {result.primary_keys_added}")
    console.print(f"  Foreign keys added: {result.foreign_keys_added}")
    console.print(f"\nFinished in {result.elapsed_seconds:.2f} seconds")
    return 0


async def _async_diff(args: argparse.Namespace) -> int:
    """Async implementation for diff command.

    Compares table names only.

    Returns:
        0 if the table names match, 1 on drift or failure.
    """
    try:
        config = _resolve_config(args)
    except (ConfigurationError, FileNotFoundError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1

    excluded = _parse_excluded(args.exclude)
    try:
        async with get_introspector(
            config.source, excluded, args.connect_timeout
        ) as introspector:
            source_tables = await introspector.get_table_names(config.source.schema_name)
        async with get_introspector(
            config.target, excluded, args.connect_timeout
        ) as introspector:
            target_tables = await introspector.get_table_names(config.target.schema_name)
    except ReplicationError as e:
        console.print(f"[bold red]x[/bold red] {escape(str(e))}")
        return 1

    diff = compare_tables(source_tables, target_tables)

    if diff.in_sync:
        console.print(
            f"[bold green]v[/bold green] Table names in sync "
            f"({len(diff.common_tables)} tables)"
        )
        return 0

    table = Table(title="Table Differences", show_header=True, header_style="bold")
    table.add_column("Table")
    table.add_column("Status")
    for name in diff.new_tables:
        table.add_row(name, "[bold green]NEW[/bold green]")
    for name in diff.removed_tables:
        table.add_row(name, "[bold red]REMOVED[/bold red]")
    console.print(table)
    return 1


# ============================================================================
# Command wrappers
# ============================================================================


def cmd_init(args: argparse.Namespace) -> int:
    """Write a .env template to the working directory.

    Returns:
        0 on success, 1 if the file exists and --force was not given.
    """
    path = Path(args.env_file)
    try:
        write_env_template(path, env_prefix=args.env_prefix, overwrite=args.force)
    except FileExistsError as e:
        console.print(f"[yellow]{escape(str(e))}[/yellow]")
        return 1

    console.print(f"[bold green]v[/bold green] {path} created")
    return 0


def cmd_replace(args: argparse.Namespace) -> int:
    """Replace the target schema.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_replace(args))


def cmd_diff(args: argparse.Namespace) -> int:
    """Compare table names of source and target.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_diff(args))


def cmd_profiles(args: argparse.Namespace) -> int:
    """List profiles from db.toml.

    Reads only local TOML config -- no database calls.

    Returns:
        0 on success, 1 if db.toml is missing or invalid.
    """
    try:
        config = load_db_config(Path(args.config))
    except (FileNotFoundError, ConfigurationError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1

    table = Table(title="Database Profiles", show_header=True, header_style="bold")
    table.add_column("Profile")
    table.add_column("Connection")
    table.add_column("Schema")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        table.add_row(
            name,
            f"{profile.user}@{profile.host}:{profile.port}/{profile.database}",
            profile.schema_name,
            profile.description,
        )

    console.print(table)
    return 0


# ============================================================================
# Main entry point
# ============================================================================


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser (global options plus sub-commands)."""
    parser = argparse.ArgumentParser(
        prog="schema-replicator",
        description="Replicate a PostgreSQL schema's tables and keys into another database",
    )

    parser.add_argument(
        "--env-file",
        default=".env",
        help="Environment file to load (default: .env)",
    )
    parser.add_argument(
        "--env-prefix",
        default="",
        help="Prefix for environment variable lookup (e.g., APP_ reads APP_SOURCE_HOST)",
    )
    parser.add_argument(
        "--config",
        default="db.toml",
        help="Profile file for --source-profile/--target-profile (default: db.toml)",
    )
    parser.add_argument("--source-profile", help="Profile to read source settings from")
    parser.add_argument("--target-profile", help="Profile to read target settings from")
    parser.add_argument(
        "--connect-timeout",
        type=int,
        default=10,
        help="Seconds to wait for each database connection (default: 10)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    for flag in SETTINGS_FLAGS:
        parser.add_argument(
            f"--{flag.option}",
            dest=flag.dest,
            default=None,
            help=_flag_help(flag),
        )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # init command
    p_init = subparsers.add_parser("init", help="Write a .env template")
    p_init.add_argument("--force", action="store_true", help="Overwrite an existing file")
    p_init.set_defaults(func=cmd_init)

    # replace command
    p_replace = subparsers.add_parser(
        "replace",
        help="Drop every target table and recreate the source tables",
    )
    p_replace.add_argument(
        "--yes",
        "-y",
        action="store_true",
        help="Skip the confirmation prompt",
    )
    p_replace.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the planned statements without executing them",
    )
    p_replace.add_argument(
        "--exclude",
        help="Comma-separated tables to leave out on both sides",
    )
    p_replace.set_defaults(func=cmd_replace)

    # diff command
    p_diff = subparsers.add_parser(
        "diff",
        help="Report new and removed tables without changing anything",
    )
    p_diff.add_argument(
        "--exclude",
        help="Comma-separated tables to leave out on both sides",
    )
    p_diff.set_defaults(func=cmd_diff)

    # profiles command
    p_profiles = subparsers.add_parser("profiles", help="List profiles from db.toml")
    p_profiles.set_defaults(func=cmd_profiles)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)

    if args.command != "init":
        load_dotenv(Path(args.env_file))

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
