"""CLI for validating and importing CMS export snapshots.

Usage:
    db-importer validate export.json
    DB_PROFILE=staging db-importer run export.json --strategy merge
    db-importer run export.json --url postgresql://cms@localhost/cms --strategy replace --yes
    db-importer run export.json --profile local --tables users,posts --no-preserve-ids
    db-importer profiles

Commands:
    validate  - Check a snapshot and show its per-table row counts
    run       - Import a snapshot into the target database
    profiles  - List available profiles
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from rich.console import Console
from rich.prompt import Confirm
from rich.table import Table

from db_importer.config.loader import load_importer_config
from db_importer.config.models import ImportDefaults
from db_importer.errors import ImporterError, ProfileNotFoundError
from db_importer.events import EventKind, ImportEvent
from db_importer.factory import get_import_database
from db_importer.importer.models import ImportResult, ImportStrategy
from db_importer.importer.service import DatabaseImporter
from db_importer.importer.validator import describe_export

console = Console()

# Strategies that modify or delete existing rows
_DESTRUCTIVE = (ImportStrategy.REPLACE, ImportStrategy.OVERWRITE)

_EVENT_STYLES: dict[EventKind, str] = {
    EventKind.TABLE_COMPLETED: "green",
    EventKind.TABLE_SKIPPED: "dim",
    EventKind.TABLE_CLEARED: "yellow",
    EventKind.TABLE_FAILED: "bold red",
    EventKind.ROW_SKIPPED: "yellow",
    EventKind.ROW_WARNING: "yellow",
    EventKind.CYCLE_DETECTED: "yellow",
    EventKind.STRATEGY_DOWNGRADED: "yellow",
    EventKind.FK_CHECKS_TOGGLE_FAILED: "yellow",
    EventKind.POST_COMMIT_FAILED: "yellow",
    EventKind.DOCUMENTATION_FALLBACK: "yellow",
    EventKind.RUN_ROLLED_BACK: "bold red",
    EventKind.RUN_COMMITTED: "bold green",
}

# Too chatty for the terminal; still available to logging sinks
_QUIET_EVENTS = frozenset({EventKind.TABLE_STARTED, EventKind.ROW_CONFLICT, EventKind.SUMMARY})


class ConsoleEventSink:
    """Render import progress events on the rich console."""

    def __init__(self, out: Console | None = None) -> None:
        self._console = out or console

    def emit(self, event: ImportEvent) -> None:
        if event.kind in _QUIET_EVENTS:
            return
        style = _EVENT_STYLES.get(event.kind, "")
        prefix = f"[bold]{event.table}[/bold]: " if event.table else ""
        text = f"{prefix}{event.message}"
        self._console.print(f"[{style}]{text}[/{style}]" if style else text)


def _load_snapshot(path: str) -> dict:
    """Read and parse a snapshot file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not UTF-8 JSON.
    """
    return json.loads(Path(path).read_bytes().decode("utf-8-sig"))


def _load_defaults(config_path: Path | None) -> ImportDefaults:
    """Import defaults from db.toml, or built-in defaults when there is no file."""
    try:
        return load_importer_config(config_path).defaults
    except FileNotFoundError:
        return ImportDefaults()


def _print_result(result: ImportResult) -> None:
    """Print per-table statistics and the run totals."""
    table = Table(title="Import Result", show_header=True, header_style="bold")
    table.add_column("Table")
    table.add_column("Imported", justify="right")
    table.add_column("Skipped", justify="right")
    table.add_column("Errored", justify="right")
    table.add_column("Rows in target", justify="right")

    for name, stats in result.table_stats.items():
        table.add_row(
            name,
            str(stats.imported),
            str(stats.skipped),
            f"[red]{stats.errored}[/red]" if stats.errored else "0",
            str(result.summary_counts.get(name, "-")),
        )
    console.print(table)

    if result.post_type_stats:
        types = ", ".join(f"{t}={s.imported}" for t, s in sorted(result.post_type_stats.items()))
        console.print(f"  Posts by type: [dim]{types}[/dim]")
    if result.skipped_tables:
        console.print(f"  Skipped tables: [dim]{', '.join(result.skipped_tables)}[/dim]")
    if result.cycles_detected:
        console.print(
            f"  [yellow]Posts written without ordering (cycle): "
            f"{', '.join(str(i) for i in result.cycles_detected)}[/yellow]"
        )
    for error in result.errors:
        console.print(f"  [red]x {error.table}: {error.error}[/red]")

    console.print()
    console.print(
        f"[bold green]v[/bold green] {result.tables_imported} tables, "
        f"{result.rows_imported} rows imported "
        f"(strategy: [cyan]{result.strategy.value}[/cyan])"
    )


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_run(args: argparse.Namespace) -> int:
    """Async implementation for run command.

    Args:
        args: Parsed arguments.

    Returns:
        0 on success, 1 on failure.
    """
    config_path = Path(args.config) if args.config else None
    defaults = _load_defaults(config_path)

    options = defaults.to_options(
        strategy=ImportStrategy(args.strategy) if args.strategy else None,
        tables=[t.strip() for t in args.tables.split(",") if t.strip()] if args.tables else None,
        preserve_ids=False if args.no_preserve_ids else None,
        disable_foreign_key_checks=False if args.keep_fk_checks else None,
    )

    try:
        snapshot = _load_snapshot(args.file)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error reading {args.file}: {e}[/red]")
        return 1

    try:
        database = get_import_database(
            profile_name=args.profile,
            database_url=args.url,
            env_prefix=args.env_prefix,
            config_path=config_path,
        )
    except (ProfileNotFoundError, FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    console.print(
        f"Importing [bold]{args.file}[/bold] into [cyan]{database.dialect.value}[/cyan] "
        f"target (strategy: {options.strategy.value})",
        style="dim",
    )

    try:
        importer = DatabaseImporter(database, events=ConsoleEventSink())
        result = await importer.import_database(snapshot, options)
    except ImporterError as e:
        console.print(f"\n[bold red]x[/bold red] {e}")
        return 1
    except Exception as e:
        console.print(f"\n[bold red]x[/bold red] Import failed and was rolled back: {e}")
        return 1
    finally:
        await database.close()

    console.print()
    _print_result(result)
    return 0


# ============================================================================
# Sync command wrappers
# ============================================================================


def cmd_validate(args: argparse.Namespace) -> int:
    """Validate a snapshot file and show its contents.

    Reads only the local file -- no database calls.

    Args:
        args: Parsed CLI arguments.

    Returns:
        0 if the snapshot is valid, 1 otherwise.
    """
    try:
        snapshot = _load_snapshot(args.file)
    except (OSError, ValueError) as e:
        console.print(f"[bold red]x[/bold red] Cannot read {args.file}: {e}")
        return 1

    preview = describe_export(snapshot)
    if not preview.valid:
        console.print(f"[bold red]x[/bold red] {preview.error}")
        return 1

    table = Table(title=f"Export {args.file}", show_header=True, header_style="bold")
    table.add_column("Table")
    table.add_column("Rows", justify="right")
    for detail in preview.table_details:
        table.add_row(detail.table, str(detail.rows))
    console.print(table)

    metadata = preview.metadata
    console.print(
        f"[bold green]v[/bold green] Valid export: version "
        f"[cyan]{metadata.get('version')}[/cyan], {preview.tables} tables, "
        f"{preview.total_rows} rows"
    )
    if metadata.get("exportedAt"):
        console.print(f"  Exported at: [dim]{metadata['exportedAt']}[/dim]")
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    """Import a snapshot into the target database.

    Asks for confirmation before destructive strategies unless ``--yes``.
    Wraps the async implementation with ``asyncio.run()``.

    Args:
        args: Parsed CLI arguments.

    Returns:
        0 on success, 1 on failure or when cancelled.
    """
    if args.strategy:
        strategy = ImportStrategy(args.strategy)
    else:
        strategy = _load_defaults(Path(args.config) if args.config else None).strategy

    if strategy in _DESTRUCTIVE and not args.yes:
        if not Confirm.ask(
            f"Strategy [bold]{strategy.value}[/bold] modifies existing rows. Continue?",
            console=console,
            default=False,
        ):
            console.print("[yellow]Cancelled.[/yellow]")
            return 1

    return asyncio.run(_async_run(args))


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from db.toml.

    Reads only local TOML config -- no database calls.

    Args:
        args: Parsed CLI arguments.

    Returns:
        0 on success, 1 if db.toml not found.
    """
    try:
        config = load_importer_config(Path(args.config) if args.config else None)
    except FileNotFoundError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    table = Table(title="Database Profiles", show_header=True, header_style="bold")
    table.add_column("Profile")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        table.add_row(name, profile.description or "")

    console.print(table)
    console.print(f"\nDefault strategy: [cyan]{config.defaults.strategy.value}[/cyan]")
    return 0


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
        prog="db-importer",
        description="Validate and import CMS export snapshots",
    )

    # Global options
    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix CMS_ reads CMS_DB_PROFILE)"
        ),
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to db.toml (default: ./db.toml)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # validate command
    p_validate = subparsers.add_parser(
        "validate",
        help="Check a snapshot and show its per-table row counts",
    )
    p_validate.add_argument("file", help="Path to the export JSON file")
    p_validate.set_defaults(func=cmd_validate)

    # run command
    p_run = subparsers.add_parser(
        "run",
        help="Import a snapshot into the target database",
    )
    p_run.add_argument("file", help="Path to the export JSON file")
    p_run.add_argument(
        "--strategy",
        choices=[s.value for s in ImportStrategy],
        default=None,
        help="Conflict strategy (default: [import] strategy in db.toml, else merge)",
    )
    p_run.add_argument(
        "--tables",
        default=None,
        help="Comma-separated list of tables to import (default: all)",
    )
    p_run.add_argument(
        "--no-preserve-ids",
        action="store_true",
        help="Treat export ids as not meaningful (overwrite becomes merge)",
    )
    p_run.add_argument(
        "--keep-fk-checks",
        action="store_true",
        help="Do not suspend foreign key checks during the import",
    )
    target = p_run.add_mutually_exclusive_group()
    target.add_argument("--profile", default=None, help="Target profile from db.toml")
    target.add_argument("--url", default=None, help="Target database URL")
    p_run.add_argument(
        "--yes",
        "-y",
        action="store_true",
        help="Do not ask for confirmation before replace/overwrite",
    )
    p_run.set_defaults(func=cmd_run)

    # profiles command
    p_profiles = subparsers.add_parser(
        "profiles",
        help="List available profiles",
    )
    p_profiles.set_defaults(func=cmd_profiles)

    args = parser.parse_args()
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
