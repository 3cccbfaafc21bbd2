# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
DumpVault CLI - Operator commands for backups and restores.

Configuration comes from the environment (see ``dumpvault.env``). Every
command exits 0 on success and 1 on failure so it can be driven from cron
or another scheduler.

Usage:
    dumpvault-backup                  # create a backup, prune, print stats
    dumpvault-restore                 # list archives
    dumpvault-restore <archive-name>  # restore after typing RESTORE

    dumpvault list | stats | prune [--days N] [--dry-run]
    dumpvault delete <archive-name> [--yes]
    dumpvault doctor
"""

import asyncio
import logging
import sys
from datetime import datetime
from typing import List, NoReturn, Optional

import structlog
import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from dumpvault.backup.restore import CONFIRMATION_TOKEN
from dumpvault.config import redact_uri
from dumpvault.core import BackupOrchestrator, BackupResult
from dumpvault.env import create_config_from_env
from dumpvault.errors import hint_for
from dumpvault.exceptions import DumpVaultError, UserCancelledError
from dumpvault.vault.catalog import Archive, CatalogStats

app = typer.Typer(
    help="Point-in-time database dumps with retention and guarded restore.",
    no_args_is_help=True,
)
console = Console(width=120)

VerboseOption = typer.Option(False, "--verbose", "-v", help="Debug logging and tracebacks")


def _stderr_logger_factory(*args) -> structlog.PrintLogger:
    return structlog.PrintLogger(file=sys.stderr)


def configure_logging(verbose: bool = False) -> None:
    """Route structlog output to stderr at INFO (DEBUG when verbose)."""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if verbose else logging.INFO
        ),
        logger_factory=_stderr_logger_factory,
    )


def _orchestrator() -> BackupOrchestrator:
    return BackupOrchestrator(create_config_from_env())


def _fail(error: BaseException, verbose: bool) -> NoReturn:
    """Print an error with a hint and exit 1. Call from an except block."""
    message = error.message if isinstance(error, DumpVaultError) else str(error)
    console.print(f"[red]✗ {escape(message)}[/]")
    if isinstance(error, DumpVaultError) and error.details and verbose:
        console.print(f"  Details: {escape(str(error.details))}")
    console.print(f"  Hint: {hint_for(error)}")
    if verbose:
        console.print_exception()
    raise typer.Exit(1)


def _mb(size_bytes: float) -> str:
    return f"{size_bytes / 1024 / 1024:.2f} MB"


def _when(moment: datetime | None) -> str:
    return moment.strftime("%Y-%m-%d %H:%M:%S UTC") if moment else "N/A"


def _archive_table(archives: List[Archive]) -> Table:
    table = Table(title="Available backups")
    table.add_column("#", justify="right")
    table.add_column("Name", no_wrap=True)
    table.add_column("Created", no_wrap=True)
    table.add_column("Size", justify="right")
    table.add_column("Age", justify="right")

    for index, archive in enumerate(archives, start=1):
        table.add_row(
            str(index),
            archive.name,
            _when(archive.created_at),
            _mb(archive.size_bytes),
            f"{archive.age_days} days",
        )
    return table


def _print_backup_summary(result: BackupResult) -> None:
    archive = result.archive
    console.print("[green]✓ Backup completed[/]")
    console.print(f"  Name:      {archive.name}")
    console.print(f"  Location:  {archive.path}")
    console.print(f"  Size:      {_mb(archive.size_bytes)}")
    console.print(f"  Files:     {archive.file_count}")
    console.print(f"  Duration:  {result.duration_seconds:.2f}s")
    console.print(f"  Timestamp: {_when(result.completed_at)}")

    if result.retention and result.retention.deleted_count:
        console.print(
            f"  Pruned {result.retention.deleted_count} old backup(s), "
            f"reclaimed {_mb(result.retention.reclaimed_bytes)}"
        )
    if result.retention_error:
        console.print(f"[yellow]  Retention cleanup failed: {result.retention_error}[/]")


def _print_stats(stats: CatalogStats) -> None:
    console.print("[bold]Backup statistics[/]")
    console.print(f"  Total backups: {stats.count}")
    console.print(f"  Total size:    {_mb(stats.total_size_bytes)}")
    if stats.count:
        console.print(f"  Average size:  {_mb(stats.average_size_bytes)}")
        console.print(f"  Newest:        {_when(stats.newest)}")
        console.print(f"  Oldest:        {_when(stats.oldest)}")


@app.command("backup")
def backup(verbose: bool = VerboseOption) -> None:
    """Create a backup now, prune expired ones and print statistics."""
    configure_logging(verbose)

    async def run() -> tuple[BackupResult, CatalogStats]:
        orchestrator = _orchestrator()
        result = await orchestrator.create_backup()
        return result, await orchestrator.get_stats()

    try:
        result, stats = asyncio.run(run())
    except Exception as e:
        _fail(e, verbose)

    _print_backup_summary(result)
    _print_stats(stats)


@app.command("restore")
def restore(
    name: Optional[str] = typer.Argument(None, help="Archive to restore; omit to list archives"),
    verbose: bool = VerboseOption,
) -> None:
    """Restore the database from an archive (replaces all live data)."""
    configure_logging(verbose)

    try:
        orchestrator = _orchestrator()
        if name is None:
            archives = asyncio.run(orchestrator.list_backups())
        else:
            session = orchestrator.open_restore_session()
            archive = asyncio.run(session.select(name))
    except Exception as e:
        _fail(e, verbose)

    if name is None:
        if not archives:
            console.print("[yellow]No backups found.[/]")
            console.print(f"  Backup directory: {orchestrator.config.backup_root}")
            raise typer.Exit(1)
        console.print(_archive_table(archives))
        console.print("Restore one with: dumpvault-restore <name>")
        return

    console.print(
        Panel(
            f"Name:     {archive.name}\n"
            f"Created:  {_when(archive.created_at)}\n"
            f"Size:     {_mb(archive.size_bytes)}\n"
            f"Files:    {archive.file_count}\n"
            f"Age:      {archive.age_days} days\n"
            f"Target:   {redact_uri(orchestrator.config.connection_uri)}",
            title="Restore",
        )
    )
    console.print(
        f"[bold red]WARNING: this drops and replaces all data in "
        f"{orchestrator.config.database_name!r}. It cannot be undone.[/]"
    )

    prompt = session.request_confirmation()
    token = typer.prompt(prompt, default="", show_default=False)

    try:
        result = asyncio.run(session.confirm(token))
    except UserCancelledError:
        console.print(f"Restore cancelled (type {CONFIRMATION_TOKEN} to confirm).")
        return
    except Exception as e:
        _fail(e, verbose)

    console.print("[green]✓ Restore completed[/]")
    console.print(f"  Name:      {result.name}")
    console.print(f"  Duration:  {result.duration_seconds:.2f}s")
    console.print(f"  Timestamp: {_when(result.completed_at)}")


@app.command("list")
def list_command(verbose: bool = VerboseOption) -> None:
    """List archives, newest first."""
    configure_logging(verbose)

    try:
        archives = asyncio.run(_orchestrator().list_backups())
    except Exception as e:
        _fail(e, verbose)

    if not archives:
        console.print("[yellow]No backups found.[/]")
        return
    console.print(_archive_table(archives))


@app.command("stats")
def stats_command(verbose: bool = VerboseOption) -> None:
    """Print aggregate statistics."""
    configure_logging(verbose)

    try:
        stats = asyncio.run(_orchestrator().get_stats())
    except Exception as e:
        _fail(e, verbose)

    _print_stats(stats)


@app.command("prune")
def prune(
    days: Optional[int] = typer.Option(None, "--days", min=1, help="Override the retention window"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Only report what would be deleted"),
    verbose: bool = VerboseOption,
) -> None:
    """Delete archives older than the retention window."""
    configure_logging(verbose)

    try:
        result = asyncio.run(_orchestrator().enforce_retention(days, dry_run=dry_run))
    except Exception as e:
        _fail(e, verbose)

    verb = "Would delete" if dry_run else "Deleted"
    console.print(
        f"{verb} {result.deleted_count} backup(s) older than {result.retention_days} days, "
        f"{_mb(result.reclaimed_bytes)}"
    )
    for archive_name in result.deleted:
        console.print(f"  - {archive_name}")
    if result.failed:
        console.print(f"[yellow]Could not delete: {', '.join(result.failed)}[/]")
        raise typer.Exit(1)


@app.command("delete")
def delete(
    name: str = typer.Argument(..., help="Archive to delete"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    verbose: bool = VerboseOption,
) -> None:
    """Delete one archive."""
    configure_logging(verbose)

    if not yes and not typer.confirm(f"Delete backup {name}?", default=False):
        console.print("Delete cancelled.")
        return

    try:
        archive = asyncio.run(_orchestrator().delete_backup(name))
    except Exception as e:
        _fail(e, verbose)

    console.print(f"[green]✓ Deleted {archive.name}[/] ({_mb(archive.size_bytes)})")


@app.command("doctor")
def doctor(verbose: bool = VerboseOption) -> None:
    """Check tools, configuration and the backup directory."""
    configure_logging(verbose)

    try:
        orchestrator = _orchestrator()
        report = asyncio.run(orchestrator.health())
    except Exception as e:
        _fail(e, verbose)

    config = orchestrator.config
    console.print(f"  Database:        {config.database_name}")
    console.print(f"  Connection URI:  {redact_uri(config.connection_uri) or 'not set'}")
    console.print(f"  Backup dir:      {config.backup_root}")
    console.print(f"  Retention:       {config.retention_days} days")
    console.print(f"  {config.dump_tool}: {report.dump_tool_version or 'not found'}")
    console.print(f"  {config.restore_tool}: {report.restore_tool_version or 'not found'}")

    if not report.healthy:
        for problem in report.problems:
            console.print(f"[red]✗ {problem}[/]")
        raise typer.Exit(1)

    console.print("[green]✓ Ready[/]")


def backup_main() -> None:
    """Entry point for ``dumpvault-backup``."""
    typer.run(backup)


def restore_main() -> None:
    """Entry point for ``dumpvault-restore``."""
    typer.run(restore)


if __name__ == "__main__":
    app()
