# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
DumpVault Core - The backup orchestrator.

BackupOrchestrator is the single entry point used by the CLI, the FastAPI
plugin and schedulers. It serialises dumps, restores and deletes per
database through the operation lock, runs retention after every
successful backup, and keeps in-memory run metrics.
"""

import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import List

import structlog
from ulid import ULID

from dumpvault.backup.dump import DumpResult, create_archive
from dumpvault.backup.restore import RestoreResult, RestoreSession, restore_archive
from dumpvault.backup.retention import RetentionResult, enforce_retention
from dumpvault.config import RetentionConfig
from dumpvault.exceptions import DumpVaultError
from dumpvault.lock import operation_lock
from dumpvault.process import probe_tool
from dumpvault.vault.catalog import Archive, CatalogStats, find_archive, get_catalog_stats, list_archives
from dumpvault.vault.store import ensure_root, remove_tree

logger = structlog.get_logger()


@dataclass
class BackupResult:
    """Result of a create-backup call."""

    operation_id: str  # ULID
    archive: Archive
    duration_seconds: float
    completed_at: datetime
    retention: RetentionResult | None = None
    retention_error: str | None = None

    def to_dict(self) -> dict:
        return {
            "operation_id": self.operation_id,
            "archive": self.archive.to_dict(),
            "duration_seconds": self.duration_seconds,
            "completed_at": self.completed_at.isoformat(),
            "retention": self.retention.to_dict() if self.retention else None,
            "retention_error": self.retention_error,
        }


@dataclass
class BackupMetrics:
    """Run metrics for one orchestrator."""

    total_backups: int = 0
    total_restores: int = 0
    total_pruned: int = 0
    last_backup_at: datetime | None = None
    last_restore_at: datetime | None = None
    last_error: str | None = None

    def to_dict(self) -> dict:
        return {
            "total_backups": self.total_backups,
            "total_restores": self.total_restores,
            "total_pruned": self.total_pruned,
            "last_backup_at": self.last_backup_at.isoformat() if self.last_backup_at else None,
            "last_restore_at": self.last_restore_at.isoformat() if self.last_restore_at else None,
            "last_error": self.last_error,
        }


@dataclass
class HealthReport:
    """Tool availability and configuration checks."""

    dump_tool_version: str | None
    restore_tool_version: str | None
    connection_configured: bool
    backup_root_writable: bool
    problems: List[str] = field(default_factory=list)

    @property
    def healthy(self) -> bool:
        return not self.problems

    def to_dict(self) -> dict:
        return {
            "status": "healthy" if self.healthy else "degraded",
            "dump_tool_version": self.dump_tool_version,
            "restore_tool_version": self.restore_tool_version,
            "connection_configured": self.connection_configured,
            "backup_root_writable": self.backup_root_writable,
            "problems": list(self.problems),
        }


class BackupOrchestrator:
    """
    Facade over dump, catalog, retention and restore.

    Example:
        orchestrator = BackupOrchestrator(create_config_from_env())
        result = await orchestrator.create_backup()
        stats = await orchestrator.get_stats()
    """

    def __init__(self, config: RetentionConfig):
        self.config = config
        self.metrics = BackupMetrics()

    async def create_backup(self) -> BackupResult:
        """
        Dump the database, then prune expired archives.

        Dump, stats and retention run strictly in that order under the
        database lock. A retention failure is logged and reported on the
        result; it never fails the backup.

        Raises:
            OperationInProgressError: If another operation holds the lock
            DumpVaultError: Any failure of the dump itself
        """
        operation_id = str(ULID())
        logger.info("backup_started", operation_id=operation_id, database=self.config.database_name)

        try:
            async with operation_lock(self.config, "backup", operation_id):
                dump: DumpResult = await create_archive(self.config)
                retention, retention_error = await self._prune_after_backup(operation_id)
        except DumpVaultError as e:
            self.metrics.last_error = str(e)
            logger.error("backup_failed", operation_id=operation_id, error=str(e))
            raise

        self.metrics.total_backups += 1
        self.metrics.last_backup_at = dump.completed_at

        logger.info(
            "backup_completed",
            operation_id=operation_id,
            archive=dump.archive.name,
            size_bytes=dump.archive.size_bytes,
            duration=round(dump.duration_seconds, 3),
        )

        return BackupResult(
            operation_id=operation_id,
            archive=dump.archive,
            duration_seconds=dump.duration_seconds,
            completed_at=dump.completed_at,
            retention=retention,
            retention_error=retention_error,
        )

    async def _prune_after_backup(
        self, operation_id: str
    ) -> tuple[RetentionResult | None, str | None]:
        try:
            retention = await enforce_retention(self.config)
        except (DumpVaultError, OSError) as e:
            logger.warning("retention_after_backup_failed", operation_id=operation_id, error=str(e))
            return None, str(e)

        self.metrics.total_pruned += retention.deleted_count
        return retention, None

    async def list_backups(self) -> List[Archive]:
        """All complete archives, newest first."""
        return await list_archives(self.config)

    async def find_backup(self, name: str) -> Archive:
        """One archive by name; raises ArchiveNotFoundError."""
        return await find_archive(self.config, name)

    async def get_stats(self) -> CatalogStats:
        """Aggregate catalog statistics."""
        return await get_catalog_stats(self.config)

    async def enforce_retention(
        self,
        retention_days: int | None = None,
        dry_run: bool = False,
    ) -> RetentionResult:
        """
        Run a retention sweep outside of a backup.

        A real sweep takes the database lock so it cannot remove an archive
        that is being restored; a dry run does not.
        """
        if dry_run:
            return await enforce_retention(self.config, retention_days, dry_run=True)

        async with operation_lock(self.config, "prune", str(ULID())):
            result = await enforce_retention(self.config, retention_days)

        self.metrics.total_pruned += result.deleted_count
        return result

    async def restore_backup(self, name: str) -> RestoreResult:
        """
        Replace the live database from an archive.

        Callers must have obtained explicit confirmation first; interactive
        callers should go through ``open_restore_session``.

        Raises:
            ArchiveNotFoundError: If the name is not in the catalog
            OperationInProgressError: If another operation holds the lock
            DumpVaultError: Any failure of the restore itself
        """
        operation_id = str(ULID())

        try:
            async with operation_lock(self.config, "restore", operation_id):
                result = await restore_archive(self.config, name, operation_id)
        except DumpVaultError as e:
            self.metrics.last_error = str(e)
            raise

        self.metrics.total_restores += 1
        self.metrics.last_restore_at = result.completed_at
        return result

    def open_restore_session(self) -> RestoreSession:
        """Start an interactive, confirmation-gated restore."""
        return RestoreSession(self.config, self.restore_backup)

    async def delete_backup(self, name: str) -> Archive:
        """
        Delete one archive on operator request.

        Raises:
            ArchiveNotFoundError: If the name is not in the catalog
            OperationInProgressError: If another operation holds the lock
            FilesystemError: If the archive cannot be removed
        """
        operation_id = str(ULID())

        async with operation_lock(self.config, "delete", operation_id):
            archive = await find_archive(self.config, name)
            remove_tree(archive.path)

        logger.info("archive_deleted", archive=name, size_bytes=archive.size_bytes)
        return archive

    async def health(self) -> HealthReport:
        """Check tools, configuration and the backup root."""
        problems: List[str] = []

        dump_version = await probe_tool(self.config.dump_tool)
        if dump_version is None:
            problems.append(f"{self.config.dump_tool} is not installed or not runnable")

        restore_version = await probe_tool(self.config.restore_tool)
        if restore_version is None:
            problems.append(f"{self.config.restore_tool} is not installed or not runnable")

        connection_configured = bool(self.config.connection_uri)
        if not connection_configured:
            problems.append("connection URI is not configured")

        root_writable = _is_writable(self.config)
        if not root_writable:
            problems.append(f"backup root {self.config.backup_root} is not writable")

        return HealthReport(
            dump_tool_version=dump_version,
            restore_tool_version=restore_version,
            connection_configured=connection_configured,
            backup_root_writable=root_writable,
            problems=problems,
        )

    def get_metrics(self) -> BackupMetrics:
        return self.metrics


def _is_writable(config: RetentionConfig) -> bool:
    try:
        ensure_root(config.backup_root)
    except DumpVaultError:
        return False
    return os.access(config.backup_root, os.W_OK | os.X_OK)
