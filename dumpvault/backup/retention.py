# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
DumpVault Retention Policy - Prune archives past the retention window.

Pruning is best-effort housekeeping: a failure to delete one archive is
logged and the sweep moves on to the next candidate.
"""

from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import List

import structlog

from dumpvault.config import RetentionConfig
from dumpvault.exceptions import ConfigurationError, FilesystemError
from dumpvault.vault.catalog import list_archives
from dumpvault.vault.store import remove_tree

logger = structlog.get_logger()


@dataclass
class RetentionResult:
    """Outcome of a retention sweep."""

    retention_days: int
    deleted_count: int
    reclaimed_bytes: int
    dry_run: bool = False
    deleted: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "retention_days": self.retention_days,
            "deleted_count": self.deleted_count,
            "reclaimed_bytes": self.reclaimed_bytes,
            "dry_run": self.dry_run,
            "deleted": list(self.deleted),
            "failed": list(self.failed),
        }


async def enforce_retention(
    config: RetentionConfig,
    retention_days: int | None = None,
    now: datetime | None = None,
    dry_run: bool = False,
) -> RetentionResult:
    """
    Delete every archive whose age in whole days is at least the window.

    Args:
        config: DumpVault configuration
        retention_days: Override for ``config.retention_days``
        now: Reference time (defaults to the current time)
        dry_run: If True, only report what would be deleted

    Returns:
        RetentionResult counting only archives actually deleted (or, in
        dry-run mode, that would be deleted)
    """
    days = config.retention_days if retention_days is None else retention_days
    if days < 1:
        raise ConfigurationError(
            f"retention_days must be >= 1, got {days}",
            details={"retention_days": days},
        )
    now = now or datetime.now(UTC)

    deleted: List[str] = []
    failed: List[str] = []
    reclaimed_bytes = 0

    for archive in await list_archives(config, now):
        if archive.age_days < days:
            continue

        if not dry_run:
            try:
                remove_tree(archive.path)
            except FilesystemError as e:
                failed.append(archive.name)
                logger.warning(
                    "prune_archive_error",
                    archive=archive.name,
                    error=str(e),
                )
                continue

        deleted.append(archive.name)
        reclaimed_bytes += archive.size_bytes

        logger.info(
            "archive_pruned" if not dry_run else "archive_would_prune",
            archive=archive.name,
            age_days=archive.age_days,
            size_bytes=archive.size_bytes,
        )

    logger.info(
        "retention_sweep_complete",
        retention_days=days,
        deleted=len(deleted),
        failed=len(failed),
        reclaimed_bytes=reclaimed_bytes,
        dry_run=dry_run,
    )

    return RetentionResult(
        retention_days=days,
        deleted_count=len(deleted),
        reclaimed_bytes=reclaimed_bytes,
        dry_run=dry_run,
        deleted=deleted,
        failed=failed,
    )
