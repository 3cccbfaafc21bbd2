# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
DumpVault Catalog - Live view of the archives under the backup root.

There is no index file: every call rescans the backup root. Archive
directories are named ``backup-<database>-<timestamp>``; directories that
carry the in-progress suffix are never listed.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, UTC
from pathlib import Path
from typing import List

import structlog

from dumpvault.config import RetentionConfig
from dumpvault.exceptions import ArchiveNotFoundError, FilesystemError
from dumpvault.vault.store import directory_stats, ensure_root

logger = structlog.get_logger()

ARCHIVE_PREFIX = "backup-"
PARTIAL_SUFFIX = ".partial"
RECENT_LIMIT = 10


@dataclass(frozen=True)
class Archive:
    """A complete archive directory and its on-demand metadata."""

    name: str
    path: Path
    size_bytes: int
    file_count: int
    created_at: datetime
    age_days: int

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "path": str(self.path),
            "size_bytes": self.size_bytes,
            "file_count": self.file_count,
            "created_at": self.created_at.isoformat(),
            "age_days": self.age_days,
        }


@dataclass
class CatalogStats:
    """Aggregate statistics over the catalog."""

    count: int
    total_size_bytes: int
    total_file_count: int
    oldest: datetime | None
    newest: datetime | None
    average_size_bytes: float
    most_recent: List[Archive] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "total_size_bytes": self.total_size_bytes,
            "total_file_count": self.total_file_count,
            "oldest": self.oldest.isoformat() if self.oldest else None,
            "newest": self.newest.isoformat() if self.newest else None,
            "average_size_bytes": self.average_size_bytes,
            "most_recent": [a.to_dict() for a in self.most_recent],
        }


def format_timestamp(moment: datetime) -> str:
    """
    Render a UTC ISO-8601 timestamp with ':' and '.' replaced by '-'.

    Millisecond precision, e.g. ``2026-10-18T06-10-05-123Z``. The result
    is filesystem-safe and sorts lexicographically in time order.
    """
    moment = moment.astimezone(UTC)
    return moment.strftime("%Y-%m-%dT%H-%M-%S-") + f"{moment.microsecond // 1000:03d}Z"


def archive_name(database_name: str, moment: datetime) -> str:
    """Build the archive name for a database at a point in time."""
    return f"{ARCHIVE_PREFIX}{database_name}-{format_timestamp(moment)}"


def generate_archive_name(
    backup_root: Path,
    database_name: str,
    now: datetime | None = None,
) -> str:
    """
    Pick a fresh archive name.

    If a complete or partial archive already uses the name for this
    millisecond, the timestamp is advanced one millisecond at a time so
    names stay unique and ordered.
    """
    moment = now or datetime.now(UTC)
    while True:
        name = archive_name(database_name, moment)
        if not (backup_root / name).exists() and not partial_path_for(backup_root, name).exists():
            return name
        moment += timedelta(milliseconds=1)


def partial_path_for(backup_root: Path, name: str) -> Path:
    """Location an archive is written to before it is complete."""
    return backup_root / f"{name}{PARTIAL_SUFFIX}"


def is_archive_name(name: str) -> bool:
    """True for complete archive directory names."""
    return name.startswith(ARCHIVE_PREFIX) and not name.endswith(PARTIAL_SUFFIX)


def _created_at(path: Path) -> datetime:
    """
    Creation time of an archive directory.

    Uses the birth time where the platform reports one, otherwise the
    modification time (the directory is not written to once renamed into
    place).
    """
    stat = path.stat()
    timestamp = stat.st_mtime
    birthtime = getattr(stat, "st_birthtime", None)
    if birthtime:
        timestamp = min(birthtime, timestamp)
    return datetime.fromtimestamp(timestamp, UTC)


def age_in_days(created_at: datetime, now: datetime) -> int:
    """Whole days elapsed since ``created_at``."""
    return (now - created_at) // timedelta(days=1)


def build_archive(path: Path, now: datetime | None = None) -> Archive:
    """
    Build an Archive record for a directory.

    Raises:
        FilesystemError: If the directory cannot be read
    """
    now = now or datetime.now(UTC)
    size_bytes, file_count = directory_stats(path)

    try:
        created_at = _created_at(path)
    except OSError as e:
        raise FilesystemError(
            f"Failed to stat archive: {e}",
            details={"path": str(path)},
        ) from e

    return Archive(
        name=path.name,
        path=path.resolve(),
        size_bytes=size_bytes,
        file_count=file_count,
        created_at=created_at,
        age_days=age_in_days(created_at, now),
    )


async def list_archives(
    config: RetentionConfig,
    now: datetime | None = None,
) -> List[Archive]:
    """
    List complete archives, newest first.

    Args:
        config: DumpVault configuration
        now: Reference time for ``age_days`` (defaults to the current time)

    Returns:
        Archives sorted by creation time, descending
    """
    root = ensure_root(config.backup_root)
    now = now or datetime.now(UTC)

    try:
        candidates = [
            entry
            for entry in root.iterdir()
            if entry.is_dir() and not entry.is_symlink() and is_archive_name(entry.name)
        ]
    except OSError as e:
        raise FilesystemError(
            f"Failed to list backup root: {e}",
            details={"path": str(root)},
        ) from e

    archives = []
    for path in candidates:
        try:
            archives.append(build_archive(path, now))
        except FilesystemError:
            # Deleted by a concurrent prune or delete since the scan
            if path.exists():
                raise
            logger.debug("catalog_entry_vanished", name=path.name)

    archives.sort(key=lambda a: a.created_at, reverse=True)

    logger.debug("catalog_listed", root=str(root), count=len(archives))

    return archives


async def find_archive(
    config: RetentionConfig,
    name: str,
    now: datetime | None = None,
) -> Archive:
    """
    Look up one archive by exact name.

    Raises:
        ArchiveNotFoundError: If no complete archive has that name
    """
    for archive in await list_archives(config, now):
        if archive.name == name:
            return archive

    raise ArchiveNotFoundError(name, details={"backup_root": str(config.backup_root)})


async def get_catalog_stats(
    config: RetentionConfig,
    now: datetime | None = None,
) -> CatalogStats:
    """
    Aggregate statistics over all complete archives.

    ``oldest``/``newest`` are None and averages are 0 for an empty catalog.
    """
    archives = await list_archives(config, now)

    total_size = sum(a.size_bytes for a in archives)
    total_files = sum(a.file_count for a in archives)
    count = len(archives)

    return CatalogStats(
        count=count,
        total_size_bytes=total_size,
        total_file_count=total_files,
        oldest=archives[-1].created_at if archives else None,
        newest=archives[0].created_at if archives else None,
        average_size_bytes=total_size / count if count else 0,
        most_recent=archives[:RECENT_LIMIT],
    )
