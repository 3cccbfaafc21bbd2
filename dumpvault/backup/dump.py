# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
DumpVault Dump Engine - Full database dumps into timestamped archives.

The dump tool writes into ``<name>.partial`` and the directory is renamed
to its final name only after the tool exits cleanly, so the catalog never
sees a half-written archive. A failed or timed-out dump leaves the partial
directory in place for inspection.
"""

from dataclasses import dataclass
from datetime import datetime, UTC
from pathlib import Path

import structlog

from dumpvault.config import RetentionConfig, redact_uri
from dumpvault.exceptions import (
    DumpFailedError,
    FilesystemError,
    TimedOutError,
    ToolNotFoundError,
)
from dumpvault.process import log_diagnostics, run_tool
from dumpvault.vault.catalog import (
    Archive,
    build_archive,
    generate_archive_name,
    partial_path_for,
)
from dumpvault.vault.store import ensure_root, remove_tree

logger = structlog.get_logger()

# mongodump reports "done dumping <ns>" per collection
DUMP_SUCCESS_MARKER = "done dumping"


@dataclass
class DumpResult:
    """A freshly written archive and how long it took."""

    archive: Archive
    duration_seconds: float
    completed_at: datetime

    def to_dict(self) -> dict:
        return {
            "archive": self.archive.to_dict(),
            "duration_seconds": self.duration_seconds,
            "completed_at": self.completed_at.isoformat(),
        }


def build_dump_command(config: RetentionConfig, destination: Path) -> list[str]:
    """Arguments for a compressed full dump into ``destination``."""
    return [
        config.dump_tool,
        f"--uri={config.require_connection_uri()}",
        f"--out={destination}",
        "--gzip",
    ]


async def create_archive(config: RetentionConfig) -> DumpResult:
    """
    Dump the configured database into a new archive.

    Args:
        config: DumpVault configuration

    Returns:
        DumpResult with the populated Archive

    Raises:
        ConfigurationError: If no connection URI is configured
        FilesystemError: If the archive directory cannot be prepared
        ToolNotFoundError: If the dump tool cannot be launched
        TimedOutError: If the dump exceeds the configured timeout
        DumpFailedError: If the dump tool exits with a non-zero status
    """
    started_at = datetime.now(UTC)
    root = ensure_root(config.backup_root)
    database_name = config.database_name

    name = generate_archive_name(root, database_name, started_at)
    final_path = root / name
    partial_path = partial_path_for(root, name)
    argv = build_dump_command(config, partial_path)

    logger.info(
        "dump_started",
        archive=name,
        database=database_name,
        uri=redact_uri(config.connection_uri),
        location=str(final_path),
    )

    try:
        partial_path.mkdir()
    except OSError as e:
        raise FilesystemError(
            f"Failed to create archive directory: {e}",
            details={"path": str(partial_path)},
        ) from e

    try:
        result = await run_tool(
            argv,
            timeout_seconds=config.timeout_seconds,
            details={"archive": name, "partial_path": str(partial_path)},
        )
    except TimedOutError:
        logger.error("dump_timed_out", archive=name, partial_path=str(partial_path))
        raise
    except ToolNotFoundError:
        # Nothing was written
        remove_tree(partial_path)
        raise

    log_diagnostics(result, DUMP_SUCCESS_MARKER, "dump")

    if not result.succeeded:
        logger.error(
            "dump_failed",
            archive=name,
            returncode=result.returncode,
            partial_path=str(partial_path),
        )
        raise DumpFailedError(
            f"{config.dump_tool} exited with status {result.returncode}",
            details={
                "archive": name,
                "returncode": result.returncode,
                "stderr": result.stderr_tail(),
                "partial_path": str(partial_path),
            },
        )

    try:
        partial_path.rename(final_path)
    except OSError as e:
        raise FilesystemError(
            f"Failed to finalize archive: {e}",
            details={"from": str(partial_path), "to": str(final_path)},
        ) from e

    completed_at = datetime.now(UTC)
    archive = build_archive(final_path, completed_at)
    duration = (completed_at - started_at).total_seconds()

    logger.info(
        "dump_completed",
        archive=name,
        size_bytes=archive.size_bytes,
        files=archive.file_count,
        duration=round(duration, 3),
    )

    return DumpResult(
        archive=archive,
        duration_seconds=duration,
        completed_at=completed_at,
    )
