# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
DumpVault Restore Manager - Full replacement of live data from an archive.

A restore drops every collection it restores before loading the archived
copy, so it is destructive and irreversible. ``restore_archive`` performs
the restore; ``RestoreSession`` is the interactive flow that refuses to
start one without a freshly typed confirmation token.
"""

from dataclasses import dataclass
from datetime import datetime, UTC
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable

import structlog

from dumpvault.config import RetentionConfig, redact_uri
from dumpvault.exceptions import RestoreFailedError, UserCancelledError
from dumpvault.process import log_diagnostics, run_tool
from dumpvault.vault.catalog import Archive, find_archive

logger = structlog.get_logger()

# mongorestore ends with "... document(s) restored successfully" / "done"
RESTORE_SUCCESS_MARKER = "done"

# Typed by the operator to confirm a restore
CONFIRMATION_TOKEN = "RESTORE"


@dataclass
class RestoreResult:
    """Result of a restore operation."""

    name: str
    completed_at: datetime
    duration_seconds: float = 0.0
    operation_id: str | None = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "completed_at": self.completed_at.isoformat(),
            "duration_seconds": self.duration_seconds,
            "operation_id": self.operation_id,
        }


def build_restore_command(config: RetentionConfig, source: Path) -> list[str]:
    """Arguments for a drop-and-replace restore from ``source``."""
    return [
        config.restore_tool,
        f"--uri={config.require_connection_uri()}",
        "--gzip",
        "--drop",
        str(source),
    ]


async def restore_archive(
    config: RetentionConfig,
    name: str,
    operation_id: str | None = None,
) -> RestoreResult:
    """
    Replace the live database with the contents of an archive.

    The archive is looked up before anything is launched; an unknown name
    never reaches the restore tool.

    Args:
        config: DumpVault configuration
        name: Archive name, as listed by the catalog
        operation_id: Identifier used for log correlation

    Returns:
        RestoreResult with completion time

    Raises:
        ArchiveNotFoundError: If no complete archive has that name
        ConfigurationError: If no connection URI is configured
        ToolNotFoundError: If the restore tool cannot be launched
        TimedOutError: If the restore exceeds the configured timeout
        RestoreFailedError: If the archive lacks this database's dump or
            the restore tool exits with a non-zero status
    """
    archive = await find_archive(config, name)
    uri = config.require_connection_uri()
    database_name = config.database_name

    # Dump tools nest their output by database name
    source = archive.path / database_name
    if not source.is_dir():
        raise RestoreFailedError(
            f"Archive {name} does not contain a dump of database {database_name!r}",
            details={"name": name, "expected_path": str(source)},
        )

    argv = build_restore_command(config, source)

    logger.info(
        "restore_started",
        archive=name,
        database=database_name,
        uri=redact_uri(uri),
        source=str(source),
        operation_id=operation_id,
    )

    result = await run_tool(
        argv,
        timeout_seconds=config.timeout_seconds,
        details={"archive": name},
    )

    log_diagnostics(result, RESTORE_SUCCESS_MARKER, "restore")

    if not result.succeeded:
        logger.error(
            "restore_failed",
            archive=name,
            returncode=result.returncode,
            operation_id=operation_id,
        )
        raise RestoreFailedError(
            f"{config.restore_tool} exited with status {result.returncode}",
            details={
                "name": name,
                "returncode": result.returncode,
                "stderr": result.stderr_tail(),
            },
        )

    completed_at = datetime.now(UTC)

    logger.info(
        "restore_completed",
        archive=name,
        duration=round(result.duration_seconds, 3),
        operation_id=operation_id,
    )

    return RestoreResult(
        name=name,
        completed_at=completed_at,
        duration_seconds=result.duration_seconds,
        operation_id=operation_id,
    )


class RestoreState(str, Enum):
    """States of an interactive restore."""

    IDLE = "idle"
    ARCHIVE_SELECTED = "archive_selected"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    RESTORING = "restoring"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


def confirmation_matches(token: str | None) -> bool:
    """True when the typed token is the confirmation word, ignoring case and padding."""
    return (token or "").strip().upper() == CONFIRMATION_TOKEN


class RestoreSession:
    """
    Interactive restore flow.

    IDLE -> ARCHIVE_SELECTED -> AWAITING_CONFIRMATION -> RESTORING ->
    SUCCEEDED | FAILED. Any token other than the confirmation word moves
    AWAITING_CONFIRMATION to CANCELLED without touching the database.
    A session restores at most once.

    Example:
        session = RestoreSession(config, orchestrator.restore_backup)
        archive = await session.select(name)
        prompt = session.request_confirmation()
        result = await session.confirm(input(prompt))
    """

    def __init__(
        self,
        config: RetentionConfig,
        restore: Callable[[str], Awaitable[RestoreResult]],
    ):
        self.config = config
        self._restore = restore
        self.state = RestoreState.IDLE
        self.archive: Archive | None = None
        self.result: RestoreResult | None = None
        self.error: BaseException | None = None

    def _require(self, expected: RestoreState) -> None:
        if self.state != expected:
            raise RuntimeError(
                f"Restore session is {self.state.value}, expected {expected.value}"
            )

    async def select(self, name: str) -> Archive:
        """
        Select the archive to restore.

        Raises:
            ConfigurationError: If no connection URI is configured
            ArchiveNotFoundError: If the name is not in the catalog
        """
        self._require(RestoreState.IDLE)
        self.config.require_connection_uri()
        self.archive = await find_archive(self.config, name)
        self.state = RestoreState.ARCHIVE_SELECTED
        return self.archive

    def request_confirmation(self) -> str:
        """Move to AWAITING_CONFIRMATION and return the prompt to show."""
        self._require(RestoreState.ARCHIVE_SELECTED)
        self.state = RestoreState.AWAITING_CONFIRMATION
        return f"Type {CONFIRMATION_TOKEN} to confirm"

    async def confirm(self, token: str | None) -> RestoreResult:
        """
        Start the restore if ``token`` is the confirmation word.

        Raises:
            UserCancelledError: If the token does not match (state CANCELLED)
            DumpVaultError: Whatever the restore raised (state FAILED)
        """
        self._require(RestoreState.AWAITING_CONFIRMATION)

        if not confirmation_matches(token):
            self.state = RestoreState.CANCELLED
            logger.info("restore_cancelled", archive=self.archive.name)
            raise UserCancelledError(
                "Restore cancelled: confirmation not given",
                details={"name": self.archive.name},
            )

        self.state = RestoreState.RESTORING
        try:
            self.result = await self._restore(self.archive.name)
        except BaseException as e:
            self.state = RestoreState.FAILED
            self.error = e
            raise

        self.state = RestoreState.SUCCEEDED
        return self.result
