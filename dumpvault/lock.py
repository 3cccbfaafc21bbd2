# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
DumpVault Operation Lock - One backup or restore per database at a time.

An advisory ``fcntl.flock`` on a lock file inside the backup root. The
lock is per open file description, so it also excludes a second attempt
from the same process. The file is never deleted; the holder's details
are written into it so a refused caller can say who is running.
"""

import fcntl
import json
import os
from contextlib import asynccontextmanager
from datetime import datetime, UTC
from typing import AsyncIterator

import aiofiles
import structlog

from dumpvault.config import RetentionConfig
from dumpvault.errors import explain_operation_in_progress
from dumpvault.exceptions import FilesystemError, OperationInProgressError
from dumpvault.vault.store import ensure_root

logger = structlog.get_logger()


async def read_lock_holder(config: RetentionConfig) -> dict:
    """Return the details written by the current (or last) lock holder."""
    try:
        async with aiofiles.open(config.lock_path, "r") as f:
            content = await f.read()
        return json.loads(content) if content.strip() else {}
    except (OSError, ValueError):
        return {}


@asynccontextmanager
async def operation_lock(
    config: RetentionConfig,
    operation: str,
    operation_id: str,
) -> AsyncIterator[None]:
    """
    Hold the database lock for the duration of the block.

    Args:
        config: DumpVault configuration
        operation: Human-readable operation name ("backup", "restore", ...)
        operation_id: Identifier of the operation taking the lock

    Raises:
        OperationInProgressError: If another operation holds the lock
        FilesystemError: If the lock file cannot be opened
    """
    ensure_root(config.backup_root)
    lock_path = config.lock_path

    try:
        handle = open(lock_path, "a+")
    except OSError as e:
        raise FilesystemError(
            f"Failed to open lock file: {e}",
            details={"path": str(lock_path)},
        ) from e

    try:
        try:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError as e:
            holder = await read_lock_holder(config)
            logger.warning(
                "operation_lock_busy",
                operation=operation,
                database=config.database_name,
                holder=holder,
            )
            raise OperationInProgressError(
                explain_operation_in_progress(config.database_name, holder),
                details={"database": config.database_name, "holder": holder},
            ) from e

        holder = {
            "operation": operation,
            "operation_id": operation_id,
            "pid": os.getpid(),
            "started_at": datetime.now(UTC).isoformat(),
        }
        async with aiofiles.open(lock_path, "w") as f:
            await f.write(json.dumps(holder))

        logger.debug("operation_lock_acquired", **holder)

        try:
            yield
        finally:
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
            logger.debug("operation_lock_released", operation_id=operation_id)
    finally:
        handle.close()
