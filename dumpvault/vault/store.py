# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
DumpVault Archive Store - Filesystem primitives for the backup root.

The filesystem is the only record of which archives exist. Every OS
failure surfaces as FilesystemError; callers decide whether it is fatal.
"""

import os
import shutil
from pathlib import Path
from typing import Set, Tuple

import structlog

from dumpvault.exceptions import FilesystemError

logger = structlog.get_logger()


def ensure_root(backup_root: Path) -> Path:
    """
    Create the backup root (and parents) if it does not exist.

    Idempotent: an existing directory is left untouched.

    Args:
        backup_root: Backup root directory

    Returns:
        The backup root path

    Raises:
        FilesystemError: If the directory cannot be created, or the path
            exists and is not a directory
    """
    try:
        backup_root.mkdir(parents=True, exist_ok=True)
    except FileExistsError as e:
        raise FilesystemError(
            f"Backup root exists but is not a directory: {backup_root}",
            details={"path": str(backup_root)},
        ) from e
    except OSError as e:
        raise FilesystemError(
            f"Failed to create backup root: {e}",
            details={"path": str(backup_root)},
        ) from e

    return backup_root


def directory_stats(path: Path) -> Tuple[int, int]:
    """
    Measure a directory tree.

    Every regular file contributes its size and counts once; directories
    are traversed but not counted. Symlinks are never followed, so link
    cycles cannot cause an endless walk.

    Args:
        path: Directory to measure

    Returns:
        Tuple of (size_bytes, file_count)

    Raises:
        FilesystemError: If the directory cannot be read
    """
    size_bytes = 0
    file_count = 0
    seen: Set[Tuple[int, int]] = set()
    pending = [path]

    while pending:
        current = pending.pop()
        try:
            current_stat = current.stat(follow_symlinks=False)
            key = (current_stat.st_dev, current_stat.st_ino)
            if key in seen:
                continue
            seen.add(key)

            with os.scandir(current) as entries:
                for entry in entries:
                    try:
                        if entry.is_dir(follow_symlinks=False):
                            pending.append(Path(entry.path))
                        elif entry.is_file(follow_symlinks=False):
                            size_bytes += entry.stat(follow_symlinks=False).st_size
                            file_count += 1
                    except FileNotFoundError:
                        # Removed while walking
                        continue
        except OSError as e:
            raise FilesystemError(
                f"Failed to read directory: {e}",
                details={"path": str(current)},
            ) from e

    return (size_bytes, file_count)


def remove_tree(path: Path) -> None:
    """
    Delete a directory tree.

    Idempotent: a path that is already gone counts as removed.

    Args:
        path: Directory to delete

    Raises:
        FilesystemError: On any failure other than "not found"
    """
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        logger.debug("remove_tree_already_absent", path=str(path))
        return
    except OSError as e:
        raise FilesystemError(
            f"Failed to delete directory: {e}",
            details={"path": str(path)},
        ) from e

    logger.debug("tree_removed", path=str(path))
