# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Backup Engine - Dump, retention and restore operations.
"""

from dumpvault.backup.dump import (
    create_archive,
    DumpResult,
)

from dumpvault.backup.retention import (
    enforce_retention,
    RetentionResult,
)

from dumpvault.backup.restore import (
    restore_archive,
    RestoreResult,
    RestoreSession,
    RestoreState,
    CONFIRMATION_TOKEN,
)

__all__ = [
    # Dump
    "create_archive",
    "DumpResult",
    # Retention
    "enforce_retention",
    "RetentionResult",
    # Restore
    "restore_archive",
    "RestoreResult",
    "RestoreSession",
    "RestoreState",
    "CONFIRMATION_TOKEN",
]
