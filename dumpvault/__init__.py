# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
DumpVault - Point-in-time database dumps with retention and guarded restore.

Creates timestamped full dumps through the database's own dump tool, keeps
them for a configurable number of days, and restores one on explicit
operator confirmation. Package name: dumpvault.
"""

__version__ = "0.1.0"

# Configuration creation (user-facing API)
from dumpvault.builder import create_config
from dumpvault.config import RetentionConfig

# Orchestration
from dumpvault.core import BackupOrchestrator, BackupResult

# Environment-based configuration
from dumpvault.env import create_config_from_env

from dumpvault.exceptions import DumpVaultError

__all__ = [
    # Version
    "__version__",
    # Configuration
    "create_config",
    "create_config_from_env",
    "RetentionConfig",
    # Orchestration
    "BackupOrchestrator",
    "BackupResult",
    # Errors
    "DumpVaultError",
]
