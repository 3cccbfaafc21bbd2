# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Environment-based configuration helpers.

This is the only module that reads the process environment. Everything
else receives an explicit RetentionConfig.
"""

from __future__ import annotations

import os
from pathlib import Path

from dumpvault.builder import create_config
from dumpvault.config import DEFAULT_BACKUP_ROOT, DEFAULT_RETENTION_DAYS, RetentionConfig
from dumpvault.errors import explain_invalid_retention_days_env, explain_invalid_timeout_env
from dumpvault.exceptions import ConfigurationError


def _parse_retention_days(value: str | None) -> int:
    if not value:
        return DEFAULT_RETENTION_DAYS
    try:
        days = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(explain_invalid_retention_days_env(value)) from exc
    if days < 1:
        raise ConfigurationError(explain_invalid_retention_days_env(value))
    return days


def _parse_timeout(value: str | None) -> float | None:
    if not value:
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(explain_invalid_timeout_env(value)) from exc
    if seconds <= 0:
        raise ConfigurationError(explain_invalid_timeout_env(value))
    return seconds


def create_config_from_env() -> RetentionConfig:
    """
    Create a RetentionConfig from environment variables.

    Environment variables:
        - MONGODB_URI: Connection URI (needed for backup and restore)
        - BACKUP_DIR: Backup root directory (default: ./backups)
        - BACKUP_RETENTION_DAYS: Non-negative integer (default: 30)
        - BACKUP_TIMEOUT_SECONDS: Positive number, unset for no timeout
        - BACKUP_DUMP_TOOL: Dump executable (default: mongodump)
        - BACKUP_RESTORE_TOOL: Restore executable (default: mongorestore)
        - BACKUP_SCHEDULE_CRON: Daily HH:MM (UTC) for the admin plugin
    """

    backup_dir = os.getenv("BACKUP_DIR")

    return create_config(
        connection_uri=os.getenv("MONGODB_URI") or None,
        backup_root=Path(backup_dir) if backup_dir else DEFAULT_BACKUP_ROOT,
        retention_days=_parse_retention_days(os.getenv("BACKUP_RETENTION_DAYS")),
        timeout_seconds=_parse_timeout(os.getenv("BACKUP_TIMEOUT_SECONDS")),
        schedule_cron=os.getenv("BACKUP_SCHEDULE_CRON") or None,
        dump_tool=os.getenv("BACKUP_DUMP_TOOL") or "mongodump",
        restore_tool=os.getenv("BACKUP_RESTORE_TOOL") or "mongorestore",
    )
