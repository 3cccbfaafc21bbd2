# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
DumpVault Builder - Functional builder pattern for configuration.

This module provides pure functions for building RetentionConfig objects.
Each function takes a config dict and returns a new dict with the
modification applied (immutable updates).
"""

from pathlib import Path
from typing import Any, Callable, Dict

from dumpvault.config import (
    DEFAULT_BACKUP_ROOT,
    DEFAULT_DATABASE_NAME,
    DEFAULT_RETENTION_DAYS,
    RetentionConfig,
)


# Type alias for builder functions
ConfigDict = Dict[str, Any]
BuilderFunc = Callable[[ConfigDict], ConfigDict]


def create_empty_config() -> ConfigDict:
    """
    Create an initial configuration dictionary.

    Returns:
        Dict with default values for all configuration fields
    """
    return {
        "connection_uri": None,
        "backup_root": DEFAULT_BACKUP_ROOT,
        "retention_days": DEFAULT_RETENTION_DAYS,
        "dump_tool": "mongodump",
        "restore_tool": "mongorestore",
        "timeout_seconds": None,
        "default_database_name": DEFAULT_DATABASE_NAME,
        "schedule_cron": None,
    }


def with_connection_uri(config: ConfigDict, uri: str) -> ConfigDict:
    """
    Set the database connection URI.

    Args:
        config: Current configuration dictionary
        uri: MongoDB URI, e.g. 'mongodb://localhost:27017/travelcrm'

    Returns:
        New configuration dictionary with the URI set
    """
    return {**config, "connection_uri": uri}


def store_backups_in(config: ConfigDict, backup_root: Path | str) -> ConfigDict:
    """
    Set the directory that holds archives.

    Args:
        config: Current configuration dictionary
        backup_root: Backup root directory (created on first use)

    Returns:
        New configuration dictionary with the root set
    """
    return {**config, "backup_root": Path(backup_root)}


def retain_backups_for(config: ConfigDict, days: int) -> ConfigDict:
    """
    Set the retention window.

    Archives whose age in whole days reaches this value are pruned after
    every successful backup.

    Args:
        config: Current configuration dictionary
        days: Retention window in days

    Returns:
        New configuration dictionary with retention set
    """
    return {**config, "retention_days": days}


def with_timeout(config: ConfigDict, seconds: float | None) -> ConfigDict:
    """Set the per-subprocess timeout (None disables it)."""
    return {**config, "timeout_seconds": seconds}


def with_dump_tool(config: ConfigDict, tool: str) -> ConfigDict:
    """Use a different dump executable (name on PATH or absolute path)."""
    return {**config, "dump_tool": tool}


def with_restore_tool(config: ConfigDict, tool: str) -> ConfigDict:
    """Use a different restore executable (name on PATH or absolute path)."""
    return {**config, "restore_tool": tool}


def with_default_database_name(config: ConfigDict, name: str) -> ConfigDict:
    """Set the database name used when the URI has none."""
    return {**config, "default_database_name": name}


def run_daily_at(config: ConfigDict, time: str) -> ConfigDict:
    """
    Schedule a daily backup at a specific time (UTC).

    Only honoured by the FastAPI admin plugin.

    Args:
        config: Current configuration dictionary
        time: Time in HH:MM format (24-hour, UTC)

    Returns:
        New configuration dictionary with schedule set
    """
    return {**config, "schedule_cron": time}


def build_config(config_dict: ConfigDict) -> RetentionConfig:
    """
    Build and validate the final configuration.

    Args:
        config_dict: Configuration dictionary

    Returns:
        Immutable RetentionConfig

    Raises:
        ConfigurationError: If the configuration is invalid
    """
    return RetentionConfig(**config_dict)


def pipe(*funcs: BuilderFunc) -> BuilderFunc:
    """
    Compose builder functions left to right.

    Example:
        configure = pipe(
            lambda c: with_connection_uri(c, "mongodb://localhost/crm"),
            lambda c: retain_backups_for(c, 14),
        )
        config = build_config(configure(create_empty_config()))
    """

    def composed(config: ConfigDict) -> ConfigDict:
        for func in funcs:
            config = func(config)
        return config

    return composed


def build_from_steps(*steps: BuilderFunc) -> RetentionConfig:
    """
    Build a configuration by applying steps to the empty configuration.

    Example:
        config = build_from_steps(
            lambda c: with_connection_uri(c, "mongodb://localhost/crm"),
            lambda c: store_backups_in(c, "/var/backups/crm"),
        )
    """
    return build_config(pipe(*steps)(create_empty_config()))


def create_config(
    connection_uri: str | None = None,
    backup_root: Path | str | None = None,
    retention_days: int | None = None,
    timeout_seconds: float | None = None,
    schedule_cron: str | None = None,
    **kwargs: Any,
) -> RetentionConfig:
    """
    Create a configuration in one call.

    Example:
        config = create_config(
            connection_uri="mongodb://localhost:27017/travelcrm",
            backup_root="/var/backups/travelcrm",
            retention_days=14,
            timeout_seconds=3600,
        )
    """
    config_dict = create_empty_config()

    if connection_uri:
        config_dict = with_connection_uri(config_dict, connection_uri)

    if backup_root:
        config_dict = store_backups_in(config_dict, backup_root)

    if retention_days is not None:
        config_dict = retain_backups_for(config_dict, retention_days)

    if timeout_seconds is not None:
        config_dict = with_timeout(config_dict, timeout_seconds)

    if schedule_cron:
        config_dict = run_daily_at(config_dict, schedule_cron)

    # Apply any additional kwargs
    for key, value in kwargs.items():
        if key in config_dict:
            config_dict[key] = value

    return build_config(config_dict)
