# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Human-friendly error message helpers for DumpVault.

These helpers centralize wording for common failures so that the library,
the CLI and the HTTP plugin present consistent, actionable messages.
"""

from dumpvault.exceptions import (
    ArchiveNotFoundError,
    ConfigurationError,
    DumpFailedError,
    DumpVaultError,
    FilesystemError,
    OperationInProgressError,
    RestoreFailedError,
    TimedOutError,
    ToolNotFoundError,
    UserCancelledError,
)


def explain_missing_connection_uri() -> str:
    """
    Explain that the database connection URI is missing.
    """

    return (
        "Database connection URI is not configured. "
        "Set the MONGODB_URI environment variable or pass connection_uri=... to create_config()."
    )


def explain_invalid_connection_uri(value: str | None) -> str:
    """
    Explain that the connection URI does not use a supported scheme.
    """

    return (
        f"Invalid connection URI: {value!r}. "
        "Expected a URI starting with 'mongodb://' or 'mongodb+srv://'."
    )


def explain_invalid_retention_days_env(value: str | None) -> str:
    """
    Explain that BACKUP_RETENTION_DAYS is invalid.
    """

    return (
        f"Invalid BACKUP_RETENTION_DAYS value: {value!r}. "
        "It must be a whole number of days, at least 1."
    )


def explain_invalid_timeout_env(value: str | None) -> str:
    """
    Explain that BACKUP_TIMEOUT_SECONDS is invalid.
    """

    return (
        f"Invalid BACKUP_TIMEOUT_SECONDS value: {value!r}. "
        "It must be a positive number of seconds, or unset for no timeout."
    )


def explain_tool_not_found(tool: str) -> str:
    """
    Explain that an external executable could not be launched.
    """

    return (
        f"Could not run {tool!r}: executable not found or not permitted. "
        "Install the MongoDB Database Tools or point the tool setting at the binary."
    )


def explain_tool_timeout(tool: str, timeout_seconds: float) -> str:
    """
    Explain that an external executable ran past its deadline.
    """

    return f"{tool} did not finish within {timeout_seconds:g} seconds and was terminated."


def explain_operation_in_progress(database_name: str, holder: dict) -> str:
    """
    Explain that the database lock is held by another operation.
    """

    operation = holder.get("operation", "another operation")
    pid = holder.get("pid", "unknown")
    return (
        f"Cannot start: {operation} is already running against {database_name!r} "
        f"(pid {pid}). Wait for it to finish and try again."
    )


_HINTS: list[tuple[type, str]] = [
    (ToolNotFoundError, "Is the dump/restore tool installed and on PATH?"),
    (ConfigurationError, "Check MONGODB_URI, BACKUP_DIR and BACKUP_RETENTION_DAYS."),
    (FilesystemError, "Is the backup directory writable and is there free space?"),
    (DumpFailedError, "Is the database reachable with the configured connection URI?"),
    (RestoreFailedError, "Is the database reachable, and was the archive dumped from this database?"),
    (ArchiveNotFoundError, "Run the restore command without arguments to list available backups."),
    (OperationInProgressError, "Another backup or restore is running; retry once it completes."),
    (TimedOutError, "Raise BACKUP_TIMEOUT_SECONDS or check database load; the partial archive was kept for inspection."),
    (UserCancelledError, "Type RESTORE exactly to confirm a restore."),
]


def hint_for(error: BaseException) -> str:
    """
    Return an actionable hint for an error raised by DumpVault.
    """

    for error_type, hint in _HINTS:
        if isinstance(error, error_type):
            return hint
    if isinstance(error, DumpVaultError):
        return "Re-run with --verbose for details."
    return "Unexpected error; re-run with --verbose for a traceback."
