# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
DumpVault Exceptions - Custom exceptions for the dumpvault package.
"""


class DumpVaultError(Exception):
    """Base exception for all DumpVault errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(DumpVaultError):
    """Raised when configuration is invalid or incomplete."""

    pass


class FilesystemError(DumpVaultError):
    """Raised when a directory cannot be created, inspected or removed."""

    pass


class ToolNotFoundError(DumpVaultError):
    """Raised when the dump or restore executable cannot be launched."""

    pass


class DumpFailedError(DumpVaultError):
    """Raised when the dump tool exits with a non-zero status."""

    pass


class RestoreFailedError(DumpVaultError):
    """Raised when the restore tool exits with a non-zero status."""

    pass


class ArchiveNotFoundError(DumpVaultError):
    """Raised when no catalogued archive matches the requested name."""

    def __init__(self, name: str, details: dict | None = None):
        self.name = name
        super().__init__(f"Backup not found: {name}", details={"name": name, **(details or {})})


class OperationInProgressError(DumpVaultError):
    """Raised when another backup or restore holds the database lock."""

    pass


class TimedOutError(DumpVaultError):
    """Raised when an external tool exceeds the configured timeout."""

    pass


class UserCancelledError(DumpVaultError):
    """Raised when an interactive restore is not confirmed."""

    pass
