# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
DumpVault Configuration - Immutable configuration data structures.

All configuration is frozen (immutable) after creation so that a running
backup or restore always sees the settings it started with.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List
from urllib.parse import urlparse, urlunparse

DEFAULT_DATABASE_NAME = "defaultdb"
DEFAULT_BACKUP_ROOT = Path("./backups")
DEFAULT_RETENTION_DAYS = 30

SUPPORTED_SCHEMES = ("mongodb", "mongodb+srv")


def extract_database_name(uri: str | None, default: str = DEFAULT_DATABASE_NAME) -> str:
    """
    Extract the database name from a connection URI.

    The name is the path segment after the last '/' and before an optional
    '?'. Falls back to ``default`` when the URI is missing, has no path or
    cannot be parsed.

    Examples:
        mongodb://localhost:27017/travelcrm              -> travelcrm
        mongodb+srv://u:p@cluster.example.net/crm?w=1    -> crm
        mongodb://localhost:27017                        -> defaultdb
    """
    if not uri:
        return default

    try:
        path = urlparse(uri).path
    except ValueError:
        return default

    name = path.rstrip("/").rsplit("/", 1)[-1] if path else ""
    return name or default


def redact_uri(uri: str | None) -> str | None:
    """Replace the password in a connection URI with '***' for logging."""
    if not uri:
        return uri

    try:
        parsed = urlparse(uri)
    except ValueError:
        return "<unparsable uri>"

    if parsed.password is None:
        return uri

    userinfo, _, hosts = parsed.netloc.rpartition("@")
    username = userinfo.split(":", 1)[0]
    return urlunparse(parsed._replace(netloc=f"{username}:***@{hosts}"))


def _validate_cron_time(time_str: str) -> bool:
    """Validate HH:MM time format."""
    if not time_str:
        return False
    try:
        parts = time_str.split(":")
        if len(parts) != 2:
            return False
        hour, minute = int(parts[0]), int(parts[1])
        return 0 <= hour <= 23 and 0 <= minute <= 59
    except (ValueError, AttributeError):
        return False


@dataclass(frozen=True)
class RetentionConfig:
    """
    Immutable configuration for backups, retention and restores.

    Passed explicitly to every operation; nothing in the library reads the
    process environment except ``dumpvault.env``.
    """

    # MongoDB connection URI (required for dump and restore)
    connection_uri: str | None = None

    # Directory holding one sub-directory per archive
    backup_root: Path = field(default_factory=lambda: DEFAULT_BACKUP_ROOT)

    # Archives at least this many days old are pruned
    retention_days: int = DEFAULT_RETENTION_DAYS

    # External executables
    dump_tool: str = "mongodump"
    restore_tool: str = "mongorestore"

    # Deadline for a single dump/restore subprocess (None = wait forever)
    timeout_seconds: float | None = None

    # Used when the URI carries no database name
    default_database_name: str = DEFAULT_DATABASE_NAME

    # Daily backup time in HH:MM format (UTC), used by the admin plugin
    schedule_cron: str | None = None

    def __post_init__(self) -> None:
        """Validate configuration after creation."""
        errors: List[str] = []

        # Accept plain strings for the root directory
        if not isinstance(self.backup_root, Path):
            object.__setattr__(self, "backup_root", Path(self.backup_root))

        if self.connection_uri is not None:
            scheme = self.connection_uri.split("://", 1)[0].lower()
            if "://" not in self.connection_uri or scheme not in SUPPORTED_SCHEMES:
                from dumpvault.errors import explain_invalid_connection_uri

                errors.append(explain_invalid_connection_uri(self.connection_uri))

        if self.retention_days < 1:
            errors.append(f"retention_days must be >= 1, got {self.retention_days}")

        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            errors.append(f"timeout_seconds must be > 0, got {self.timeout_seconds}")

        if not self.dump_tool:
            errors.append("dump_tool must not be empty")

        if not self.restore_tool:
            errors.append("restore_tool must not be empty")

        if not self.default_database_name:
            errors.append("default_database_name must not be empty")

        if self.schedule_cron and not _validate_cron_time(self.schedule_cron):
            errors.append(f"Invalid schedule_cron format: {self.schedule_cron}, expected HH:MM")

        # Raise all errors at once
        if errors:
            from dumpvault.exceptions import ConfigurationError

            raise ConfigurationError(
                "Configuration validation failed",
                details={"errors": errors},
            )

    @property
    def database_name(self) -> str:
        """Database name parsed from the connection URI."""
        return extract_database_name(self.connection_uri, self.default_database_name)

    @property
    def lock_path(self) -> Path:
        """Lock file serialising dumps and restores of this database."""
        return self.backup_root / f".dumpvault-{self.database_name}.lock"

    def require_connection_uri(self) -> str:
        """Return the connection URI or raise ConfigurationError."""
        if not self.connection_uri:
            from dumpvault.errors import explain_missing_connection_uri
            from dumpvault.exceptions import ConfigurationError

            raise ConfigurationError(explain_missing_connection_uri())
        return self.connection_uri

    def with_updates(self, **kwargs) -> "RetentionConfig":
        """
        Create a new config with updated values.

        Since the config is frozen, this creates a new instance.
        """
        from dataclasses import asdict

        current = asdict(self)
        current.update(kwargs)
        return RetentionConfig(**current)

    def to_public_dict(self) -> dict:
        """Configuration with the connection password redacted."""
        return {
            "connection_uri": redact_uri(self.connection_uri),
            "database_name": self.database_name,
            "backup_root": str(self.backup_root),
            "retention_days": self.retention_days,
            "dump_tool": self.dump_tool,
            "restore_tool": self.restore_tool,
            "timeout_seconds": self.timeout_seconds,
            "schedule_cron": self.schedule_cron,
        }
