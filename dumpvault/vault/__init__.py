# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Vault - Archive storage primitives and the live catalog.
"""

from dumpvault.vault.store import (
    ensure_root,
    directory_stats,
    remove_tree,
)

from dumpvault.vault.catalog import (
    Archive,
    CatalogStats,
    build_archive,
    find_archive,
    format_timestamp,
    generate_archive_name,
    get_catalog_stats,
    is_archive_name,
    list_archives,
)

__all__ = [
    # Store
    "ensure_root",
    "directory_stats",
    "remove_tree",
    # Catalog
    "Archive",
    "CatalogStats",
    "build_archive",
    "find_archive",
    "format_timestamp",
    "generate_archive_name",
    "get_catalog_stats",
    "is_archive_name",
    "list_archives",
]
