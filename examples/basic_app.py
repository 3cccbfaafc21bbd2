# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Example FastAPI Application with DumpVault Integration.

This example mounts the DumpVault admin endpoints and schedules a daily
backup of the application's MongoDB database.

Run with:
    uvicorn examples.basic_app:app --reload

Environment variables:
    MONGODB_URI: Database to back up, e.g. mongodb://localhost:27017/travelcrm
    BACKUP_DIR: Where archives are kept (default: ./backups)
    BACKUP_RETENTION_DAYS: Days to keep archives (default: 30)
    DUMPVAULT_ADMIN_API_KEY: API key for admin endpoints
"""

import os

from fastapi import FastAPI

from dumpvault.builder import (
    build_config,
    create_empty_config,
    retain_backups_for,
    run_daily_at,
    store_backups_in,
    with_connection_uri,
    with_timeout,
)
from dumpvault.integrations.fastapi import setup_dumpvault_plugin

# Create FastAPI app
app = FastAPI(
    title="My App with DumpVault",
    description="Example application with scheduled database backups",
    version="1.0.0",
)


def create_dumpvault_config():
    """
    Create DumpVault configuration from environment variables.

    This uses the functional builder pattern for clean, composable configuration.
    """
    config = create_empty_config()

    config = with_connection_uri(
        config, os.getenv("MONGODB_URI", "mongodb://localhost:27017/travelcrm")
    )
    config = store_backups_in(config, os.getenv("BACKUP_DIR", "./backups"))

    # Keep two weeks of daily backups
    config = retain_backups_for(config, int(os.getenv("BACKUP_RETENTION_DAYS", "14")))

    # Give up on a dump after an hour
    config = with_timeout(config, 3600)

    # Daily backup at 2:30 AM UTC
    config = run_daily_at(config, "02:30")

    # Build and validate configuration
    return build_config(config)


setup_dumpvault_plugin(app, create_dumpvault_config())


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Welcome to My App with DumpVault",
        "docs": "/docs",
        "backups_admin": "/admin/backups/health",
    }


# ============================================================================
# DumpVault Admin Endpoints (auto-registered by plugin)
# ============================================================================
#
# POST /admin/backups/run             - Create a backup now
# GET  /admin/backups/archives        - List archives
# GET  /admin/backups/archives/{name} - One archive
# GET  /admin/backups/stats           - Catalog statistics
# POST /admin/backups/prune           - Retention sweep (?dry_run=false to delete)
# GET  /admin/backups/status          - Run metrics
# GET  /admin/backups/health          - Tool and directory checks
# GET  /admin/backups/config          - Configuration (password redacted)
#
# Restores are CLI-only: dumpvault-restore <name>
#
# All admin endpoints require: Authorization: Bearer <DUMPVAULT_ADMIN_API_KEY>


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
