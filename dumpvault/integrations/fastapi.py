# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
DumpVault FastAPI Integration - Admin plugin for FastAPI applications.

This module provides:
- Protected admin endpoints (backup, catalog, stats, prune, health)
- Lifespan management
- Scheduled daily backups

Restores are not exposed over HTTP: they require an operator to type the
confirmation word, which only the CLI does.
"""

import os
from contextlib import asynccontextmanager
from datetime import datetime, UTC

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from dumpvault.config import RetentionConfig
from dumpvault.core import BackupOrchestrator
from dumpvault.errors import hint_for
from dumpvault.exceptions import (
    ArchiveNotFoundError,
    DumpVaultError,
    OperationInProgressError,
)

logger = structlog.get_logger()

# Security
security = HTTPBearer(auto_error=False)


async def verify_api_key(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> bool:
    """
    Verify API key from Authorization header.

    The API key is read from the DUMPVAULT_ADMIN_API_KEY environment variable.
    Requests must include: Authorization: Bearer <api_key>

    Raises:
        HTTPException: If API key is missing or invalid
    """
    api_key = os.getenv("DUMPVAULT_ADMIN_API_KEY")

    if not api_key:
        raise HTTPException(
            status_code=500,
            detail="DUMPVAULT_ADMIN_API_KEY environment variable not set",
        )

    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Authorization header required",
        )

    if credentials.credentials != api_key:
        raise HTTPException(
            status_code=403,
            detail="Invalid API key",
        )

    return True


def _http_error(error: DumpVaultError) -> HTTPException:
    """Translate a DumpVault error into an HTTP error with a hint."""
    if isinstance(error, ArchiveNotFoundError):
        status_code = 404
    elif isinstance(error, OperationInProgressError):
        status_code = 409
    else:
        status_code = 500

    return HTTPException(
        status_code=status_code,
        detail={"error": error.message, "hint": hint_for(error)},
    )


def register_dumpvault_routes(
    app: FastAPI,
    orchestrator: BackupOrchestrator,
    prefix: str = "/admin/backups",
) -> None:
    """
    Register DumpVault admin endpoints on a FastAPI app.

    All endpoints require Bearer token authentication.

    Args:
        app: FastAPI application
        orchestrator: Backup orchestrator serving the endpoints
        prefix: URL prefix for endpoints (default: /admin/backups)
    """

    @app.post(f"{prefix}/run", dependencies=[Depends(verify_api_key)])
    async def trigger_backup() -> dict:
        """
        Create a backup now.

        Returns the new archive and the retention sweep that followed it.
        """
        try:
            result = await orchestrator.create_backup()
        except DumpVaultError as e:
            raise _http_error(e)
        return result.to_dict()

    @app.get(f"{prefix}/archives", dependencies=[Depends(verify_api_key)])
    async def list_archives() -> list:
        """List archives, newest first."""
        try:
            archives = await orchestrator.list_backups()
        except DumpVaultError as e:
            raise _http_error(e)
        return [archive.to_dict() for archive in archives]

    @app.get(f"{prefix}/archives/{{name}}", dependencies=[Depends(verify_api_key)])
    async def get_archive(name: str) -> dict:
        """Get one archive by name."""
        try:
            archive = await orchestrator.find_backup(name)
        except DumpVaultError as e:
            raise _http_error(e)
        return archive.to_dict()

    @app.get(f"{prefix}/stats", dependencies=[Depends(verify_api_key)])
    async def get_stats() -> dict:
        """Aggregate catalog statistics."""
        try:
            stats = await orchestrator.get_stats()
        except DumpVaultError as e:
            raise _http_error(e)
        return stats.to_dict()

    @app.post(f"{prefix}/prune", dependencies=[Depends(verify_api_key)])
    async def prune(
        dry_run: bool = True,
        retention_days: int | None = Query(None, ge=1),
    ) -> dict:
        """
        Run a retention sweep.

        Args:
            dry_run: If true, only report what would be deleted
            retention_days: Override the configured retention window
        """
        try:
            result = await orchestrator.enforce_retention(retention_days, dry_run=dry_run)
        except DumpVaultError as e:
            raise _http_error(e)
        return result.to_dict()

    @app.get(f"{prefix}/status", dependencies=[Depends(verify_api_key)])
    async def get_status() -> dict:
        """Run metrics for this process."""
        return {
            **orchestrator.get_metrics().to_dict(),
            "database": orchestrator.config.database_name,
            "retention_days": orchestrator.config.retention_days,
        }

    @app.get(f"{prefix}/health", dependencies=[Depends(verify_api_key)])
    async def health_check() -> dict:
        """Check tools, configuration and the backup directory."""
        report = await orchestrator.health()
        return {
            **report.to_dict(),
            "timestamp": datetime.now(UTC).isoformat(),
        }

    @app.get(f"{prefix}/config", dependencies=[Depends(verify_api_key)])
    async def get_config() -> dict:
        """Get current configuration (connection password redacted)."""
        return orchestrator.config.to_public_dict()


def start_backup_scheduler(orchestrator: BackupOrchestrator) -> AsyncIOScheduler | None:
    """
    Schedule a daily backup at ``schedule_cron`` (HH:MM, UTC).

    Returns:
        The started scheduler, or None when no schedule is configured
    """
    schedule = orchestrator.config.schedule_cron
    if not schedule:
        return None

    scheduler = AsyncIOScheduler(timezone="UTC")
    hour, minute = map(int, schedule.split(":"))

    async def scheduled_backup():
        """Run scheduled backup."""
        logger.info("scheduled_backup_starting")
        try:
            result = await orchestrator.create_backup()
            logger.info(
                "scheduled_backup_completed",
                archive=result.archive.name,
                pruned=result.retention.deleted_count if result.retention else 0,
            )
        except DumpVaultError as e:
            logger.error("scheduled_backup_failed", error=str(e))

    scheduler.add_job(
        scheduled_backup,
        trigger=CronTrigger(hour=hour, minute=minute, timezone="UTC"),
        id="dumpvault_scheduled",
        replace_existing=True,
    )
    scheduler.start()

    logger.info("scheduler_started", schedule=schedule)

    return scheduler


def setup_dumpvault_plugin(
    app: FastAPI,
    config: RetentionConfig,
    prefix: str = "/admin/backups",
) -> BackupOrchestrator:
    """
    Set up the DumpVault plugin.

    Registers the admin endpoints immediately and, when a schedule is
    configured, starts the daily backup job on app startup.

    Args:
        app: FastAPI application
        config: DumpVault configuration
        prefix: URL prefix for admin endpoints

    Returns:
        The orchestrator backing the endpoints
    """
    orchestrator = BackupOrchestrator(config)
    app.state.dumpvault_orchestrator = orchestrator
    app.state.dumpvault_scheduler = None

    register_dumpvault_routes(app, orchestrator, prefix)

    @app.on_event("startup")
    async def startup():
        """Start the backup scheduler."""
        logger.info("dumpvault_plugin_starting", database=config.database_name)
        app.state.dumpvault_scheduler = start_backup_scheduler(orchestrator)

    @app.on_event("shutdown")
    async def shutdown():
        """Stop the backup scheduler."""
        scheduler = app.state.dumpvault_scheduler
        if scheduler:
            scheduler.shutdown(wait=False)
        logger.info("dumpvault_plugin_stopped")

    return orchestrator


@asynccontextmanager
async def dumpvault_lifespan(app: FastAPI, config: RetentionConfig, prefix: str = "/admin/backups"):
    """
    Lifespan context manager alternative to ``setup_dumpvault_plugin``.

        app = FastAPI(lifespan=lambda app: dumpvault_lifespan(app, config))

    Args:
        app: FastAPI application
        config: DumpVault configuration
        prefix: URL prefix for admin endpoints
    """
    orchestrator = BackupOrchestrator(config)
    app.state.dumpvault_orchestrator = orchestrator
    register_dumpvault_routes(app, orchestrator, prefix)

    scheduler = start_backup_scheduler(orchestrator)
    app.state.dumpvault_scheduler = scheduler

    logger.info("dumpvault_lifespan_started")

    try:
        yield
    finally:
        if scheduler:
            scheduler.shutdown(wait=False)
        logger.info("dumpvault_lifespan_stopped")


def get_orchestrator(app: FastAPI) -> BackupOrchestrator:
    """
    Get the BackupOrchestrator from a FastAPI app.

    Raises:
        RuntimeError: If DumpVault is not set up on this app
    """
    orchestrator = getattr(app.state, "dumpvault_orchestrator", None)
    if not orchestrator:
        raise RuntimeError("DumpVault not initialized. Call setup_dumpvault_plugin first.")
    return orchestrator
