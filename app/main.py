"""
Archive Ingest - Main FastAPI Application

Runs the inbox ingestion scheduler in the background and exposes:
- Health (archive connectivity, last run)
- Ingestion statistics
- Admin triggers (immediate scan, orphan audit)
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from app.api import admin, health
from app.utils.archive_client import ArchiveClient
from app.utils.config import Settings, get_settings
from app.utils.log_setup import setup_logging
from domains.file_ingest.collectors.archive_collector import ArchiveIngestCollector
from domains.file_ingest.collectors.inbox_watcher import InboxWatcher
from domains.file_ingest.collectors.scheduler import IngestScheduler
from domains.file_ingest.processors.mover import ensure_directories


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings: Settings = app.state.settings
    scheduler: IngestScheduler = app.state.scheduler
    logger.info(f"Starting {settings.api_title} v{settings.api_version}")

    ensure_directories(settings)

    watcher = None
    if settings.watch_events:
        loop = asyncio.get_running_loop()
        watcher = InboxWatcher(settings.source_dir, lambda: loop.call_soon_threadsafe(scheduler.wake))
        watcher.start()

    task = asyncio.create_task(scheduler.run())
    logger.success("Ingest scheduler started")

    yield

    # Cleanup
    logger.info("Shutting down application...")
    scheduler.stop()
    await task
    if watcher is not None:
        watcher.stop()
    await app.state.client.close()
    logger.success("Application shut down complete")


def create_app(settings: Optional[Settings] = None, client: Optional[ArchiveClient] = None) -> FastAPI:
    """Build the API application around one collector/scheduler pair."""
    settings = settings or get_settings()
    client = client or ArchiveClient(
        base_url=settings.archive_url,
        timeout=settings.connection_timeout,
        user=settings.archive_user,
        password=settings.archive_password,
    )

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="Watched-directory ingestion into the document archive",
        lifespan=lifespan
    )

    collector = ArchiveIngestCollector(settings, client)
    app.state.settings = settings
    app.state.client = client
    app.state.collector = collector
    app.state.scheduler = IngestScheduler(collector, settings.poll_interval)

    # Exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler."""
        logger.error(f"Unhandled exception: {exc}")
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "detail": str(exc) if settings.log_level == "DEBUG" else "An error occurred"
            }
        )

    # Include routers
    app.include_router(health.router, tags=["Health"])
    app.include_router(admin.router, prefix="/admin", tags=["Admin"])

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "service": "Archive Ingest",
            "version": settings.api_version,
            "status": "operational",
            "docs": "/docs",
            "health": "/health"
        }

    return app


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    setup_logging(settings.log_level)
    uvicorn.run(
        create_app(settings),
        host="0.0.0.0",
        port=settings.api_port,
        log_level=settings.log_level.lower()
    )
