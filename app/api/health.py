"""
Health check and statistics endpoints.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Request
from pydantic import BaseModel

from app.models.schemas import StatsSummary
from domains.file_ingest.errors import ConnectivityError

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str
    timestamp: datetime
    archive_connected: bool
    archive_server: Optional[str] = None
    last_run: Optional[datetime] = None
    version: str


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """
    Health check endpoint.

    Verifies:
    - API is running
    - Archive answers the connectivity probe
    """
    collector = request.app.state.collector
    server_name = None

    try:
        info = await collector.transaction.probe()
        server_name = info.name
    except ConnectivityError:
        pass

    return HealthResponse(
        status="healthy" if server_name else "degraded",
        timestamp=datetime.now(),
        archive_connected=server_name is not None,
        archive_server=server_name,
        last_run=collector.stats.last_run,
        version=request.app.state.settings.api_version
    )


@router.get("/stats", response_model=StatsSummary)
async def get_stats(request: Request):
    """Process-wide ingestion counters."""
    return request.app.state.collector.stats.summary()
