"""
Admin endpoints for the ingest service.

Includes:
- Immediate scan trigger
- Orphaned record audit
"""

from fastapi import APIRouter, Request
from loguru import logger

from app.models.schemas import OperationStatus, OrphanEntry, OrphanList

router = APIRouter()


@router.post("/scan", response_model=OperationStatus)
async def trigger_scan(request: Request):
    """
    Start the next import cycle without waiting for the poll interval.

    A running cycle is never interrupted; the trigger takes effect once it
    has finished.
    """
    logger.info("Manual import cycle triggered")
    request.app.state.scheduler.wake()

    return OperationStatus(
        status="queued",
        message="Import cycle queued"
    )


@router.get("/orphans", response_model=OrphanList)
async def list_orphans(request: Request):
    """
    List records left in the archive after a failed compensating delete.

    These need manual cleanup in the archive.
    """
    ledger = request.app.state.collector.ledger
    return OrphanList(orphans=[OrphanEntry(**entry) for entry in ledger.orphans()])
