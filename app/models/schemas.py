"""
Pydantic models for the Archive Ingest service.

Shared data models across the application: the archive's wire payloads
and the API responses.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field


# =====================================================
# Archive Models
# =====================================================

class ServerInfo(BaseModel):
    """Archive server identification returned by the connectivity probe."""
    name: str
    version: Optional[str] = None


class Container(BaseModel):
    """Archive folder node."""
    id: str
    name: str
    parent_id: Optional[str] = None


class MetadataSchema(BaseModel):
    """Metadata mask definition."""
    id: str
    name: str


class DraftRecord(BaseModel):
    """Uncommitted record prepared under a container."""
    parent_id: str
    name: str = ""
    mask_id: Optional[str] = None
    type: str = "document"
    desc: Optional[str] = None


class ArchiveRecord(BaseModel):
    """Committed record as reported by the archive."""
    id: str
    parent_id: str
    name: str
    mask_id: Optional[str] = None
    version: Optional[str] = None


class DocVersion(BaseModel):
    """Version metadata attached to a content check-in."""
    comment: str
    version: str = "1.0"
    ext: str = "pdf"


class ContentCheckin(BaseModel):
    """Open content check-in transaction for a record."""
    record_id: str
    upload_url: str
    version: Optional[DocVersion] = None


class WorkflowTemplate(BaseModel):
    """Reusable workflow definition."""
    id: str
    name: str


class WorkflowInstance(BaseModel):
    """Workflow instantiated for one record."""
    id: str
    template_id: str
    record_id: str


# =====================================================
# Response Models
# =====================================================

class StatsSummary(BaseModel):
    """Process-wide ingestion statistics."""
    uptime_hours: float
    succeeded: int
    failed: int
    orphaned: int = 0
    duplicates_skipped: int = 0
    cycles: int = 0
    success_rate: Optional[float] = Field(
        default=None, description="Percent of files imported, None before the first outcome"
    )
    started_at: datetime
    last_run: Optional[datetime] = None


class OrphanEntry(BaseModel):
    """Record left in the archive after a failed compensating delete."""
    record_id: str
    file: str
    content_hash: Optional[str] = None
    error: str
    recorded_at: str


class OrphanList(BaseModel):
    """Orphan audit listing."""
    orphans: List[OrphanEntry] = []


class OperationStatus(BaseModel):
    """Generic operation status."""
    status: str
    message: str
