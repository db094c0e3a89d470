"""
Error taxonomy for the file ingestion pipeline.

Every error raised inside one file's processing is an ``IngestError``;
the retry controller turns them into attempt outcomes so none of them
escapes a cycle.
"""

from enum import Enum
from typing import Optional


class CompensationOutcome(str, Enum):
    """What happened to a record created by a failed transaction."""

    NOT_NEEDED = "not_needed"  # failed before the record existed
    COMPENSATED = "compensated"  # record deleted again
    ORPHANED = "orphaned"  # delete failed, record left behind


class IngestError(Exception):
    """Base class for ingestion failures."""


class ConnectivityError(IngestError):
    """Archive unreachable before any record was created."""


class TransactionError(IngestError):
    """Record creation, metadata assignment or upload failed."""

    def __init__(
        self,
        message: str,
        record_id: Optional[str] = None,
        compensation: CompensationOutcome = CompensationOutcome.NOT_NEEDED,
    ):
        super().__init__(message)
        self.record_id = record_id
        self.compensation = compensation

    @property
    def orphaned(self) -> bool:
        return self.compensation is CompensationOutcome.ORPHANED


class WorkflowError(IngestError):
    """Downstream workflow could not be started."""

