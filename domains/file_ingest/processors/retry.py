"""
Per-file retry loop with exponential backoff.

Each attempt runs the whole archive transaction. Between attempts the
loop suspends for ``time_unit * 2**attempt`` seconds; a stop request ends
the wait and the loop without touching the file.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from typing import Awaitable, Callable, List, Optional

from loguru import logger

from app.utils.config import Settings
from app.utils.helpers import interruptible_sleep
from domains.file_ingest.errors import IngestError, TransactionError, WorkflowError
from domains.file_ingest.processors.scanner import WorkItem
from domains.file_ingest.processors.transaction import ArchiveTransaction
from domains.file_ingest.processors.workflow import WorkflowTrigger

Sleep = Callable[[float], Awaitable[bool]]


class OutcomeStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class Outcome:
    """Result of processing one file."""

    status: OutcomeStatus
    record_id: Optional[str] = None
    error: Optional[Exception] = None
    attempts: int = 0
    workflow_instance: Optional[str] = None
    orphans: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status is OutcomeStatus.SUCCEEDED


@dataclass
class AttemptState:
    attempts: int = 0
    last_error: Optional[Exception] = None


def backoff_delay(attempt: int, time_unit: float = 1.0) -> float:
    """Pause after failed attempt ``attempt`` (1-indexed)."""
    return time_unit * (2 ** attempt)


class RetryController:
    """Wraps the archive transaction with bounded, backed-off attempts."""

    def __init__(
        self,
        transaction: ArchiveTransaction,
        workflow: WorkflowTrigger,
        settings: Settings,
        stop_event: Optional[asyncio.Event] = None,
        sleep: Optional[Sleep] = None,
    ):
        self.transaction = transaction
        self.workflow = workflow
        self.max_attempts = max(1, settings.retry_attempts)
        self.time_unit = settings.time_unit
        self.stop_event = stop_event
        self.sleep = sleep or partial(interruptible_sleep, stop_event=stop_event)

    def _stopping(self) -> bool:
        return self.stop_event is not None and self.stop_event.is_set()

    async def _trigger_workflow(self, record_id: str) -> Optional[str]:
        try:
            return await self.workflow.start(record_id)
        except WorkflowError as e:
            logger.warning(f"Workflow start failed for record {record_id}, but import was successful: {e}")
            return None
        except Exception as e:
            logger.exception(f"Unexpected workflow error for record {record_id}, but import was successful: {e}")
            return None

    async def process_with_retry(self, item: WorkItem) -> Outcome:
        """
        Import ``item`` with retries.

        Returns:
            Outcome; never raises for archive or transaction failures
        """
        state = AttemptState()
        orphans: List[str] = []

        while state.attempts < self.max_attempts:
            if self._stopping():
                logger.info(f"Stop requested, leaving {item.name} in place")
                return Outcome(OutcomeStatus.CANCELLED, error=state.last_error,
                               attempts=state.attempts, orphans=orphans)

            state.attempts += 1
            logger.info(f"Processing file: {item.name} (Attempt {state.attempts}/{self.max_attempts})")

            try:
                record_id = await self.transaction.import_file(item)
            except IngestError as e:
                state.last_error = e
                if isinstance(e, TransactionError) and e.orphaned:
                    orphans.append(e.record_id)
                logger.warning(f"Attempt {state.attempts} failed for file: {item.name} - {e}")

                if state.attempts < self.max_attempts:
                    delay = backoff_delay(state.attempts, self.time_unit)
                    logger.info(f"Waiting {delay:g}s before retry...")
                    if await self.sleep(delay):
                        logger.info(f"Stop requested during backoff, leaving {item.name} in place")
                        return Outcome(OutcomeStatus.CANCELLED, error=e,
                                       attempts=state.attempts, orphans=orphans)
                continue

            instance_id = await self._trigger_workflow(record_id)
            logger.info(f"Successfully imported file: {item.name} (Record ID: {record_id})")
            return Outcome(
                OutcomeStatus.SUCCEEDED,
                record_id=record_id,
                attempts=state.attempts,
                workflow_instance=instance_id,
                orphans=orphans,
            )

        logger.error(f"All {self.max_attempts} attempts failed for file: {item.name} - {state.last_error}")
        return Outcome(OutcomeStatus.FAILED, error=state.last_error,
                       attempts=state.attempts, orphans=orphans)
