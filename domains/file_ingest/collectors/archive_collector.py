"""
Archive ingest collector.

One ``run_cycle`` call is one pass over the inbox: probe the archive,
scan and validate, then import each file with retries and move it to its
terminal directory. Files are processed one at a time in scan order and
one file's failure never aborts the cycle.
"""

import asyncio
import time
from dataclasses import dataclass
from functools import partial
from typing import Optional

from loguru import logger

from app.utils.archive_client import ArchiveClient
from app.utils.config import Settings
from app.utils.helpers import hash_file, interruptible_sleep
from domains.file_ingest.errors import ConnectivityError
from domains.file_ingest.processors.ledger import IMPORTED, ImportLedger
from domains.file_ingest.processors.mover import ensure_directories, move_file
from domains.file_ingest.processors.retry import Outcome, OutcomeStatus, RetryController
from domains.file_ingest.processors.scanner import FileValidator, WorkItem
from domains.file_ingest.processors.stats import IngestStats
from domains.file_ingest.processors.transaction import ArchiveTransaction
from domains.file_ingest.processors.workflow import WorkflowTrigger


@dataclass
class CycleReport:
    """Counts for one scan cycle."""

    found: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    cancelled: int = 0
    duration: float = 0.0
    archive_available: bool = True


class ArchiveIngestCollector:
    """Scan-validate-import pipeline for the watched directory."""

    def __init__(
        self,
        settings: Settings,
        client: ArchiveClient,
        stop_event: Optional[asyncio.Event] = None,
    ):
        self.settings = settings
        self.client = client
        self.stop_event = stop_event or asyncio.Event()

        sleep = partial(interruptible_sleep, stop_event=self.stop_event)
        self.validator = FileValidator(settings)
        self.transaction = ArchiveTransaction(client, settings)
        self.workflow = WorkflowTrigger(client, settings, sleep=sleep)
        self.retry = RetryController(
            self.transaction, self.workflow, settings, stop_event=self.stop_event, sleep=sleep
        )
        self.ledger = ImportLedger(settings.ledger_file)
        self.stats = IngestStats(report_every=settings.stats_every)

    def _content_hash(self, item: WorkItem) -> Optional[str]:
        if not self.ledger.durable:
            return None
        try:
            return hash_file(item.path)
        except OSError as e:
            logger.warning(f"Could not hash {item.name}: {e}")
            return None

    def _skip_known(self, item: WorkItem, content_hash: Optional[str]) -> bool:
        """Move a file already in the archive to processed instead of importing it again."""
        if content_hash is None:
            return False
        entry = self.ledger.lookup(content_hash)
        if entry is None:
            return False

        if entry.get("state") == IMPORTED:
            logger.warning(
                f"{item.name} was imported as record {entry.get('record_id')} but never moved, "
                f"completing the move"
            )
        else:
            logger.warning(
                f"{item.name} has the same content as record {entry.get('record_id')}, skipping import"
            )

        if move_file(item.path, self.settings.processed_dir) is not None:
            self.ledger.mark_processed(content_hash)
        self.stats.record_duplicate()
        return True

    def _record_orphans(self, item: WorkItem, outcome: Outcome, content_hash: Optional[str]) -> None:
        """Audit records left behind by failed compensation, whatever became of the file."""
        for record_id in outcome.orphans:
            self.ledger.record_orphan(record_id, item.name, str(outcome.error), content_hash)
        self.stats.record_orphans(len(outcome.orphans))

    def _finish(self, item: WorkItem, outcome: Outcome, content_hash: Optional[str]) -> None:
        """Record the outcome and place the file in its terminal directory."""
        if outcome.succeeded:
            if content_hash is not None:
                self.ledger.mark_imported(content_hash, outcome.record_id, item.name)
            if move_file(item.path, self.settings.processed_dir) is None:
                logger.error(f"{item.name} was imported as record {outcome.record_id} but could not be moved")
            elif content_hash is not None:
                self.ledger.mark_processed(content_hash)
        else:
            move_file(item.path, self.settings.error_dir)

        if self.stats.record(outcome.succeeded):
            self.stats.log_summary()

    async def process_item(self, item: WorkItem, report: CycleReport) -> None:
        content_hash = self._content_hash(item)
        if self._skip_known(item, content_hash):
            report.skipped += 1
            return

        outcome = await self.retry.process_with_retry(item)
        self._record_orphans(item, outcome, content_hash)
        if outcome.status is OutcomeStatus.CANCELLED:
            report.cancelled += 1
            return

        self._finish(item, outcome, content_hash)
        if outcome.succeeded:
            report.succeeded += 1
        else:
            report.failed += 1

    async def run_cycle(self) -> CycleReport:
        """Run one scan-and-import pass over the inbox."""
        started = time.monotonic()
        report = CycleReport()
        self.stats.mark_cycle()

        logger.info(f"Starting import cycle #{self.stats.cycles}")

        try:
            await self.transaction.probe()
        except ConnectivityError as e:
            logger.error(f"{e}; skipping this cycle")
            report.archive_available = False
            report.duration = time.monotonic() - started
            return report

        ensure_directories(self.settings)

        items = self.validator.scan(self.settings.source_dir)
        report.found = len(items)
        if not items:
            logger.debug("No valid files found in source directory")
            report.duration = time.monotonic() - started
            return report

        logger.info(f"Found {len(items)} valid files to process")

        for index, item in enumerate(items):
            if self.stop_event.is_set():
                logger.info("Stop requested, ending cycle early")
                report.cancelled += len(items) - index
                break

            try:
                await self.process_item(item, report)
            except Exception as e:
                logger.exception(f"Unhandled error processing file: {item.name}: {e}")
                move_file(item.path, self.settings.error_dir)
                if self.stats.record(False):
                    self.stats.log_summary()
                report.failed += 1

        report.duration = time.monotonic() - started
        logger.info(
            f"Import cycle completed. Success: {report.succeeded}, Errors: {report.failed}, "
            f"Skipped: {report.skipped}, Duration: {report.duration * 1000:.0f}ms"
        )
        return report
