"""
Process-wide ingestion counters.

Outcomes are fed in by the collector; every ``stats_every`` completed
files a summary block is logged.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from loguru import logger

from app.models.schemas import StatsSummary


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class IngestStats:
    """Counters that live for the lifetime of the process."""

    report_every: int = 10
    succeeded: int = 0
    failed: int = 0
    orphaned: int = 0
    duplicates_skipped: int = 0
    cycles: int = 0
    started_at: datetime = field(default_factory=_now)
    last_run: Optional[datetime] = None

    @property
    def completed(self) -> int:
        return self.succeeded + self.failed

    def mark_cycle(self) -> None:
        self.cycles += 1
        self.last_run = _now()

    def record(self, succeeded: bool) -> bool:
        """
        Count one finished file.

        Returns:
            True when a periodic summary is due
        """
        if succeeded:
            self.succeeded += 1
        else:
            self.failed += 1

        return self.report_every > 0 and self.completed % self.report_every == 0

    def record_orphans(self, count: int) -> None:
        self.orphaned += count

    def record_duplicate(self) -> None:
        self.duplicates_skipped += 1

    def success_rate(self) -> Optional[float]:
        """Percent of completed files that were imported; None before any."""
        if self.completed == 0:
            return None
        return round(self.succeeded / self.completed * 100, 1)

    def uptime_hours(self) -> float:
        return round((_now() - self.started_at).total_seconds() / 3600, 2)

    def summary(self) -> StatsSummary:
        return StatsSummary(
            uptime_hours=self.uptime_hours(),
            succeeded=self.succeeded,
            failed=self.failed,
            orphaned=self.orphaned,
            duplicates_skipped=self.duplicates_skipped,
            cycles=self.cycles,
            success_rate=self.success_rate(),
            started_at=self.started_at,
            last_run=self.last_run,
        )

    def log_summary(self) -> None:
        rate = self.success_rate()
        logger.info("=== Archive Ingest Statistics ===")
        logger.info(f"Uptime: {self.uptime_hours()} hours")
        logger.info(f"Total processed: {self.succeeded}")
        logger.info(f"Total errors: {self.failed}")
        logger.info(f"Success rate: {'n/a' if rate is None else f'{rate}%'}")
        if self.orphaned:
            logger.info(f"Orphaned records: {self.orphaned}")
        logger.info(f"Last run: {self.last_run.isoformat() if self.last_run else 'Never'}")
        logger.info("=================================")
