"""
Fixed-interval scheduler for the ingest collector.

Runs a cycle at startup and then every ``interval`` seconds. Cycles never
overlap: the wait only starts once the previous cycle has returned. The
wait ends early on a wake request (inbox event, manual trigger) or on stop.
"""

import asyncio
from typing import Optional

from loguru import logger

from domains.file_ingest.collectors.archive_collector import ArchiveIngestCollector, CycleReport


class IngestScheduler:
    """Drives ``ArchiveIngestCollector.run_cycle`` until stopped."""

    def __init__(
        self,
        collector: ArchiveIngestCollector,
        interval: float,
        stop_event: Optional[asyncio.Event] = None,
        wake_event: Optional[asyncio.Event] = None,
    ):
        self.collector = collector
        self.interval = interval
        self.stop_event = stop_event or collector.stop_event
        self.wake_event = wake_event or asyncio.Event()
        self.cycles = 0
        self.last_report: Optional[CycleReport] = None

    def wake(self) -> None:
        """Ask for the next cycle to start without waiting out the interval."""
        self.wake_event.set()

    def stop(self) -> None:
        self.stop_event.set()

    async def run_once(self) -> Optional[CycleReport]:
        """Run a single cycle; errors are logged, never raised."""
        self.cycles += 1
        try:
            self.last_report = await self.collector.run_cycle()
        except Exception as e:
            logger.exception(f"Critical error in import cycle: {e}")
            return None
        return self.last_report

    async def _wait(self) -> None:
        stop = asyncio.ensure_future(self.stop_event.wait())
        wake = asyncio.ensure_future(self.wake_event.wait())
        try:
            await asyncio.wait({stop, wake}, timeout=self.interval, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in (stop, wake):
                waiter.cancel()
        self.wake_event.clear()

    async def run(self) -> None:
        """Run cycles until the stop event is set."""
        logger.info(f"Ingest scheduler running with {self.interval:g} second interval")

        while not self.stop_event.is_set():
            self.wake_event.clear()
            await self.run_once()
            if self.stop_event.is_set():
                break
            await self._wait()

        logger.info("Ingest scheduler stopped")
