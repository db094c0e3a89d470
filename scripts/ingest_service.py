#!/usr/bin/env python3
"""Headless runner for the archive ingest service.

Polls the configured inbox, imports valid files into the archive and
moves them to the processed or error directory. Runs until SIGINT/SIGTERM,
or for a single cycle with ``--once``.

Exit codes: 0 clean stop, 1 startup failure, 2 archive unreachable at
startup, 3 ``--once`` cycle with failed files.
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

sys.path.insert(0, str(Path(__file__).parent.parent))

from app.utils.archive_client import ArchiveClient
from app.utils.config import Settings, load_settings
from app.utils.log_setup import setup_logging
from domains.file_ingest.collectors.archive_collector import ArchiveIngestCollector
from domains.file_ingest.collectors.inbox_watcher import InboxWatcher
from domains.file_ingest.collectors.scheduler import IngestScheduler
from domains.file_ingest.errors import ConnectivityError
from domains.file_ingest.processors.mover import ensure_directories

EXIT_OK = 0
EXIT_STARTUP = 1
EXIT_ARCHIVE_DOWN = 2
EXIT_FILES_FAILED = 3


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse CLI arguments."""

    parser = argparse.ArgumentParser(
        description="Import files from a watched directory into the document archive.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("config.json"),
        help="Structured configuration document (default: ./config.json).",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single import cycle and exit.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override the configured log level.",
    )
    parser.add_argument(
        "--no-watch",
        action="store_true",
        help="Disable filesystem events; rely on the poll interval only.",
    )

    return parser.parse_args(argv)


def log_banner(settings: Settings) -> None:
    logger.info("=== Archive Ingest Service Starting ===")
    logger.info("Configuration loaded:")
    logger.info(f"- Source Directory: {settings.source_dir}")
    logger.info(f"- Archive Path: {settings.archive_path}")
    logger.info(f"- Metadata Mask: {settings.metadata_mask}")
    logger.info(f"- Workflow Template: {settings.workflow_template}")
    logger.info(f"- Interval: {settings.poll_interval} seconds")
    logger.info(f"- Max File Size: {settings.max_file_size_mb} MB")
    logger.info(f"- Retry Attempts: {settings.retry_attempts}")
    logger.info("=======================================")


async def serve(settings: Settings, once: bool = False, watch: bool = True) -> int:
    """Run the ingest loop; returns the process exit code."""
    client = ArchiveClient(
        base_url=settings.archive_url,
        timeout=settings.connection_timeout,
        user=settings.archive_user,
        password=settings.archive_password,
    )
    stop_event = asyncio.Event()
    collector = ArchiveIngestCollector(settings, client, stop_event=stop_event)
    scheduler = IngestScheduler(collector, settings.poll_interval, stop_event=stop_event)

    try:
        try:
            await collector.transaction.probe()
        except ConnectivityError as e:
            logger.error(f"Initial archive connection validation failed. Service will not start: {e}")
            return EXIT_ARCHIVE_DOWN

        ensure_directories(settings)

        if once:
            report = await collector.run_cycle()
            return EXIT_FILES_FAILED if report.failed else EXIT_OK

        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, _request_stop, scheduler, signum)
            except NotImplementedError:  # pragma: no cover - Windows
                signal.signal(signum, lambda s, f: loop.call_soon_threadsafe(_request_stop, scheduler, s))

        watcher = None
        if watch:
            watcher = InboxWatcher(settings.source_dir, lambda: loop.call_soon_threadsafe(scheduler.wake))
            watcher.start()

        try:
            await scheduler.run()
        finally:
            if watcher is not None:
                watcher.stop()

        collector.stats.log_summary()
        return EXIT_OK
    finally:
        await client.close()


def _request_stop(scheduler: IngestScheduler, signum: int) -> None:
    logger.info(f"Received signal {signum}, shutting down.")
    scheduler.stop()


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the CLI script."""

    args = parse_args(argv)
    setup_logging(args.log_level or "INFO")

    try:
        settings = load_settings(args.config)
    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")
        return EXIT_STARTUP

    setup_logging(args.log_level or settings.log_level)
    log_banner(settings)

    try:
        return asyncio.run(serve(settings, once=args.once, watch=settings.watch_events and not args.no_watch))
    except KeyboardInterrupt:
        logger.info("Archive ingest service stopped by user")
        return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - CLI bridge
    sys.exit(main())
