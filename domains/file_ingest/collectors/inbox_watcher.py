"""
Inbox watcher.

Uses watchdog to notice files dropped into the source directory and asks
the scheduler to start its next cycle early. Import itself still happens
only inside a scheduled cycle.
"""

from pathlib import Path
from typing import Callable

from loguru import logger
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer


class InboxEventHandler(FileSystemEventHandler):
    """Calls ``wake`` for files appearing in the inbox."""

    def __init__(self, source_dir: Path, wake: Callable[[], None]):
        super().__init__()
        self.source_dir = source_dir.absolute()
        self.wake = wake

    def on_created(self, event: FileSystemEvent):
        """Handle file creation."""
        if event.is_directory:
            return
        logger.debug(f"Inbox file created: {event.src_path}")
        self.wake()

    def on_moved(self, event: FileSystemEvent):
        """Handle files renamed or moved into the inbox."""
        if event.is_directory:
            return
        # moves out to processed/error are our own
        if Path(event.dest_path).absolute().parent != self.source_dir:
            return
        logger.debug(f"Inbox file moved: {event.src_path} -> {event.dest_path}")
        self.wake()


class InboxWatcher:
    """Watchdog observer bound to the source directory."""

    def __init__(self, source_dir: Path, wake: Callable[[], None]):
        self.source_dir = source_dir
        self.handler = InboxEventHandler(source_dir, wake)
        self.observer = Observer()
        self.observer.daemon = True
        self._started = False

    def start(self) -> bool:
        """Start watching; returns False if the directory can't be watched."""
        try:
            self.observer.schedule(self.handler, str(self.source_dir), recursive=False)
            self.observer.start()
        except OSError as e:
            logger.warning(f"Failed to watch {self.source_dir}, relying on polling only: {e}")
            return False

        self._started = True
        logger.success(f"Started watching: {self.source_dir}")
        return True

    def stop(self):
        """Stop watching."""
        if not self._started:
            return
        self.observer.stop()
        self.observer.join()
        self._started = False
        logger.info("Inbox watcher stopped")
