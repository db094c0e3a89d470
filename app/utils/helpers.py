"""
Helper utilities for the Archive Ingest service.

Common functions used across the ingestion domain.
"""

import asyncio
import hashlib
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

CHUNK_SIZE = 1024 * 1024


def hash_file(path: Path) -> str:
    """Generate SHA256 hash of a file's content."""
    digest = hashlib.sha256()
    with open(path, "rb") as handle:
        for chunk in iter(lambda: handle.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def now_iso() -> str:
    """Get current timestamp as ISO string."""
    return datetime.now(timezone.utc).isoformat()


def epoch_millis() -> int:
    """Milliseconds since the epoch."""
    return int(time.time() * 1000)


def strip_path_marker(name: str) -> str:
    """
    Remove a leading archive path marker from a container name.

    Archive paths are written as ``¶Folder`` (or ``/Folder``); the display
    name of the container is the part after the marker.
    """
    return name.lstrip("¶/\\")


def format_bytes(bytes_count: float) -> str:
    """Format bytes as human-readable string."""
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if bytes_count < 1024.0:
            return f"{bytes_count:.1f} {unit}"
        bytes_count /= 1024.0
    return f"{bytes_count:.1f} PB"


async def interruptible_sleep(seconds: float, stop_event: Optional[asyncio.Event] = None) -> bool:
    """
    Suspend for ``seconds`` unless ``stop_event`` is set first.

    Returns:
        True if the stop event ended the wait, False if the full delay elapsed
    """
    if stop_event is None:
        await asyncio.sleep(seconds)
        return False

    if stop_event.is_set():
        return True

    try:
        await asyncio.wait_for(stop_event.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        return False
    return True
