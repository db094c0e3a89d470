"""Terminal placement of inbox files (processed / error directories)."""

from pathlib import Path
from typing import Optional

from loguru import logger

from app.utils.config import Settings
from app.utils.helpers import epoch_millis


def resolve_target(path: Path, target_dir: Path) -> Path:
    """
    Compute a free destination for ``path`` inside ``target_dir``.

    An existing file of the same name is never overwritten: the epoch
    milliseconds are inserted before the extension, and a counter is added
    if that name is taken too.
    """
    target = target_dir / path.name
    if not target.exists():
        return target

    stamp = epoch_millis()
    target = target_dir / f"{path.stem}_{stamp}{path.suffix}"
    counter = 1
    while target.exists():
        target = target_dir / f"{path.stem}_{stamp}_{counter}{path.suffix}"
        counter += 1
    return target


def move_file(path: Path, target_dir: Path) -> Optional[Path]:
    """
    Move ``path`` into ``target_dir`` with a single rename.

    Returns:
        The new location, or None if the move failed (the file stays put)
    """
    try:
        target = resolve_target(path, target_dir)
        path.rename(target)
    except OSError as e:
        logger.error(f"Failed to move {path} to {target_dir}: {e}")
        return None

    logger.debug(f"Moved file to: {target}")
    return target


def create_directory(directory: Path) -> bool:
    """Create ``directory`` (and parents) if missing."""
    if directory.is_dir():
        return True
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error(f"Failed to create directory {directory}: {e}")
        return False
    logger.info(f"Created directory: {directory}")
    return True


def ensure_directories(settings: Settings) -> bool:
    """Create the source, processed and error directories."""
    directories = [settings.source_dir, settings.processed_dir, settings.error_dir]
    if settings.ledger_file is not None:
        directories.append(settings.ledger_file.parent)

    return all([create_directory(directory) for directory in directories])
