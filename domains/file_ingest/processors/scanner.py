"""
Inbox scanner and file validator.

Lists candidate files in the watched directory and applies the
acceptance checks. Rejected files are never touched: they stay in the
source directory for manual inspection.
"""

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from loguru import logger

from app.utils.config import Settings
from app.utils.helpers import format_bytes

SIGNATURE_LENGTH = 4


@dataclass(frozen=True, slots=True)
class WorkItem:
    """A validated candidate file for one scan cycle."""

    path: Path
    name: str
    size: int
    extension: str
    signature: bytes = b""

    @property
    def stem(self) -> str:
        return self.path.stem


class RejectReason(str, Enum):
    NOT_A_FILE = "not_a_file"
    UNREADABLE = "unreadable"
    EMPTY = "empty"
    TOO_LARGE = "too_large"
    EXTENSION = "extension"
    EXCLUDED = "excluded"


@dataclass(frozen=True, slots=True)
class ValidationResult:
    accepted: bool
    reason: Optional[RejectReason] = None
    detail: str = ""
    item: Optional[WorkItem] = None


def matches_exclusion(filename: str, pattern: str) -> bool:
    """
    Check a filename against one exclusion pattern.

    ``*X`` matches names ending with X, ``X*`` names starting with X and a
    pattern without wildcard matches any name containing it.
    """
    name = filename.lower()
    pattern = pattern.lower()

    if pattern.startswith("*") and name.endswith(pattern[1:]):
        return True
    if pattern.endswith("*") and name.startswith(pattern[:-1]):
        return True
    if "*" not in pattern and pattern in name:
        return True
    return False


class FileValidator:
    """Applies the inbox acceptance rules to files."""

    def __init__(self, settings: Settings):
        self.max_size = settings.max_file_size
        self.extensions = settings.get_allowed_extensions()
        self.exclude_patterns = settings.get_exclude_patterns()
        self.signature = settings.content_signature.encode("latin-1")

    def _reject(self, path: Path, reason: RejectReason, detail: str) -> ValidationResult:
        logger.debug(f"Skipping {path.name}: {detail}")
        return ValidationResult(accepted=False, reason=reason, detail=detail)

    def read_signature(self, path: Path) -> Optional[bytes]:
        """Read the leading bytes of ``path``; None if the file can't be read."""
        try:
            with open(path, "rb") as handle:
                return handle.read(SIGNATURE_LENGTH)
        except OSError as e:
            logger.warning(f"Could not read header of {path.name}: {e}")
            return None

    def validate(self, path: Path) -> ValidationResult:
        """
        Validate a single file.

        Checks run in order and the first failing one rejects the file.
        The content signature is advisory: a mismatch or an unreadable
        header is logged but does not reject.

        Args:
            path: Candidate file

        Returns:
            ValidationResult carrying the WorkItem when accepted
        """
        if not path.is_file():
            return self._reject(path, RejectReason.NOT_A_FILE, "not a regular file")

        if not os.access(path, os.R_OK):
            return self._reject(path, RejectReason.UNREADABLE, "file is not readable")

        try:
            size = path.stat().st_size
        except OSError as e:
            return self._reject(path, RejectReason.UNREADABLE, f"stat failed: {e}")

        if size == 0:
            return self._reject(path, RejectReason.EMPTY, "file is empty")

        if size > self.max_size:
            return self._reject(path, RejectReason.TOO_LARGE, f"file too large ({format_bytes(size)})")

        name = path.name
        lowered = name.lower()
        if not any(lowered.endswith(ext) for ext in self.extensions):
            return self._reject(path, RejectReason.EXTENSION, "extension not allowed")

        for pattern in self.exclude_patterns:
            if matches_exclusion(name, pattern):
                return self._reject(path, RejectReason.EXCLUDED, f"excluded by pattern {pattern}")

        signature = b""
        if self.signature:
            header = self.read_signature(path)
            if header is not None:
                signature = header
                if header != self.signature[:SIGNATURE_LENGTH]:
                    logger.warning(f"Unexpected content signature in {name}: {header!r}")

        item = WorkItem(
            path=path,
            name=name,
            size=size,
            extension=path.suffix.lower(),
            signature=signature,
        )
        return ValidationResult(accepted=True, item=item)

    def scan(self, directory: Path) -> list[WorkItem]:
        """
        List the files in ``directory`` that pass validation.

        A missing or unreadable directory yields no items. Items come back
        sorted by file name.
        """
        if not directory.is_dir():
            logger.warning(f"Source directory does not exist: {directory}")
            return []

        try:
            entries = sorted(directory.iterdir(), key=lambda p: p.name)
        except OSError as e:
            logger.warning(f"Could not list source directory {directory}: {e}")
            return []

        items = []
        for entry in entries:
            result = self.validate(entry)
            if result.accepted:
                items.append(result.item)

        logger.debug(f"Found {len(items)} valid files out of {len(entries)} entries")
        return items
