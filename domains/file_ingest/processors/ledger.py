"""
Durable import ledger.

Keyed by content hash, the ledger remembers which files already produced
an archive record so a file whose move failed is not imported a second
time, and it keeps an audit trail of records orphaned by a failed
compensating delete.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, Optional

from loguru import logger

from app.utils.helpers import now_iso

IMPORTED = "imported"
PROCESSED = "processed"


class ImportLedger:
    """JSON-backed ledger of imported content and orphaned records."""

    def __init__(self, path: Optional[Path] = None):
        self.path = path
        self.entries: Dict[str, Dict[str, object]] = {}
        self.orphan_log: List[Dict[str, object]] = []
        self.load()

    def load(self) -> None:
        """Read the ledger from disk; a missing or corrupt file starts empty."""
        if self.path is None or not self.path.exists():
            return

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            self.entries = dict(data.get("entries", {}))
            self.orphan_log = list(data.get("orphans", []))
        except (OSError, ValueError, AttributeError) as e:
            logger.warning(f"Ignoring unreadable ledger {self.path}: {e}")
            self.entries = {}
            self.orphan_log = []

    def save(self) -> None:
        """Persist the ledger atomically; an in-memory ledger is not written."""
        if self.path is None:
            return

        payload = {"entries": self.entries, "orphans": self.orphan_log}
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            tmp_path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
            tmp_path.replace(self.path)
        except OSError as e:
            logger.error(f"Failed to write ledger {self.path}: {e}")

    @property
    def durable(self) -> bool:
        return self.path is not None

    def lookup(self, content_hash: str) -> Optional[Dict[str, object]]:
        return self.entries.get(content_hash)

    def mark_imported(self, content_hash: str, record_id: str, filename: str) -> None:
        """Record that ``content_hash`` is in the archive but not yet moved."""
        self.entries[content_hash] = {
            "record_id": record_id,
            "file": filename,
            "state": IMPORTED,
            "imported_at": now_iso(),
        }
        self.save()

    def mark_processed(self, content_hash: str) -> None:
        entry = self.entries.get(content_hash)
        if entry is None:
            return
        entry["state"] = PROCESSED
        entry["processed_at"] = now_iso()
        self.save()

    def record_orphan(
        self,
        record_id: str,
        filename: str,
        error: str,
        content_hash: Optional[str] = None,
    ) -> None:
        self.orphan_log.append(
            {
                "record_id": record_id,
                "file": filename,
                "content_hash": content_hash,
                "error": error,
                "recorded_at": now_iso(),
            }
        )
        self.save()

    def orphans(self) -> List[Dict[str, object]]:
        return list(self.orphan_log)
