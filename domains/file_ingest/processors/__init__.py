"""
File Ingestion Processors

Per-file building blocks used by the collectors:
- scanner.py - Inbox listing and file validation
- transaction.py - Record check-in, content upload and compensation
- retry.py - Attempt loop with exponential backoff
- workflow.py - Workflow start for imported records
- mover.py - Collision-safe moves to processed/error
- ledger.py - Import ledger and orphan audit
- stats.py - Process-wide counters and summaries
"""
