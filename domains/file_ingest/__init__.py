"""
File Ingestion Domain

Monitors the inbox directory for documents and files them into the archive:
- Scan and validate candidate files (extension, size, exclusions, signature)
- Import each file as an archive record with content, retrying with backoff
- Start the downstream workflow for every imported record
- Move files to processed/ or error/ once their fate is known
"""

__all__ = ["collectors", "processors"]
