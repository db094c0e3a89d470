"""
File Ingestion Collectors

Long-running services that drive the inbox pipeline:
- archive_collector.py - One scan-validate-import pass over the inbox
- scheduler.py - Fixed-interval, non-overlapping cycle runner
- inbox_watcher.py - Filesystem events that start the next cycle early
"""
