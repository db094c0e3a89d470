"""
Configuration management for the Archive Ingest service.

Uses pydantic-settings to load configuration from environment variables
and .env files. The structured JSON document used by the legacy import
scripts (``config.json``) is also understood and overrides the environment.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger
from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Filesystem lifecycle
    source_dir: Path = Path("/var/lib/archive-ingest/inbox")
    processed_dir: Path = Path("/var/lib/archive-ingest/inbox/processed")
    error_dir: Path = Path("/var/lib/archive-ingest/inbox/error")

    # Archive Configuration
    archive_url: str = "http://localhost:9090/ix-archive/api"
    archive_user: Optional[str] = None
    archive_password: Optional[str] = None
    archive_path: str = "¶Eingangsrechnungen"
    metadata_mask: str = "Eingangsrechnung"
    workflow_template: str = "dps.invoice.Base"
    connection_timeout: float = 30.0  # seconds

    # Scheduling
    poll_interval: int = 30  # seconds
    watch_events: bool = True

    # File filters
    max_file_size_mb: int = 50
    allowed_extensions: str = ".pdf"
    exclude_patterns: str = "temp_*,.*"
    content_signature: str = "%PDF"

    # Retry policy
    retry_attempts: int = 3
    workflow_attempts: int = 2
    time_unit: float = 1.0  # seconds per backoff unit

    # Bookkeeping
    stats_every: int = 10
    ledger_file: Optional[Path] = None

    # API Configuration
    api_port: int = 8000
    log_level: str = "INFO"
    api_title: str = "Archive Ingest API"
    api_version: str = "1.0.0"

    model_config = SettingsConfigDict(
        env_prefix="INGEST_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def max_file_size(self) -> int:
        """Maximum accepted file size in bytes."""
        return self.max_file_size_mb * 1024 * 1024

    def get_allowed_extensions(self) -> list[str]:
        """Parse allowed extensions into lowercase, dot-prefixed list."""
        extensions = []
        for ext in self.allowed_extensions.split(','):
            ext = ext.strip().lower()
            if not ext:
                continue
            extensions.append(ext if ext.startswith('.') else f".{ext}")
        return extensions

    def get_exclude_patterns(self) -> list[str]:
        """Parse exclusion patterns into list."""
        return [p.strip() for p in self.exclude_patterns.split(',') if p.strip()]


# Legacy config.json layout: (section, key, ...) -> settings field
_DOCUMENT_FIELDS = {
    ("settings", "sourceDirectory"): "source_dir",
    ("settings", "archivePath"): "archive_path",
    ("settings", "metadataMask"): "metadata_mask",
    ("settings", "workflowTemplate"): "workflow_template",
    ("settings", "processedDirectory"): "processed_dir",
    ("settings", "errorDirectory"): "error_dir",
    ("settings", "intervalSeconds"): "poll_interval",
    ("settings", "logging", "level"): "log_level",
    ("fileFilters", "maxFileSizeMB"): "max_file_size_mb",
    ("fileFilters", "extensions"): "allowed_extensions",
    ("fileFilters", "excludePatterns"): "exclude_patterns",
    ("eloConnection", "url"): "archive_url",
    ("eloConnection", "user"): "archive_user",
    ("eloConnection", "password"): "archive_password",
    ("eloConnection", "retryAttempts"): "retry_attempts",
    ("eloConnection", "timeout"): "connection_timeout",
}


def _lookup(document: Dict[str, Any], keys: tuple) -> Any:
    node: Any = document
    for key in keys:
        if not isinstance(node, dict) or key not in node:
            return None
        node = node[key]
    return node


def parse_config_document(document: Dict[str, Any]) -> Dict[str, Any]:
    """
    Flatten a structured configuration document into Settings kwargs.

    Both the nested legacy layout and flat field names are accepted;
    flat names win when both are given.

    Args:
        document: Parsed JSON document

    Returns:
        Keyword arguments for Settings
    """
    if not isinstance(document, dict):
        raise ValueError("Configuration document must be a JSON object")

    overrides: Dict[str, Any] = {}

    for keys, field in _DOCUMENT_FIELDS.items():
        value = _lookup(document, keys)
        if value is None:
            continue
        if field == "connection_timeout":
            value = float(value) / 1000.0  # legacy value is milliseconds
        if isinstance(value, list):
            value = ",".join(str(v) for v in value)
        overrides[field] = value

    for field in Settings.model_fields:
        if field in document:
            value = document[field]
            if isinstance(value, list):
                value = ",".join(str(v) for v in value)
            overrides[field] = value

    return overrides


def load_settings(config_file: Optional[Path] = None) -> Settings:
    """
    Load settings, optionally overlaid with a JSON configuration document.

    An absent, unreadable or invalid document falls back to built-in
    defaults (plus environment) and logs a warning.
    """
    if config_file is None:
        logger.warning("No configuration document given, using default configuration")
        return Settings()

    try:
        document = json.loads(Path(config_file).read_text(encoding="utf-8"))
        return Settings(**parse_config_document(document))
    except FileNotFoundError:
        logger.warning(f"{config_file} not found, using default configuration")
    except (OSError, ValueError, ValidationError) as e:
        logger.warning(f"Could not load {config_file} ({e}), using default configuration")

    return Settings()


@lru_cache()
def get_settings(config_file: Optional[Path] = None) -> Settings:
    """Get cached settings instance."""
    return load_settings(config_file)
