"""Shared fixtures."""

from pathlib import Path
from typing import List

import httpx
import pytest
from loguru import logger

from app.utils.archive_client import ArchiveClient
from app.utils.config import Settings
from tests.fakes import ARCHIVE_URL, FakeArchive


@pytest.fixture
def archive() -> FakeArchive:
    return FakeArchive()


@pytest.fixture
def client(archive: FakeArchive) -> ArchiveClient:
    return ArchiveClient(
        base_url=ARCHIVE_URL,
        timeout=5.0,
        user="",
        password="",
        transport=httpx.MockTransport(archive.handle),
    )


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        source_dir=tmp_path / "inbox",
        processed_dir=tmp_path / "processed",
        error_dir=tmp_path / "error",
        archive_url=ARCHIVE_URL,
        time_unit=0.0,
        poll_interval=1,
        watch_events=False,
        _env_file=None,
    )


@pytest.fixture
def inbox(settings: Settings) -> Path:
    settings.source_dir.mkdir(parents=True, exist_ok=True)
    return settings.source_dir


@pytest.fixture
def log_messages():
    """Collect loguru output as ``LEVEL message`` strings."""
    messages: List[str] = []
    handler_id = logger.add(lambda m: messages.append(f"{m.record['level'].name} {m.record['message']}"))
    yield messages
    logger.remove(handler_id)

