import json

import httpx
import pytest

from app.utils.archive_client import ArchiveClient
from scripts import ingest_service
from tests.fakes import ARCHIVE_URL, write_pdf


@pytest.fixture
def fake_client(archive, monkeypatch):
    """Route every client the service builds to the in-memory archive."""

    def build(**kwargs):
        return ArchiveClient(transport=httpx.MockTransport(archive.handle), **kwargs)

    monkeypatch.setattr(ingest_service, "ArchiveClient", build)


def test_parse_args_defaults():
    args = ingest_service.parse_args([])

    assert args.config.name == "config.json"
    assert not args.once
    assert not args.no_watch


async def test_once_imports_and_exits_clean(settings, inbox, archive, fake_client):
    write_pdf(inbox / "invoice1.pdf")

    assert await ingest_service.serve(settings, once=True) == ingest_service.EXIT_OK
    assert (settings.processed_dir / "invoice1.pdf").exists()


async def test_once_with_failed_file(settings, inbox, archive, fake_client):
    write_pdf(inbox / "invoice1.pdf")
    archive.fail("checkin")

    assert await ingest_service.serve(settings, once=True) == ingest_service.EXIT_FILES_FAILED
    assert (settings.error_dir / "invoice1.pdf").exists()


async def test_archive_down_at_startup(settings, inbox, archive, fake_client):
    write_pdf(inbox / "invoice1.pdf")
    archive.down = True

    assert await ingest_service.serve(settings, once=True) == ingest_service.EXIT_ARCHIVE_DOWN
    assert (inbox / "invoice1.pdf").exists()


def test_main_reads_legacy_config(tmp_path, archive, fake_client):
    inbox = tmp_path / "Eingang"
    write_pdf(inbox / "invoice1.pdf")
    config = tmp_path / "config.json"
    config.write_text(json.dumps({
        "settings": {
            "sourceDirectory": str(inbox),
            "processedDirectory": str(tmp_path / "done"),
            "errorDirectory": str(tmp_path / "failed"),
        },
        "eloConnection": {"url": ARCHIVE_URL, "user": "", "password": "", "timeout": 5000},
        "time_unit": 0,
    }))

    assert ingest_service.main(["--once", "--no-watch", "--config", str(config)]) == 0
    assert (tmp_path / "done" / "invoice1.pdf").exists()
