import re

from domains.file_ingest.processors import mover
from domains.file_ingest.processors.mover import ensure_directories, move_file, resolve_target
from tests.fakes import write_pdf


def test_move_into_empty_target(tmp_path):
    source = write_pdf(tmp_path / "inbox" / "invoice1.pdf")
    target_dir = tmp_path / "processed"
    target_dir.mkdir()

    moved = move_file(source, target_dir)

    assert moved == target_dir / "invoice1.pdf"
    assert moved.exists()
    assert not source.exists()


def test_collision_inserts_timestamp_before_extension(tmp_path):
    target_dir = tmp_path / "processed"
    existing = write_pdf(target_dir / "invoice1.pdf", header=b"%PDF old")
    source = write_pdf(tmp_path / "inbox" / "invoice1.pdf", header=b"%PDF new")

    moved = move_file(source, target_dir)

    assert re.fullmatch(r"invoice1_\d{13}\.pdf", moved.name)
    assert existing.read_bytes().startswith(b"%PDF old")
    assert moved.read_bytes().startswith(b"%PDF new")


def test_same_millisecond_collision_still_distinct(tmp_path, monkeypatch):
    monkeypatch.setattr(mover, "epoch_millis", lambda: 1700000000000)
    target_dir = tmp_path / "processed"
    write_pdf(target_dir / "a.pdf")
    write_pdf(target_dir / "a_1700000000000.pdf")

    target = resolve_target(tmp_path / "a.pdf", target_dir)

    assert target == target_dir / "a_1700000000000_1.pdf"


def test_repeated_moves_never_overwrite(tmp_path):
    target_dir = tmp_path / "processed"
    target_dir.mkdir()

    for i in range(5):
        source = write_pdf(tmp_path / "inbox" / "invoice1.pdf", header=f"%PDF {i}".encode())
        assert move_file(source, target_dir) is not None

    assert len(list(target_dir.iterdir())) == 5


def test_failed_move_leaves_source_in_place(tmp_path, log_messages):
    source = write_pdf(tmp_path / "inbox" / "invoice1.pdf")

    moved = move_file(source, tmp_path / "missing-dir")

    assert moved is None
    assert source.exists()
    assert any(m.startswith("ERROR") and "Failed to move" in m for m in log_messages)


def test_ensure_directories_creates_lifecycle_dirs(settings, tmp_path):
    settings.ledger_file = tmp_path / "state" / "ledger.json"

    assert ensure_directories(settings)

    for directory in (settings.source_dir, settings.processed_dir, settings.error_dir, tmp_path / "state"):
        assert directory.is_dir()


def test_ensure_directories_reports_failure(settings, tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    settings.error_dir = blocker / "error"

    assert not ensure_directories(settings)
    assert settings.processed_dir.is_dir()
