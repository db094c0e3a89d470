import pytest

from app.utils.config import Settings
from domains.file_ingest.processors import scanner
from domains.file_ingest.processors.scanner import FileValidator, RejectReason, matches_exclusion
from tests.fakes import write_pdf


def test_valid_pdf_is_accepted(settings, inbox):
    path = write_pdf(inbox / "invoice1.pdf")

    result = FileValidator(settings).validate(path)

    assert result.accepted
    assert result.item.name == "invoice1.pdf"
    assert result.item.size == 10 * 1024
    assert result.item.extension == ".pdf"
    assert result.item.signature == b"%PDF"


def test_extension_check_is_case_insensitive(settings, inbox):
    path = write_pdf(inbox / "SCAN_0001.PDF")

    assert FileValidator(settings).validate(path).accepted


@pytest.mark.parametrize(
    "name, content, reason",
    [
        ("notes.txt", b"%PDF-1.4 hello", RejectReason.EXTENSION),
        ("empty.pdf", b"", RejectReason.EMPTY),
        ("temp_upload.pdf", b"%PDF-1.4", RejectReason.EXCLUDED),
        (".hidden.pdf", b"%PDF-1.4", RejectReason.EXCLUDED),
    ],
)
def test_rejections(settings, inbox, name, content, reason):
    path = inbox / name
    path.write_bytes(content)

    result = FileValidator(settings).validate(path)

    assert not result.accepted
    assert result.reason == reason


def test_directory_is_not_a_file(settings, inbox):
    (inbox / "nested.pdf").mkdir()

    result = FileValidator(settings).validate(inbox / "nested.pdf")

    assert result.reason == RejectReason.NOT_A_FILE


def test_oversized_file_rejected(tmp_path):
    settings = Settings(max_file_size_mb=1, _env_file=None)
    path = write_pdf(tmp_path / "big.pdf", size=1024 * 1024 + 1)

    result = FileValidator(settings).validate(path)

    assert result.reason == RejectReason.TOO_LARGE


def test_file_at_size_limit_accepted(tmp_path):
    settings = Settings(max_file_size_mb=1, _env_file=None)
    path = write_pdf(tmp_path / "exact.pdf", size=1024 * 1024)

    assert FileValidator(settings).validate(path).accepted


def test_signature_mismatch_only_warns(settings, inbox, log_messages):
    path = inbox / "bad.pdf"
    path.write_bytes(b"GIF89a not really a pdf")

    result = FileValidator(settings).validate(path)

    assert result.accepted
    assert any(m.startswith("WARNING") and "bad.pdf" in m for m in log_messages)


def test_unreadable_header_does_not_reject(settings, inbox, monkeypatch, log_messages):
    path = write_pdf(inbox / "locked.pdf")

    def refuse(*args, **kwargs):
        raise PermissionError("locked by scanner")

    monkeypatch.setattr(scanner, "open", refuse, raising=False)
    result = FileValidator(settings).validate(path)

    assert result.accepted
    assert result.item.signature == b""
    assert any("Could not read header" in m for m in log_messages)


@pytest.mark.parametrize(
    "filename, pattern, expected",
    [
        ("invoice.pdf.part", "*.part", True),
        ("temp_invoice.pdf", "temp_*", True),
        ("draft-invoice.pdf", "draft", True),
        ("invoice.pdf", "*.part", False),
        ("invoice_temp.pdf", "temp_*", False),
        ("Invoice_DRAFT.pdf", "draft", True),
    ],
)
def test_exclusion_pattern_forms(filename, pattern, expected):
    assert matches_exclusion(filename, pattern) is expected


def test_validation_is_deterministic(settings, inbox):
    path = write_pdf(inbox / "same.pdf")
    validator = FileValidator(settings)

    first = validator.validate(path)
    second = FileValidator(settings).validate(path)

    assert first == second


def test_scan_returns_only_valid_files_and_leaves_others(settings, inbox):
    write_pdf(inbox / "invoice1.pdf")
    write_pdf(inbox / "invoice2.pdf")
    (inbox / "notes.txt").write_text("meeting notes")
    (inbox / "subdir").mkdir()

    items = FileValidator(settings).scan(inbox)

    assert sorted(item.name for item in items) == ["invoice1.pdf", "invoice2.pdf"]
    assert (inbox / "notes.txt").exists()


def test_scan_of_missing_directory_is_empty(settings, tmp_path):
    assert FileValidator(settings).scan(tmp_path / "does-not-exist") == []


def test_scan_is_sorted_by_name(settings, inbox):
    for name in ("c.pdf", "a.pdf", "b.pdf"):
        write_pdf(inbox / name)

    assert [item.name for item in FileValidator(settings).scan(inbox)] == ["a.pdf", "b.pdf", "c.pdf"]
