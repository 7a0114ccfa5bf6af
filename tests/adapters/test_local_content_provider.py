from __future__ import annotations

from pathlib import Path

import pytest

import autohire.pdf_utils as pdf_utils
from autohire.adapters import InMemoryContentProvider, LocalFileContentProvider
from autohire.errors import ContentUnavailable


def test_reads_text_resume(tmp_path: Path) -> None:
    (tmp_path / "cv.md").write_text("# Jane\nPython\x00 engineer\n", encoding="utf-8")

    text = LocalFileContentProvider(tmp_path).fetch_text("cv.md")

    assert text == "# Jane\nPython engineer"


def test_long_text_is_truncated(tmp_path: Path) -> None:
    (tmp_path / "cv.txt").write_text("x" * 50, encoding="utf-8")

    text = LocalFileContentProvider(tmp_path, max_chars=10).fetch_text("cv.txt")

    assert text == "x" * 10 + "\n\n[TRUNCATED]"


def test_pdf_resume_uses_markdown_extraction(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    pdf_file = tmp_path / "cv.pdf"
    pdf_file.write_bytes(b"%PDF-1.4\n% Dummy")
    monkeypatch.setattr(pdf_utils.pymupdf4llm, "to_markdown", lambda path: "Jane Doe\n2 / 3\nPython")

    text = LocalFileContentProvider(tmp_path).fetch_text("cv.pdf")

    assert text == "Jane Doe\nPython"


def test_scanned_pdf_without_text_is_unavailable(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "scan.pdf").write_bytes(b"%PDF-1.4\n% Dummy")
    monkeypatch.setattr(pdf_utils.pymupdf4llm, "to_markdown", lambda path: "\n\n")

    with pytest.raises(ContentUnavailable):
        LocalFileContentProvider(tmp_path).fetch_text("scan.pdf")


@pytest.mark.parametrize("file_ref", ["missing.txt", "../outside.txt", "cv.docx"])
def test_unreadable_references(tmp_path: Path, file_ref: str) -> None:
    storage = tmp_path / "storage"
    storage.mkdir()
    (tmp_path / "outside.txt").write_text("secret", encoding="utf-8")
    (storage / "cv.docx").write_bytes(b"PK")

    with pytest.raises(ContentUnavailable):
        LocalFileContentProvider(storage).fetch_text(file_ref)


def test_in_memory_provider() -> None:
    provider = InMemoryContentProvider({"a.txt": "Python"})
    provider.put("b.txt", "  ")

    assert provider.fetch_text("a.txt") == "Python"
    with pytest.raises(ContentUnavailable):
        provider.fetch_text("b.txt")
    with pytest.raises(ContentUnavailable):
        provider.fetch_text("c.txt")
