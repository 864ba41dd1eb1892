"""
Tests for media classification and document text extraction.
"""

from types import SimpleNamespace

import pytest
from docx import Document

from formapro.evaluations.extraction import (
    DOCX_MIME,
    PDF_MIME,
    TEXT_MIME,
    ExtractedContent,
    ExtractedDocument,
    ExtractionError,
    ExtractionFailure,
    OfficeDocumentExtractor,
    extraction_summary,
)
from formapro.tests.helpers import FakeExtractor


def media(filename, mime_type, file_path=None, original_name=None, file_type="document"):
    return SimpleNamespace(
        filename=filename,
        original_name=original_name,
        file_type=file_type,
        mime_type=mime_type,
        file_path=file_path or filename,
    )


def test_summary_classifies_supported_and_unsupported_files():
    files = [
        media("deck.pdf", PDF_MIME, original_name="Deck.pdf"),
        media("clip.mp4", "video/mp4", file_type="video"),
        media("notes.txt", TEXT_MIME),
    ]

    summary = extraction_summary(files)

    assert summary["total"] == 3
    assert summary["supported"] == 2
    assert summary["unsupported"] == 1
    assert summary["supportedFiles"][0] == {"name": "Deck.pdf", "type": "document"}
    assert summary["unsupportedFiles"] == [{"name": "clip.mp4", "type": "video", "mimeType": "video/mp4"}]


def test_summary_of_no_files():
    summary = extraction_summary([])
    assert summary["total"] == summary["supported"] == summary["unsupported"] == 0


def test_combined_text_layout():
    content = ExtractedContent(
        documents=[ExtractedDocument("a.pdf", "First"), ExtractedDocument("b.docx", "Second")],
        failures=[ExtractionFailure("c.pptx", "File not found: c.pptx")],
    )

    assert content.text == (
        "=== DOCUMENT 1: a.pdf ===\nFirst"
        "\n\n=== DOCUMENT 2: b.docx ===\nSecond"
        "\n\n=== EXTRACTION NOTES ===\n"
        "The following files could not be processed:\n"
        "- c.pptx: File not found: c.pptx"
    )


def test_extract_all_records_failures_and_skips_blank_documents():
    extractor = FakeExtractor({"a.txt": "  Alpha  ", "blank.txt": "   "})
    files = [media("a.txt", TEXT_MIME), media("blank.txt", TEXT_MIME), media("missing.txt", TEXT_MIME)]

    content = extractor.extract_all(files)

    assert [d.content for d in content.documents] == ["Alpha"]
    assert [f.filename for f in content.failures] == ["missing.txt"]
    assert not content.is_empty


@pytest.mark.asyncio
async def test_extract_seance_content_runs_off_the_event_loop():
    extractor = FakeExtractor({"a.txt": "Alpha"})

    content = await extractor.extract_seance_content([media("a.txt", TEXT_MIME)])

    assert content.text == "=== DOCUMENT 1: a.txt ===\nAlpha"


class TestOfficeDocumentExtractor:
    def test_reads_plain_text_relative_to_upload_root(self, tmp_path):
        (tmp_path / "seances").mkdir()
        (tmp_path / "seances" / "notes.txt").write_text("Fire exits are marked in green.", encoding="utf-8")
        extractor = OfficeDocumentExtractor(upload_root=str(tmp_path))

        assert extractor.extract("seances/notes.txt", TEXT_MIME) == "Fire exits are marked in green."

    def test_reads_word_documents(self, tmp_path):
        path = tmp_path / "guide.docx"
        document = Document()
        document.add_paragraph("Wear gloves when handling chemicals.")
        document.add_paragraph("Report every incident.")
        document.save(str(path))

        text = OfficeDocumentExtractor().extract(str(path), DOCX_MIME)

        assert text == "Wear gloves when handling chemicals.\nReport every incident."

    def test_unsupported_type(self, tmp_path):
        with pytest.raises(ExtractionError, match="Unsupported file type"):
            OfficeDocumentExtractor(str(tmp_path)).extract("clip.mp4", "video/mp4")

    def test_missing_file(self, tmp_path):
        with pytest.raises(ExtractionError, match="File not found"):
            OfficeDocumentExtractor(str(tmp_path)).extract("absent.pdf", PDF_MIME)

    def test_corrupt_document_is_reported(self, tmp_path):
        (tmp_path / "broken.docx").write_bytes(b"not a zip archive")

        with pytest.raises(ExtractionError, match="broken.docx"):
            OfficeDocumentExtractor(str(tmp_path)).extract("broken.docx", DOCX_MIME)
