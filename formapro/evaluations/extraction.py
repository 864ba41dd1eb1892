"""
Document Content Extraction

Turns the documents uploaded for a session into plain text for question
generation. ``DocumentExtractor`` is the capability the evaluation service
depends on; ``OfficeDocumentExtractor`` reads PDF, PowerPoint, Word and
plain-text files from the upload directory.
"""

import asyncio
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from docx import Document
from pptx import Presentation
from pypdf import PdfReader

from formapro.common.logger import get_logger

logger = get_logger("evaluations.extraction")

PDF_MIME = "application/pdf"
PPTX_MIME = "application/vnd.openxmlformats-officedocument.presentationml.presentation"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
TEXT_MIME = "text/plain"

SUPPORTED_MIME_TYPES = (PDF_MIME, PPTX_MIME, DOCX_MIME, TEXT_MIME)


class ExtractionError(Exception):
    """Raised when a single document cannot be read."""


def is_supported(mime_type: Optional[str]) -> bool:
    return mime_type in SUPPORTED_MIME_TYPES


def display_name(media: Any) -> str:
    return getattr(media, "original_name", None) or media.filename


def extraction_summary(media_files: Sequence[Any]) -> Dict[str, Any]:
    """
    Classify session media into supported and unsupported files.

    Args:
        media_files: Media rows (``filename``, ``original_name``, ``file_type``, ``mime_type``)

    Returns:
        Dictionary with total, supported and unsupported counts and file lists
    """
    summary: Dict[str, Any] = {
        "total": len(media_files),
        "supported": 0,
        "unsupported": 0,
        "supportedFiles": [],
        "unsupportedFiles": [],
    }

    for media in media_files:
        if is_supported(media.mime_type):
            summary["supported"] += 1
            summary["supportedFiles"].append({
                "name": display_name(media),
                "type": media.file_type,
            })
        else:
            summary["unsupported"] += 1
            summary["unsupportedFiles"].append({
                "name": display_name(media),
                "type": media.file_type,
                "mimeType": media.mime_type,
            })

    return summary


@dataclass
class ExtractedDocument:
    filename: str
    content: str


@dataclass
class ExtractionFailure:
    filename: str
    error: str


@dataclass
class ExtractedContent:
    """Result of extracting every document of a session."""
    documents: List[ExtractedDocument] = field(default_factory=list)
    failures: List[ExtractionFailure] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.documents

    @property
    def text(self) -> str:
        """
        Combined text: one titled section per document, then a notes
        section naming the files that could not be read.
        """
        parts: List[str] = []
        for index, document in enumerate(self.documents, start=1):
            parts.append(f"\n\n=== DOCUMENT {index}: {document.filename} ===\n")
            parts.append(document.content)

        if self.failures:
            parts.append("\n\n=== EXTRACTION NOTES ===\n")
            parts.append("The following files could not be processed:\n")
            for failure in self.failures:
                parts.append(f"- {failure.filename}: {failure.error}\n")

        return "".join(parts).strip()


class DocumentExtractor(ABC):
    """Converts stored documents into plain text."""

    @abstractmethod
    def extract(self, file_path: str, mime_type: Optional[str]) -> str:
        """
        Extract the text of one document.

        Raises:
            ExtractionError: If the document cannot be read
        """
        pass

    def extract_all(self, media_files: Sequence[Any]) -> ExtractedContent:
        """
        Extract every document, recording per-file failures instead of
        stopping at the first one. Documents without text are skipped.
        """
        content = ExtractedContent()
        for media in media_files:
            name = display_name(media)
            try:
                text = self.extract(media.file_path, media.mime_type)
            except ExtractionError as e:
                logger.warning(f"Could not extract {name}: {e}")
                content.failures.append(ExtractionFailure(name, str(e)))
                continue

            if text and text.strip():
                content.documents.append(ExtractedDocument(name, text.strip()))

        return content

    async def extract_seance_content(self, media_files: Sequence[Any]) -> ExtractedContent:
        """Run ``extract_all`` in a worker thread."""
        return await asyncio.to_thread(self.extract_all, list(media_files))


class OfficeDocumentExtractor(DocumentExtractor):
    """
    Reads documents from the upload directory with pypdf, python-pptx and
    python-docx. Relative paths resolve against ``upload_root``.
    """

    def __init__(self, upload_root: str = "."):
        self.upload_root = upload_root

    def _resolve(self, file_path: str) -> str:
        if os.path.isabs(file_path):
            return file_path
        return os.path.join(self.upload_root, file_path)

    def extract(self, file_path: str, mime_type: Optional[str]) -> str:
        if not is_supported(mime_type):
            raise ExtractionError(f"Unsupported file type: {mime_type}")

        path = self._resolve(file_path)
        if not os.path.exists(path):
            raise ExtractionError(f"File not found: {file_path}")

        try:
            if mime_type == PDF_MIME:
                return self._extract_pdf(path)
            if mime_type == PPTX_MIME:
                return self._extract_pptx(path)
            if mime_type == DOCX_MIME:
                return self._extract_docx(path)
            with open(path, "r", encoding="utf-8", errors="replace") as f:
                return f.read()
        except Exception as e:
            raise ExtractionError(f"Error extracting {os.path.basename(path)}: {e}") from e

    @staticmethod
    def _extract_pdf(path: str) -> str:
        reader = PdfReader(path)
        return "\n".join(page.extract_text() or "" for page in reader.pages)

    @staticmethod
    def _extract_pptx(path: str) -> str:
        lines: List[str] = []
        for slide in Presentation(path).slides:
            for shape in slide.shapes:
                if shape.has_text_frame:
                    text = shape.text_frame.text.strip()
                    if text:
                        lines.append(text)
        return "\n".join(lines)

    @staticmethod
    def _extract_docx(path: str) -> str:
        document = Document(path)
        return "\n".join(p.text for p in document.paragraphs if p.text)
