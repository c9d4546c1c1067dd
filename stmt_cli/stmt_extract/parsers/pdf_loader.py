"""Helpers for reading statement PDFs with pdfplumber."""

from __future__ import annotations

import logging
from pathlib import Path

import pdfplumber

from stmt_cli.shared.exceptions import ExtractionError

from ..types import ExtractedDocument, ExtractedPage

_log = logging.getLogger(__name__)

SUPPORTED_ENGINES = ("auto", "pdfplumber")


def load_pdf_document_with_engine(path: str | Path, engine: str = "auto") -> ExtractedDocument:
    """Load a PDF using the configured engine.

    Args:
        path: Path to PDF file.
        engine: "auto" or "pdfplumber".

    Returns:
        ExtractedDocument with full text and per-page lines.

    Raises:
        ExtractionError: If an unknown engine is requested or the file cannot be read.
    """

    if engine == "pdfplumber":
        return load_pdf_document_with_pdfplumber(path)

    if engine == "auto":
        _log.debug("Using pdfplumber engine (auto mode)")
        return load_pdf_document_with_pdfplumber(path)

    raise ExtractionError(f"Invalid engine: {engine}. Must be one of: {', '.join(SUPPORTED_ENGINES)}")


def split_lines(page_text: str) -> list[str]:
    return [line.strip() for line in page_text.splitlines() if line.strip()]


def load_pdf_document_with_pdfplumber(path: str | Path) -> ExtractedDocument:
    pdf_path = Path(path)
    if not pdf_path.exists():
        raise ExtractionError(f"PDF file does not exist: {pdf_path}")

    pages: list[ExtractedPage] = []
    try:
        with pdfplumber.open(pdf_path) as pdf:
            for number, page in enumerate(pdf.pages, start=1):
                page_text = page.extract_text() or ""
                pages.append(
                    ExtractedPage(page_number=number, text=page_text, lines=split_lines(page_text))
                )
    except Exception as exc:  # pragma: no cover - pdfminer raises a wide range of errors
        raise ExtractionError(f"Failed to read PDF with pdfplumber: {exc}") from exc

    _log.debug("Loaded %d pages from %s", len(pages), pdf_path)
    return ExtractedDocument(full_text="\n".join(page.text for page in pages), pages=pages)
