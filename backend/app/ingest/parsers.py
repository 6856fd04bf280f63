"""Document text extraction."""
from __future__ import annotations

import io
import logging

import fitz
from pdfminer.high_level import extract_text_to_fp

from .errors import ExtractionError

logger = logging.getLogger(__name__)


def extract_text(data: bytes, filename: str) -> str:
    """Convert downloaded bytes into plain text.

    Files whose name ends in ``.pdf`` go through PDF text extraction; every
    other file is decoded as UTF-8 verbatim. Layout such as tables and
    headings collapses into plain text.
    """

    if filename.lower().endswith(".pdf"):
        return _parse_pdf(data)
    return _parse_text(data)


def _parse_pdf(data: bytes) -> str:
    try:
        text = _pdf_text_pymupdf(data)
        if text.strip():
            return text
    except Exception as exc:
        logger.warning("PyMuPDF parsing failed, falling back to pdfminer: %s", exc)

    try:
        return _pdf_text_pdfminer(data)
    except Exception as exc:
        logger.error("Failed to parse PDF document: %s", exc)
        raise ExtractionError(f"Unable to parse PDF document: {exc}") from exc


def _pdf_text_pymupdf(data: bytes) -> str:
    with fitz.open(stream=data, filetype="pdf") as doc:
        pages = [page.get_text("text") for page in doc]
    return "\n".join(pages)


def _pdf_text_pdfminer(data: bytes) -> str:
    output = io.StringIO()
    extract_text_to_fp(io.BytesIO(data), output)
    return output.getvalue()


def _parse_text(data: bytes) -> str:
    # Invalid sequences become U+FFFD instead of failing the run.
    return data.decode("utf-8", errors="replace")
