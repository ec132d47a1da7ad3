"""Text extraction for indexed files.

PDFs go through PyMuPDF (fitz); plain text formats are read directly.
Anything else is reported as an :class:`ExtractionError` so callers can skip it.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import fitz  # PyMuPDF

from docsynapse.errors import ExtractionError
from docsynapse.utils.text import normalize_whitespace

LOGGER = logging.getLogger(__name__)

TEXT_SUFFIXES = frozenset(
    {
        ".txt", ".md", ".markdown", ".rst", ".csv", ".tsv", ".json", ".yaml",
        ".yml", ".toml", ".ini", ".cfg", ".log", ".xml", ".html", ".htm",
        ".py", ".js", ".ts", ".tsx", ".jsx", ".java", ".c", ".h", ".cpp",
        ".go", ".rs", ".rb", ".sh", ".sql",
    }
)
PDF_SUFFIXES = frozenset({".pdf"})


def is_supported(path: Path) -> bool:
    suffix = path.suffix.lower()
    return suffix in TEXT_SUFFIXES or suffix in PDF_SUFFIXES


def iter_pdf_pages(path: Path) -> Iterator[str]:
    """Yield normalised text from a PDF file page by page."""
    try:
        doc = fitz.open(path)
    except Exception as exc:
        raise ExtractionError(path, str(exc)) from exc

    try:
        for index in range(len(doc)):
            try:
                text = doc[index].get_text() or ""
            except Exception as exc:  # pragma: no cover - damaged page
                LOGGER.warning("Failed to read page %s in %s: %s", index, path, exc)
                continue
            normalized = normalize_whitespace(text.splitlines())
            if normalized:
                yield normalized + "\n"
    finally:
        doc.close()


def extract_text(path: Path) -> str:
    """Return the text content of ``path``.

    Raises:
        ExtractionError: if the file cannot be read or its type is unsupported.
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix in PDF_SUFFIXES:
        return "".join(iter_pdf_pages(path))
    if suffix in TEXT_SUFFIXES:
        try:
            return path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            raise ExtractionError(path, str(exc)) from exc
    raise ExtractionError(path, f"unsupported file type '{suffix or path.name}'")
