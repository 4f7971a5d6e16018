"""
PDF page splitting with pypdf: load, count, and cut sub-documents.
"""

import io
import logging
from collections.abc import Iterable

from pypdf import PdfReader, PdfWriter

from pdf_grid.errors import DocumentLoadError

logger = logging.getLogger(__name__)

_PDF_HEADER = b"%PDF-"
_HEADER_SEARCH_BYTES = 1024   # junk before the header is tolerated up to here


def load_document(data: bytes) -> PdfReader:
    """Parse PDF bytes. Raises DocumentLoadError if they are not a readable PDF."""
    if not data:
        raise DocumentLoadError("Cannot read PDF: input is empty")
    if _PDF_HEADER not in data[:_HEADER_SEARCH_BYTES]:
        raise DocumentLoadError("Cannot read PDF: no %PDF- header, the file may be corrupt")

    try:
        reader = PdfReader(io.BytesIO(data))
        if reader.is_encrypted:
            raise DocumentLoadError("Cannot read PDF: document is encrypted")
        total = len(reader.pages)
    except DocumentLoadError:
        raise
    except Exception as exc:
        raise DocumentLoadError(f"Cannot read PDF, the file may be corrupt: {exc}") from exc

    logger.info("Loaded PDF: %d pages, %d bytes", total, len(data))
    return reader


def page_count(reader: PdfReader) -> int:
    return len(reader.pages)


def build_subdocument(reader: PdfReader, indices: Iterable[int]) -> bytes:
    """New PDF holding the given 0-indexed pages, in the given order."""
    writer = PdfWriter()
    for index in indices:
        writer.add_page(reader.pages[index])

    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()
