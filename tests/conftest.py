import io
from collections.abc import Callable

import pytest
from pypdf import PdfReader, PdfWriter


def build_pdf(pages: int) -> bytes:
    """Blank PDF whose page i is (200 + i) points wide, so pages can be told apart."""
    writer = PdfWriter()
    for i in range(pages):
        writer.add_blank_page(width=200 + i, height=300)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def page_widths(pdf_bytes: bytes) -> list[int]:
    reader = PdfReader(io.BytesIO(pdf_bytes))
    return [int(page.mediabox.width) for page in reader.pages]


@pytest.fixture
def make_pdf() -> Callable[[int], bytes]:
    return build_pdf


@pytest.fixture
def widths_of() -> Callable[[bytes], list[int]]:
    return page_widths
