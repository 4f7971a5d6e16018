"""
Error taxonomy. Every failure a caller can see derives from PdfGridError.
"""

from pdf_grid.state import BatchWindow


class PdfGridError(Exception):
    """Base error for all user-facing pdf-grid exceptions."""


class ConfigurationError(PdfGridError):
    """Raised when the credential or a setting is missing or invalid."""


class DocumentLoadError(PdfGridError):
    """Raised when the input bytes cannot be read as a PDF."""


class ExtractionServiceError(PdfGridError):
    """Raised when the extraction call fails or returns no text."""


class ParseError(PdfGridError):
    """Raised when a response cannot be decoded, even after repair."""

    def __init__(self, message: str, *, truncated: bool = False) -> None:
        super().__init__(message)
        self.truncated = truncated


class BatchProcessingError(PdfGridError):
    """A batch failed; carries the 1-based page range and the cause."""

    def __init__(self, window: BatchWindow, cause: BaseException) -> None:
        super().__init__(f"Pages {window.label} failed: {cause}")
        self.window = window
        self.cause = cause

    @property
    def first_page(self) -> int:
        return self.window.first_page

    @property
    def last_page(self) -> int:
        return self.window.last_page
