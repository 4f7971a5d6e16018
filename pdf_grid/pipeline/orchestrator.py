"""
Batch orchestration: split the PDF into fixed-size page windows, extract each
window in turn, renumber its pages and merge them into one PageDataMap.

Windows run strictly one after another. Any batch failure aborts the whole
run; a partially filled map is never returned.
"""

import logging
from collections.abc import Callable
from typing import Protocol

from pdf_grid.config import Settings
from pdf_grid.errors import BatchProcessingError, ConfigurationError, PdfGridError
from pdf_grid.pipeline.extractor import BatchExtractionClient
from pdf_grid.pipeline.renumber import to_global_key
from pdf_grid.pipeline.splitter import build_subdocument, load_document, page_count
from pdf_grid.state import BatchWindow, PageDataMap

logger = logging.getLogger(__name__)

# Pages per extraction call. Larger batches risk the reply being cut off.
BATCH_SIZE = 3

ProgressSink = Callable[[str], None]


class Extractor(Protocol):
    def extract(self, pdf_bytes: bytes) -> PageDataMap: ...


def plan_windows(total_pages: int, batch_size: int = BATCH_SIZE) -> list[BatchWindow]:
    """Consecutive windows covering [0, total_pages) with no gap or overlap."""
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")
    return [
        BatchWindow(start, min(start + batch_size, total_pages))
        for start in range(0, total_pages, batch_size)
    ]


def _notify(on_progress: ProgressSink | None, message: str) -> None:
    if on_progress is None:
        return
    try:
        on_progress(message)
    except Exception:
        logger.exception("Progress callback raised, continuing")


def _extract_window(extractor: Extractor, pdf_bytes: bytes, window: BatchWindow, attempts: int) -> PageDataMap:
    attempt = 1
    while True:
        try:
            return extractor.extract(pdf_bytes)
        except PdfGridError as exc:
            if attempt >= attempts:
                raise
            logger.warning("Pages %s attempt %d/%d failed: %s, retrying",
                           window.label, attempt, attempts, exc)
            attempt += 1


def _merge(aggregate: PageDataMap, batch: PageDataMap, window: BatchWindow) -> None:
    for local_key, rows in batch.items():
        global_key = to_global_key(window.start, str(local_key))
        if not global_key.isdigit():
            logger.warning("Non-numeric page key %r in pages %s, stored as %r",
                           local_key, window.label, global_key)
        if global_key in aggregate:
            logger.warning("Page key %r produced twice, keeping the later one", global_key)
        aggregate[global_key] = rows


def process_document(
    document_bytes: bytes,
    credential: str | None,
    on_progress: ProgressSink | None = None,
    *,
    extractor: Extractor | None = None,
    settings: Settings | None = None,
    batch_size: int = BATCH_SIZE,
) -> PageDataMap:
    """Extract every page's table grid from a PDF.

    Raises ConfigurationError for a missing credential, DocumentLoadError for
    unreadable input and BatchProcessingError naming the failed page range.
    """
    if not credential or not credential.strip():
        raise ConfigurationError("API key not found, set ANTHROPIC_API_KEY or pass --api-key")

    settings = settings or Settings()
    reader = load_document(document_bytes)
    total_pages = page_count(reader)
    windows = plan_windows(total_pages, batch_size)

    if extractor is None:
        extractor = BatchExtractionClient.from_credential(credential, settings)

    aggregate: PageDataMap = {}

    for n, window in enumerate(windows, 1):
        _notify(on_progress, f"Analysing pages {window.label} of {total_pages}...")
        logger.info("Extracting pages %s (%d/%d)", window.label, n, len(windows))

        try:
            sub_document = build_subdocument(reader, window.indices)
            batch = _extract_window(extractor, sub_document, window, settings.batch_attempts)
        except Exception as exc:
            logger.error("Pages %s failed: %s", window.label, exc)
            raise BatchProcessingError(window, exc) from exc

        _merge(aggregate, batch, window)
        logger.info("  Done: %d page(s) from pages %s", len(batch), window.label)

    logger.info("Extraction complete: %d pages", len(aggregate))
    return aggregate
