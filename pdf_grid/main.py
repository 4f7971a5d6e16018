"""CLI entry point for the PDF table-grid extractor."""

import argparse
import logging
import sys
import time
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

from pdf_grid.config import load_settings
from pdf_grid.errors import PdfGridError
from pdf_grid.pipeline.exporter import EXPORT_MODES, write_json, write_workbook
from pdf_grid.pipeline.orchestrator import process_document
from pdf_grid.state import PageDataMap

logger = logging.getLogger(__name__)


def run_pipeline(pdf_path: str, api_key: str | None = None) -> PageDataMap:
    """Extract every page of the PDF, return the page -> grid map."""
    settings = load_settings()
    document_bytes = Path(pdf_path).read_bytes()
    return process_document(
        document_bytes,
        api_key or settings.api_key,
        on_progress=logger.info,
        settings=settings,
    )


def default_output_path(pdf_path: Path, mode: str) -> Path:
    suffix = "merged" if mode == "merge" else "split"
    return pdf_path.with_name(f"{pdf_path.stem}_{suffix}.xlsx")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Extract table grids from a PDF into Excel.")
    parser.add_argument("pdf_path", help="Path to the PDF")
    parser.add_argument("--output", "-o", help="Output .xlsx (default: <pdf>_merged.xlsx / <pdf>_split.xlsx)")
    parser.add_argument("--mode", default="merge", choices=EXPORT_MODES,
                        help="merge: all pages in one sheet; split: one sheet per page")
    parser.add_argument("--json", dest="json_path", help="Also write the page -> grid map as JSON")
    parser.add_argument("--api-key", help="Anthropic API key (default: $ANTHROPIC_API_KEY)")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    pdf_path = Path(args.pdf_path)
    if not pdf_path.exists():
        logger.error("File not found: %s", pdf_path)
        return 1

    output_path = Path(args.output) if args.output else default_output_path(pdf_path, args.mode)

    start = time.time()
    logger.info("Extracting tables from %s", pdf_path)

    try:
        pages = run_pipeline(str(pdf_path), args.api_key)
    except PdfGridError as exc:
        logger.error("%s", exc)
        return 1

    try:
        write_workbook(pages, output_path, args.mode)
        if args.json_path:
            write_json(pages, Path(args.json_path))
    except OSError as exc:
        logger.error("Export failed for %s: %s", exc.filename or output_path, exc)
        return 1

    logger.info("Done: %d pages -> %s (%.1fs)",
                len(pages), output_path, time.time() - start)
    return 0


if __name__ == "__main__":
    sys.exit(main())
