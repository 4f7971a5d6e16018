"""
pipeline/exporter.py: write a PageDataMap out as .xlsx or JSON.

Pages are always emitted in natural page order (numeric_key). No LLM involved.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE

from pdf_grid.pipeline.renumber import sort_page_keys
from pdf_grid.state import PageDataMap, PageGrid

logger = logging.getLogger(__name__)

EXPORT_MODES = ("merge", "split")

_SHEET_NAME_FORBIDDEN_RE = re.compile(r"[:/\\?*\[\]]")
_SHEET_NAME_MAX_LEN = 31


def sanitize_grid(rows: Any) -> PageGrid:
    """Coerce every cell to str; None becomes "", malformed rows become []."""
    if not isinstance(rows, list):
        return []
    return [
        ["" if cell is None else str(cell) for cell in row] if isinstance(row, list) else []
        for row in rows
    ]


def sheet_name(page_key: str) -> str:
    name = page_key if ("Page" in page_key or "頁" in page_key) else f"Page {page_key}"
    return _SHEET_NAME_FORBIDDEN_RE.sub("", name)[:_SHEET_NAME_MAX_LEN]


def _writable(row: list[str]) -> list[str]:
    # openpyxl refuses control characters in cell values
    return [ILLEGAL_CHARACTERS_RE.sub("", cell) for cell in row]


def build_workbook(data: PageDataMap, mode: str) -> Workbook:
    if mode not in EXPORT_MODES:
        raise ValueError(f"mode must be one of {EXPORT_MODES}, got {mode!r}")

    wb = Workbook()
    page_keys = sort_page_keys(data)

    if mode == "merge":
        ws = wb.active
        ws.title = "Sheet1"
        for i, key in enumerate(page_keys):
            if i:
                ws.append([])   # separator between pages
            for row in sanitize_grid(data[key]):
                ws.append(_writable(row))
        return wb

    wb.remove(wb.active)
    for key in page_keys:
        ws = wb.create_sheet(sheet_name(key))
        for row in sanitize_grid(data[key]):
            ws.append(_writable(row))
    if not wb.worksheets:
        wb.create_sheet("Sheet1")
    return wb


def write_workbook(data: PageDataMap, path: Path, mode: str = "merge") -> Path:
    wb = build_workbook(data, mode)
    path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(path)
    logger.info("Wrote %d page(s) to %s (%s)", len(data), path, mode)
    return path


def write_json(data: PageDataMap, path: Path) -> Path:
    ordered = {key: sanitize_grid(data[key]) for key in sort_page_keys(data)}
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(ordered, fh, indent=2, ensure_ascii=False)
    logger.info("Wrote %d page(s) to %s", len(data), path)
    return path
