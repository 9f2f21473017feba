"""
XLSX source adapter for PIF submission workbooks.

Supports flexible layout:
  - sheet by index (0-based) or name
  - header row by index or auto-detect (scans the first rows for PIF column names)
  - skip_rows before header
  - normalizes cell values (strip, blank -> empty string, whole floats -> int)

Date cells are returned as ``datetime.date`` so the coercion layer never has
to re-parse a rendered date string.

Auto-detect looks for a row containing at least 2 of the PIF key headers
(pif id, project id, line item, site, change type, status, ...), so title rows
above the table are skipped.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterator

from pif_ingestion.adapters.base import SubmissionProbe

# Normalized (lower, single-spaced, underscores as spaces) header keywords
_HEADER_KEYWORDS = frozenset({
    "pif id", "pif", "project id", "project", "project #", "line item",
    "site", "status", "change type", "category", "seg", "opco",
    "justification", "archive", "include", "archive flag", "include flag",
})

_MAX_HEADER_SEARCH = 15
_MIN_HEADER_KEYWORDS = 2
_MAX_COLUMNS = 120


def _normalize_header_cell(value: Any) -> str:
    """Normalize a cell value for use as a dict key."""
    if value is None:
        return ""
    return re.sub(r"\s+", " ", str(value)).strip()


def _cell_value(row: Any, col_idx: int) -> Any:
    """Get cell value from openpyxl row (0-based column index)."""
    if col_idx >= len(row) or row[col_idx] is None:
        return ""
    v = row[col_idx].value
    if v is None:
        return ""
    if isinstance(v, datetime):
        return v.date()
    if isinstance(v, (date, bool, int)):
        return v
    if isinstance(v, float):
        return int(v) if v == int(v) else v
    return str(v).strip()


def _header_score(row: Any) -> int:
    found = set()
    for c in range(min(len(row), _MAX_COLUMNS)):
        v = _cell_value(row, c)
        if isinstance(v, str) and v:
            key = _normalize_header_cell(v).lower().replace("_", " ")
            if key in _HEADER_KEYWORDS:
                found.add(key)
    return len(found)


def _detect_header_row(rows: list) -> int:
    """Return 0-based index of the first row that looks like the PIF header."""
    for i, row in enumerate(rows[:_MAX_HEADER_SEARCH]):
        if _header_score(row) >= _MIN_HEADER_KEYWORDS:
            return i
    return 0


def _column_count(row: Any) -> int:
    """Index after the last non-empty header cell."""
    n = 0
    for c in range(min(len(row), _MAX_COLUMNS)):
        if _cell_value(row, c) != "":
            n = c + 1
    return max(n, 1)


def _headers(header_row: Any) -> list[str]:
    ncols = _column_count(header_row)
    headers: list[str] = []
    for c in range(ncols):
        key = _normalize_header_cell(_cell_value(header_row, c)) or f"Column_{c + 1}"
        base = key
        cnt = 0
        while key in headers:
            cnt += 1
            key = f"{base}_{cnt}"
        headers.append(key)
    return headers


class XlsxSourceAdapter:
    """
    Read .xlsx files as one dict per row, keyed by the header row.

    source_options:
      sheet: 0-based sheet index (int) or sheet name (str). Default: active sheet.
      skip_rows: number of rows to skip at top of sheet before header/data. Default: 0.
      header_row: 0-based row index (after skip_rows) to use as header; disables auto-detect.
      auto_detect_header: if true (default), scan the first 15 rows for the header.
    """

    def _load(self, source_path: Path):
        try:
            import openpyxl
        except ImportError as e:
            raise ImportError("XLSX support requires openpyxl. Install with: pip install openpyxl") from e
        return openpyxl.load_workbook(source_path, read_only=True, data_only=True)

    def _get_sheet(self, wb: Any, options: dict[str, Any]) -> Any:
        sheet_ref = options.get("sheet")
        if sheet_ref is None:
            return wb.active
        if isinstance(sheet_ref, int):
            return wb.worksheets[sheet_ref]
        return wb[sheet_ref]

    def _table(self, wb: Any, options: dict[str, Any], max_row: int | None = None):
        sheet = self._get_sheet(wb, options)
        skip_rows = int(options.get("skip_rows", 0))
        rows = list(sheet.iter_rows(min_row=1 + skip_rows, max_row=max_row))
        if not rows:
            return [], []
        header_row_idx = options.get("header_row")
        if header_row_idx is not None:
            hi = int(header_row_idx)
        elif options.get("auto_detect_header", True):
            hi = _detect_header_row(rows)
        else:
            hi = 0
        return _headers(rows[hi]), rows[hi + 1:]

    @staticmethod
    def _records(headers: list[str], rows: list) -> Iterator[dict[str, Any]]:
        for row in rows:
            vals = [_cell_value(row, c) for c in range(len(headers))]
            if all(v == "" for v in vals):
                continue
            yield dict(zip(headers, vals))

    def read(self, source_path: Path, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
        wb = self._load(source_path)
        try:
            headers, rows = self._table(wb, options)
            yield from self._records(headers, rows)
        finally:
            wb.close()

    def probe(self, source_path: Path, options: dict[str, Any]) -> SubmissionProbe:
        wb = self._load(source_path)
        try:
            headers, rows = self._table(wb, options)
            return SubmissionProbe.from_table(headers, self._records(headers, rows))
        finally:
            wb.close()
