"""
CSV source adapter for PIF submission sheets saved as CSV.

Uses csv.DictReader. Configurable: delimiter, encoding, skip_rows, quoting.
Handles BOM via utf-8-sig when encoding is utf-8. Header cells and values are
stripped and rows whose cells are all blank (trailing rows Excel leaves
behind) are skipped. Streams rows.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Any, Iterator, TextIO

from pif_ingestion.adapters.base import SubmissionProbe

_QUOTING = {
    "minimal": csv.QUOTE_MINIMAL,
    "all": csv.QUOTE_ALL,
    "nonnumeric": csv.QUOTE_NONNUMERIC,
    "none": csv.QUOTE_NONE,
}


def _get_encoding(options: dict[str, Any]) -> str:
    enc = options.get("encoding", "utf-8")
    if enc.lower() == "utf-8":
        return "utf-8-sig"  # Strip BOM if present
    return enc


def _get_quoting(options: dict[str, Any]) -> int:
    q = options.get("quoting", "minimal")
    if isinstance(q, int):
        return q
    return _QUOTING.get(str(q).lower(), csv.QUOTE_MINIMAL)


def _is_blank(row: dict[str, Any]) -> bool:
    return all(v is None or str(v).strip() == "" for v in row.values())


def _clean(row: dict[str | None, Any]) -> dict[str, Any]:
    # DictReader puts surplus cells under the None key
    return {
        k.strip(): (v.strip() if isinstance(v, str) else v)
        for k, v in row.items()
        if k is not None and k.strip()
    }


class CsvSourceAdapter:
    """Read CSV files as one dict per non-blank row."""

    def _reader(self, f: TextIO, options: dict[str, Any]) -> csv.DictReader:
        for _ in range(int(options.get("skip_rows", 0))):
            next(f, None)
        return csv.DictReader(
            f,
            delimiter=options.get("delimiter", ","),
            quoting=_get_quoting(options),
        )

    def read(self, source_path: Path, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
        with Path(source_path).open("r", encoding=_get_encoding(options), newline="") as f:
            for row in self._reader(f, options):
                cleaned = _clean(row)
                if not _is_blank(cleaned):
                    yield cleaned

    def probe(self, source_path: Path, options: dict[str, Any]) -> SubmissionProbe:
        encoding = _get_encoding(options)
        with Path(source_path).open("r", encoding=encoding, newline="") as f:
            reader = self._reader(f, options)
            columns = tuple(c.strip() for c in (reader.fieldnames or ()) if c and c.strip())
            records = (r for r in map(_clean, reader) if not _is_blank(r))
            return SubmissionProbe.from_table(
                columns,
                records,
                encoding=encoding,
                detected_delimiter=options.get("delimiter", ","),
            )
