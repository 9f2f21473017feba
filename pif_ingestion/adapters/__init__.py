"""Source adapters for PIF submissions (file I/O only, no DB)."""

from __future__ import annotations

from pathlib import Path

from pif_ingestion.adapters.base import SourceAdapter, SubmissionProbe
from pif_ingestion.adapters.csv_adapter import CsvSourceAdapter
from pif_ingestion.adapters.xlsx_adapter import XlsxSourceAdapter

_ADAPTERS_BY_SUFFIX: dict[str, type] = {
    ".csv": CsvSourceAdapter,
    ".txt": CsvSourceAdapter,
    ".xlsx": XlsxSourceAdapter,
    ".xlsm": XlsxSourceAdapter,
}


def adapter_for(source_path: Path | str) -> SourceAdapter:
    """
    Pick the adapter for a submission file by its extension.

    Raises:
        ValueError: the extension is not a supported submission format.
    """
    suffix = Path(source_path).suffix.lower()
    try:
        return _ADAPTERS_BY_SUFFIX[suffix]()
    except KeyError:
        supported = ", ".join(sorted(_ADAPTERS_BY_SUFFIX))
        raise ValueError(
            f"Unsupported submission file type {suffix or '(none)'!r}; expected one of {supported}"
        ) from None


__all__ = [
    "SourceAdapter",
    "SubmissionProbe",
    "CsvSourceAdapter",
    "XlsxSourceAdapter",
    "adapter_for",
]
