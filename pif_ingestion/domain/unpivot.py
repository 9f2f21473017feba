"""
Unpivot: wide submission row -> project fields + long cost entries.

ZERO I/O.  The submission sheet carries one row per project with the 36 wide
cost columns of the reporting pivot (``Target_Req_CY`` .. ``Closings_Var_CY5``).
Offsets are relative to the reporting period, so the same period the pivot
uses must be passed here.  Values are left untyped; coercion happens in the
validator and in build_submission_row.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from pif_kernel.domain.reporting_period import ReportingPeriod
from pif_kernel.domain.wide_schema import parse_wide_column_name

from pif_ingestion.domain.types import PROJECT_FIELD_SPECS, is_empty, normalize_header


def unpivot_wide_row(raw: Mapping[str, Any], period: ReportingPeriod) -> dict[str, Any]:
    """
    Split a raw wide row into a candidate mapping.

    Returns the project fields keyed by field name plus ``costs``: one entry
    per (scenario, year) that has at least one non-empty value, in sheet
    column order.  Headers that are neither project fields nor wide columns are
    dropped.  Long-form ``costs`` already present on ``raw`` are kept ahead of
    the unpivoted ones.

    >>> from pif_kernel.domain.reporting_period import ReportingPeriod
    >>> row = unpivot_wide_row({"PIF ID": "PIF-1", "Target_Req_CY1": "100"}, ReportingPeriod(2025, 6))
    >>> row["pif_id"], row["costs"]
    ('PIF-1', [{'scenario': 'Target', 'year': 2026, 'requested_value': '100'}])
    """
    candidate: dict[str, Any] = {}
    cells: dict[tuple[str, int], dict[str, Any]] = {}

    for header, value in raw.items():
        if header == "costs":
            continue
        column = parse_wide_column_name(str(header))
        if column is not None:
            if is_empty(value):
                continue
            year = period.year_for_offset(column.offset)
            entry = cells.setdefault(
                (column.scenario, year), {"scenario": column.scenario, "year": year}
            )
            entry[column.value_attr] = value
            continue
        name = normalize_header(str(header))
        if name in PROJECT_FIELD_SPECS:
            candidate[name] = value

    candidate["costs"] = list(raw.get("costs") or ()) + list(cells.values())
    return candidate


def unpivot_rows(
    rows: Iterable[Mapping[str, Any]], period: ReportingPeriod
) -> list[dict[str, Any]]:
    """Unpivot every row of a sheet, preserving order."""
    return [unpivot_wide_row(row, period) for row in rows]
