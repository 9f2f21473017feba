#!/usr/bin/env python3
"""
Export the wide reporting view of Inflight or Approved.

Prints a tab-separated table, or writes an XLSX workbook with openpyxl.

Usage:
    python3 scripts/export_wide_view.py --store inflight|approved [--site SITE] [--out FILE.xlsx]

Examples:
    python3 scripts/export_wide_view.py --store approved --site ANO
    python3 scripts/export_wide_view.py --store inflight --out inflight.xlsx
"""

from __future__ import annotations

import argparse
import sys
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Export the wide cost view of a store.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--store", required=True, choices=("inflight", "approved"))
    parser.add_argument("--site", default=None, help="Only this site (default: all sites).")
    parser.add_argument("--out", type=Path, default=None, help="Write an .xlsx file instead of printing.")
    parser.add_argument("--config", type=Path, default=None, help="Configuration YAML.")
    parser.add_argument("--db-url", default=None, help="Database URL; overrides the configuration.")
    return parser.parse_args()


def _cell(value):
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime) and value.tzinfo is not None:
        # Excel cannot store timezone-aware datetimes
        return value.replace(tzinfo=None)
    return value


def _text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def write_xlsx(path: Path, columns: tuple[str, ...], rows: list[dict], title: str) -> None:
    """Write ``rows`` to a single-sheet workbook with a frozen header row."""
    import openpyxl

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = title[:31]
    ws.append(list(columns))
    for row in rows:
        ws.append([_cell(row.get(c)) for c in columns])
    ws.freeze_panes = "A2"
    wb.save(path)


def main() -> int:
    args = _parse_args()

    # Lazy imports so we fail fast on args first
    from scripts.cli_common import load_config, open_pipeline
    from pif_kernel.exceptions import PifKernelError

    try:
        config = load_config(args.config, args.db_url)
        pipeline = open_pipeline(config)
        columns = pipeline.wide_view_columns(args.store)
        rows = pipeline.get_wide_view(args.store, site=args.site)
        period = pipeline.current_reporting_period()
    except PifKernelError as e:
        print(f"ERROR [{e.code}]: {e}", file=sys.stderr)
        return 1

    if args.out is not None:
        write_xlsx(args.out, columns, rows, title=f"{args.store} {period}")
        print(f"Wrote {len(rows)} row(s) to {args.out} (reporting period {period}).")
        return 0

    print("\t".join(columns))
    for row in rows:
        print("\t".join(_text(row.get(c)) for c in columns))
    return 0


if __name__ == "__main__":
    sys.exit(main())
