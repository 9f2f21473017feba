#!/usr/bin/env python3
"""
Create the PIF tables and, optionally, record the current reporting period.

The wide views anchor their CY..CY5 columns to the most recently recorded
reporting period, so record one after each actuals load.

Usage:
    python3 scripts/setup_db.py [--config FILE] [--db-url URL] [--period YYYY-MM] [--drop]

Examples:
    # Create tables in the configured database
    python3 scripts/setup_db.py

    # Create tables and mark actuals loaded through June 2025
    python3 scripts/setup_db.py --period 2025-06
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _period(value: str) -> tuple[int, int]:
    try:
        year, month = value.split("-")
        return int(year), int(month)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM, got {value!r}") from None


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Create PIF tables and record the reporting period.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--config", type=Path, default=None, help="Configuration YAML (default: pif_config/defaults.yaml).")
    parser.add_argument("--db-url", default=None, help="Database URL; overrides the configuration.")
    parser.add_argument("--period", type=_period, default=None, help="Reporting period to record (YYYY-MM).")
    parser.add_argument("--drop", action="store_true", help="Drop all PIF tables before creating them.")
    return parser.parse_args()


def main() -> int:
    args = _parse_args()

    # Lazy imports so we fail fast on args first
    from scripts.cli_common import load_config, open_pipeline
    from pif_kernel.db.engine import create_tables, drop_tables
    from pif_kernel.exceptions import ConfigurationError

    try:
        config = load_config(args.config, args.db_url)
    except ConfigurationError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    pipeline = open_pipeline(config)
    if args.drop:
        drop_tables()
        print("Dropped PIF tables.")
    create_tables()
    print(f"Tables ready in {config.database.url.split('://', 1)[0]} database.")

    if args.period is not None:
        year, month = args.period
        try:
            period = pipeline.record_reporting_period(year, month)
        except ValueError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 1
        print(f"Reporting period recorded: {period}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
