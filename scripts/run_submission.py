#!/usr/bin/env python3
"""
Submit a site's PIF workbook: read, validate, stage, commit to Inflight, log.

A submission with blocking validation failures writes nothing; the failures
are printed and the exit status is 1.

Usage:
    python3 scripts/run_submission.py --file <path> --site <SITE> --user <name> [options]

Examples:
    # Submit an XLSX workbook for site ANO
    python3 scripts/run_submission.py --file ANO_pifs.xlsx --site ANO --user jdoe

    # Validate only; nothing is written
    python3 scripts/run_submission.py --file ANO_pifs.csv --site ANO --user jdoe --validate-only

    # Show row count, columns and sample rows of the file
    python3 scripts/run_submission.py --file ANO_pifs.csv --site ANO --user jdoe --probe-only
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

MAX_FAILURES_SHOWN = 25


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Submit a PIF workbook for one site.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--file", required=True, type=Path, help="Submission file (CSV or XLSX).")
    parser.add_argument("--site", required=True, help="Site code of the submitting session.")
    parser.add_argument("--user", required=True, help="Name recorded in the submission log.")
    parser.add_argument("--sheet", default=None, help="XLSX sheet name (default: active sheet).")
    parser.add_argument("--validate-only", action="store_true", help="Validate and report; do not write.")
    parser.add_argument("--probe-only", action="store_true", help="Probe the file and exit. No DB access.")
    parser.add_argument("--config", type=Path, default=None, help="Configuration YAML.")
    parser.add_argument("--db-url", default=None, help="Database URL; overrides the configuration.")
    return parser.parse_args()


def _print_failures(report) -> None:
    failures = report.failures
    for issue in failures[:MAX_FAILURES_SHOWN]:
        print(f"  [{issue.severity.value}] row {issue.row} {issue.field} {issue.rule}: {issue.message}")
    if len(failures) > MAX_FAILURES_SHOWN:
        print(f"  ... and {len(failures) - MAX_FAILURES_SHOWN} more.")


def main() -> int:
    args = _parse_args()

    source_path = args.file.resolve()
    if not source_path.is_file():
        print(f"ERROR: File not found: {source_path}", file=sys.stderr)
        return 1
    options = {"sheet": args.sheet} if args.sheet else {}

    # Lazy imports so we fail fast on args first
    from scripts.cli_common import load_config, open_pipeline
    from pif_ingestion.adapters import adapter_for
    from pif_kernel.exceptions import PifKernelError, SubmissionRejectedError

    try:
        adapter = adapter_for(source_path)
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    if args.probe_only:
        probe = adapter.probe(source_path, options)
        print(f"Rows: {probe.row_count}")
        print(f"Project columns: {list(probe.project_columns)}")
        print(f"Cost columns: {len(probe.cost_columns)}")
        if probe.unrecognized_columns:
            print(f"Ignored columns: {list(probe.unrecognized_columns)}")
        if probe.missing_key_fields:
            print(f"Missing key columns: {list(probe.missing_key_fields)}")
        print("Sample (first 3):")
        for i, row in enumerate(probe.sample_rows[:3], 1):
            print(f"  {i}: {row}")
        return 0

    try:
        config = load_config(args.config, args.db_url)
        pipeline = open_pipeline(config)

        if args.validate_only:
            batch = pipeline.read_file(source_path, options)
            report = pipeline.validate(batch, args.site)
            print(
                f"Validated {report.row_count} rows: "
                f"{report.error_count} error(s), {report.warning_count} warning(s)."
            )
            _print_failures(report)
            return 1 if report.has_blocking_failures else 0

        print(f"Submitting {source_path.name} for site {args.site}...")
        result = pipeline.submit_file(source_path, args.site, args.user, options)
    except PifKernelError as e:
        print(f"ERROR [{e.code}]: {e}", file=sys.stderr)
        return 1

    if result.rejected:
        rejection = SubmissionRejectedError(
            args.site, result.report.error_count, result.report.warning_count,
        )
        print(f"REJECTED [{rejection.code}]: {rejection}", file=sys.stderr)
        _print_failures(result.report)
        return 1

    print(f"  Staged {result.projects_staged} project(s), {result.costs_staged} cost fact(s).")
    print(
        f"  Inflight for {result.site}: {result.projects_committed} project(s), "
        f"{result.costs_committed} cost fact(s)."
    )
    if result.report.warning_count:
        print(f"  {result.report.warning_count} warning(s):")
        _print_failures(result.report)
    print(f"  batch_id={result.batch_id}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
