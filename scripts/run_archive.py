#!/usr/bin/env python3
"""
Archive a site's approved PIFs: promote flagged-and-included Inflight
projects to Approved and remove them from Inflight, in one transaction.

Safe to re-run: promotion is idempotent per natural key.  Run one archive per
site at a time.

Usage:
    python3 scripts/run_archive.py --site <SITE> [--check-staging] [--json]

Examples:
    python3 scripts/run_archive.py --site ANO

    # Refuse to archive while the staged submission has blocking failures
    python3 scripts/run_archive.py --site ANO --check-staging
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Promote a site's approved PIFs from Inflight to Approved.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--site", required=True, help="Site code to archive.")
    parser.add_argument(
        "--check-staging",
        action="store_true",
        help="Re-validate the staged rows first and refuse on blocking failures.",
    )
    parser.add_argument("--json", action="store_true", help="Print the outcome as JSON.")
    parser.add_argument("--config", type=Path, default=None, help="Configuration YAML.")
    parser.add_argument("--db-url", default=None, help="Database URL; overrides the configuration.")
    return parser.parse_args()


def main() -> int:
    args = _parse_args()

    # Lazy imports so we fail fast on args first
    from scripts.cli_common import load_config, open_pipeline
    from pif_kernel.exceptions import ConfigurationError

    try:
        config = load_config(args.config, args.db_url)
    except ConfigurationError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    pipeline = open_pipeline(config)

    report = pipeline.validate_staging(args.site) if args.check_staging else None
    outcome = pipeline.archive_approved(args.site, validation_report=report)

    if args.json:
        print(json.dumps(outcome.to_dict(), indent=2))
    elif outcome.succeeded:
        print(
            f"Archived site {args.site}: {outcome.projects_affected} project(s), "
            f"{outcome.costs_affected} cost fact(s)."
        )
    else:
        print(f"ERROR [{outcome.error_code}]: {outcome.error_message}", file=sys.stderr)
    return 0 if outcome.succeeded else 1


if __name__ == "__main__":
    sys.exit(main())
