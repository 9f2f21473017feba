"""
Pure domain layer.

This module contains pure data transfer objects and domain logic
with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O

All domain objects are immutable and deterministic.
"""

from pif_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from pif_kernel.domain.dtos import (
    ArchiveOutcome,
    ArchiveResult,
    InflightCommitResult,
    OutcomeStatus,
    ProjectKey,
    Severity,
    StoreCounts,
    ValidationIssue,
    ValidationReport,
)
from pif_kernel.domain.reporting_period import (
    FixedReportingPeriodProvider,
    ReportingPeriod,
    ReportingPeriodProvider,
)
from pif_kernel.domain.wide_schema import (
    SCENARIOS,
    WIDE_COLUMN_NAMES,
    WIDE_COLUMNS,
    WideColumn,
    parse_wide_column_name,
    wide_column_name,
)

__all__ = [
    "ArchiveOutcome",
    "ArchiveResult",
    "Clock",
    "DeterministicClock",
    "FixedReportingPeriodProvider",
    "InflightCommitResult",
    "OutcomeStatus",
    "ProjectKey",
    "ReportingPeriod",
    "ReportingPeriodProvider",
    "SCENARIOS",
    "Severity",
    "StoreCounts",
    "SystemClock",
    "ValidationIssue",
    "ValidationReport",
    "WIDE_COLUMNS",
    "WIDE_COLUMN_NAMES",
    "WideColumn",
    "parse_wide_column_name",
    "wide_column_name",
]
