"""
Data transfer objects for the PIF kernel.

Responsibility:
    Immutable value objects passed between the validation, inflight,
    promotion and reporting layers and returned to callers.  Nothing here
    touches the ORM or the database.

Architecture position:
    Kernel > Domain -- pure, zero I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class Severity(str, Enum):
    """Validation severity."""

    CRITICAL = "CRITICAL"
    WARNING = "WARNING"


@dataclass(frozen=True)
class ProjectKey:
    """Natural key of a project record in every store."""

    pif_id: str
    project_id: str
    line_item: int = 1

    def __str__(self) -> str:
        return f"PIF {self.pif_id}, Project {self.project_id}, Line {self.line_item}"


@dataclass(frozen=True)
class ValidationIssue:
    """
    One rule evaluation for one field on one row.

    Contract:
        ``row`` is the 1-based row number of the candidate in its batch (or
        its source_row when validating staged data).  ``passed`` is False for
        failures.  Failures with severity WARNING do not block unless the
        caller configures warnings as blocking.

    Non-goals:
        - Does NOT raise exceptions -- it IS the error representation.
    """

    row: int
    field: str
    rule: str
    passed: bool
    message: str
    severity: Severity = Severity.CRITICAL

    def to_dict(self) -> dict[str, Any]:
        return {
            "row": self.row,
            "field": self.field,
            "rule": self.rule,
            "passed": self.passed,
            "message": self.message,
            "severity": self.severity.value,
        }


@dataclass(frozen=True)
class ValidationReport:
    """
    Result of validating a batch.

    Contract:
        Holds every evaluated rule entry, passed or failed.  Blocking is
        decided here so that submission and promotion callers apply the same
        policy.

    Guarantees:
        - ``failures`` lists CRITICAL before WARNING, then by row.
        - ``has_blocking_failures`` is True iff any CRITICAL failure exists,
          or any WARNING failure exists and ``warnings_block`` is set.
    """

    issues: tuple[ValidationIssue, ...] = field(default_factory=tuple)
    warnings_block: bool = False
    row_count: int = 0

    @property
    def failures(self) -> tuple[ValidationIssue, ...]:
        failed = [i for i in self.issues if not i.passed]
        failed.sort(key=lambda i: (i.severity != Severity.CRITICAL, i.row))
        return tuple(failed)

    @property
    def errors(self) -> tuple[ValidationIssue, ...]:
        return tuple(i for i in self.failures if i.severity == Severity.CRITICAL)

    @property
    def warnings(self) -> tuple[ValidationIssue, ...]:
        return tuple(i for i in self.failures if i.severity == Severity.WARNING)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    @property
    def has_blocking_failures(self) -> bool:
        if self.errors:
            return True
        return self.warnings_block and bool(self.warnings)

    @property
    def is_valid(self) -> bool:
        return not self.has_blocking_failures

    def failures_for_row(self, row: int) -> tuple[ValidationIssue, ...]:
        return tuple(i for i in self.failures if i.row == row)

    def failures_for(self, rule: str) -> tuple[ValidationIssue, ...]:
        return tuple(i for i in self.failures if i.rule == rule)

    def __bool__(self) -> bool:
        return self.is_valid


@dataclass(frozen=True)
class InflightCommitResult:
    """Outcome of replacing a site's inflight rows from staging."""

    site: str
    projects_committed: int
    costs_committed: int
    submission_date: datetime


@dataclass(frozen=True)
class ArchiveResult:
    """Outcome of a successful promotion of one site."""

    site: str
    projects_affected: int
    costs_affected: int
    approval_date: datetime
    keys: tuple[ProjectKey, ...] = ()


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class ArchiveOutcome:
    """
    Caller-facing result of ``archive_approved(site)``.

    Errors are reported as data here after the transaction has been rolled
    back; counts are zero when status is ERROR.
    """

    status: OutcomeStatus
    site: str
    projects_affected: int = 0
    costs_affected: int = 0
    error_message: str | None = None
    error_code: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == OutcomeStatus.SUCCESS

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "status": self.status.value,
            "projects_affected": self.projects_affected,
            "costs_affected": self.costs_affected,
        }
        if self.error_message is not None:
            payload["error_message"] = self.error_message
        return payload


@dataclass(frozen=True)
class StoreCounts:
    """Project and cost row counts of one store for one site (or all sites)."""

    store: str
    projects: int
    costs: int
