"""
pif_ingestion.domain.types -- Field typing and frozen dataclasses for intake.

ZERO I/O. Imports only from pif_kernel domain and model constants.

Every submitted field has a FieldSpec: its declared type and, for text, the
column length of the stores.  The coercion layer and the validators both read
these specs, so a value accepted by validation always fits its column.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping
from uuid import UUID

from pif_kernel.domain.dtos import ProjectKey, ValidationReport


class FieldType(str, Enum):
    """Declared type of a submitted field."""

    STRING = "string"
    INTEGER = "integer"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    DATE = "date"


@dataclass(frozen=True)
class FieldSpec:
    name: str
    field_type: FieldType
    max_length: int | None = None


def _specs(*specs: FieldSpec) -> dict[str, FieldSpec]:
    return {s.name: s for s in specs}


# Same order and lengths as the project tables.
PROJECT_FIELD_SPECS: dict[str, FieldSpec] = _specs(
    FieldSpec("pif_id", FieldType.STRING, 16),
    FieldSpec("project_id", FieldType.STRING, 10),
    FieldSpec("line_item", FieldType.INTEGER),
    FieldSpec("status", FieldType.STRING, 58),
    FieldSpec("change_type", FieldType.STRING, 50),
    FieldSpec("accounting_treatment", FieldType.STRING, 30),
    FieldSpec("category", FieldType.STRING, 26),
    FieldSpec("seg", FieldType.INTEGER),
    FieldSpec("opco", FieldType.STRING, 4),
    FieldSpec("site", FieldType.STRING, 4),
    FieldSpec("strategic_rank", FieldType.STRING, 26),
    FieldSpec("funding_project", FieldType.STRING, 10),
    FieldSpec("project_name", FieldType.STRING, 35),
    FieldSpec("original_fp_isd", FieldType.DATE),
    FieldSpec("revised_fp_isd", FieldType.DATE),
    FieldSpec("moving_isd_year", FieldType.STRING, 1),
    FieldSpec("lcm_issue", FieldType.STRING, 20),
    FieldSpec("justification", FieldType.STRING, 192),
    FieldSpec("prior_year_spend", FieldType.DECIMAL),
    FieldSpec("archive_flag", FieldType.BOOLEAN),
    FieldSpec("include_flag", FieldType.BOOLEAN),
)

COST_FIELD_SPECS: dict[str, FieldSpec] = _specs(
    FieldSpec("scenario", FieldType.STRING, 12),
    FieldSpec("year", FieldType.INTEGER),
    FieldSpec("requested_value", FieldType.DECIMAL),
    FieldSpec("current_value", FieldType.DECIMAL),
    FieldSpec("variance_value", FieldType.DECIMAL),
)

DATE_FIELDS: tuple[str, ...] = tuple(
    name for name, spec in PROJECT_FIELD_SPECS.items() if spec.field_type == FieldType.DATE
)

DEFAULT_LINE_ITEM = 1

# Spreadsheet headers that do not normalize to their field name
HEADER_ALIASES: dict[str, str] = {
    "pif": "pif_id",
    "pif_number": "pif_id",
    "project": "project_id",
    "project_number": "project_id",
    "line": "line_item",
    "archive": "archive_flag",
    "include": "include_flag",
    "revised_isd": "revised_fp_isd",
    "original_isd": "original_fp_isd",
    "lcm": "lcm_issue",
    "py_spend": "prior_year_spend",
    "prior_yr_spend": "prior_year_spend",
}


def normalize_header(header: str) -> str:
    """
    Map a spreadsheet header to a field name.

    >>> normalize_header("PIF ID")
    'pif_id'
    >>> normalize_header("Project #")
    'project_id'
    >>> normalize_header("Archive")
    'archive_flag'
    """
    key = header.strip().lower().replace("#", "number")
    key = re.sub(r"[^0-9a-z]+", "_", key).strip("_")
    return HEADER_ALIASES.get(key, key)


def is_empty(value: Any) -> bool:
    """True for an explicitly empty cell: None or a blank string."""
    return value is None or (isinstance(value, str) and not value.strip())


@dataclass(frozen=True)
class CostEntry:
    """One typed cost fact of a submission row."""

    scenario: str
    year: int
    requested_value: Decimal | None = None
    current_value: Decimal | None = None
    variance_value: Decimal | None = None

    def to_values(self) -> dict[str, Any]:
        return {
            "scenario": self.scenario,
            "year": self.year,
            "requested_value": self.requested_value,
            "current_value": self.current_value,
            "variance_value": self.variance_value,
        }


@dataclass(frozen=True)
class SubmissionRow:
    """A fully typed candidate row, ready for staging."""

    source_row: int
    values: Mapping[str, Any]
    costs: tuple[CostEntry, ...] = ()

    @property
    def key(self) -> ProjectKey:
        return ProjectKey(
            pif_id=self.values["pif_id"],
            project_id=self.values["project_id"],
            line_item=self.values.get("line_item") or DEFAULT_LINE_ITEM,
        )


@dataclass(frozen=True)
class SubmissionResult:
    """
    Outcome of one submission.

    A rejected submission wrote nothing; ``report`` says why.
    """

    site: str
    batch_id: UUID
    report: ValidationReport
    accepted: bool
    projects_staged: int = 0
    costs_staged: int = 0
    projects_committed: int = 0
    costs_committed: int = 0
    log_entry_id: int | None = None
    source_file: str | None = None

    @property
    def rejected(self) -> bool:
        return not self.accepted
