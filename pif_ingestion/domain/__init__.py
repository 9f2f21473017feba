"""Pure intake domain: field typing, coercion, validation rules, unpivot."""

from pif_ingestion.domain.coercion import (
    build_cost_entry,
    build_submission_row,
    coerce_fields,
    coerce_value,
)
from pif_ingestion.domain.types import (
    COST_FIELD_SPECS,
    PROJECT_FIELD_SPECS,
    CostEntry,
    FieldSpec,
    FieldType,
    SubmissionResult,
    SubmissionRow,
    normalize_header,
)
from pif_ingestion.domain.unpivot import unpivot_rows, unpivot_wide_row
from pif_ingestion.domain.validators import validate_batch

__all__ = [
    "COST_FIELD_SPECS",
    "CostEntry",
    "FieldSpec",
    "FieldType",
    "PROJECT_FIELD_SPECS",
    "SubmissionResult",
    "SubmissionRow",
    "build_cost_entry",
    "build_submission_row",
    "coerce_fields",
    "coerce_value",
    "normalize_header",
    "unpivot_rows",
    "unpivot_wide_row",
    "validate_batch",
]
