"""ORM models for the PIF stores."""

from pif_kernel.models.cost import (
    COST_FIELDS,
    COST_KEY_FIELDS,
    COST_VALUE_FIELDS,
    ApprovedCost,
    InflightCost,
    StagingCost,
)
from pif_kernel.models.project import (
    PROJECT_BUSINESS_FIELDS,
    PROJECT_FIELDS,
    PROJECT_KEY_FIELDS,
    ApprovedProject,
    InflightProject,
    StagingProject,
)
from pif_kernel.models.reporting_period import ReportingPeriodMarker
from pif_kernel.models.stores import REPORTABLE_STORES, Store, models_for, resolve_store
from pif_kernel.models.submission_log import SubmissionLogEntry

__all__ = [
    "ApprovedCost",
    "ApprovedProject",
    "COST_FIELDS",
    "COST_KEY_FIELDS",
    "COST_VALUE_FIELDS",
    "InflightCost",
    "InflightProject",
    "PROJECT_BUSINESS_FIELDS",
    "PROJECT_FIELDS",
    "PROJECT_KEY_FIELDS",
    "REPORTABLE_STORES",
    "ReportingPeriodMarker",
    "StagingCost",
    "StagingProject",
    "Store",
    "SubmissionLogEntry",
    "models_for",
    "resolve_store",
]
