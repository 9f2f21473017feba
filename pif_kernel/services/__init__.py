"""Services for the PIF kernel (write side)."""

from pif_kernel.services.inflight_service import InflightService, key_of
from pif_kernel.services.promotion_service import PromotionService
from pif_kernel.services.reporting_period_service import (
    DatabaseReportingPeriodProvider,
    ReportingPeriodService,
)
from pif_kernel.services.submission_log_service import SubmissionLogService

__all__ = [
    "DatabaseReportingPeriodProvider",
    "InflightService",
    "PromotionService",
    "ReportingPeriodService",
    "SubmissionLogService",
    "key_of",
]
