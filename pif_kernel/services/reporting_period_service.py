"""
Reporting period persistence.

ReportingPeriodService records that actuals were loaded through a period;
DatabaseReportingPeriodProvider serves the most recent marker as the current
reporting period.  The provider raises instead of guessing when no marker
exists, so wide views are never anchored to the wrong year.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from pif_kernel.domain.reporting_period import ReportingPeriod, ReportingPeriodProvider
from pif_kernel.exceptions import ReportingPeriodUnavailableError
from pif_kernel.logging_config import get_logger
from pif_kernel.models.reporting_period import ReportingPeriodMarker
from pif_kernel.services.base import BaseService

logger = get_logger("services.reporting_period")


class ReportingPeriodService(BaseService):
    """Writes reporting period markers."""

    def record_period(self, year: int, month: int) -> ReportingPeriod:
        """
        Mark actuals as loaded through year/month, making it the current period.

        Raises:
            ValueError: month outside 1..12 or non-positive year.
        """
        period = ReportingPeriod(year=year, month=month)
        marker = ReportingPeriodMarker(
            period_year=period.year,
            period_month=period.month,
            loaded_at=self._clock.now(),
        )
        self.session.add(marker)
        self.session.flush()
        logger.info(
            "reporting_period_recorded",
            extra={"period_year": period.year, "period_month": period.month},
        )
        return period


class DatabaseReportingPeriodProvider(ReportingPeriodProvider):
    """Current period = most recently loaded marker in pif_reporting_periods."""

    def __init__(self, session: Session):
        self.session = session

    def current(self) -> ReportingPeriod:
        marker = self.session.execute(
            select(ReportingPeriodMarker)
            .order_by(
                ReportingPeriodMarker.loaded_at.desc(),
                ReportingPeriodMarker.id.desc(),
            )
            .limit(1)
        ).scalar_one_or_none()
        if marker is None:
            logger.error("reporting_period_unavailable")
            raise ReportingPeriodUnavailableError(ReportingPeriodMarker.__tablename__)
        return ReportingPeriod(year=marker.period_year, month=marker.period_month)
