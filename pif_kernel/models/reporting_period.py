"""
Reporting period marker ORM model.

Contract:
    Each row records that actual costs were loaded for a reporting
    year/month.  The most recently loaded marker is the current reporting
    period; the table replaces the CY()/CM() database functions of the
    spreadsheet era.

Architecture: pif_kernel/models. Imports from pif_kernel.db only.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column

from pif_kernel.db.base import TimestampedBase


class ReportingPeriodMarker(TimestampedBase):
    """Actuals were loaded through period_year/period_month at loaded_at."""

    __tablename__ = "pif_reporting_periods"

    period_year: Mapped[int] = mapped_column(Integer, nullable=False)
    period_month: Mapped[int] = mapped_column(Integer, nullable=False)
    loaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint("period_month BETWEEN 1 AND 12", name="ck_pif_reporting_period_month"),
        Index("idx_pif_reporting_periods_loaded_at", "loaded_at"),
    )
