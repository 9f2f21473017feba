"""
Reporting period -- the floating year/month the wide views are anchored to.

Responsibility:
    Models the "current reporting year/month" that cost pivots are relative
    to.  The period moves when actual costs are loaded, not when the
    calendar turns, so it is supplied by a provider rather than computed
    from ``now()``.

Architecture position:
    Kernel > Domain -- pure.  The database-backed provider lives in
    ``pif_kernel.services.reporting_period_service``.

Failure modes:
    - ValueError on a month outside 1..12 or a non-positive year.
    - ReportingPeriodUnavailableError from providers that have no period.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ReportingPeriod:
    """A reporting year/month reference (CY / CM)."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if self.year < 1:
            raise ValueError(f"Invalid reporting year: {self.year}")
        if not 1 <= self.month <= 12:
            raise ValueError(f"Invalid reporting month: {self.month}")

    def year_for_offset(self, offset: int) -> int:
        """Calendar year that wide column offset ``offset`` refers to."""
        return self.year + offset

    def offset_for_year(self, year: int) -> int:
        return year - self.year

    def __str__(self) -> str:
        return f"{self.year}-{self.month:02d}"


class ReportingPeriodProvider(ABC):
    """
    Source of the current reporting period.

    Contract:
        ``current()`` returns the period to anchor wide views on, or raises
        ReportingPeriodUnavailableError.  Implementations must not fall back
        to the calendar.
    """

    @abstractmethod
    def current(self) -> ReportingPeriod:
        ...


class FixedReportingPeriodProvider(ReportingPeriodProvider):
    """Provider that always returns the same period (tests, CLI overrides)."""

    def __init__(self, year: int, month: int = 12):
        self._period = ReportingPeriod(year=year, month=month)

    def current(self) -> ReportingPeriod:
        return self._period
