"""Tests for ReportingPeriod and the fixed provider."""

import pytest

from pif_kernel.domain.reporting_period import (
    FixedReportingPeriodProvider,
    ReportingPeriod,
    ReportingPeriodProvider,
)


class TestReportingPeriod:
    def test_year_for_offset(self):
        period = ReportingPeriod(2025, 6)
        assert period.year_for_offset(0) == 2025
        assert period.year_for_offset(5) == 2030

    def test_offset_for_year(self):
        assert ReportingPeriod(2025, 6).offset_for_year(2027) == 2

    def test_str(self):
        assert str(ReportingPeriod(2026, 3)) == "2026-03"

    @pytest.mark.parametrize("month", [0, 13, -1])
    def test_invalid_month_rejected(self, month):
        with pytest.raises(ValueError, match="month"):
            ReportingPeriod(2025, month)

    def test_invalid_year_rejected(self):
        with pytest.raises(ValueError, match="year"):
            ReportingPeriod(0, 1)

    def test_frozen(self):
        period = ReportingPeriod(2025, 6)
        with pytest.raises(AttributeError):
            period.year = 2026


class TestFixedReportingPeriodProvider:
    def test_returns_configured_period(self):
        provider = FixedReportingPeriodProvider(2024, 11)
        assert provider.current() == ReportingPeriod(2024, 11)

    def test_month_defaults_to_december(self):
        assert FixedReportingPeriodProvider(2024).current().month == 12

    def test_is_a_provider(self):
        assert isinstance(FixedReportingPeriodProvider(2024), ReportingPeriodProvider)

    def test_invalid_period_rejected_at_construction(self):
        with pytest.raises(ValueError):
            FixedReportingPeriodProvider(2024, 14)
