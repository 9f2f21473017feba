"""Tests for reading wide cost columns back into cost entries."""

from pif_ingestion.domain.unpivot import unpivot_rows, unpivot_wide_row
from pif_kernel.domain.reporting_period import ReportingPeriod

PERIOD = ReportingPeriod(2025, 6)


class TestUnpivotWideRow:
    def test_project_fields_normalized(self):
        row = unpivot_wide_row(
            {"PIF ID": "PIF-1", "Project ID": "P-100", "Site": "ANO", "Archive": "yes"},
            PERIOD,
        )
        assert row["pif_id"] == "PIF-1"
        assert row["project_id"] == "P-100"
        assert row["site"] == "ANO"
        assert row["archive_flag"] == "yes"
        assert row["costs"] == []

    def test_cells_grouped_by_scenario_and_year(self):
        row = unpivot_wide_row(
            {
                "PIF ID": "PIF-1",
                "Target_Req_CY": "100",
                "Target_Curr_CY": "90",
                "Target_Var_CY": "-10",
                "Closings_Req_CY2": "55",
            },
            PERIOD,
        )
        assert row["costs"] == [
            {
                "scenario": "Target",
                "year": 2025,
                "requested_value": "100",
                "current_value": "90",
                "variance_value": "-10",
            },
            {"scenario": "Closings", "year": 2027, "requested_value": "55"},
        ]

    def test_offsets_follow_the_period(self):
        row = unpivot_wide_row({"Target_Req_CY5": 1}, ReportingPeriod(2030, 1))
        assert row["costs"] == [{"scenario": "Target", "year": 2035, "requested_value": 1}]

    def test_empty_cells_skipped(self):
        row = unpivot_wide_row(
            {"Target_Req_CY": "", "Target_Curr_CY": None, "Closings_Var_CY1": "  "},
            PERIOD,
        )
        assert row["costs"] == []

    def test_unknown_headers_dropped(self):
        row = unpivot_wide_row({"PIF ID": "PIF-1", "Notes": "ignore me", "Column_9": "x"}, PERIOD)
        assert set(row) == {"pif_id", "costs"}

    def test_long_form_costs_kept_first(self):
        existing = {"scenario": "Closings", "year": 2024, "current_value": "7"}
        row = unpivot_wide_row({"costs": [existing], "Target_Req_CY": "3"}, PERIOD)
        assert row["costs"][0] == existing
        assert row["costs"][1]["scenario"] == "Target"


class TestUnpivotRows:
    def test_preserves_order(self):
        rows = unpivot_rows([{"PIF ID": "A"}, {"PIF ID": "B"}], PERIOD)
        assert [r["pif_id"] for r in rows] == ["A", "B"]
