"""Tests for the long-form history views and store counts."""

from decimal import Decimal
from uuid import uuid4

from pif_kernel.models import StagingProject
from pif_kernel.selectors.history_selector import HistorySelector


class TestCurrentWorking:
    def test_one_row_per_cost_fact(self, session, make_project, make_cost):
        make_project()
        make_cost(scenario="Target", year=2025)
        make_cost(scenario="Target", year=2026, requested="5")

        rows = HistorySelector(session).current_working()

        assert [(r["pif_id"], r["scenario"], r["year"], r["requested_value"]) for r in rows] == [
            ("PIF-1", "Target", 2025, Decimal("100")),
            ("PIF-1", "Target", 2026, Decimal("5")),
        ]
        assert "source" not in rows[0]

    def test_project_without_costs_listed_once(self, session, make_project):
        make_project()
        rows = HistorySelector(session).current_working()
        assert len(rows) == 1
        assert rows[0]["scenario"] is None
        assert rows[0]["requested_value"] is None

    def test_site_filter(self, session, make_project):
        make_project(pif_id="PIF-1", site="ANO")
        make_project(pif_id="PIF-2", site="BRW")
        assert [r["pif_id"] for r in HistorySelector(session).current_working(site="BRW")] == ["PIF-2"]


class TestAllHistory:
    def test_inflight_then_approved(self, session, make_project, make_cost):
        make_project(justification="Working copy")
        make_cost(year=2025)
        make_project("approved", justification="Approved copy")
        make_cost("approved", year=2025, requested="80")

        rows = HistorySelector(session).all_history()

        assert [(r["source"], r["justification"], r["requested_value"]) for r in rows] == [
            ("Inflight", "Working copy", Decimal("100")),
            ("Approved", "Approved copy", Decimal("80")),
        ]
        assert rows[0]["approval_date"] is None
        assert rows[1]["approval_date"] is not None

    def test_site_filter(self, session, make_project):
        make_project(site="ANO")
        make_project("approved", pif_id="PIF-2", site="BRW")
        rows = HistorySelector(session).all_history(site="BRW")
        assert [(r["source"], r["pif_id"]) for r in rows] == [("Approved", "PIF-2")]


class TestRecordCounts:
    def test_counts_per_store(self, session, make_project, make_cost):
        session.add(StagingProject(
            batch_id=uuid4(), source_row=1, pif_id="PIF-S", project_id="P-1", line_item=1,
            site="ANO", archive_flag=False, include_flag=False,
        ))
        make_project()
        make_cost(year=2025)
        make_cost(year=2026)
        make_project("approved", pif_id="PIF-2", site="BRW")

        counts = {c.store: (c.projects, c.costs) for c in HistorySelector(session).record_counts()}

        assert counts == {
            "staging": (1, 0),
            "inflight": (1, 2),
            "approved": (1, 0),
        }

    def test_counts_for_site(self, session, make_project):
        make_project(site="ANO")
        make_project("approved", pif_id="PIF-2", site="BRW")

        counts = {c.store: c.projects for c in HistorySelector(session).record_counts(site="BRW")}

        assert counts == {"staging": 0, "inflight": 0, "approved": 1}
