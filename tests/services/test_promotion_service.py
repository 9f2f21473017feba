"""
Promotion from Inflight to Approved (pif_kernel/services/promotion_service.py).

Covers the promotion scenarios (first promotion, re-promotion of a changed
project), idempotence, no duplication, total cost replacement, site
isolation, and atomicity when cost replacement fails after the upsert.
"""

from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from pif_kernel.db.engine import session_scope
from pif_kernel.domain.dtos import ProjectKey
from pif_kernel.exceptions import TransactionFailedError, UnsupportedDialectError
from pif_kernel.models import ApprovedCost, ApprovedProject, InflightCost, InflightProject
from pif_kernel.services import promotion_service
from pif_kernel.services.inflight_service import InflightService
from pif_kernel.services.promotion_service import PromotionService


def _naive(dt):
    return dt.replace(tzinfo=None)


def _approved_projects(session, **where):
    stmt = select(ApprovedProject).order_by(ApprovedProject.site, ApprovedProject.pif_id)
    for name, value in where.items():
        stmt = stmt.where(getattr(ApprovedProject, name) == value)
    return session.scalars(stmt).all()


def _costs(session, model, pif_id="PIF-1", project_id="P-100"):
    rows = session.scalars(
        select(model)
        .where(model.pif_id == pif_id, model.project_id == project_id)
        .order_by(model.scenario, model.year)
    ).all()
    return [
        (c.scenario, c.year, c.requested_value, c.current_value, c.variance_value)
        for c in rows
    ]


def _inflight_keys(session):
    return [
        (p.site, p.pif_id, p.project_id)
        for p in session.scalars(
            select(InflightProject).order_by(InflightProject.site, InflightProject.pif_id)
        )
    ]


def _store_snapshot(session):
    """Every project and cost row of Inflight and Approved as plain tuples."""
    session.expire_all()
    snapshot = {}
    for model in (InflightProject, ApprovedProject):
        snapshot[model.__tablename__] = sorted(
            (p.pif_id, p.project_id, p.line_item, p.site, p.justification)
            for p in session.scalars(select(model))
        )
    for model in (InflightCost, ApprovedCost):
        snapshot[model.__tablename__] = sorted(
            (c.pif_id, c.project_id, c.scenario, c.year, c.requested_value)
            for c in session.scalars(select(model))
        )
    return snapshot


class TestFirstPromotion:
    """Inflight (PIF-1, P-100) at ANO with one Target 2025 cost fact."""

    @pytest.fixture
    def seeded(self, make_project, make_cost):
        make_project()
        make_cost(requested="100", current="90", variance="-10")

    def test_project_and_cost_move_to_approved(self, session, seeded, deterministic_clock):
        result = PromotionService(session, deterministic_clock).archive_approved("ANO")

        assert result.projects_affected == 1
        assert result.costs_affected == 1
        assert result.keys == (ProjectKey("PIF-1", "P-100", 1),)

        approved = _approved_projects(session)
        assert [(p.pif_id, p.project_id, p.site) for p in approved] == [("PIF-1", "P-100", "ANO")]
        assert _costs(session, ApprovedCost) == [
            ("Target", 2025, Decimal("100"), Decimal("90"), Decimal("-10")),
        ]

    def test_removed_from_inflight(self, session, seeded, deterministic_clock):
        PromotionService(session, deterministic_clock).archive_approved("ANO")

        assert _inflight_keys(session) == []
        assert _costs(session, InflightCost) == []

    def test_approval_date_from_clock(self, session, seeded, deterministic_clock):
        result = PromotionService(session, deterministic_clock).archive_approved("ANO")

        expected = _naive(deterministic_clock.now())
        assert result.approval_date == deterministic_clock.now()
        assert _naive(_approved_projects(session)[0].approval_date) == expected
        cost = session.scalars(select(ApprovedCost)).one()
        assert _naive(cost.approval_date) == expected

    def test_business_fields_copied(self, session, make_project, deterministic_clock):
        make_project(category="Compliance", lcm_issue="LCM-7", seg=420, opco="GP")
        PromotionService(session, deterministic_clock).archive_approved("ANO")

        approved = _approved_projects(session)[0]
        assert (approved.category, approved.lcm_issue, approved.seg, approved.opco) == (
            "Compliance", "LCM-7", 420, "GP",
        )
        assert approved.archive_flag is True
        assert _naive(approved.submission_date) == _naive(deterministic_clock.now())

    @pytest.mark.parametrize(
        "flags",
        [
            {"archive_flag": False, "include_flag": True},
            {"archive_flag": True, "include_flag": False},
            {"archive_flag": False, "include_flag": False},
        ],
    )
    def test_only_flagged_and_included_promoted(self, session, make_project, make_cost, deterministic_clock, flags):
        make_project(**flags)
        make_cost()

        result = PromotionService(session, deterministic_clock).archive_approved("ANO")

        assert result.projects_affected == 0
        assert _approved_projects(session) == []
        assert _inflight_keys(session) == [("ANO", "PIF-1", "P-100")]
        assert len(_costs(session, InflightCost)) == 1

    def test_no_candidates_is_a_no_op(self, session, deterministic_clock):
        result = PromotionService(session, deterministic_clock).archive_approved("ANO")
        assert (result.projects_affected, result.costs_affected, result.keys) == (0, 0, ())


class TestRePromotion:
    """Re-promotion of (PIF-1, P-100) after an Inflight edit."""

    def test_updates_in_place(self, session, make_project, make_cost, deterministic_clock):
        make_project()
        make_cost(requested="100", current="90", variance="-10")
        PromotionService(session, deterministic_clock).archive_approved("ANO")

        deterministic_clock.advance(3600)
        InflightService(session, deterministic_clock).save_project(
            {
                "pif_id": "PIF-1",
                "project_id": "P-100",
                "site": "ANO",
                "change_type": "Budget Adjustment",
                "justification": "Updated",
                "archive_flag": True,
                "include_flag": True,
            },
            costs=[{
                "scenario": "Target",
                "year": 2025,
                "requested_value": Decimal("150"),
                "current_value": Decimal("90"),
                "variance_value": Decimal("60"),
            }],
        )
        PromotionService(session, deterministic_clock).archive_approved("ANO")

        approved = _approved_projects(session, pif_id="PIF-1", project_id="P-100")
        assert len(approved) == 1
        assert approved[0].justification == "Updated"
        assert _naive(approved[0].approval_date) == _naive(deterministic_clock.now())
        assert _costs(session, ApprovedCost) == [
            ("Target", 2025, Decimal("150"), Decimal("90"), Decimal("60")),
        ]

    def test_existing_approved_row_updated_not_duplicated(
        self, session, make_project, deterministic_clock,
    ):
        make_project("approved", justification="Old", status="Open")
        make_project(justification="New", status="Approved")

        PromotionService(session, deterministic_clock).archive_approved("ANO")

        approved = _approved_projects(session)
        assert len(approved) == 1
        assert (approved[0].justification, approved[0].status) == ("New", "Approved")
        assert _naive(approved[0].approval_date) == _naive(deterministic_clock.now())

    def test_second_run_without_changes_is_a_no_op(
        self, session, make_project, make_cost, deterministic_clock,
    ):
        make_project()
        make_cost()
        service = PromotionService(session, deterministic_clock)
        service.archive_approved("ANO")
        before = _store_snapshot(session)
        first_approval = _approved_projects(session)[0].approval_date

        deterministic_clock.advance(60)
        result = service.archive_approved("ANO")

        assert (result.projects_affected, result.costs_affected) == (0, 0)
        assert _store_snapshot(session) == before
        assert _approved_projects(session)[0].approval_date == first_approval


class TestCostReplacement:
    def test_stale_approved_costs_removed(self, session, make_project, make_cost, deterministic_clock):
        make_project("approved")
        make_cost("approved", scenario="Target", year=2024, requested="1")
        make_cost("approved", scenario="Closings", year=2025, requested="2")
        make_project()
        make_cost(scenario="Target", year=2025, requested="100")

        PromotionService(session, deterministic_clock).archive_approved("ANO")

        assert _costs(session, ApprovedCost) == [
            ("Target", 2025, Decimal("100"), Decimal("90"), Decimal("-10")),
        ]

    def test_promoting_without_costs_clears_approved_costs(
        self, session, make_project, make_cost, deterministic_clock,
    ):
        make_project("approved")
        make_cost("approved", year=2024)
        make_project()

        result = PromotionService(session, deterministic_clock).archive_approved("ANO")

        assert result.costs_affected == 0
        assert _costs(session, ApprovedCost) == []

    def test_other_projects_costs_untouched(self, session, make_project, make_cost, deterministic_clock):
        make_project("approved", pif_id="PIF-9", project_id="P-900")
        make_cost("approved", pif_id="PIF-9", project_id="P-900", requested="7")
        make_project()
        make_cost()

        PromotionService(session, deterministic_clock).archive_approved("ANO")

        assert _costs(session, ApprovedCost, "PIF-9", "P-900") == [
            ("Target", 2025, Decimal("7"), Decimal("90"), Decimal("-10")),
        ]

    def test_line_items_promoted_separately(self, session, make_project, make_cost, deterministic_clock):
        make_project(line_item=1)
        make_project(line_item=2, justification="Second line")
        make_cost(line_item=1, requested="10")
        make_cost(line_item=2, requested="20")

        result = PromotionService(session, deterministic_clock).archive_approved("ANO")

        assert result.projects_affected == 2
        assert result.costs_affected == 2
        by_line = {c.line_item: c.requested_value for c in session.scalars(select(ApprovedCost))}
        assert by_line == {1: Decimal("10"), 2: Decimal("20")}


class TestSiteIsolation:
    def test_other_site_untouched(self, session, make_project, make_cost, deterministic_clock):
        make_project(pif_id="PIF-1", site="ANO")
        make_cost(pif_id="PIF-1")
        make_project(pif_id="PIF-2", site="BRW")
        make_cost(pif_id="PIF-2", requested="55")
        make_project("approved", pif_id="PIF-3", site="BRW", justification="Approved BRW")
        make_cost("approved", pif_id="PIF-3", requested="33")
        before = _store_snapshot(session)

        result = PromotionService(session, deterministic_clock).archive_approved("ANO")

        assert result.keys == (ProjectKey("PIF-1", "P-100", 1),)
        after = _store_snapshot(session)
        assert ("PIF-2", "P-100", 1, "BRW", "Initial") in after["pif_projects_inflight"]
        assert ("PIF-2", "P-100", "Target", 2025, Decimal("55")) in after["pif_cost_inflight"]
        assert ("PIF-3", "P-100", 1, "BRW", "Approved BRW") in after["pif_projects_approved"]
        assert ("PIF-3", "P-100", "Target", 2025, Decimal("33")) in after["pif_cost_approved"]
        brw_rows = [r for r in after["pif_projects_approved"] if r[3] == "BRW"]
        assert brw_rows == [r for r in before["pif_projects_approved"] if r[3] == "BRW"]

    def test_other_site_approval_dates_unchanged(self, session, make_project, deterministic_clock):
        seeded = make_project("approved", pif_id="PIF-3", site="BRW")
        original = seeded.approval_date
        make_project(pif_id="PIF-1", site="ANO")

        PromotionService(session, deterministic_clock).archive_approved("ANO")

        brw = _approved_projects(session, site="BRW")[0]
        assert _naive(brw.approval_date) == _naive(original)


class TestAtomicity:
    """A failure in cost replacement leaves both stores as they were."""

    @staticmethod
    def _failing_cost_replacement(self, site, approval_date):
        raise OperationalError(
            "DELETE FROM pif_cost_approved", {}, Exception("database is locked"),
        )

    @pytest.fixture
    def seeded(self, session, make_project, make_cost):
        make_project("approved", justification="Before")
        make_cost("approved", year=2024, requested="1")
        make_project(justification="After")
        make_cost(requested="100")
        make_project(pif_id="PIF-2", project_id="P-200")
        session.commit()

    def test_forced_failure_rolls_back_everything(
        self, session, session_factory, seeded, deterministic_clock, monkeypatch,
    ):
        before = _store_snapshot(session)
        monkeypatch.setattr(
            PromotionService, "_replace_approved_costs", self._failing_cost_replacement,
        )

        with pytest.raises(TransactionFailedError) as exc_info:
            with session_scope(session_factory) as scoped:
                PromotionService(scoped, deterministic_clock).archive_approved("ANO")

        assert exc_info.value.code == "TRANSACTION_FAILED"
        assert exc_info.value.site == "ANO"
        assert "database is locked" in exc_info.value.reason
        assert _store_snapshot(session) == before

    def test_retry_after_failure_succeeds(
        self, session, session_factory, seeded, deterministic_clock, monkeypatch,
    ):
        with monkeypatch.context() as patch:
            patch.setattr(
                PromotionService, "_replace_approved_costs", self._failing_cost_replacement,
            )
            with pytest.raises(TransactionFailedError):
                with session_scope(session_factory) as scoped:
                    PromotionService(scoped, deterministic_clock).archive_approved("ANO")

        with session_scope(session_factory) as scoped:
            result = PromotionService(scoped, deterministic_clock).archive_approved("ANO")

        assert result.projects_affected == 2
        session.expire_all()
        assert _approved_projects(session, pif_id="PIF-1")[0].justification == "After"
        assert _costs(session, ApprovedCost) == [
            ("Target", 2025, Decimal("100"), Decimal("90"), Decimal("-10")),
        ]

    def test_failure_logged_with_step(
        self, session, session_factory, seeded, deterministic_clock, monkeypatch, captured_logs,
    ):
        monkeypatch.setattr(
            PromotionService, "_replace_approved_costs", self._failing_cost_replacement,
        )
        with pytest.raises(TransactionFailedError):
            with session_scope(session_factory) as scoped:
                PromotionService(scoped, deterministic_clock).archive_approved("ANO")

        logs = captured_logs()
        failed = [r for r in logs if r["message"] == "promotion_failed"]
        assert len(failed) == 1
        assert failed[0]["step"] == "replace_approved_costs"
        assert failed[0]["site"] == "ANO"
        assert any(r["message"] == "transaction_rolled_back" for r in logs)
        assert not any(r["message"] == "promotion_completed" for r in logs)


class TestDialectAndLogging:
    def test_unsupported_dialect_rejected_before_any_write(
        self, session, make_project, deterministic_clock, monkeypatch,
    ):
        make_project()
        monkeypatch.setattr(promotion_service, "dialect_name", lambda _session: "mssql")

        with pytest.raises(UnsupportedDialectError) as exc_info:
            PromotionService(session, deterministic_clock).archive_approved("ANO")

        assert exc_info.value.dialect == "mssql"
        assert _inflight_keys(session) == [("ANO", "PIF-1", "P-100")]

    def test_step_events_in_order(self, session, make_project, make_cost, deterministic_clock, captured_logs):
        make_project()
        make_cost()

        PromotionService(session, deterministic_clock).archive_approved("ANO")

        messages = [
            r["message"] for r in captured_logs()
            if r["logger"] == "pif_kernel.services.promotion"
        ]
        assert messages == [
            "promotion_started",
            "promotion_candidates_selected",
            "approved_projects_upserted",
            "approved_costs_replaced",
            "inflight_records_removed",
            "promotion_completed",
        ]

    def test_events_carry_site_context(self, session, make_project, deterministic_clock, captured_logs):
        make_project()
        PromotionService(session, deterministic_clock).archive_approved("ANO")

        completed = [r for r in captured_logs() if r["message"] == "promotion_completed"][0]
        assert completed["site"] == "ANO"
        assert completed["operation"] == "archive_approved"
        assert completed["projects_affected"] == 1
