"""Tests for SubmissionService: validate, stage, commit to Inflight, log."""

from decimal import Decimal
from uuid import uuid4

from sqlalchemy import select

from pif_config.schema import ValidationRulesDef
from pif_ingestion.services.submission_service import SubmissionService
from pif_kernel.models import (
    InflightCost,
    InflightProject,
    StagingCost,
    StagingProject,
    SubmissionLogEntry,
)


def _all(session, model):
    return session.scalars(select(model)).all()


class TestAcceptedSubmission:
    def test_stages_commits_and_logs(self, session, make_candidate, deterministic_clock):
        batch = [
            make_candidate(),
            make_candidate(pif_id="PIF-2", costs=[
                {"scenario": "Target", "year": "2025", "requested_value": "5"},
                {"scenario": "Closings", "year": "2026", "requested_value": "7"},
            ]),
        ]
        batch_id = uuid4()

        result = SubmissionService(session, deterministic_clock).submit(
            batch, "ANO", "jdoe", source_file="ano.csv", batch_id=batch_id,
        )

        assert result.accepted
        assert result.batch_id == batch_id
        assert (result.projects_staged, result.costs_staged) == (2, 3)
        assert (result.projects_committed, result.costs_committed) == (2, 3)
        assert result.log_entry_id is not None

        staged = _all(session, StagingProject)
        assert sorted(p.source_row for p in staged) == [1, 2]
        assert {p.batch_id for p in staged} == {batch_id}

        projects = {p.pif_id: p for p in _all(session, InflightProject)}
        assert set(projects) == {"PIF-1", "PIF-2"}
        assert projects["PIF-1"].seg == 120
        assert projects["PIF-1"].archive_flag is True
        assert sorted(
            (c.pif_id, c.scenario, c.year, c.requested_value) for c in _all(session, InflightCost)
        ) == [
            ("PIF-1", "Target", 2025, Decimal("100")),
            ("PIF-2", "Closings", 2026, Decimal("7")),
            ("PIF-2", "Target", 2025, Decimal("5")),
        ]

        entry = session.scalars(select(SubmissionLogEntry)).one()
        assert entry.id == result.log_entry_id
        assert (entry.site, entry.submitted_by, entry.source_file) == ("ANO", "jdoe", "ano.csv")
        assert (entry.record_count, entry.cost_record_count) == (2, 3)
        assert entry.notes is None

    def test_resubmission_replaces_site_rows(self, session, make_candidate, deterministic_clock):
        service = SubmissionService(session, deterministic_clock)
        service.submit([make_candidate(), make_candidate(pif_id="PIF-2")], "ANO", "jdoe")
        service.submit([make_candidate(pif_id="PIF-3")], "ANO", "jdoe")

        assert [p.pif_id for p in _all(session, StagingProject)] == ["PIF-3"]
        assert [p.pif_id for p in _all(session, InflightProject)] == ["PIF-3"]
        assert [c.pif_id for c in _all(session, StagingCost)] == ["PIF-3"]
        assert len(_all(session, SubmissionLogEntry)) == 2

    def test_other_site_inflight_kept(self, session, make_project, make_candidate, deterministic_clock):
        make_project(pif_id="PIF-B", site="BRW")
        SubmissionService(session, deterministic_clock).submit([make_candidate()], "ANO", "jdoe")
        assert sorted(p.pif_id for p in _all(session, InflightProject)) == ["PIF-1", "PIF-B"]

    def test_warnings_do_not_block_by_default(self, session, make_candidate, deterministic_clock):
        candidate = make_candidate(costs=[
            {"scenario": "Target", "year": "2025", "variance_value": "-2000000"},
        ])

        result = SubmissionService(session, deterministic_clock).submit([candidate], "ANO", "jdoe")

        assert result.accepted
        assert result.report.warning_count == 1
        entry = session.scalars(select(SubmissionLogEntry)).one()
        assert entry.notes == "1 warning(s)"

    def test_logs_acceptance(self, session, make_candidate, deterministic_clock, captured_logs):
        SubmissionService(session, deterministic_clock).submit([make_candidate()], "ANO", "jdoe")
        messages = [r["message"] for r in captured_logs()]
        assert "submission_staged" in messages
        assert "inflight_committed" in messages
        accepted = [r for r in captured_logs() if r["message"] == "submission_accepted"]
        assert accepted[0]["projects_committed"] == 1


class TestRejectedSubmission:
    def test_blocking_failure_writes_nothing(self, session, make_project, make_candidate, deterministic_clock):
        make_project(pif_id="PIF-OLD")
        batch = [make_candidate(), make_candidate(site="BRW")]

        result = SubmissionService(session, deterministic_clock).submit(batch, "ANO", "jdoe")

        assert result.rejected
        assert result.report.has_blocking_failures
        assert result.projects_committed == 0
        assert result.log_entry_id is None
        assert _all(session, StagingProject) == []
        assert [p.pif_id for p in _all(session, InflightProject)] == ["PIF-OLD"]
        assert _all(session, SubmissionLogEntry) == []

    def test_duplicate_keys_reject_batch(self, session, make_candidate, deterministic_clock):
        result = SubmissionService(session, deterministic_clock).submit(
            [make_candidate(), make_candidate()], "ANO", "jdoe",
        )
        assert result.rejected
        assert sorted(i.row for i in result.report.failures_for("DUPLICATE_KEY")) == [1, 2]
        assert _all(session, InflightProject) == []

    def test_warnings_block_when_configured(self, session, make_candidate, deterministic_clock):
        candidate = make_candidate(costs=[
            {"scenario": "Target", "year": "2025", "variance_value": "-2000000"},
        ])
        service = SubmissionService(
            session, deterministic_clock, rules=ValidationRulesDef(warnings_block=True),
        )

        result = service.submit([candidate], "ANO", "jdoe")

        assert result.rejected
        assert _all(session, InflightProject) == []

    def test_rejection_logged(self, session, make_candidate, deterministic_clock, captured_logs):
        SubmissionService(session, deterministic_clock).submit(
            [make_candidate(site="BRW")], "ANO", "jdoe", source_file="brw.csv",
        )
        rejected = [r for r in captured_logs() if r["message"] == "submission_rejected"]
        assert len(rejected) == 1
        assert rejected[0]["level"] == "WARNING"
        assert rejected[0]["source_file"] == "brw.csv"
