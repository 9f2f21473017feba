"""
SubmissionService -- validate, stage, commit to Inflight, log.

Responsibility:
    The write path of a site's submission.  A batch with blocking validation
    failures writes nothing and comes back as a rejected SubmissionResult
    carrying its report.  An accepted batch replaces the staging tables,
    replaces the site's Inflight rows from staging and appends an entry to
    the submission log.

Architecture position:
    Ingestion > Services.  Flushes only; PifPipeline or the caller's
    session_scope() makes the staging reload and the Inflight replace one
    transaction.

Failure modes:
    - TransactionFailedError from the Inflight commit propagates.
    - A submission log write failure is logged and does not fail the
      submission (SubmissionLogService writes in a SAVEPOINT).
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from pif_config.schema import ValidationRulesDef
from pif_kernel.domain.clock import Clock
from pif_kernel.logging_config import LogContext, get_logger
from pif_kernel.services.base import BaseService
from pif_kernel.services.inflight_service import InflightService
from pif_kernel.services.submission_log_service import SubmissionLogService

from pif_ingestion.domain.coercion import build_submission_row
from pif_ingestion.domain.types import SubmissionResult
from pif_ingestion.services.staging_service import StagingService
from pif_ingestion.services.validation_service import ValidationService

logger = get_logger("ingestion.submission")


class SubmissionService(BaseService):

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        rules: ValidationRulesDef | None = None,
    ):
        super().__init__(session, clock)
        self.rules = rules or ValidationRulesDef()
        self._validation = ValidationService(self.rules, session)
        self._staging = StagingService(session, self._clock)
        self._inflight = InflightService(session, self._clock)
        self._log = SubmissionLogService(session, self._clock)

    def submit(
        self,
        batch: Sequence[Mapping[str, Any]],
        site: str,
        submitted_by: str,
        source_file: str | None = None,
        batch_id: UUID | None = None,
    ) -> SubmissionResult:
        batch_id = batch_id or uuid4()

        with LogContext.bind(
            site=site,
            batch_id=str(batch_id),
            submitted_by=submitted_by,
            operation="submit",
        ):
            report = self._validation.validate(batch, site)
            if report.has_blocking_failures:
                logger.warning(
                    "submission_rejected",
                    extra={
                        "site": site,
                        "error_count": report.error_count,
                        "warning_count": report.warning_count,
                        "source_file": source_file,
                    },
                )
                return SubmissionResult(
                    site=site,
                    batch_id=batch_id,
                    report=report,
                    accepted=False,
                    source_file=source_file,
                )

            rows = [
                build_submission_row(
                    raw, idx + 1, self.rules.date_format,
                    accept_iso_dates=self.rules.accept_iso_dates,
                )
                for idx, raw in enumerate(batch)
            ]
            projects_staged, costs_staged = self._staging.replace_batch(rows, batch_id)
            committed = self._inflight.commit_from_staging(site)
            entry = self._log.record(
                batch_id=batch_id,
                site=site,
                submitted_by=submitted_by,
                source_file=source_file,
                record_count=committed.projects_committed,
                cost_record_count=committed.costs_committed,
                notes=(
                    f"{report.warning_count} warning(s)" if report.warning_count else None
                ),
            )

            logger.info(
                "submission_accepted",
                extra={
                    "site": site,
                    "projects_committed": committed.projects_committed,
                    "costs_committed": committed.costs_committed,
                    "warning_count": report.warning_count,
                },
            )

        return SubmissionResult(
            site=site,
            batch_id=batch_id,
            report=report,
            accepted=True,
            projects_staged=projects_staged,
            costs_staged=costs_staged,
            projects_committed=committed.projects_committed,
            costs_committed=committed.costs_committed,
            log_entry_id=entry.id if entry is not None else None,
            source_file=source_file,
        )
