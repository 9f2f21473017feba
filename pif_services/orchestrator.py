"""
pif_services.orchestrator -- PifPipeline, the caller-facing facade.

Responsibility:
    Exposes the external interfaces of the pipeline (validate, submit,
    archive_approved, get_wide_view, history queries) and owns one
    session_scope() per operation, so every write operation commits or
    rolls back as a unit.

Architecture position:
    Services -- orchestration over pif_kernel and pif_ingestion.
    Receives a session factory, a Clock, the PipelineConfig and optionally a
    ReportingPeriodProvider; constructs the kernel services per operation.

Invariants enforced:
    - archive_approved is all-or-nothing: PromotionService flushes inside a
      session_scope() that commits only after every step succeeded.
    - Promotion is refused when the caller passes a validation report with
      blocking failures.
    - The wide view's reference year comes from the period provider (fixed
      configuration or the pif_reporting_periods table), never the calendar.

Failure modes:
    - archive_approved converts PifKernelError and SQLAlchemyError into an
      ArchiveOutcome with status "error" after the rollback, and logs it.
    - Every other operation lets typed errors propagate
      (ReportingPeriodUnavailableError, UnknownStoreError,
      TransactionFailedError).

Audit relevance:
    Each archive run gets a correlation_id bound into the log context;
    promotion_* events and the outcome share it.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, Sequence
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from pif_config.schema import PipelineConfig, ValidationRulesDef
from pif_ingestion.adapters import adapter_for
from pif_ingestion.domain.types import SubmissionResult
from pif_ingestion.domain.unpivot import unpivot_rows
from pif_ingestion.services.submission_service import SubmissionService
from pif_ingestion.services.validation_service import ValidationService
from pif_kernel.db.engine import get_session_factory, init_engine_from_url, session_scope
from pif_kernel.domain.clock import Clock, SystemClock
from pif_kernel.domain.dtos import (
    ArchiveOutcome,
    OutcomeStatus,
    ProjectKey,
    StoreCounts,
    ValidationReport,
)
from pif_kernel.domain.reporting_period import (
    FixedReportingPeriodProvider,
    ReportingPeriod,
    ReportingPeriodProvider,
)
from pif_kernel.exceptions import PifKernelError, PromotionRefusedError, TransactionFailedError
from pif_kernel.logging_config import LogContext, get_logger
from pif_kernel.models.stores import Store
from pif_kernel.selectors.history_selector import HistorySelector
from pif_kernel.selectors.wide_view_selector import WideViewSelector
from pif_kernel.services.base import db_error_reason
from pif_kernel.services.inflight_service import InflightService
from pif_kernel.services.promotion_service import PromotionService
from pif_kernel.services.reporting_period_service import (
    DatabaseReportingPeriodProvider,
    ReportingPeriodService,
)

logger = get_logger("services.pipeline")


class PifPipeline:
    """
    One object per application; one session per call.

    Contract:
        Every public method opens its own session from ``session_factory``.
        Services underneath only flush; this class decides commit/rollback.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
        config: PipelineConfig | None = None,
        period_provider: ReportingPeriodProvider | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._config = config
        self._period_provider = period_provider

    @classmethod
    def from_config(cls, config: PipelineConfig, clock: Clock | None = None) -> "PifPipeline":
        """Initialize the engine from ``config.database`` and build a pipeline on it."""
        db = config.database
        init_engine_from_url(
            db.url,
            echo=db.echo,
            pool_size=db.pool_size,
            max_overflow=db.max_overflow,
            pool_timeout=db.pool_timeout,
        )
        return cls(get_session_factory(), clock=clock, config=config)

    @property
    def rules(self) -> ValidationRulesDef:
        return self._config.validation if self._config is not None else ValidationRulesDef()

    def _provider_for(self, session: Session) -> ReportingPeriodProvider:
        if self._period_provider is not None:
            return self._period_provider
        reporting = self._config.reporting if self._config is not None else None
        if reporting is not None and reporting.fixed_year is not None:
            return FixedReportingPeriodProvider(reporting.fixed_year, reporting.fixed_month)
        return DatabaseReportingPeriodProvider(session)

    def _scope(self):
        return session_scope(self._session_factory)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(
        self,
        batch: Sequence[Mapping[str, Any]],
        site_context: str,
    ) -> ValidationReport:
        """Validate a candidate batch. Read-only; no session needed."""
        return ValidationService(self.rules).validate(batch, site_context)

    def validate_staging(self, site_context: str) -> ValidationReport:
        with self._scope() as session:
            return ValidationService(self.rules, session).validate_staging(site_context)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit(
        self,
        batch: Sequence[Mapping[str, Any]],
        site: str,
        submitted_by: str,
        source_file: str | None = None,
    ) -> SubmissionResult:
        """Validate, stage and commit a batch to Inflight in one transaction."""
        with self._scope() as session:
            return SubmissionService(session, self._clock, self.rules).submit(
                batch, site, submitted_by, source_file=source_file,
            )

    def read_file(
        self,
        path: Path | str,
        options: dict[str, Any] | None = None,
        period: ReportingPeriod | None = None,
    ) -> list[dict[str, Any]]:
        """
        Read a CSV/XLSX submission and unpivot its wide cost columns.

        Raises:
            ValueError: unsupported file type.
            ReportingPeriodUnavailableError: no period given and none configured.
        """
        path = Path(path)
        if period is None:
            with self._scope() as session:
                period = self._provider_for(session).current()
        raw_rows = adapter_for(path).read(path, options or {})
        return unpivot_rows(raw_rows, period)

    def submit_file(
        self,
        path: Path | str,
        site: str,
        submitted_by: str,
        options: dict[str, Any] | None = None,
    ) -> SubmissionResult:
        path = Path(path)
        with self._scope() as session:
            period = self._provider_for(session).current()
            batch = unpivot_rows(adapter_for(path).read(path, options or {}), period)
            logger.info(
                "submission_file_read",
                extra={
                    "source_file": str(path),
                    "row_count": len(batch),
                    "reporting_period": str(period),
                },
            )
            return SubmissionService(session, self._clock, self.rules).submit(
                batch, site, submitted_by, source_file=path.name,
            )

    def save_inflight_project(
        self,
        values: Mapping[str, Any],
        costs: Sequence[Mapping[str, Any]] = (),
    ) -> ProjectKey:
        """Direct edit of one Inflight project and its cost facts."""
        with self._scope() as session:
            project = InflightService(session, self._clock).save_project(values, costs)
            return ProjectKey(project.pif_id, project.project_id, project.line_item)

    # ------------------------------------------------------------------
    # Promotion
    # ------------------------------------------------------------------

    def archive_approved(
        self,
        site: str,
        validation_report: ValidationReport | None = None,
    ) -> ArchiveOutcome:
        """
        Promote the site's flagged-and-included Inflight projects to Approved.

        Never raises for promotion failures: the outcome carries status
        "error" with the underlying message, and nothing was written.
        """
        with LogContext.bind(
            correlation_id=str(uuid4()), site=site, operation="archive_approved",
        ):
            try:
                if validation_report is not None and validation_report.has_blocking_failures:
                    raise PromotionRefusedError(site, len(validation_report.failures))
                with self._scope() as session:
                    result = PromotionService(session, self._clock).archive_approved(site)
            except PifKernelError as exc:
                return self._error_outcome(site, exc.code, str(exc))
            except SQLAlchemyError as exc:
                # Raised by the commit itself, after every step had flushed
                return self._error_outcome(
                    site, TransactionFailedError.code, db_error_reason(exc),
                )

            logger.info(
                "archive_succeeded",
                extra={
                    "site": site,
                    "projects_affected": result.projects_affected,
                    "costs_affected": result.costs_affected,
                },
            )
            return ArchiveOutcome(
                status=OutcomeStatus.SUCCESS,
                site=site,
                projects_affected=result.projects_affected,
                costs_affected=result.costs_affected,
            )

    @staticmethod
    def _error_outcome(site: str, code: str, message: str) -> ArchiveOutcome:
        logger.error(
            "archive_failed",
            extra={"site": site, "error_code": code, "error": message},
        )
        return ArchiveOutcome(
            status=OutcomeStatus.ERROR,
            site=site,
            error_message=message,
            error_code=code,
        )

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def get_wide_view(self, store: str | Store, site: str | None = None) -> list[dict[str, Any]]:
        with self._scope() as session:
            selector = WideViewSelector(session, self._provider_for(session))
            return selector.get_wide_view(store, site=site)

    def wide_view_columns(self, store: str | Store) -> tuple[str, ...]:
        with self._scope() as session:
            return WideViewSelector(session, self._provider_for(session)).column_names(store)

    def current_working(self, site: str | None = None) -> list[dict[str, Any]]:
        with self._scope() as session:
            return HistorySelector(session).current_working(site)

    def all_history(self, site: str | None = None) -> list[dict[str, Any]]:
        with self._scope() as session:
            return HistorySelector(session).all_history(site)

    def record_counts(self, site: str | None = None) -> tuple[StoreCounts, ...]:
        with self._scope() as session:
            return HistorySelector(session).record_counts(site)

    def record_reporting_period(self, year: int, month: int) -> ReportingPeriod:
        with self._scope() as session:
            return ReportingPeriodService(session, self._clock).record_period(year, month)

    def current_reporting_period(self) -> ReportingPeriod:
        with self._scope() as session:
            return self._provider_for(session).current()
