"""
ValidationService -- runs the validation rules over a batch or the staged rows.

Responsibility:
    Wraps the pure rules of ``pif_ingestion.domain.validators`` with the
    configured trigger values and structured logging, and re-reads staged
    rows from the database for ``validate_staging``.

Invariants enforced:
    - Read-only.  Never writes to any store, so it may run concurrently with
      a submission or a promotion.
    - Validation and type errors are returned as data in the
      ValidationReport, never raised.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Mapping, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from pif_config.schema import ValidationRulesDef
from pif_kernel.domain.dtos import ValidationReport
from pif_kernel.logging_config import LogContext, get_logger
from pif_kernel.models.cost import COST_KEY_FIELDS, COST_VALUE_FIELDS, StagingCost
from pif_kernel.models.project import PROJECT_FIELDS, PROJECT_KEY_FIELDS, StagingProject

from pif_ingestion.domain.validators import validate_batch

logger = get_logger("ingestion.validation")


class ValidationService:
    """Validates candidate batches against one site context."""

    def __init__(
        self,
        rules: ValidationRulesDef | None = None,
        session: Session | None = None,
    ):
        self.rules = rules or ValidationRulesDef()
        self.session = session

    def validate(
        self,
        batch: Sequence[Mapping[str, Any]],
        site_context: str,
        row_numbers: Sequence[int] | None = None,
    ) -> ValidationReport:
        with LogContext.bind(site=site_context, operation="validate"):
            report = validate_batch(batch, site_context, self.rules, row_numbers=row_numbers)
            self._log_report(report, site_context)
        return report

    def validate_staging(self, site_context: str) -> ValidationReport:
        """
        Re-run the rules over the rows currently in staging.

        Rows are reported by their source_row.

        Raises:
            ValueError: the service was built without a session.
        """
        if self.session is None:
            raise ValueError("validate_staging requires a session")

        projects = self.session.scalars(
            select(StagingProject).order_by(StagingProject.source_row, StagingProject.id)
        ).all()

        costs_by_key: dict[tuple, list[dict[str, Any]]] = defaultdict(list)
        for cost in self.session.scalars(select(StagingCost).order_by(StagingCost.id)):
            key = tuple(getattr(cost, f) for f in PROJECT_KEY_FIELDS)
            costs_by_key[key].append(
                {f: getattr(cost, f) for f in COST_KEY_FIELDS + COST_VALUE_FIELDS
                 if f not in PROJECT_KEY_FIELDS}
            )

        batch = []
        for project in projects:
            candidate: dict[str, Any] = {f: getattr(project, f) for f in PROJECT_FIELDS}
            candidate["costs"] = costs_by_key.get(
                tuple(getattr(project, f) for f in PROJECT_KEY_FIELDS), []
            )
            batch.append(candidate)

        return self.validate(
            batch,
            site_context,
            row_numbers=[p.source_row for p in projects],
        )

    def _log_report(self, report: ValidationReport, site_context: str) -> None:
        logger.info(
            "validation_completed",
            extra={
                "site": site_context,
                "row_count": report.row_count,
                "error_count": report.error_count,
                "warning_count": report.warning_count,
                "blocking": report.has_blocking_failures,
            },
        )
        for issue in report.failures:
            logger.debug(
                "validation_failure",
                extra={
                    "row": issue.row,
                    "field": issue.field,
                    "rule": issue.rule,
                    "severity": issue.severity.value,
                    "detail": issue.message,
                },
            )
