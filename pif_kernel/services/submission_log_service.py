"""
SubmissionLogService -- append-only audit log of submissions.

Responsibility:
    Records who submitted which batch for which site and how many rows it
    carried.

Architecture position:
    Kernel > Services -- imperative shell, flush-only.

Failure modes:
    A failure to write the log entry is logged as ``submission_log_failed``
    and rolled back to a SAVEPOINT; it never fails the submission it
    describes.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from pif_kernel.logging_config import get_logger
from pif_kernel.models.submission_log import SubmissionLogEntry
from pif_kernel.services.base import BaseService, db_error_reason

logger = get_logger("services.submission_log")


class SubmissionLogService(BaseService):
    """Appends SubmissionLogEntry rows inside the caller's transaction."""

    def record(
        self,
        *,
        batch_id: UUID,
        site: str,
        submitted_by: str,
        source_file: str | None = None,
        record_count: int = 0,
        cost_record_count: int = 0,
        notes: str | None = None,
    ) -> SubmissionLogEntry | None:
        """
        Append one log entry.

        Returns the flushed entry, or None when the write failed (the
        failure is logged and confined to a SAVEPOINT).
        """
        entry = SubmissionLogEntry(
            batch_id=batch_id,
            submission_date=self._clock.now(),
            submitted_by=submitted_by,
            site=site,
            source_file=source_file,
            record_count=record_count,
            cost_record_count=cost_record_count,
            notes=notes,
        )
        try:
            with self.session.begin_nested():
                self.session.add(entry)
                self.session.flush()
        except SQLAlchemyError as exc:
            logger.warning(
                "submission_log_failed",
                extra={
                    "batch_id": str(batch_id),
                    "site": site,
                    "error": db_error_reason(exc),
                },
            )
            return None

        logger.info(
            "submission_logged",
            extra={
                "batch_id": str(batch_id),
                "site": site,
                "submitted_by": submitted_by,
                "record_count": record_count,
                "cost_record_count": cost_record_count,
            },
        )
        return entry
