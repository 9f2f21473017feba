"""
Submission log ORM model.

Contract:
    Append-only record of who submitted which batch, for which site, when,
    and how many rows it carried.  Rows are never updated or deleted by the
    pipeline.

Architecture: pif_kernel/models. Imports from pif_kernel.db only.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from pif_kernel.db.base import TimestampedBase, UUIDString


class SubmissionLogEntry(TimestampedBase):
    """One successful submission."""

    __tablename__ = "pif_submission_log"

    batch_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    submission_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    submitted_by: Mapped[str] = mapped_column(String(128), nullable=False)
    site: Mapped[str] = mapped_column(String(4), nullable=False)
    source_file: Mapped[str | None] = mapped_column(String(255))
    record_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cost_record_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    notes: Mapped[str | None] = mapped_column(String(500))

    __table_args__ = (
        Index("idx_pif_submission_log_site_date", "site", "submission_date"),
    )

    def __repr__(self) -> str:
        return f"<SubmissionLogEntry {self.batch_id} site={self.site} by={self.submitted_by}>"
