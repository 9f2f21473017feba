"""
Project record ORM models for the staging, inflight and approved stores.

Contract:
    The three stores share one column set (ProjectFieldsMixin) so that rows can
    be moved between them with set-based INSERT ... SELECT statements that
    copy every business field by name.

Invariants:
    - (pif_id, project_id, line_item) is unique in Inflight and in Approved.
      The Approved constraint is also the conflict target of the promotion
      upsert.
    - Staging has no uniqueness constraint: duplicate keys in a submission are
      reported by validation, never silently dropped by the database.

Architecture: pif_kernel/models. Imports from pif_kernel.db only.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from pif_kernel.db.base import TimestampedBase, UUIDString


class ProjectFieldsMixin:
    """Natural key and business fields common to every project store."""

    pif_id: Mapped[str] = mapped_column(String(16), nullable=False)
    project_id: Mapped[str] = mapped_column(String(10), nullable=False)
    line_item: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    status: Mapped[str | None] = mapped_column(String(58))
    change_type: Mapped[str | None] = mapped_column(String(50))
    accounting_treatment: Mapped[str | None] = mapped_column(String(30))
    category: Mapped[str | None] = mapped_column(String(26))
    seg: Mapped[int | None] = mapped_column(Integer)
    opco: Mapped[str | None] = mapped_column(String(4))
    site: Mapped[str] = mapped_column(String(4), nullable=False)
    strategic_rank: Mapped[str | None] = mapped_column(String(26))
    funding_project: Mapped[str | None] = mapped_column(String(10))
    project_name: Mapped[str | None] = mapped_column(String(35))
    original_fp_isd: Mapped[date | None] = mapped_column(Date)
    revised_fp_isd: Mapped[date | None] = mapped_column(Date)
    moving_isd_year: Mapped[str | None] = mapped_column(String(1))
    lcm_issue: Mapped[str | None] = mapped_column(String(20))
    justification: Mapped[str | None] = mapped_column(String(192))
    prior_year_spend: Mapped[Decimal | None] = mapped_column(Numeric(18, 2))
    archive_flag: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    include_flag: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


# Column names copied between stores, in table order.
PROJECT_KEY_FIELDS: tuple[str, ...] = ("pif_id", "project_id", "line_item")

PROJECT_BUSINESS_FIELDS: tuple[str, ...] = (
    "status",
    "change_type",
    "accounting_treatment",
    "category",
    "seg",
    "opco",
    "site",
    "strategic_rank",
    "funding_project",
    "project_name",
    "original_fp_isd",
    "revised_fp_isd",
    "moving_isd_year",
    "lcm_issue",
    "justification",
    "prior_year_spend",
    "archive_flag",
    "include_flag",
)

PROJECT_FIELDS: tuple[str, ...] = PROJECT_KEY_FIELDS + PROJECT_BUSINESS_FIELDS


class StagingProject(ProjectFieldsMixin, TimestampedBase):
    """Freshly submitted project row. Replaced wholesale by each submission."""

    __tablename__ = "pif_projects_staging"

    batch_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    source_row: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("idx_pif_projects_staging_site", "site"),
    )

    def __repr__(self) -> str:
        return f"<StagingProject {self.pif_id}/{self.project_id}/{self.line_item} site={self.site}>"


class InflightProject(ProjectFieldsMixin, TimestampedBase):
    """Open project record: the unit of editing between submissions."""

    __tablename__ = "pif_projects_inflight"

    submission_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        UniqueConstraint(
            "pif_id", "project_id", "line_item",
            name="uq_pif_projects_inflight_key",
        ),
        Index("idx_pif_projects_inflight_site", "site"),
        Index(
            "idx_pif_projects_inflight_promotable",
            "site", "archive_flag", "include_flag",
        ),
    )

    def __repr__(self) -> str:
        return f"<InflightProject {self.pif_id}/{self.project_id}/{self.line_item} site={self.site}>"


class ApprovedProject(ProjectFieldsMixin, TimestampedBase):
    """Finalized project record. Inserted once, then only updated in place."""

    __tablename__ = "pif_projects_approved"

    submission_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    approval_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "pif_id", "project_id", "line_item",
            name="uq_pif_projects_approved_key",
        ),
        Index("idx_pif_projects_approved_site", "site"),
    )

    def __repr__(self) -> str:
        return f"<ApprovedProject {self.pif_id}/{self.project_id}/{self.line_item} site={self.site}>"
