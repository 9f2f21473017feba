"""
Cost fact ORM models for the staging, inflight and approved stores.

Contract:
    One row per (pif_id, project_id, line_item, scenario, year).  A cost fact
    belongs to the project with the same key prefix in the same store; the
    services maintain that ownership (costs are always deleted before and
    inserted after their projects).

Invariants:
    - The full cost key is unique in Inflight and Approved, so each wide view
      cell is matched by at most one fact.

Architecture: pif_kernel/models. Imports from pif_kernel.db only.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import DateTime, Index, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from pif_kernel.db.base import TimestampedBase, UUIDString


class CostFieldsMixin:
    """Key and amounts common to every cost store."""

    pif_id: Mapped[str] = mapped_column(String(16), nullable=False)
    project_id: Mapped[str] = mapped_column(String(10), nullable=False)
    line_item: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    scenario: Mapped[str] = mapped_column(String(12), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    requested_value: Mapped[Decimal | None] = mapped_column(Numeric(18, 2))
    current_value: Mapped[Decimal | None] = mapped_column(Numeric(18, 2))
    variance_value: Mapped[Decimal | None] = mapped_column(Numeric(18, 2))


COST_KEY_FIELDS: tuple[str, ...] = (
    "pif_id",
    "project_id",
    "line_item",
    "scenario",
    "year",
)

COST_VALUE_FIELDS: tuple[str, ...] = (
    "requested_value",
    "current_value",
    "variance_value",
)

COST_FIELDS: tuple[str, ...] = COST_KEY_FIELDS + COST_VALUE_FIELDS


class StagingCost(CostFieldsMixin, TimestampedBase):
    """Freshly submitted cost fact."""

    __tablename__ = "pif_cost_staging"

    batch_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    __table_args__ = (
        Index("idx_pif_cost_staging_key", "pif_id", "project_id", "line_item"),
    )


class InflightCost(CostFieldsMixin, TimestampedBase):
    """Cost fact of an open project."""

    __tablename__ = "pif_cost_inflight"

    __table_args__ = (
        UniqueConstraint(
            "pif_id", "project_id", "line_item", "scenario", "year",
            name="uq_pif_cost_inflight_key",
        ),
    )


class ApprovedCost(CostFieldsMixin, TimestampedBase):
    """Cost fact of an approved project, as of its last promotion."""

    __tablename__ = "pif_cost_approved"

    approval_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "pif_id", "project_id", "line_item", "scenario", "year",
            name="uq_pif_cost_approved_key",
        ),
    )
