"""
WideViewSelector -- the reporting pivot over Inflight or Approved.

Responsibility:
    Produces one row per project with its non-cost attributes passed through
    and 36 cost cells, one per (scenario, value kind, year offset), where
    offset 0 is the current reporting year supplied by a
    ReportingPeriodProvider.

Architecture position:
    Kernel > Selectors -- read-only.

Invariants enforced:
    - The reference year is never derived from the calendar.
    - Each cell is MAX(CASE WHEN scenario = s AND year = CY + k THEN value END)
      over the project's cost facts.  The cost key is unique per store, so at
      most one fact feeds a cell and MAX is exact.
    - Projects without cost facts appear with every cell NULL (left join).

Failure modes:
    - UnknownStoreError for a store other than inflight/approved.
    - ReportingPeriodUnavailableError from the provider, raised before any
      pivot query is issued.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import and_, case, func, select
from sqlalchemy.orm import Session

from pif_kernel.domain.reporting_period import ReportingPeriod, ReportingPeriodProvider
from pif_kernel.domain.wide_schema import WIDE_COLUMN_NAMES, WIDE_COLUMNS
from pif_kernel.logging_config import get_logger
from pif_kernel.models.project import PROJECT_KEY_FIELDS
from pif_kernel.models.stores import Store, models_for, resolve_store
from pif_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.wide_view")

# Row bookkeeping columns that are not project attributes.
_INTERNAL_COLUMNS = frozenset({"id", "created_at", "updated_at"})


class WideViewSelector(BaseSelector):
    """
    Fixed-schema wide view of cost facts relative to the reporting period.

    Contract:
        ``get_wide_view(store, site=None)`` returns a list of dicts whose keys
        are the project attribute columns of the store followed by
        WIDE_COLUMN_NAMES, ordered by (site, pif_id, project_id, line_item).
    """

    def __init__(self, session: Session, period_provider: ReportingPeriodProvider):
        super().__init__(session)
        self._period_provider = period_provider

    def column_names(self, store: str | Store) -> tuple[str, ...]:
        """Keys of every row returned by get_wide_view for ``store``, in order."""
        project_model, _ = models_for(store)
        return tuple(
            col.name
            for col in project_model.__table__.columns
            if col.name not in _INTERNAL_COLUMNS
        ) + WIDE_COLUMN_NAMES

    def get_wide_view(
        self,
        store: str | Store,
        site: str | None = None,
    ) -> list[dict[str, Any]]:
        resolved = resolve_store(store)
        project_model, cost_model = models_for(resolved)
        period = self._period_provider.current()

        p = project_model.__table__
        pivot = self._cost_pivot(cost_model.__table__, period)

        passthrough = [col for col in p.columns if col.name not in _INTERNAL_COLUMNS]
        join_on = and_(*[p.c[f] == pivot.c[f] for f in PROJECT_KEY_FIELDS])
        stmt = (
            select(*passthrough, *[pivot.c[name] for name in WIDE_COLUMN_NAMES])
            .select_from(p.outerjoin(pivot, join_on))
            .order_by(p.c.site, *[p.c[f] for f in PROJECT_KEY_FIELDS])
        )
        if site is not None:
            stmt = stmt.where(p.c.site == site)

        rows = [dict(row._mapping) for row in self.session.execute(stmt)]
        logger.debug(
            "wide_view_built",
            extra={
                "store": resolved.value,
                "site": site,
                "reporting_period": str(period),
                "row_count": len(rows),
            },
        )
        return rows

    @staticmethod
    def _cost_pivot(c, period: ReportingPeriod):
        cells = [
            func.max(
                case(
                    (
                        and_(
                            c.c.scenario == column.scenario,
                            c.c.year == period.year_for_offset(column.offset),
                        ),
                        c.c[column.value_attr],
                    ),
                )
            ).label(column.name)
            for column in WIDE_COLUMNS
        ]
        keys = [c.c[f] for f in PROJECT_KEY_FIELDS]
        return select(*keys, *cells).group_by(*keys).subquery("cost_pivot")
