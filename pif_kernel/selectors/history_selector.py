"""
HistorySelector -- long-form views across the stores.

current_working(): Inflight projects joined with their cost facts, one row per
    fact (or one row with NULL cost columns for a project without facts).
all_history(): the same shape for Inflight and Approved combined, with a
    ``source`` column ("Inflight" / "Approved") and approval_date NULL for
    Inflight rows.
record_counts(): project and cost row counts per store.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import and_, cast, func, literal, null, select, union_all
from sqlalchemy.types import DateTime, String

from pif_kernel.domain.dtos import StoreCounts
from pif_kernel.models.cost import COST_KEY_FIELDS, COST_VALUE_FIELDS
from pif_kernel.models.project import PROJECT_FIELDS, PROJECT_KEY_FIELDS
from pif_kernel.models.stores import Store, models_for
from pif_kernel.selectors.base import BaseSelector

_COST_COLUMNS = tuple(f for f in COST_KEY_FIELDS if f not in PROJECT_KEY_FIELDS) + COST_VALUE_FIELDS

SOURCE_INFLIGHT = "Inflight"
SOURCE_APPROVED = "Approved"


class HistorySelector(BaseSelector):

    def current_working(self, site: str | None = None) -> list[dict[str, Any]]:
        stmt = self._long_select(Store.INFLIGHT, site=site)
        stmt = stmt.order_by(*self._long_order(stmt.selected_columns))
        return [dict(r._mapping) for r in self.session.execute(stmt)]

    def all_history(self, site: str | None = None) -> list[dict[str, Any]]:
        inflight = self._long_select(Store.INFLIGHT, site=site, source=SOURCE_INFLIGHT)
        approved = self._long_select(Store.APPROVED, site=site, source=SOURCE_APPROVED)
        history = union_all(inflight, approved).subquery("history")
        stmt = select(history).order_by(
            history.c.source.desc(),
            *self._long_order(history.c),
        )
        return [dict(r._mapping) for r in self.session.execute(stmt)]

    def record_counts(self, site: str | None = None) -> tuple[StoreCounts, ...]:
        counts = []
        for store in (Store.STAGING, Store.INFLIGHT, Store.APPROVED):
            project_model, cost_model = models_for(store, allowed=tuple(Store))
            p, c = project_model.__table__, cost_model.__table__

            projects = select(func.count()).select_from(p)
            costs = select(func.count()).select_from(
                c.join(p, and_(*[p.c[f] == c.c[f] for f in PROJECT_KEY_FIELDS]))
            )
            if site is not None:
                projects = projects.where(p.c.site == site)
                costs = costs.where(p.c.site == site)

            counts.append(
                StoreCounts(
                    store=store.value,
                    projects=self.session.execute(projects).scalar_one(),
                    costs=self.session.execute(costs).scalar_one(),
                )
            )
        return tuple(counts)

    # ------------------------------------------------------------------

    @staticmethod
    def _long_select(store: Store, site: str | None = None, source: str | None = None):
        project_model, cost_model = models_for(store)
        p, c = project_model.__table__, cost_model.__table__

        columns = []
        if source is not None:
            columns.append(literal(source, String(8)).label("source"))
        columns.extend(p.c[f] for f in PROJECT_FIELDS)
        columns.append(p.c.submission_date)
        if source is not None:
            if "approval_date" in p.c:
                columns.append(p.c.approval_date)
            else:
                columns.append(cast(null(), DateTime(timezone=True)).label("approval_date"))
        columns.extend(c.c[f] for f in _COST_COLUMNS)

        join_on = and_(*[p.c[f] == c.c[f] for f in PROJECT_KEY_FIELDS])
        stmt = select(*columns).select_from(p.outerjoin(c, join_on))
        if site is not None:
            stmt = stmt.where(p.c.site == site)
        return stmt

    @staticmethod
    def _long_order(cols):
        return [cols.site, cols.pif_id, cols.project_id, cols.line_item, cols.scenario, cols.year]
