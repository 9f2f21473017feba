"""
PromotionService -- moves approved PIFs from Inflight to Approved.

Responsibility:
    Implements ``archive_approved(site)``: every Inflight project of the site
    flagged both ready (archive_flag) and eligible (include_flag) is upserted
    into Approved by natural key, its Approved cost facts are replaced by its
    Inflight cost facts, and it is removed from Inflight.

Architecture position:
    Kernel > Services -- imperative shell, flush-only.  The caller's session
    scope is the atomic unit: it commits after a successful return and rolls
    back on any exception, so a promotion is either fully visible or not at
    all.

Invariants enforced:
    - At most one Approved project per (pif_id, project_id, line_item).
      Step 2 is a single INSERT ... SELECT ... ON CONFLICT DO UPDATE against
      the Approved unique key; there is no existence check followed by a
      separate insert.
    - Approved cost facts of a promoted key equal its Inflight cost facts at
      promotion time (delete-then-insert, never merged).
    - A promoted key is absent from Inflight after the promotion.
    - Every statement carries the site predicate; promoting one site never
      reads, writes or locks another site's candidate rows.
    - Re-running with no Inflight changes is a no-op: the candidates are gone.

Concurrency:
    On PostgreSQL a transaction-scoped advisory lock keyed on the site
    serializes promotions of the same site; different sites do not contend.
    SQLite serializes writers itself.

Failure modes:
    - UnsupportedDialectError before any statement runs on a database
      without ON CONFLICT support.
    - TransactionFailedError wrapping the database error of any step.  The
      session is left dirty; the owner of the transaction must roll back.

Audit relevance:
    approval_date on Approved projects and cost facts is the injected
    clock's time of the promotion that last wrote them.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, func, literal, select, text, true
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.types import DateTime

from pif_kernel.db.engine import dialect_name
from pif_kernel.domain.clock import Clock
from pif_kernel.domain.dtos import ArchiveResult, ProjectKey
from pif_kernel.exceptions import TransactionFailedError, UnsupportedDialectError
from pif_kernel.logging_config import LogContext, get_logger
from pif_kernel.models.cost import COST_FIELDS, ApprovedCost, InflightCost
from pif_kernel.models.project import (
    PROJECT_BUSINESS_FIELDS,
    PROJECT_FIELDS,
    PROJECT_KEY_FIELDS,
    ApprovedProject,
    InflightProject,
)
from pif_kernel.services.base import BaseService, db_error_reason

logger = get_logger("services.promotion")

# Dialect-specific INSERT constructs that support on_conflict_do_update().
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}

_SITE_LOCK_SQL = text("SELECT pg_advisory_xact_lock(hashtext(:lock_key))")


def _timestamp(value: datetime, label: str):
    return literal(value, DateTime(timezone=True)).label(label)


class PromotionService(BaseService):
    """
    Archive/upsert pipeline from Inflight to Approved.

    Contract:
        ``archive_approved(site)`` performs the five promotion steps inside
        the caller's transaction and returns the counts it moved.

    Guarantees:
        - Idempotent per natural key: safe to retry after a rolled-back
          failure, and a second run without Inflight changes moves nothing.
        - The approval timestamp is the injected clock's ``now()``, the same
          value for every row of one promotion.

    Non-goals:
        - Does NOT validate; callers check the ValidationReport first.
        - Does NOT commit or roll back.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)
        self._ip = InflightProject.__table__
        self._ic = InflightCost.__table__
        self._ap = ApprovedProject.__table__
        self._ac = ApprovedCost.__table__

    def archive_approved(self, site: str) -> ArchiveResult:
        """
        Promote the site's flagged and included Inflight projects.

        Preconditions: the caller owns the transaction and will commit on
            return or roll back on exception.
        Postconditions: see module invariants.

        Raises:
            UnsupportedDialectError: database lacks ON CONFLICT upsert.
            TransactionFailedError: any step failed; caller must roll back.
        """
        approval_date = self._clock.now()
        upsert_insert = self._upsert_insert()

        with LogContext.bind(site=site, operation="archive_approved"):
            logger.info(
                "promotion_started",
                extra={"site": site, "approval_date": approval_date},
            )

            step = "flush"
            try:
                self.session.flush()

                step = "lock_site"
                self._lock_site(site)

                step = "select_candidates"
                keys = self._select_candidates(site)
                logger.info(
                    "promotion_candidates_selected",
                    extra={"site": site, "candidate_count": len(keys)},
                )
                if not keys:
                    logger.info(
                        "promotion_completed",
                        extra={"site": site, "projects_affected": 0, "costs_affected": 0},
                    )
                    return ArchiveResult(
                        site=site,
                        projects_affected=0,
                        costs_affected=0,
                        approval_date=approval_date,
                    )

                step = "upsert_approved_projects"
                self._upsert_approved_projects(upsert_insert, site, approval_date)
                logger.info(
                    "approved_projects_upserted",
                    extra={"site": site, "project_count": len(keys)},
                )

                step = "replace_approved_costs"
                cost_count = self._replace_approved_costs(site, approval_date)
                logger.info(
                    "approved_costs_replaced",
                    extra={"site": site, "cost_count": cost_count},
                )

                step = "remove_from_inflight"
                self._remove_from_inflight(site)
                logger.info(
                    "inflight_records_removed",
                    extra={
                        "site": site,
                        "project_count": len(keys),
                        "cost_count": cost_count,
                    },
                )
            except SQLAlchemyError as exc:
                logger.error(
                    "promotion_failed",
                    extra={"site": site, "step": step, "error": str(exc)},
                )
                raise TransactionFailedError(
                    "archive_approved", site, db_error_reason(exc),
                ) from exc

            # Core DML bypassed the identity map.
            self.session.expire_all()

            logger.info(
                "promotion_completed",
                extra={
                    "site": site,
                    "projects_affected": len(keys),
                    "costs_affected": cost_count,
                },
            )

        return ArchiveResult(
            site=site,
            projects_affected=len(keys),
            costs_affected=cost_count,
            approval_date=approval_date,
            keys=tuple(keys),
        )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _upsert_insert(self):
        name = dialect_name(self.session)
        try:
            return _UPSERT_INSERTS[name]
        except KeyError:
            raise UnsupportedDialectError(name) from None

    def _lock_site(self, site: str) -> None:
        if dialect_name(self.session) == "postgresql":
            self.session.execute(_SITE_LOCK_SQL, {"lock_key": f"pif_promotion:{site}"})

    def _candidate_filter(self, site: str):
        ip = self._ip
        return (
            (ip.c.archive_flag == true())
            & (ip.c.include_flag == true())
            & (ip.c.site == site)
        )

    def _candidate_exists_for(self, cost_table, site: str):
        """EXISTS predicate matching cost rows whose project is a candidate."""
        ip = self._ip
        return (
            select(ip.c.id)
            .where(
                ip.c.pif_id == cost_table.c.pif_id,
                ip.c.project_id == cost_table.c.project_id,
                ip.c.line_item == cost_table.c.line_item,
                self._candidate_filter(site),
            )
            .correlate(cost_table)
            .exists()
        )

    def _select_candidates(self, site: str) -> list[ProjectKey]:
        ip = self._ip
        rows = self.session.execute(
            select(*[ip.c[f] for f in PROJECT_KEY_FIELDS])
            .where(self._candidate_filter(site))
            .order_by(*[ip.c[f] for f in PROJECT_KEY_FIELDS])
        ).all()
        return [ProjectKey(r.pif_id, r.project_id, r.line_item) for r in rows]

    def _upsert_approved_projects(self, upsert_insert, site: str, approval_date: datetime) -> None:
        ip, ap = self._ip, self._ap
        source = select(
            *[ip.c[f] for f in PROJECT_FIELDS],
            ip.c.submission_date,
            _timestamp(approval_date, "approval_date"),
            _timestamp(approval_date, "updated_at"),
        ).where(self._candidate_filter(site))

        stmt = upsert_insert(ap).from_select(
            [*PROJECT_FIELDS, "submission_date", "approval_date", "updated_at"],
            source,
        )
        refreshed = (*PROJECT_BUSINESS_FIELDS, "submission_date", "approval_date", "updated_at")
        stmt = stmt.on_conflict_do_update(
            index_elements=[ap.c[f] for f in PROJECT_KEY_FIELDS],
            set_={name: stmt.excluded[name] for name in refreshed},
        )
        self.session.execute(stmt)

    def _replace_approved_costs(self, site: str, approval_date: datetime) -> int:
        ic, ac = self._ic, self._ac

        self.session.execute(
            delete(ac).where(self._candidate_exists_for(ac, site))
        )

        inflight_costs = self._candidate_exists_for(ic, site)
        cost_count = self.session.execute(
            select(func.count()).select_from(ic).where(inflight_costs)
        ).scalar_one()

        self.session.execute(
            ac.insert().from_select(
                [*COST_FIELDS, "approval_date", "updated_at"],
                select(
                    *[ic.c[f] for f in COST_FIELDS],
                    _timestamp(approval_date, "approval_date"),
                    _timestamp(approval_date, "updated_at"),
                ).where(inflight_costs),
            )
        )
        return cost_count

    def _remove_from_inflight(self, site: str) -> None:
        ic, ip = self._ic, self._ip
        # Costs first: their predicate joins to the candidate projects.
        self.session.execute(delete(ic).where(self._candidate_exists_for(ic, site)))
        self.session.execute(delete(ip).where(self._candidate_filter(site)))

