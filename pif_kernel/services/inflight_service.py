"""
InflightService -- maintains the Inflight working store.

Responsibility:
    Replaces a site's Inflight rows from Staging after a submission has
    validated (commit_to_inflight), and applies direct edits of single
    Inflight projects with their cost facts.

Architecture position:
    Kernel > Services -- imperative shell, flush-only.

Invariants enforced:
    - Commit is site-scoped: only the committing site's Inflight rows are
      deleted and only that site's Staging rows are copied.
    - Cost facts are deleted before and inserted after their projects.
    - submission_date comes from the injected Clock.

Failure modes:
    - TransactionFailedError wrapping the database error (for example an
      Inflight unique-key violation when Staging was not validated).  The
      caller must roll back.
    - DuplicateKeyError from add_project() when the key already exists.
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from sqlalchemy import and_, delete, func, insert, literal, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.types import DateTime

from pif_kernel.domain.dtos import InflightCommitResult, ProjectKey
from pif_kernel.exceptions import DuplicateKeyError, TransactionFailedError
from pif_kernel.logging_config import LogContext, get_logger
from pif_kernel.models.cost import COST_FIELDS, COST_VALUE_FIELDS, InflightCost, StagingCost
from pif_kernel.models.project import (
    PROJECT_BUSINESS_FIELDS,
    PROJECT_FIELDS,
    InflightProject,
    StagingProject,
)
from pif_kernel.services.base import BaseService, db_error_reason

logger = get_logger("services.inflight")


def key_of(values: Mapping[str, Any]) -> ProjectKey:
    """Natural key of a project or cost mapping; line_item defaults to 1."""
    line_item = values.get("line_item")
    return ProjectKey(
        pif_id=values["pif_id"],
        project_id=values["project_id"],
        line_item=1 if line_item is None else int(line_item),
    )


class InflightService(BaseService):
    """
    Write access to the Inflight store.

    Contract:
        All methods flush within the caller's transaction.

    Non-goals:
        - Promotion out of Inflight (see PromotionService).
        - Validation (see pif_ingestion.services.ValidationService).
    """

    # ------------------------------------------------------------------
    # Commit from staging
    # ------------------------------------------------------------------

    def commit_from_staging(self, site: str) -> InflightCommitResult:
        """
        Replace the site's Inflight projects and costs with its Staging rows.

        Postconditions: Inflight holds exactly the site's staged projects
            (submission_date = now) and their staged cost facts.  Other
            sites' Inflight rows are untouched.
        """
        submission_date = self._clock.now()
        sp = StagingProject.__table__
        sc = StagingCost.__table__
        ip = InflightProject.__table__
        ic = InflightCost.__table__

        with LogContext.bind(site=site, operation="commit_to_inflight"):
            self.session.flush()
            try:
                self.session.execute(
                    delete(ic).where(
                        select(ip.c.id)
                        .where(
                            ip.c.pif_id == ic.c.pif_id,
                            ip.c.project_id == ic.c.project_id,
                            ip.c.line_item == ic.c.line_item,
                            ip.c.site == site,
                        )
                        .correlate(ic)
                        .exists()
                    )
                )
                self.session.execute(delete(ip).where(ip.c.site == site))

                project_count = self.session.execute(
                    select(func.count()).select_from(sp).where(sp.c.site == site)
                ).scalar_one()
                self.session.execute(
                    insert(ip).from_select(
                        [*PROJECT_FIELDS, "submission_date", "updated_at"],
                        select(
                            *[sp.c[f] for f in PROJECT_FIELDS],
                            literal(submission_date, DateTime(timezone=True)).label("submission_date"),
                            literal(submission_date, DateTime(timezone=True)).label("updated_at"),
                        ).where(sp.c.site == site),
                    )
                )

                staged_cost_filter = (
                    select(sp.c.id)
                    .where(
                        sp.c.pif_id == sc.c.pif_id,
                        sp.c.project_id == sc.c.project_id,
                        sp.c.line_item == sc.c.line_item,
                        sp.c.site == site,
                    )
                    .correlate(sc)
                    .exists()
                )
                cost_count = self.session.execute(
                    select(func.count()).select_from(sc).where(staged_cost_filter)
                ).scalar_one()
                self.session.execute(
                    insert(ic).from_select(
                        list(COST_FIELDS),
                        select(*[sc.c[f] for f in COST_FIELDS]).where(staged_cost_filter),
                    )
                )
            except SQLAlchemyError as exc:
                logger.error(
                    "inflight_commit_failed",
                    extra={"site": site, "error": str(exc)},
                )
                raise TransactionFailedError(
                    "commit_to_inflight", site, db_error_reason(exc),
                ) from exc

            self.session.expire_all()
            logger.info(
                "inflight_committed",
                extra={
                    "site": site,
                    "projects_committed": project_count,
                    "costs_committed": cost_count,
                },
            )

        return InflightCommitResult(
            site=site,
            projects_committed=project_count,
            costs_committed=cost_count,
            submission_date=submission_date,
        )

    # ------------------------------------------------------------------
    # Direct edits
    # ------------------------------------------------------------------

    def save_project(
        self,
        values: Mapping[str, Any],
        costs: Sequence[Mapping[str, Any]] = (),
    ) -> InflightProject:
        """
        Insert or update one Inflight project and replace its cost facts.

        ``values`` carries project fields by name; unknown names are ignored
        and line_item defaults to 1.  The project's existing cost facts are
        replaced by ``costs`` in full.
        """
        key = key_of(values)
        project = self._find(key)
        if project is None:
            project = InflightProject(
                pif_id=key.pif_id,
                project_id=key.project_id,
                line_item=key.line_item,
            )
            self.session.add(project)
        self._apply_fields(project, values)
        project.submission_date = self._clock.now()
        self._replace_costs(key, costs)
        self.session.flush()

        logger.info(
            "inflight_project_saved",
            extra={
                "pif_id": key.pif_id,
                "project_id": key.project_id,
                "line_item": key.line_item,
                "site": project.site,
                "cost_count": len(costs),
            },
        )
        return project

    def add_project(
        self,
        values: Mapping[str, Any],
        costs: Sequence[Mapping[str, Any]] = (),
    ) -> InflightProject:
        """
        Insert a new Inflight project; refuse if its key is already present.

        Raises:
            DuplicateKeyError: The natural key already exists in Inflight.
        """
        key = key_of(values)
        if self._find(key) is not None:
            raise DuplicateKeyError("inflight", key.pif_id, key.project_id, key.line_item)
        return self.save_project(values, costs)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _find(self, key: ProjectKey) -> InflightProject | None:
        return self.session.execute(
            select(InflightProject).where(
                InflightProject.pif_id == key.pif_id,
                InflightProject.project_id == key.project_id,
                InflightProject.line_item == key.line_item,
            )
        ).scalar_one_or_none()

    @staticmethod
    def _apply_fields(project: InflightProject, values: Mapping[str, Any]) -> None:
        for name in PROJECT_BUSINESS_FIELDS:
            if name in values:
                setattr(project, name, values[name])
        if project.archive_flag is None:
            project.archive_flag = False
        if project.include_flag is None:
            project.include_flag = False

    def _replace_costs(self, key: ProjectKey, costs: Sequence[Mapping[str, Any]]) -> None:
        self.session.execute(
            delete(InflightCost)
            .where(
                and_(
                    InflightCost.pif_id == key.pif_id,
                    InflightCost.project_id == key.project_id,
                    InflightCost.line_item == key.line_item,
                )
            )
        )
        for cost in costs:
            self.session.add(
                InflightCost(
                    pif_id=key.pif_id,
                    project_id=key.project_id,
                    line_item=key.line_item,
                    scenario=cost["scenario"],
                    year=int(cost["year"]),
                    **{f: cost.get(f) for f in COST_VALUE_FIELDS},
                )
            )

