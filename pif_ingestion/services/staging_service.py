"""
Staging service: truncate-and-reload of the staging tables.

Each submission replaces the whole staging contents with its typed rows,
stamped with the batch id and the 1-based source row.  Flushes only; the
caller owns the transaction.
"""

from __future__ import annotations

from typing import Sequence
from uuid import UUID

from sqlalchemy import delete

from pif_kernel.logging_config import get_logger
from pif_kernel.models.cost import StagingCost
from pif_kernel.models.project import StagingProject
from pif_kernel.services.base import BaseService

from pif_ingestion.domain.types import SubmissionRow

logger = get_logger("ingestion.staging")


class StagingService(BaseService):

    def clear(self) -> None:
        """Delete every staged cost fact and project."""
        self.session.execute(delete(StagingCost))
        self.session.execute(delete(StagingProject))

    def replace_batch(self, rows: Sequence[SubmissionRow], batch_id: UUID) -> tuple[int, int]:
        """
        Replace the staging contents with ``rows``.

        Returns (projects staged, cost facts staged).
        """
        self.clear()

        project_count = 0
        cost_count = 0
        for row in rows:
            key = row.key
            self.session.add(
                StagingProject(batch_id=batch_id, source_row=row.source_row, **row.values)
            )
            project_count += 1
            for cost in row.costs:
                self.session.add(
                    StagingCost(
                        batch_id=batch_id,
                        pif_id=key.pif_id,
                        project_id=key.project_id,
                        line_item=key.line_item,
                        **cost.to_values(),
                    )
                )
                cost_count += 1

        self.session.flush()
        logger.info(
            "submission_staged",
            extra={
                "batch_id": str(batch_id),
                "projects_staged": project_count,
                "costs_staged": cost_count,
            },
        )
        return project_count, cost_count
