"""
Pytest fixtures for the PIF pipeline test suite.

Provides:
- an in-memory SQLite database per test (fresh schema every time)
- a ``session`` for seeding and inspecting the stores, and a
  ``session_factory`` for code under test that owns its own session_scope()
- a DeterministicClock and a fixed reporting period
- factories for store rows and submission candidates
- structured log capture

Both ``session`` and every session built by ``session_factory`` run inside
SAVEPOINTs of one outer connection transaction, so a test can seed with
``session``, hand ``session_factory`` to a PifPipeline, and read the result
back through ``session`` (call ``session.expire_all()`` first).

Environment Variables:
- PIF_TEST_DATABASE_URL: PostgreSQL URL for tests marked ``postgres``.
  Those tests are skipped when it is not set.
"""

import json
import logging
import os
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO
from typing import Any, Generator

import pytest
from sqlalchemy.orm import Session, sessionmaker

from pif_kernel.db.engine import create_tables, init_engine_from_url, reset_engine
from pif_kernel.domain.clock import DeterministicClock
from pif_kernel.domain.reporting_period import FixedReportingPeriodProvider
from pif_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from pif_kernel.models import (
    ApprovedCost,
    ApprovedProject,
    InflightCost,
    InflightProject,
)

TEST_DATABASE_URL = "sqlite:///:memory:"
POSTGRES_URL_ENV = "PIF_TEST_DATABASE_URL"

# Default approval timestamp for Approved rows seeded directly
SEED_APPROVAL_DATE = datetime(2025, 1, 15, 9, 0, 0, tzinfo=timezone.utc)


def pytest_collection_modifyitems(config, items):
    """Skip PostgreSQL-only tests when no PostgreSQL URL is configured."""
    if os.environ.get(POSTGRES_URL_ENV):
        return
    skip_pg = pytest.mark.skip(reason=f"{POSTGRES_URL_ENV} not set")
    for item in items:
        if "postgres" in item.keywords:
            item.add_marker(skip_pg)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture pif_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, session):
            PromotionService(session).archive_approved("ANO")
            logs = captured_logs()
            assert any(r["message"] == "promotion_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("pif_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def engine():
    """Fresh in-memory database with every table created."""
    eng = init_engine_from_url(TEST_DATABASE_URL)
    create_tables()
    yield eng
    reset_engine()


@pytest.fixture
def connection(engine):
    """One connection holding an outer transaction for the whole test."""
    conn = engine.connect()
    trans = conn.begin()
    yield conn
    if trans.is_active:
        trans.rollback()
    conn.close()


@pytest.fixture
def session_factory(connection) -> sessionmaker[Session]:
    """Factory whose sessions commit to SAVEPOINTs of the test connection."""
    return sessionmaker(
        bind=connection,
        join_transaction_mode="create_savepoint",
        expire_on_commit=False,
    )


@pytest.fixture
def session(connection) -> Generator[Session, None, None]:
    """Seeding and inspection session on the test connection."""
    sess = Session(bind=connection, join_transaction_mode="create_savepoint")
    yield sess
    sess.close()


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    """Clock fixed at 2025-06-30 12:00 UTC."""
    return DeterministicClock()


@pytest.fixture
def period_provider() -> FixedReportingPeriodProvider:
    """Reporting period 2025-06: CY columns are 2025, CY5 is 2030."""
    return FixedReportingPeriodProvider(2025, 6)


# =============================================================================
# Row factories
# =============================================================================


@pytest.fixture
def make_project(session, deterministic_clock):
    """
    Add one Inflight or Approved project and flush.

    Defaults describe a promotable project (PIF-1, P-100, line 1) at site ANO.
    """

    def _make_project(store: str = "inflight", **overrides: Any):
        values: dict[str, Any] = {
            "pif_id": "PIF-1",
            "project_id": "P-100",
            "line_item": 1,
            "site": "ANO",
            "status": "Open",
            "change_type": "Budget Adjustment",
            "category": "Capital",
            "project_name": "Boiler feed pump",
            "justification": "Initial",
            "archive_flag": True,
            "include_flag": True,
            "submission_date": deterministic_clock.now(),
        }
        values.update(overrides)
        if store == "approved":
            values.setdefault("approval_date", SEED_APPROVAL_DATE)
            project = ApprovedProject(**values)
        else:
            project = InflightProject(**values)
        session.add(project)
        session.flush()
        return project

    return _make_project


@pytest.fixture
def make_cost(session):
    """Add one Inflight or Approved cost fact and flush."""

    def _make_cost(
        store: str = "inflight",
        *,
        pif_id: str = "PIF-1",
        project_id: str = "P-100",
        line_item: int = 1,
        scenario: str = "Target",
        year: int = 2025,
        requested: Decimal | str | None = "100",
        current: Decimal | str | None = "90",
        variance: Decimal | str | None = "-10",
    ):
        values: dict[str, Any] = {
            "pif_id": pif_id,
            "project_id": project_id,
            "line_item": line_item,
            "scenario": scenario,
            "year": year,
            "requested_value": None if requested is None else Decimal(requested),
            "current_value": None if current is None else Decimal(current),
            "variance_value": None if variance is None else Decimal(variance),
        }
        if store == "approved":
            cost = ApprovedCost(approval_date=SEED_APPROVAL_DATE, **values)
        else:
            cost = InflightCost(**values)
        session.add(cost)
        session.flush()
        return cost

    return _make_cost


@pytest.fixture
def make_candidate():
    """
    Build one valid submission candidate (untyped, as read from a sheet).

    Keyword overrides replace fields; pass ``costs=[...]`` to replace the
    default single Target cost entry.
    """

    def _make_candidate(**overrides: Any) -> dict[str, Any]:
        candidate: dict[str, Any] = {
            "pif_id": "PIF-1",
            "project_id": "P-100",
            "line_item": "1",
            "site": "ANO",
            "status": "Open",
            "change_type": "Budget Adjustment",
            "category": "Capital",
            "seg": "120",
            "project_name": "Boiler feed pump",
            "justification": "Needed for outage",
            "archive_flag": "yes",
            "include_flag": "yes",
            "costs": [
                {
                    "scenario": "Target",
                    "year": "2025",
                    "requested_value": "100",
                    "current_value": "90",
                    "variance_value": "-10",
                }
            ],
        }
        candidate.update(overrides)
        return candidate

    return _make_candidate
