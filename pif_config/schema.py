"""
Pipeline configuration schema.

Frozen dataclasses the YAML configuration is parsed into.  Defaults here
mirror ``pif_config/defaults.yaml`` so that a partial YAML file only needs
to name the values it overrides.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseDef:
    """Connection settings passed to pif_kernel.db.engine.init_engine_from_url."""

    url: str = "sqlite:///pif.db"
    echo: bool = False
    pool_size: int = 10
    max_overflow: int = 5
    pool_timeout: int = 30


# ---------------------------------------------------------------------------
# Validation rules (data, not code)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ValidationRulesDef:
    """Trigger values and limits used by the validation engine."""

    # revised_fp_isd is required when change_type equals this value
    revised_isd_trigger_change_type: str = "Funding/Scope/Schedule Change"
    # lcm_issue is required when category equals this value
    lcm_issue_trigger_category: str = "Compliance"
    # justification is required when status is one of these
    justification_required_statuses: tuple[str, ...] = ("Approved", "Dispositioned")
    date_format: str = "%m/%d/%Y"
    # also accept YYYY-MM-DD text dates
    accept_iso_dates: bool = False
    seg_min: int = 0
    seg_max: int = 99999
    variance_warning_threshold: Decimal = Decimal("-1000000")
    valid_scenarios: tuple[str, ...] = ("Target", "Closings")
    warnings_block: bool = False


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReportingDef:
    """
    Reporting period source.

    When fixed_year is set the wide views are anchored to it; otherwise the
    most recently recorded reporting period in the database is used.
    """

    fixed_year: int | None = None
    fixed_month: int = 12


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PipelineConfig:
    """Root configuration object returned by get_active_config()."""

    database: DatabaseDef = field(default_factory=DatabaseDef)
    validation: ValidationRulesDef = field(default_factory=ValidationRulesDef)
    reporting: ReportingDef = field(default_factory=ReportingDef)
    source_path: str | None = None
    checksum: str = ""
