"""
Configuration Loader (``pif_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the frozen dataclasses
of ``pif_config.schema``.  Runtime callers use
``pif_config.get_active_config()``; the parse helpers are public for tests
and tooling.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` naming the offending
  key; unknown sections and keys are rejected rather than ignored.
* Every parsed object is a frozen dataclass from ``schema.py``.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the parsed
  document for change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Wrong value types or out-of-range values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import fields
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from pif_config.schema import DatabaseDef, PipelineConfig, ReportingDef, ValidationRulesDef
from pif_kernel.domain.wide_schema import SCENARIOS

_SECTIONS = ("database", "validation", "reporting")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def _check_keys(section: str, data: dict[str, Any], schema_cls: type) -> None:
    known = {f.name for f in fields(schema_cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown key(s) in {section}: {', '.join(unknown)}")


def _as_int(section: str, key: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{section}.{key} must be an integer, got {value!r}")
    return value


def _as_bool(section: str, key: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{section}.{key} must be true or false, got {value!r}")
    return value


def _as_str_tuple(section: str, key: str, value: Any) -> tuple[str, ...]:
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise ValueError(f"{section}.{key} must be a list of strings")
    return tuple(str(v) for v in value)


def parse_database(data: dict[str, Any]) -> DatabaseDef:
    """Parse the ``database`` section."""
    _check_keys("database", data, DatabaseDef)
    default = DatabaseDef()
    url = data.get("url", default.url)
    if not isinstance(url, str) or not url:
        raise ValueError("database.url must be a non-empty string")
    return DatabaseDef(
        url=url,
        echo=_as_bool("database", "echo", data.get("echo", default.echo)),
        pool_size=_as_int("database", "pool_size", data.get("pool_size", default.pool_size)),
        max_overflow=_as_int(
            "database", "max_overflow", data.get("max_overflow", default.max_overflow)
        ),
        pool_timeout=_as_int(
            "database", "pool_timeout", data.get("pool_timeout", default.pool_timeout)
        ),
    )


def parse_validation(data: dict[str, Any]) -> ValidationRulesDef:
    """
    Parse the ``validation`` section.

    Raises:
        ValueError: wrong types, seg_min > seg_max, a date_format without
            directives, or a non-decimal variance threshold.
    """
    _check_keys("validation", data, ValidationRulesDef)
    default = ValidationRulesDef()

    raw_threshold = data.get("variance_warning_threshold", default.variance_warning_threshold)
    try:
        threshold = Decimal(str(raw_threshold))
    except InvalidOperation:
        raise ValueError(
            f"validation.variance_warning_threshold must be a number, got {raw_threshold!r}"
        ) from None

    date_format = data.get("date_format", default.date_format)
    if not isinstance(date_format, str) or "%" not in date_format:
        raise ValueError(f"validation.date_format must be a strftime pattern, got {date_format!r}")

    rules = ValidationRulesDef(
        revised_isd_trigger_change_type=str(
            data.get("revised_isd_trigger_change_type", default.revised_isd_trigger_change_type)
        ),
        lcm_issue_trigger_category=str(
            data.get("lcm_issue_trigger_category", default.lcm_issue_trigger_category)
        ),
        justification_required_statuses=_as_str_tuple(
            "validation",
            "justification_required_statuses",
            data.get("justification_required_statuses", default.justification_required_statuses),
        ),
        date_format=date_format,
        accept_iso_dates=_as_bool(
            "validation", "accept_iso_dates", data.get("accept_iso_dates", default.accept_iso_dates)
        ),
        seg_min=_as_int("validation", "seg_min", data.get("seg_min", default.seg_min)),
        seg_max=_as_int("validation", "seg_max", data.get("seg_max", default.seg_max)),
        variance_warning_threshold=threshold,
        valid_scenarios=_as_str_tuple(
            "validation", "valid_scenarios", data.get("valid_scenarios", default.valid_scenarios)
        ),
        warnings_block=_as_bool(
            "validation", "warnings_block", data.get("warnings_block", default.warnings_block)
        ),
    )
    if rules.seg_min > rules.seg_max:
        raise ValueError(
            f"validation.seg_min ({rules.seg_min}) exceeds seg_max ({rules.seg_max})"
        )
    if not rules.valid_scenarios:
        raise ValueError("validation.valid_scenarios must not be empty")
    unknown = sorted(set(rules.valid_scenarios) - set(SCENARIOS))
    if unknown:
        raise ValueError(
            f"validation.valid_scenarios has unknown scenario(s) {', '.join(unknown)}; "
            f"the wide views know {', '.join(SCENARIOS)}"
        )
    return rules


def parse_reporting(data: dict[str, Any]) -> ReportingDef:
    """Parse the ``reporting`` section."""
    _check_keys("reporting", data, ReportingDef)
    fixed_year = data.get("fixed_year")
    if fixed_year is not None:
        fixed_year = _as_int("reporting", "fixed_year", fixed_year)
    fixed_month = _as_int("reporting", "fixed_month", data.get("fixed_month", 12))
    if not 1 <= fixed_month <= 12:
        raise ValueError(f"reporting.fixed_month must be 1..12, got {fixed_month}")
    return ReportingDef(fixed_year=fixed_year, fixed_month=fixed_month)


def parse_pipeline_config(data: dict[str, Any], source_path: str | None = None) -> PipelineConfig:
    """
    Parse a whole configuration document.

    Missing sections take their schema defaults.
    """
    unknown = sorted(set(data) - set(_SECTIONS))
    if unknown:
        raise ValueError(f"Unknown configuration section(s): {', '.join(unknown)}")
    for section in _SECTIONS:
        if data.get(section) is not None and not isinstance(data[section], dict):
            raise ValueError(f"Section {section!r} must be a mapping")

    return PipelineConfig(
        database=parse_database(data.get("database") or {}),
        validation=parse_validation(data.get("validation") or {}),
        reporting=parse_reporting(data.get("reporting") or {}),
        source_path=source_path,
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
