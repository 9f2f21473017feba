"""
Validation rules for submitted PIF rows.

Every rule is a pure function returning ValidationIssue entries: one entry per
evaluation, passed or failed, so a report shows what was checked as well as
what failed.  Type and date-format problems produce failing entries only.
Cross-row checks (duplicate natural keys) take the whole batch.

validate_batch() is the single entry point used by ValidationService; the
individual rules are public for tests.

Architecture: pif_ingestion/domain. ZERO I/O. Imports only from pif_kernel
domain, pif_config dataclasses and the ingestion domain.
"""

from __future__ import annotations

from collections import Counter
from decimal import Decimal
from typing import Any, Mapping, Sequence

from pif_config.schema import ValidationRulesDef
from pif_kernel.domain.dtos import ProjectKey, Severity, ValidationIssue, ValidationReport
from pif_kernel.exceptions import TypeConversionError

from pif_ingestion.domain.coercion import coerce_fields
from pif_ingestion.domain.types import (
    COST_FIELD_SPECS,
    DATE_FIELDS,
    DEFAULT_LINE_ITEM,
    PROJECT_FIELD_SPECS,
    FieldSpec,
    is_empty,
)

RULE_REQUIRED = "REQUIRED"
RULE_REQUIRED_IF = "REQUIRED_IF"
RULE_DUPLICATE_KEY = "DUPLICATE_KEY"
RULE_SITE_MATCH = "SITE_MATCH"
RULE_DATE_FORMAT = "DATE_FORMAT"
RULE_TYPE_CONVERSION = "TYPE_CONVERSION"
RULE_LINE_ITEM_RANGE = "LINE_ITEM_RANGE"
RULE_SEG_RANGE = "SEG_RANGE"
RULE_MAX_LENGTH = "MAX_LENGTH"
RULE_SCENARIO = "SCENARIO"
RULE_DUPLICATE_COST = "DUPLICATE_COST"
RULE_VARIANCE_THRESHOLD = "VARIANCE_THRESHOLD"

ALWAYS_REQUIRED: tuple[str, ...] = ("pif_id", "project_id", "change_type")


def _same(left: Any, right: str) -> bool:
    return isinstance(left, str) and left.strip().casefold() == right.strip().casefold()


# -----------------------------------------------------------------------------
# Row-level rules
# -----------------------------------------------------------------------------


def validate_required(row: int, raw: Mapping[str, Any], field: str) -> ValidationIssue:
    """``field`` must be present and non-blank."""
    present = not is_empty(raw.get(field))
    return ValidationIssue(
        row=row,
        field=field,
        rule=RULE_REQUIRED,
        passed=present,
        message=f"{field} present" if present else f"{field} is required",
    )


def validate_required_if(
    row: int,
    raw: Mapping[str, Any],
    field: str,
    triggered: bool,
    condition: str,
) -> ValidationIssue:
    """``field`` must be present when ``triggered``; otherwise it is optional."""
    if not triggered:
        return ValidationIssue(
            row=row,
            field=field,
            rule=RULE_REQUIRED_IF,
            passed=True,
            message=f"{field} not required (no {condition})",
        )
    present = not is_empty(raw.get(field))
    return ValidationIssue(
        row=row,
        field=field,
        rule=RULE_REQUIRED_IF,
        passed=present,
        message=(
            f"{field} present ({condition})"
            if present
            else f"{field} is required when {condition}"
        ),
    )


def validate_site_match(row: int, site: Any, site_context: str) -> ValidationIssue:
    """The row's site must equal the site of the submitting session."""
    passed = isinstance(site, str) and site.strip() == site_context.strip()
    return ValidationIssue(
        row=row,
        field="site",
        rule=RULE_SITE_MATCH,
        passed=passed,
        message=(
            f"site matches {site_context}"
            if passed
            else f"site {site!r} does not match session site {site_context!r}"
        ),
    )


def validate_line_item(row: int, line_item: int | None) -> ValidationIssue:
    """line_item must be >= 1; missing defaults to 1."""
    if line_item is None:
        return ValidationIssue(
            row=row,
            field="line_item",
            rule=RULE_LINE_ITEM_RANGE,
            passed=True,
            message=f"line_item missing, defaulted to {DEFAULT_LINE_ITEM}",
        )
    passed = line_item >= 1
    return ValidationIssue(
        row=row,
        field="line_item",
        rule=RULE_LINE_ITEM_RANGE,
        passed=passed,
        message=f"line_item {line_item} ok" if passed else f"line_item must be >= 1, got {line_item}",
    )


def validate_seg_range(row: int, seg: int, seg_min: int, seg_max: int) -> ValidationIssue:
    passed = seg_min <= seg <= seg_max
    return ValidationIssue(
        row=row,
        field="seg",
        rule=RULE_SEG_RANGE,
        passed=passed,
        message=(
            f"seg {seg} within {seg_min}..{seg_max}"
            if passed
            else f"seg {seg} outside allowed range {seg_min}..{seg_max}"
        ),
    )


def validate_max_lengths(
    row: int,
    typed: Mapping[str, Any],
    specs: Mapping[str, FieldSpec],
    prefix: str = "",
) -> list[ValidationIssue]:
    """Every present text value must fit its column."""
    issues: list[ValidationIssue] = []
    for name, spec in specs.items():
        value = typed.get(name)
        if spec.max_length is None or not isinstance(value, str):
            continue
        passed = len(value) <= spec.max_length
        issues.append(
            ValidationIssue(
                row=row,
                field=f"{prefix}{name}",
                rule=RULE_MAX_LENGTH,
                passed=passed,
                message=(
                    f"{name} fits {spec.max_length} characters"
                    if passed
                    else f"{name} is {len(value)} characters; maximum is {spec.max_length}"
                ),
            )
        )
    return issues


def conversion_issues(
    row: int,
    errors: Sequence[TypeConversionError],
    prefix: str = "",
) -> list[ValidationIssue]:
    """Failing entries for values that did not parse as their declared type."""
    return [
        ValidationIssue(
            row=row,
            field=f"{prefix}{err.field}",
            rule=RULE_DATE_FORMAT if not prefix and err.field in DATE_FIELDS else RULE_TYPE_CONVERSION,
            passed=False,
            message=str(err),
        )
        for err in errors
    ]


def validate_costs(
    row: int,
    raw_costs: Sequence[Mapping[str, Any]],
    rules: ValidationRulesDef,
) -> list[ValidationIssue]:
    """
    Check the cost entries of one row.

    Scenario must be one of the configured scenarios, year is required, a
    (scenario, year) pair may appear once, and a variance below the
    configured threshold is a WARNING.
    """
    issues: list[ValidationIssue] = []
    seen: Counter[tuple[str, int]] = Counter()
    threshold: Decimal = rules.variance_warning_threshold

    typed_costs = []
    for j, raw in enumerate(raw_costs):
        prefix = f"costs[{j}]."
        typed, errors = coerce_fields(
            raw, COST_FIELD_SPECS, rules.date_format, accept_iso_dates=rules.accept_iso_dates
        )
        issues.extend(conversion_issues(row, errors, prefix=prefix))
        typed_costs.append((prefix, typed))

        scenario = typed.get("scenario")
        if "scenario" in typed:
            valid = scenario in rules.valid_scenarios
            issues.append(
                ValidationIssue(
                    row=row,
                    field=f"{prefix}scenario",
                    rule=RULE_SCENARIO,
                    passed=valid,
                    message=(
                        f"scenario {scenario} ok"
                        if valid
                        else f"scenario {scenario!r} must be one of {', '.join(rules.valid_scenarios)}"
                    ),
                )
            )
        if "year" in typed:
            issues.append(
                ValidationIssue(
                    row=row,
                    field=f"{prefix}year",
                    rule=RULE_REQUIRED,
                    passed=typed["year"] is not None,
                    message="year present" if typed["year"] is not None else "year is required",
                )
            )
        if scenario is not None and typed.get("year") is not None:
            seen[(scenario, typed["year"])] += 1

        variance = typed.get("variance_value")
        if variance is not None:
            ok = variance >= threshold
            issues.append(
                ValidationIssue(
                    row=row,
                    field=f"{prefix}variance_value",
                    rule=RULE_VARIANCE_THRESHOLD,
                    passed=ok,
                    message=(
                        f"variance {variance} within threshold"
                        if ok
                        else f"variance {variance} is below {threshold}"
                    ),
                    severity=Severity.WARNING,
                )
            )

    for prefix, typed in typed_costs:
        scenario, year = typed.get("scenario"), typed.get("year")
        if scenario is None or year is None:
            continue
        count = seen[(scenario, year)]
        issues.append(
            ValidationIssue(
                row=row,
                field=f"{prefix}year",
                rule=RULE_DUPLICATE_COST,
                passed=count == 1,
                message=(
                    f"{scenario} {year} unique"
                    if count == 1
                    else f"{scenario} {year} appears {count} times for this project"
                ),
            )
        )
    return issues


# -----------------------------------------------------------------------------
# Cross-row rules
# -----------------------------------------------------------------------------


def validate_duplicate_keys(
    keys: Sequence[tuple[int, ProjectKey | None]],
) -> list[ValidationIssue]:
    """
    Natural keys must be unique within the batch.

    ``keys`` is (row, key) per row; rows without a complete key are skipped.
    Every row of a duplicated key fails; nothing is deduplicated.
    """
    counts = Counter(key for _, key in keys if key is not None)
    issues: list[ValidationIssue] = []
    for row, key in keys:
        if key is None:
            continue
        n = counts[key]
        issues.append(
            ValidationIssue(
                row=row,
                field="pif_id",
                rule=RULE_DUPLICATE_KEY,
                passed=n == 1,
                message=f"{key} unique" if n == 1 else f"{key} appears {n} times in batch",
            )
        )
    return issues


# -----------------------------------------------------------------------------
# Batch entry point
# -----------------------------------------------------------------------------


def validate_row(
    row: int,
    raw: Mapping[str, Any],
    site_context: str,
    rules: ValidationRulesDef,
) -> tuple[list[ValidationIssue], ProjectKey | None]:
    """Run every row-level rule. Returns (issues, natural key or None)."""
    typed, errors = coerce_fields(
        raw, PROJECT_FIELD_SPECS, rules.date_format, accept_iso_dates=rules.accept_iso_dates
    )
    issues = conversion_issues(row, errors)

    for field in ALWAYS_REQUIRED:
        issues.append(validate_required(row, raw, field))

    issues.append(validate_site_match(row, typed.get("site"), site_context))

    if "line_item" in typed:
        issues.append(validate_line_item(row, typed["line_item"]))

    issues.append(
        validate_required_if(
            row,
            raw,
            "revised_fp_isd",
            _same(typed.get("change_type"), rules.revised_isd_trigger_change_type),
            f"change_type is {rules.revised_isd_trigger_change_type}",
        )
    )
    issues.append(
        validate_required_if(
            row,
            raw,
            "lcm_issue",
            _same(typed.get("category"), rules.lcm_issue_trigger_category),
            f"category is {rules.lcm_issue_trigger_category}",
        )
    )
    issues.append(
        validate_required_if(
            row,
            raw,
            "justification",
            typed.get("archive_flag") is True,
            "archive_flag is set",
        )
    )
    issues.append(
        validate_required_if(
            row,
            raw,
            "justification",
            any(_same(typed.get("status"), s) for s in rules.justification_required_statuses),
            f"status is {' or '.join(rules.justification_required_statuses)}",
        )
    )

    if typed.get("seg") is not None:
        issues.append(validate_seg_range(row, typed["seg"], rules.seg_min, rules.seg_max))

    issues.extend(validate_max_lengths(row, typed, PROJECT_FIELD_SPECS))
    issues.extend(validate_costs(row, raw.get("costs") or (), rules))

    key = None
    if (
        typed.get("pif_id")
        and typed.get("project_id")
        and "line_item" in typed
    ):
        key = ProjectKey(
            pif_id=typed["pif_id"],
            project_id=typed["project_id"],
            line_item=typed["line_item"] if typed["line_item"] is not None else DEFAULT_LINE_ITEM,
        )
    return issues, key


def validate_batch(
    batch: Sequence[Mapping[str, Any]],
    site_context: str,
    rules: ValidationRulesDef,
    row_numbers: Sequence[int] | None = None,
) -> ValidationReport:
    """
    Validate a batch of candidate rows against ``site_context``.

    Rows are numbered 1..n unless ``row_numbers`` supplies the numbers (for
    example the source rows of staged data).
    """
    if row_numbers is not None and len(row_numbers) != len(batch):
        raise ValueError("row_numbers must have one entry per batch row")

    issues: list[ValidationIssue] = []
    keys: list[tuple[int, ProjectKey | None]] = []
    for idx, raw in enumerate(batch):
        row = row_numbers[idx] if row_numbers is not None else idx + 1
        row_issues, key = validate_row(row, raw, site_context, rules)
        issues.extend(row_issues)
        keys.append((row, key))

    issues.extend(validate_duplicate_keys(keys))
    return ValidationReport(
        issues=tuple(issues),
        warnings_block=rules.warnings_block,
        row_count=len(batch),
    )

