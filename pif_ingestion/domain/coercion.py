"""
Coercion: submitted cell value -> declared field type.

ZERO I/O.  Spreadsheet and CSV sources produce strings (and, for XLSX,
numbers, booleans and dates); this module converts them to the Python types
the stores expect.

Invariants enforced:
    - An explicitly empty value (None or blank string) coerces to None.
    - A non-empty value that cannot be parsed raises TypeConversionError;
      it is never defaulted to None or zero.
    - Amounts are rounded with round_money() and nothing else.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from pif_kernel.db.types import money_from_str, round_money
from pif_kernel.exceptions import TypeConversionError

from pif_ingestion.domain.types import (
    COST_FIELD_SPECS,
    DEFAULT_LINE_ITEM,
    PROJECT_FIELD_SPECS,
    CostEntry,
    FieldSpec,
    FieldType,
    SubmissionRow,
    is_empty,
)

DEFAULT_DATE_FORMAT = "%m/%d/%Y"

_TRUE_STRINGS = frozenset({"true", "yes", "y", "1", "x", "on"})
_FALSE_STRINGS = frozenset({"false", "no", "n", "0", "off"})


def _to_string(field: str, value: Any) -> str:
    if isinstance(value, (bool, date)):
        raise TypeConversionError(field, value, "string", f"got {type(value).__name__}")
    return str(value).strip()


def _to_integer(field: str, value: Any) -> int:
    if isinstance(value, bool):
        raise TypeConversionError(field, value, "integer", "booleans are not integers")
    if isinstance(value, int):
        return value
    try:
        number = Decimal(value.strip()) if isinstance(value, str) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise TypeConversionError(field, value, "integer") from None
    if not number.is_finite() or number != number.to_integral_value():
        raise TypeConversionError(field, value, "integer", "not a whole number")
    return int(number)


def _to_decimal(field: str, value: Any) -> Decimal:
    if isinstance(value, bool):
        raise TypeConversionError(field, value, "decimal", "booleans are not amounts")
    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, int):
        number = Decimal(value)
    elif isinstance(value, float):
        number = Decimal(str(value))
    else:
        try:
            number = money_from_str(str(value))
        except ValueError as exc:
            raise TypeConversionError(field, value, "decimal", str(exc)) from None
    if not number.is_finite():
        raise TypeConversionError(field, value, "decimal", "not a finite amount")
    return round_money(number)


def _to_boolean(field: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        low = value.strip().lower()
        if low in _TRUE_STRINGS:
            return True
        if low in _FALSE_STRINGS:
            return False
    raise TypeConversionError(field, value, "boolean", "expected true/false, yes/no, 1/0 or x")


def _to_date(field: str, value: Any, date_format: str, accept_iso: bool) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise TypeConversionError(field, value, "date", f"got {type(value).__name__}")
    s = value.strip()
    try:
        return datetime.strptime(s, date_format).date()
    except ValueError:
        if not accept_iso:
            raise TypeConversionError(
                field, value, "date", f"expected format {date_format}"
            ) from None
    try:
        return datetime.fromisoformat(s).date()
    except ValueError:
        raise TypeConversionError(
            field, value, "date", f"expected format {date_format} or YYYY-MM-DD"
        ) from None


def coerce_value(
    field: str,
    value: Any,
    field_type: FieldType,
    date_format: str = DEFAULT_DATE_FORMAT,
    *,
    accept_iso_dates: bool = False,
) -> Any:
    """
    Convert one value to ``field_type``.

    Returns None for an explicitly empty value.  Text dates must match
    ``date_format``; ``accept_iso_dates`` also lets YYYY-MM-DD through.

    Raises:
        TypeConversionError: the value is present but malformed.
    """
    if is_empty(value):
        return None
    if field_type == FieldType.STRING:
        return _to_string(field, value)
    if field_type == FieldType.INTEGER:
        return _to_integer(field, value)
    if field_type == FieldType.DECIMAL:
        return _to_decimal(field, value)
    if field_type == FieldType.BOOLEAN:
        return _to_boolean(field, value)
    if field_type == FieldType.DATE:
        return _to_date(field, value, date_format, accept_iso_dates)
    raise ValueError(f"Unknown field type: {field_type!r}")


def coerce_fields(
    raw: Mapping[str, Any],
    specs: Mapping[str, FieldSpec],
    date_format: str = DEFAULT_DATE_FORMAT,
    *,
    accept_iso_dates: bool = False,
) -> tuple[dict[str, Any], list[TypeConversionError]]:
    """
    Coerce every field of ``specs`` present in ``raw``.

    Returns (typed values, conversion errors).  A field that failed to convert
    is absent from the typed values; fields missing from ``raw`` are None.
    """
    typed: dict[str, Any] = {}
    errors: list[TypeConversionError] = []
    for name, spec in specs.items():
        try:
            typed[name] = coerce_value(
                name, raw.get(name), spec.field_type, date_format,
                accept_iso_dates=accept_iso_dates,
            )
        except TypeConversionError as exc:
            errors.append(exc)
    return typed, errors


def build_cost_entry(
    raw: Mapping[str, Any],
    date_format: str = DEFAULT_DATE_FORMAT,
    *,
    accept_iso_dates: bool = False,
) -> CostEntry:
    """
    Type one cost entry.

    Raises:
        TypeConversionError: a value is malformed, or scenario/year is empty.
    """
    typed, errors = coerce_fields(
        raw, COST_FIELD_SPECS, date_format, accept_iso_dates=accept_iso_dates
    )
    if errors:
        raise errors[0]
    for required in ("scenario", "year"):
        if typed[required] is None:
            raise TypeConversionError(required, raw.get(required), "non-empty value")
    return CostEntry(**typed)


def build_submission_row(
    raw: Mapping[str, Any],
    source_row: int,
    date_format: str = DEFAULT_DATE_FORMAT,
    *,
    accept_iso_dates: bool = False,
) -> SubmissionRow:
    """
    Type a whole candidate row: project fields plus its ``costs`` list.

    Missing line_item defaults to 1; missing flags default to False.

    Raises:
        TypeConversionError: on the first malformed value.
    """
    values, errors = coerce_fields(
        raw, PROJECT_FIELD_SPECS, date_format, accept_iso_dates=accept_iso_dates
    )
    if errors:
        raise errors[0]
    if values["line_item"] is None:
        values["line_item"] = DEFAULT_LINE_ITEM
    for flag in ("archive_flag", "include_flag"):
        if values[flag] is None:
            values[flag] = False
    costs = tuple(
        build_cost_entry(c, date_format, accept_iso_dates=accept_iso_dates)
        for c in raw.get("costs") or ()
    )
    return SubmissionRow(source_row=source_row, values=values, costs=costs)
