"""
Module: pif_kernel.db.types
Responsibility: Money parsing and rounding shared by the ingestion coercion
    layer, so every submitted amount reaches the Numeric(18, 2) cost columns
    in one canonical form.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, selectors/ and pif_ingestion.  MUST NOT import from any of those.

Invariants enforced:
    - round_money() is the only rounding function applied to submitted
      amounts.
    - No floats for money anywhere.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation


MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP


def money_from_str(value: str) -> Decimal:
    """
    Create a Money value from a string.

    Thousands separators and a leading currency symbol are tolerated, as
    spreadsheet exports commonly carry them.

    Raises:
        ValueError: If value cannot be converted to Decimal.
    """
    cleaned = value.strip().replace(",", "").lstrip("$")
    if cleaned.startswith("(") and cleaned.endswith(")"):
        cleaned = "-" + cleaned[1:-1]
    try:
        result = Decimal(cleaned)
    except InvalidOperation as exc:
        raise ValueError(f"Not a decimal amount: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"Not a finite amount: {value!r}")
    return result


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the stored precision.

    Args:
        value: The Decimal value to round.
        decimal_places: Number of decimal places to round to.
        rounding: Rounding mode (default: ROUND_HALF_UP).
    """
    quantize_str = "0." + "0" * decimal_places
    return value.quantize(Decimal(quantize_str), rounding=rounding)
