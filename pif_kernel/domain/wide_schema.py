"""
Wide schema -- the fixed column layout of the cost pivot.

Responsibility:
    Single source of truth for the 36 wide cost columns
    ``{Scenario}_{Req|Curr|Var}_CY{"",1..5}``.  The reporting selector uses it
    to build the pivot, and the ingestion unpivot uses it to read wide
    spreadsheet columns back into cost facts, so the two directions can never
    disagree on naming or ordering.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Invariants enforced:
    - Column order is scenario (Target, Closings), then value kind
      (Req, Curr, Var), then year offset (0..5).
    - Offset 0 has no numeric suffix (``Target_Req_CY``).
"""

from __future__ import annotations

import re
from dataclasses import dataclass

SCENARIO_TARGET = "Target"
SCENARIO_CLOSINGS = "Closings"
SCENARIOS: tuple[str, ...] = (SCENARIO_TARGET, SCENARIO_CLOSINGS)

# (cost fact attribute, wide column abbreviation)
VALUE_KINDS: tuple[tuple[str, str], ...] = (
    ("requested_value", "Req"),
    ("current_value", "Curr"),
    ("variance_value", "Var"),
)

MAX_YEAR_OFFSET = 5
YEAR_OFFSETS: tuple[int, ...] = tuple(range(MAX_YEAR_OFFSET + 1))

_WIDE_COLUMN_RE = re.compile(
    r"^(?P<scenario>Target|Closings)_(?P<kind>Req|Curr|Var)_CY(?P<offset>[1-9]?)$",
    re.IGNORECASE,
)
_KIND_BY_ABBREV = {abbrev.lower(): attr for attr, abbrev in VALUE_KINDS}
_SCENARIO_BY_LOWER = {s.lower(): s for s in SCENARIOS}


@dataclass(frozen=True)
class WideColumn:
    """One cell position of the pivot: scenario x value kind x year offset."""

    scenario: str
    value_attr: str
    offset: int

    @property
    def name(self) -> str:
        return wide_column_name(self.scenario, self.value_attr, self.offset)


def wide_column_name(scenario: str, value_attr: str, offset: int) -> str:
    """
    Build the wide column name for a cell.

    >>> wide_column_name("Target", "requested_value", 0)
    'Target_Req_CY'
    >>> wide_column_name("Closings", "variance_value", 3)
    'Closings_Var_CY3'
    """
    abbrev = dict(VALUE_KINDS)[value_attr]
    suffix = str(offset) if offset else ""
    return f"{scenario}_{abbrev}_CY{suffix}"


def parse_wide_column_name(name: str) -> WideColumn | None:
    """Inverse of wide_column_name; None if ``name`` is not a wide cost column."""
    match = _WIDE_COLUMN_RE.match(name.strip())
    if match is None:
        return None
    offset = int(match.group("offset") or 0)
    if offset > MAX_YEAR_OFFSET:
        return None
    return WideColumn(
        scenario=_SCENARIO_BY_LOWER[match.group("scenario").lower()],
        value_attr=_KIND_BY_ABBREV[match.group("kind").lower()],
        offset=offset,
    )


WIDE_COLUMNS: tuple[WideColumn, ...] = tuple(
    WideColumn(scenario=scenario, value_attr=attr, offset=offset)
    for scenario in SCENARIOS
    for attr, _ in VALUE_KINDS
    for offset in YEAR_OFFSETS
)

WIDE_COLUMN_NAMES: tuple[str, ...] = tuple(c.name for c in WIDE_COLUMNS)
