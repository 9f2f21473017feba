"""
Adapter protocol and the submission probe.

A submission sheet has project columns (``PIF ID``, ``Site``, ...) followed by
the wide cost columns (``Target_Req_CY`` .. ``Closings_Var_CY5``).  Adapters
only read cells; ``SubmissionProbe.from_table`` sorts the headers into those
two groups so a user can check a file's layout before submitting it.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Iterator, Protocol, Sequence, runtime_checkable

from pif_kernel.domain.wide_schema import parse_wide_column_name

from pif_ingestion.domain.types import PROJECT_FIELD_SPECS, normalize_header

SAMPLE_SIZE = 5

# Every row needs these; line_item may be left blank and defaults to 1.
KEY_FIELDS = ("pif_id", "project_id", "site")


@runtime_checkable
class SourceAdapter(Protocol):
    """Reads one submission file format into raw row dicts keyed by header."""

    def read(self, source_path: Path, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
        ...

    def probe(self, source_path: Path, options: dict[str, Any]) -> SubmissionProbe:
        ...


@dataclass(frozen=True)
class SubmissionProbe:
    """Layout snapshot of a submission file."""

    row_count: int
    columns: tuple[str, ...]
    project_columns: tuple[str, ...]
    cost_columns: tuple[str, ...]
    unrecognized_columns: tuple[str, ...]
    sample_rows: tuple[dict[str, Any], ...]
    encoding: str | None = None
    detected_delimiter: str | None = None

    @property
    def missing_key_fields(self) -> tuple[str, ...]:
        present = {normalize_header(c) for c in self.project_columns}
        return tuple(name for name in KEY_FIELDS if name not in present)

    @classmethod
    def from_table(
        cls,
        columns: Sequence[str],
        records: Iterable[dict[str, Any]],
        **details: Any,
    ) -> SubmissionProbe:
        project: list[str] = []
        cost: list[str] = []
        other: list[str] = []
        for column in columns:
            if parse_wide_column_name(column) is not None:
                cost.append(column)
            elif normalize_header(column) in PROJECT_FIELD_SPECS:
                project.append(column)
            else:
                other.append(column)

        count = 0
        sample: list[dict[str, Any]] = []
        for record in records:
            count += 1
            if len(sample) < SAMPLE_SIZE:
                sample.append(record)

        return cls(
            row_count=count,
            columns=tuple(columns),
            project_columns=tuple(project),
            cost_columns=tuple(cost),
            unrecognized_columns=tuple(other),
            sample_rows=tuple(sample),
            **details,
        )
