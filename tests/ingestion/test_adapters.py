"""Tests for the CSV and XLSX submission adapters."""

import tempfile
from datetime import date, datetime
from pathlib import Path

import openpyxl
import pytest

from pif_ingestion.adapters import (
    CsvSourceAdapter,
    SourceAdapter,
    SubmissionProbe,
    XlsxSourceAdapter,
    adapter_for,
)


def _write_csv(content: str, encoding: str = "utf-8") -> Path:
    with tempfile.NamedTemporaryFile(
        mode="w", suffix=".csv", delete=False, encoding=encoding, newline="",
    ) as f:
        f.write(content)
        return Path(f.name)


def _write_xlsx(rows: list[list], sheet_title: str | None = None) -> Path:
    wb = openpyxl.Workbook()
    ws = wb.active
    if sheet_title:
        ws.title = sheet_title
    for row in rows:
        ws.append(row)
    with tempfile.NamedTemporaryFile(suffix=".xlsx", delete=False) as f:
        path = Path(f.name)
    wb.save(path)
    return path


class TestAdapterFor:
    @pytest.mark.parametrize(
        "name, adapter_cls",
        [
            ("sub.csv", CsvSourceAdapter),
            ("sub.TXT", CsvSourceAdapter),
            ("sub.xlsx", XlsxSourceAdapter),
            ("sub.xlsm", XlsxSourceAdapter),
        ],
    )
    def test_by_suffix(self, name, adapter_cls):
        adapter = adapter_for(name)
        assert isinstance(adapter, adapter_cls)
        assert isinstance(adapter, SourceAdapter)

    def test_unsupported_suffix(self):
        with pytest.raises(ValueError, match="Unsupported submission file type"):
            adapter_for("sub.json")


class TestCsvSourceAdapter:
    def test_read_strips_headers_and_values(self):
        path = _write_csv(" PIF ID , Site ,Target_Req_CY\n PIF-1 , ANO ,100\n")
        try:
            rows = list(CsvSourceAdapter().read(path, {}))
            assert rows == [{"PIF ID": "PIF-1", "Site": "ANO", "Target_Req_CY": "100"}]
        finally:
            path.unlink(missing_ok=True)

    def test_blank_rows_skipped(self):
        path = _write_csv("PIF ID,Site\nPIF-1,ANO\n,\n  ,  \nPIF-2,ANO\n")
        try:
            rows = list(CsvSourceAdapter().read(path, {}))
            assert [r["PIF ID"] for r in rows] == ["PIF-1", "PIF-2"]
        finally:
            path.unlink(missing_ok=True)

    def test_bom_removed(self):
        path = _write_csv("\ufeffPIF ID,Site\nPIF-1,ANO\n")
        try:
            rows = list(CsvSourceAdapter().read(path, {}))
            assert "PIF ID" in rows[0]
        finally:
            path.unlink(missing_ok=True)

    def test_delimiter_and_skip_rows(self):
        path = _write_csv("Exported from planning tool\nPIF ID;Site\nPIF-1;ANO\n")
        try:
            rows = list(CsvSourceAdapter().read(path, {"delimiter": ";", "skip_rows": 1}))
            assert rows == [{"PIF ID": "PIF-1", "Site": "ANO"}]
        finally:
            path.unlink(missing_ok=True)

    def test_probe(self):
        body = "PIF ID,Site\n" + "".join(f"PIF-{i},ANO\n" for i in range(8)) + ",\n"
        path = _write_csv(body)
        try:
            probe = CsvSourceAdapter().probe(path, {})
            assert probe.row_count == 8
            assert probe.columns == ("PIF ID", "Site")
            assert len(probe.sample_rows) == 5
            assert probe.encoding == "utf-8-sig"
            assert probe.detected_delimiter == ","
            assert probe.project_columns == ("PIF ID", "Site")
            assert probe.missing_key_fields == ("project_id",)
        finally:
            path.unlink(missing_ok=True)


class TestXlsxSourceAdapter:
    def test_read_typed_cells(self):
        path = _write_xlsx([
            ["PIF ID", "Project ID", "Site", "Seg", "Revised ISD", "Archive", "Target_Req_CY"],
            ["PIF-1", "P-100", "ANO", 120.0, datetime(2026, 9, 30), True, 100.5],
        ])
        try:
            rows = list(XlsxSourceAdapter().read(path, {}))
            assert rows == [{
                "PIF ID": "PIF-1",
                "Project ID": "P-100",
                "Site": "ANO",
                "Seg": 120,
                "Revised ISD": date(2026, 9, 30),
                "Archive": True,
                "Target_Req_CY": 100.5,
            }]
        finally:
            path.unlink(missing_ok=True)

    def test_header_auto_detected_below_title_rows(self):
        path = _write_xlsx([
            ["FY2025 PIF submission - ANO"],
            [],
            ["PIF ID", "Project ID", "Site"],
            ["PIF-1", "P-100", "ANO"],
        ])
        try:
            rows = list(XlsxSourceAdapter().read(path, {}))
            assert rows == [{"PIF ID": "PIF-1", "Project ID": "P-100", "Site": "ANO"}]
        finally:
            path.unlink(missing_ok=True)

    def test_explicit_header_row(self):
        path = _write_xlsx([
            ["Title"],
            ["Key", "Value"],
            ["a", "b"],
        ])
        try:
            rows = list(XlsxSourceAdapter().read(path, {"header_row": 1}))
            assert rows == [{"Key": "a", "Value": "b"}]
        finally:
            path.unlink(missing_ok=True)

    def test_sheet_by_name_and_blank_rows(self):
        path = _write_xlsx(
            [["PIF ID", "Site"], ["PIF-1", "ANO"], [None, None], ["PIF-2", "ANO"]],
            sheet_title="ANO Submission",
        )
        try:
            rows = list(XlsxSourceAdapter().read(path, {"sheet": "ANO Submission"}))
            assert [r["PIF ID"] for r in rows] == ["PIF-1", "PIF-2"]
        finally:
            path.unlink(missing_ok=True)

    def test_duplicate_headers_suffixed(self):
        path = _write_xlsx([["PIF ID", "Site", "Site"], ["PIF-1", "ANO", "BRW"]])
        try:
            rows = list(XlsxSourceAdapter().read(path, {}))
            assert rows == [{"PIF ID": "PIF-1", "Site": "ANO", "Site_1": "BRW"}]
        finally:
            path.unlink(missing_ok=True)

    def test_probe(self):
        path = _write_xlsx([["PIF ID", "Site"]] + [[f"PIF-{i}", "ANO"] for i in range(7)])
        try:
            probe = XlsxSourceAdapter().probe(path, {})
            assert probe.row_count == 7
            assert probe.columns == ("PIF ID", "Site")
            assert len(probe.sample_rows) == 5
            assert probe.cost_columns == ()
        finally:
            path.unlink(missing_ok=True)


class TestSubmissionProbe:
    def test_columns_sorted_by_role(self):
        columns = ("PIF ID", "Project #", "Site", "Target_Req_CY", "closings_var_cy5", "Notes")
        probe = SubmissionProbe.from_table(columns, [{"PIF ID": "PIF-1"}])

        assert probe.project_columns == ("PIF ID", "Project #", "Site")
        assert probe.cost_columns == ("Target_Req_CY", "closings_var_cy5")
        assert probe.unrecognized_columns == ("Notes",)
        assert probe.missing_key_fields == ()
        assert probe.row_count == 1

    def test_sample_capped(self):
        records = ({"PIF ID": f"PIF-{i}"} for i in range(12))
        probe = SubmissionProbe.from_table(("PIF ID",), records, encoding="utf-8")

        assert probe.row_count == 12
        assert [r["PIF ID"] for r in probe.sample_rows] == [f"PIF-{i}" for i in range(5)]
        assert probe.encoding == "utf-8"

    def test_csv_wide_layout(self):
        path = _write_csv(
            "PIF ID,Project #,Site,Target_Req_CY,Target_Req_CY1,Target_Req_CY6\n"
            "PIF-1,P-100,ANO,100,200,300\n"
        )
        try:
            probe = CsvSourceAdapter().probe(path, {})
            assert probe.cost_columns == ("Target_Req_CY", "Target_Req_CY1")
            assert probe.unrecognized_columns == ("Target_Req_CY6",)
        finally:
            path.unlink(missing_ok=True)
