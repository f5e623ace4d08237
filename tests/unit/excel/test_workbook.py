"""Tests for tools/excel/workbook.py: sheet access and formula diagnostics

Workbooks saved by openpyxl carry no cached formula results, which is the
"unresolved formula" case. Cached values are simulated by pairing two
in-memory workbooks.
"""

import json

import openpyxl
import pytest

from tools.exceptions import SheetNotFoundError
from tools.excel.workbook import (
    FORMULA_WARNING,
    ExcelWorkbook,
    get_cell,
    get_cell_full,
    get_effective_value,
    get_formula_warnings,
    get_sheet_as_array,
    get_sheet_data,
    get_sheet_names,
    get_sheet_range,
    get_workbook_summary,
    is_unresolved_formula,
    main,
    read_workbook,
)


@pytest.fixture
def sales_file(tmp_path):
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Sales"
    ws.append(["Region", "Q1", "Q2", "Total"])
    ws.append(["North", 10, 20, "=B2+C2"])
    ws.append(["South", 5, 7, "=B3+C3"])
    notes = wb.create_sheet("Notes")
    notes["A1"] = "plain text"
    path = tmp_path / "sales.xlsx"
    wb.save(path)
    return path


@pytest.fixture
def cached_workbook():
    """Formula workbook paired with a value workbook holding cached results."""
    formulas = openpyxl.Workbook()
    values = openpyxl.Workbook()
    formulas.active.title = values.active.title = "Calc"

    f, v = formulas["Calc"], values["Calc"]
    f["A1"], v["A1"] = 2, 2
    f["A2"], v["A2"] = 3, 3
    f["A3"], v["A3"] = "=A1+A2", 5
    f["A4"], v["A4"] = "=A1-A1", 0
    f["A5"], v["A5"] = "=A1>A2", False
    return ExcelWorkbook(formulas=formulas, values=values)


# ─────────────────────────────────────────────────────────────────────────────
# Sheet access
# ─────────────────────────────────────────────────────────────────────────────


class TestSheetAccess:
    def test_sheet_names_in_order(self, sales_file):
        wb = read_workbook(sales_file)
        assert get_sheet_names(wb) == ["Sales", "Notes"]
        assert wb.path == sales_file.resolve()

    def test_sheet_data_uses_header_row(self, sales_file):
        rows = get_sheet_data(read_workbook(sales_file), "Sales")
        assert rows[0]["Region"] == "North"
        assert rows[0]["Q2"] == 20
        # No cached result for formulas written by openpyxl
        assert rows[0]["Total"] is None
        assert len(rows) == 2

    def test_sheet_as_array_includes_header(self, sales_file):
        rows = get_sheet_as_array(read_workbook(sales_file), "Sales")
        assert rows[0] == ["Region", "Q1", "Q2", "Total"]
        assert rows[2][:3] == ["South", 5, 7]

    def test_blank_headers_get_placeholder_keys(self):
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.append([None, "Name", None])
        ws.append([1, "alpha", 2])
        rows = get_sheet_data(ExcelWorkbook(wb, wb), ws.title)
        assert rows == [{"__EMPTY": 1, "Name": "alpha", "__EMPTY_2": 2}]

    def test_empty_rows_are_skipped(self):
        wb = openpyxl.Workbook()
        ws = wb.active
        ws["A1"] = "Key"
        ws["A3"] = "value"
        rows = get_sheet_data(ExcelWorkbook(wb, wb), ws.title)
        assert rows == [{"Key": "value"}]

    def test_header_is_always_row_one(self):
        wb = openpyxl.Workbook()
        ws = wb.active
        ws["A3"] = "Key"
        ws["A4"] = "value"
        rows = get_sheet_data(ExcelWorkbook(wb, wb), ws.title)
        assert rows == [{}, {}]
        assert get_sheet_as_array(ExcelWorkbook(wb, wb), ws.title) == [["Key"], ["value"]]

    def test_empty_sheet(self):
        wb = openpyxl.Workbook()
        assert get_sheet_data(ExcelWorkbook(wb, wb), wb.active.title) == []

    def test_unknown_sheet_lists_available(self, sales_file):
        wb = read_workbook(sales_file)
        with pytest.raises(SheetNotFoundError) as exc_info:
            get_sheet_data(wb, "Missing")
        assert str(exc_info.value) == 'Sheet "Missing" not found. Available: Sales, Notes'
        assert isinstance(exc_info.value, KeyError)

    def test_get_cell(self, sales_file):
        wb = read_workbook(sales_file)
        assert get_cell(wb, "Sales", "A2") == "North"
        assert get_cell(wb, "Sales", "D2") is None


# ─────────────────────────────────────────────────────────────────────────────
# Cell details
# ─────────────────────────────────────────────────────────────────────────────


class TestCellDetails:
    def test_full_cell_with_formula(self, cached_workbook):
        info = get_cell_full(cached_workbook, "Calc", "A3")
        assert info["value"] == 5
        assert info["formatted"] == "5"
        assert info["type"] == "formula"
        assert info["formula"] == "=A1+A2"

    def test_full_cell_plain_number(self, cached_workbook):
        info = get_cell_full(cached_workbook, "Calc", "A1")
        assert info["type"] == "number"
        assert info["formula"] is None
        assert info["number_format"] == "General"

    def test_full_cell_empty_returns_none(self, cached_workbook):
        assert get_cell_full(cached_workbook, "Calc", "Z99") is None

    def test_effective_value_resolved_formula(self, cached_workbook):
        result = get_effective_value(cached_workbook, "Calc", "A3")
        assert result == {"value": 5, "is_formula": True, "has_result": True, "formula": "=A1+A2"}

    def test_effective_value_unresolved_formula(self, sales_file):
        result = get_effective_value(read_workbook(sales_file), "Sales", "D2")
        assert result["is_formula"] is True
        assert result["has_result"] is False
        assert result["value"] is None

    def test_effective_value_plain(self, cached_workbook):
        result = get_effective_value(cached_workbook, "Calc", "A2")
        assert result == {"value": 3, "is_formula": False, "has_result": True, "formula": None}


# ─────────────────────────────────────────────────────────────────────────────
# Ranges
# ─────────────────────────────────────────────────────────────────────────────


class TestSheetRange:
    def test_range_of_data(self, sales_file):
        result = get_sheet_range(read_workbook(sales_file), "Sales")
        assert result == {"start_row": 1, "start_col": 1, "end_row": 3, "end_col": 4, "ref": "A1:D3"}

    def test_range_beyond_column_z(self):
        wb = openpyxl.Workbook()
        wb.active.cell(row=3, column=28, value="x")
        result = get_sheet_range(ExcelWorkbook(wb, wb), wb.active.title)
        assert result["ref"] == "A1:AB3"


# ─────────────────────────────────────────────────────────────────────────────
# Formula diagnostics
# ─────────────────────────────────────────────────────────────────────────────


class TestUnresolvedFormula:
    def test_missing_value(self):
        assert is_unresolved_formula("=A1", None) is True

    def test_zero_counts_as_unresolved(self):
        assert is_unresolved_formula("=A1", 0) is True

    def test_false_is_a_real_result(self):
        assert is_unresolved_formula("=A1>B1", False) is False

    def test_non_formula(self):
        assert is_unresolved_formula(None, None) is False
        assert is_unresolved_formula("", 0) is False

    def test_real_value(self):
        assert is_unresolved_formula("=A1", 12) is False


class TestFormulaWarnings:
    def test_uncalculated_file(self, sales_file):
        result = get_formula_warnings(read_workbook(sales_file), "Sales")
        assert result["has_issues"] is True
        assert result["total_formulas"] == 2
        assert result["unresolved_formulas"] == 2
        assert result["samples"][0] == {"cell": "D2", "formula": "=B2+C2"}

    def test_cached_values_count_zero_as_unresolved(self, cached_workbook):
        result = get_formula_warnings(cached_workbook, "Calc")
        assert result["total_formulas"] == 3
        assert result["unresolved_formulas"] == 1
        assert result["samples"] == [{"cell": "A4", "formula": "=A1-A1"}]

    def test_samples_are_capped(self):
        wb = openpyxl.Workbook()
        for row in range(1, 9):
            wb.active.cell(row=row, column=1, value=f"=B{row}*2")
        result = get_formula_warnings(ExcelWorkbook(wb, openpyxl.Workbook()), wb.active.title)
        assert result["unresolved_formulas"] == 8
        assert len(result["samples"]) == 5


class TestWorkbookSummary:
    def test_summary_with_warning(self, sales_file):
        summary = get_workbook_summary(read_workbook(sales_file))
        assert summary["sheet_count"] == 2
        sales, notes = summary["sheets"]
        assert sales == {
            "name": "Sales",
            "rows": 3,
            "cols": 4,
            "formulas": 2,
            "unresolved_formulas": 2,
        }
        assert notes["formulas"] == 0
        assert summary["warning"] == FORMULA_WARNING

    def test_summary_without_issues(self):
        wb = openpyxl.Workbook()
        wb.active["A1"] = "ok"
        summary = get_workbook_summary(ExcelWorkbook(wb, wb))
        assert "warning" not in summary


# ─────────────────────────────────────────────────────────────────────────────
# CLI
# ─────────────────────────────────────────────────────────────────────────────


class TestCli:
    def test_summary_output(self, sales_file, capsys):
        assert main([str(sales_file)]) == 0
        output = json.loads(capsys.readouterr().out)
        assert output["sheet_count"] == 2

    def test_sheet_output(self, sales_file, capsys):
        assert main([str(sales_file), "Sales"]) == 0
        output = json.loads(capsys.readouterr().out)
        assert output[1]["Region"] == "South"

    def test_missing_sheet(self, sales_file, capsys):
        assert main([str(sales_file), "Nope"]) == 1
        assert 'Sheet "Nope" not found' in capsys.readouterr().err

    def test_missing_file(self, tmp_path, capsys):
        assert main([str(tmp_path / "absent.xlsx")]) == 1
        assert "Error:" in capsys.readouterr().err
