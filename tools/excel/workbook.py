"""
Tool: Excel Workbook Reader
Purpose: Read sheets and cells from .xlsx files and flag formulas without cached results

Workbooks are opened twice: once with formulas and once with the values
Excel cached on last save. A formula whose cached value is missing (files
written by tools that never calculate, such as openpyxl itself) reads as
empty, so the summary carries a FORMULA WARNING for such files.

Usage:
    python -m tools.excel.workbook report.xlsx              # workbook summary
    python -m tools.excel.workbook report.xlsx "Q1 Sales"   # sheet rows as JSON

Dependencies:
    - openpyxl (pip install openpyxl)
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import dataclass
from datetime import date, datetime, time
from pathlib import Path
from typing import Any
from zipfile import BadZipFile

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.formula import ArrayFormula

from tools.exceptions import SheetNotFoundError


MAX_FORMULA_SAMPLES = 5
FORMULA_WARNING = (
    "FORMULA WARNING: Some cells contain formulas without cached results. "
    "Values may be missing or incorrect. Consider opening in Excel and saving "
    "to refresh cached values."
)

_CELL_TYPES = {
    "n": "number",
    "s": "string",
    "b": "boolean",
    "d": "date",
    "f": "formula",
    "e": "error",
    "inlineStr": "string",
    "str": "string",
}


@dataclass
class ExcelWorkbook:
    """A workbook loaded both with formulas and with cached values."""

    formulas: openpyxl.Workbook
    values: openpyxl.Workbook
    path: Path | None = None

    @property
    def sheet_names(self) -> list[str]:
        return list(self.formulas.sheetnames)

    def sheets(self, name: str):
        """Return (formula sheet, value sheet) for a sheet name."""
        if name not in self.formulas.sheetnames:
            raise SheetNotFoundError(name, self.sheet_names)
        return self.formulas[name], self.values[name]


def read_workbook(file_path: str | Path) -> ExcelWorkbook:
    path = Path(file_path).resolve()
    return ExcelWorkbook(
        formulas=openpyxl.load_workbook(path, data_only=False),
        values=openpyxl.load_workbook(path, data_only=True),
        path=path,
    )


def get_sheet_names(workbook: ExcelWorkbook) -> list[str]:
    return workbook.sheet_names


def _formula_text(value: Any) -> str | None:
    if isinstance(value, ArrayFormula):
        return value.text
    if isinstance(value, str) and value.startswith("="):
        return value
    return None


def _cell_formula(cell) -> str | None:
    if cell.data_type != "f":
        return None
    return _formula_text(cell.value)


def _rows(value_sheet) -> list[tuple[int, list[Any]]]:
    """Non-empty rows as (row number, values), trailing empties kept for alignment."""
    rows = []
    for row_number, row in enumerate(value_sheet.iter_rows(values_only=True), start=1):
        if any(v is not None for v in row):
            rows.append((row_number, list(row)))
    return rows


def get_sheet_data(
    workbook: ExcelWorkbook, sheet_name: str, header: bool = True
) -> list[dict[str, Any]] | list[list[Any]]:
    """
    Rows of a sheet using cached values.

    With header=True row 1 supplies keys, even when later rows are the first
    with data; blank header cells become __EMPTY, __EMPTY_1, __EMPTY_2, ...
    by column position. A blank row 1 leaves every data row without keys.
    """
    _, value_sheet = workbook.sheets(sheet_name)
    rows = _rows(value_sheet)
    if not header:
        return [values for _, values in rows]
    header_values = rows[0][1] if rows and rows[0][0] == 1 else []
    headers = [
        str(v) if v is not None else ("__EMPTY" if i == 0 else f"__EMPTY_{i}")
        for i, v in enumerate(header_values)
    ]
    return [
        {h: (values[i] if i < len(values) else None) for i, h in enumerate(headers)}
        for row_number, values in rows
        if row_number != 1
    ]


def get_sheet_as_array(workbook: ExcelWorkbook, sheet_name: str) -> list[list[Any]]:
    return get_sheet_data(workbook, sheet_name, header=False)


def get_cell(workbook: ExcelWorkbook, sheet_name: str, cell_ref: str) -> Any:
    """Cached value of a cell (None for a formula with no cached result)."""
    _, value_sheet = workbook.sheets(sheet_name)
    return value_sheet[cell_ref].value


def get_cell_full(workbook: ExcelWorkbook, sheet_name: str, cell_ref: str) -> dict[str, Any] | None:
    formula_sheet, value_sheet = workbook.sheets(sheet_name)
    cell = formula_sheet[cell_ref]
    formula = _cell_formula(cell)
    value = value_sheet[cell_ref].value
    if value is None and formula is None:
        return None

    return {
        "value": value,
        "formatted": "" if value is None else str(value),
        "type": _CELL_TYPES.get(cell.data_type, cell.data_type),
        "number_format": cell.number_format,
        "formula": formula,
    }


def is_unresolved_formula(formula: str | None, cached_value: Any) -> bool:
    """A formula whose cached result is missing or zero (typical of uncalculated files)."""
    if not formula:
        return False
    if cached_value is None:
        return True
    return cached_value == 0 and not isinstance(cached_value, bool)


def get_effective_value(workbook: ExcelWorkbook, sheet_name: str, cell_ref: str) -> dict[str, Any]:
    formula_sheet, value_sheet = workbook.sheets(sheet_name)
    formula = _cell_formula(formula_sheet[cell_ref])
    value = value_sheet[cell_ref].value

    if formula is None:
        return {"value": value, "is_formula": False, "has_result": True, "formula": None}

    has_result = value is not None
    return {
        "value": value if has_result else None,
        "is_formula": True,
        "has_result": has_result,
        "formula": formula,
    }


def get_sheet_range(workbook: ExcelWorkbook, sheet_name: str) -> dict[str, Any]:
    formula_sheet, _ = workbook.sheets(sheet_name)
    end_row = formula_sheet.max_row
    end_col = formula_sheet.max_column
    return {
        "start_row": 1,
        "start_col": 1,
        "end_row": end_row,
        "end_col": end_col,
        "ref": f"A1:{get_column_letter(end_col)}{end_row}",
    }


def get_formula_warnings(workbook: ExcelWorkbook, sheet_name: str) -> dict[str, Any]:
    formula_sheet, value_sheet = workbook.sheets(sheet_name)
    total = 0
    unresolved = 0
    samples: list[dict[str, str]] = []

    for row in formula_sheet.iter_rows():
        for cell in row:
            formula = _cell_formula(cell)
            if formula is None:
                continue
            total += 1
            if is_unresolved_formula(formula, value_sheet[cell.coordinate].value):
                unresolved += 1
                if len(samples) < MAX_FORMULA_SAMPLES:
                    samples.append({"cell": cell.coordinate, "formula": formula})

    return {
        "has_issues": unresolved > 0,
        "total_formulas": total,
        "unresolved_formulas": unresolved,
        "samples": samples,
    }


def get_workbook_summary(workbook: ExcelWorkbook) -> dict[str, Any]:
    sheets = []
    for name in workbook.sheet_names:
        formula_sheet, _ = workbook.sheets(name)
        check = get_formula_warnings(workbook, name)
        sheets.append(
            {
                "name": name,
                "rows": formula_sheet.max_row,
                "cols": formula_sheet.max_column,
                "formulas": check["total_formulas"],
                "unresolved_formulas": check["unresolved_formulas"],
            }
        )

    summary: dict[str, Any] = {"sheet_count": len(sheets), "sheets": sheets}
    if any(s["unresolved_formulas"] for s in sheets):
        summary["warning"] = FORMULA_WARNING
    return summary


# ─────────────────────────────────────────────────────────────────────────────
# CLI
# ─────────────────────────────────────────────────────────────────────────────


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)


def main(argv: list[str] | None = None) -> int:
    from tools.logging_config import setup_logging

    setup_logging()
    parser = argparse.ArgumentParser(description="Excel workbook reader")
    parser.add_argument("file", help="Path to .xlsx file")
    parser.add_argument("sheet", nargs="?", help="Sheet name (omit for a workbook summary)")
    parser.add_argument("--no-header", action="store_true", help="Return rows as arrays")
    args = parser.parse_args(argv)

    try:
        workbook = read_workbook(args.file)
        if args.sheet:
            result: Any = get_sheet_data(workbook, args.sheet, header=not args.no_header)
        else:
            result = get_workbook_summary(workbook)
    except (OSError, BadZipFile, InvalidFileException, SheetNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(json.dumps(result, indent=2, default=_json_default))
    return 0


if __name__ == "__main__":
    sys.exit(main())
