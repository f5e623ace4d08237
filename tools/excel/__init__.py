"""Excel workbook reading with formula diagnostics.

Components:
    workbook.py: Sheet/cell access and unresolved-formula detection (openpyxl)
"""

from tools.excel.workbook import (
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
    read_workbook,
)

__all__ = [
    "ExcelWorkbook",
    "read_workbook",
    "get_sheet_names",
    "get_sheet_data",
    "get_sheet_as_array",
    "get_cell",
    "get_cell_full",
    "get_effective_value",
    "get_sheet_range",
    "get_formula_warnings",
    "get_workbook_summary",
    "is_unresolved_formula",
]
