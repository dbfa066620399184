# SPDX-License-Identifier: AGPL-3.0-or-later
from datetime import date, datetime
from pathlib import Path

import openpyxl

from glance.analyzers.spreadsheet import SpreadsheetAnalyzer, format_cell
from glance.models import AnalysisContext
from glance.settings import SummarySettings


def _workbook(path: Path) -> Path:
    workbook = openpyxl.Workbook()
    data = workbook.active
    data.title = "Data"
    data.append(["Name", "Qty", "When"])
    data.append(["a", 1, datetime(2024, 1, 2, 12, 0)])
    data.append(["b", 2.5, None])
    data.append([True, None, None])
    for title in ("Extra", "More", "Last"):
        sheet = workbook.create_sheet(title)
        sheet.append([title.lower()])
    workbook.save(path)
    return path


def _summarize(path: Path, settings: SummarySettings, token):
    return SpreadsheetAnalyzer().summarize(AnalysisContext.from_path(path, settings), token)


def test_format_cell() -> None:
    assert format_cell(None, 10) == ""
    assert format_cell(False, 10) == "FALSE"
    assert format_cell(3.0, 10) == "3"
    assert format_cell(float("nan"), 10) == "NaN"
    assert format_cell(float("-inf"), 10) == "-Infinity"
    assert format_cell(date(2024, 5, 6), 30) == "2024-05-06 00:00:00"
    assert format_cell("abcdef", 3) == "abc..."


def test_workbook_summary(tmp_path: Path, settings, token) -> None:
    target = _workbook(tmp_path / "book.xlsx")

    result = _summarize(target, settings, token)

    assert result.title == "Excel Summary"
    assert result.status == "ok"
    assert "Sheets detected: 4" in result.body
    assert "Preview limited to first" in result.body
    assert "1. Data\n   Rows scanned: 4\n   Preview rows: 4\n   Columns shown: 3" in result.body
    assert "4. Last\n   Rows scanned: 1\n   Preview skipped (sheet limit reached)." in result.body
    data = result.tables[0]
    assert data.title == "Data (first 4 rows)"
    assert data.headers == ("Column 1", "Column 2", "Column 3")
    assert data.rows[1] == ("a", "1", "2024-01-02 12:00:00")
    assert data.rows[2] == ("b", "2.5", "")
    assert data.rows[3][0] == "TRUE"
    assert [table.title for table in result.tables] == [
        "Data (first 4 rows)",
        "Extra (first 1 rows)",
        "More (first 1 rows)",
    ]


def test_workbook_limits(tmp_path: Path, token) -> None:
    target = _workbook(tmp_path / "book.xlsx")
    settings = SummarySettings.from_flat(
        {"spreadsheet.maxSheets": 1, "spreadsheet.maxRows": 2, "spreadsheet.maxColumns": 2}
    )

    result = _summarize(target, settings, token)

    assert "Preview limited to first 1 sheets." in result.body
    assert "   Preview rows: 2 (limited to 2)" in result.body
    assert "   Columns shown: 2 (limited to first 2)" in result.body
    assert len(result.tables) == 1
    table = result.tables[0]
    assert table.headers == ("Column 1", "Column 2")
    assert table.rows == (("Name", "Qty"), ("a", "1"))
    assert table.truncated is True


def test_unreadable_workbook(tmp_path: Path, settings, token) -> None:
    target = tmp_path / "broken.xlsx"
    target.write_bytes(b"not a workbook")

    result = _summarize(target, settings, token)

    assert result.status == "error"
    assert result.body.startswith("Failed to read workbook:")
