# SPDX-License-Identifier: AGPL-3.0-or-later
"""Spreadsheet (xlsx family) analyzer built on openpyxl's read-only mode."""

from __future__ import annotations

import zipfile
from dataclasses import dataclass, field
from datetime import date, datetime, time
from pathlib import Path
from typing import List, Optional, Sequence

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from ..cancellation import CancellationToken
from ..models import AnalysisContext, SummaryResult, TableSummary
from ..settings import SpreadsheetLimits
from ..sniff import FormatFamily, extension_family
from ..textutil import format_count, format_float
from .base import Analyzer


_WORKBOOK_ERRORS = (OSError, zipfile.BadZipFile, InvalidFileException, KeyError, ValueError)


def format_cell(value: object, max_chars: int) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        text = "TRUE" if value else "FALSE"
    elif isinstance(value, datetime):
        text = value.strftime("%Y-%m-%d %H:%M:%S")
    elif isinstance(value, date):
        text = value.strftime("%Y-%m-%d 00:00:00")
    elif isinstance(value, time):
        text = value.isoformat()
    elif isinstance(value, float):
        text = format_float(value)
    else:
        text = str(value)
    if len(text) > max_chars:
        return text[:max_chars] + "..."
    return text


@dataclass
class SheetScan:
    index: int
    name: str
    previewed: bool
    rows_seen: int = 0
    rows: List[List[str]] = field(default_factory=list)
    columns: int = 0
    preview_truncated: bool = False
    scan_truncated: bool = False
    column_limit_hit: bool = False

    @property
    def truncated(self) -> bool:
        return self.preview_truncated or self.scan_truncated or self.column_limit_hit


def _scan_sheet(rows, scan: SheetScan, limits: SpreadsheetLimits, token: CancellationToken) -> None:
    max_scan = max(limits.max_rows, limits.max_rows_scanned)
    for values in rows:
        token.raise_if_cancelled()
        scan.rows_seen += 1
        if scan.previewed:
            width = min(len(values), limits.max_columns)
            scan.columns = max(scan.columns, width)
            if len(values) > limits.max_columns:
                scan.column_limit_hit = True
            if len(scan.rows) < limits.max_rows:
                scan.rows.append([format_cell(values[i], limits.max_cell_chars) for i in range(width)])
            else:
                scan.preview_truncated = True
        if scan.rows_seen >= max_scan:
            scan.scan_truncated = True
            break


def scan_workbook(path: str | Path, limits: SpreadsheetLimits, token: CancellationToken) -> List[SheetScan]:
    workbook = openpyxl.load_workbook(str(path), read_only=True, data_only=True)
    try:
        scans: List[SheetScan] = []
        for index, sheet in enumerate(workbook.worksheets, start=1):
            token.raise_if_cancelled()
            name = sheet.title if sheet.title and sheet.title.strip() else f"Sheet {index}"
            scan = SheetScan(index=index, name=name, previewed=index <= limits.max_sheets)
            _scan_sheet(sheet.iter_rows(values_only=True), scan, limits, token)
            scans.append(scan)
        return scans
    finally:
        workbook.close()


def _sheet_lines(scan: SheetScan, limits: SpreadsheetLimits) -> List[str]:
    max_scan = max(limits.max_rows, limits.max_rows_scanned)
    scanned = f"   Rows scanned: {format_count(scan.rows_seen)}"
    if scan.scan_truncated:
        scanned += f" (limited to {format_count(max_scan)})"
    lines = [f"{scan.index}. {scan.name}", scanned]
    if not scan.previewed:
        lines.append("   Preview skipped (sheet limit reached).")
        return lines
    preview = f"   Preview rows: {format_count(len(scan.rows))}"
    if scan.preview_truncated:
        preview += f" (limited to {format_count(limits.max_rows)})"
    lines.append(preview)
    if scan.columns:
        shown = f"   Columns shown: {scan.columns}"
        if scan.column_limit_hit:
            shown += f" (limited to first {limits.max_columns})"
        lines.append(shown)
    return lines


def sheet_table(scan: SheetScan, limits: SpreadsheetLimits) -> Optional[TableSummary]:
    if not scan.previewed or not scan.rows:
        return None
    headers: Sequence[str] = [f"Column {i + 1}" for i in range(scan.columns)]
    return TableSummary(
        title=f"{scan.name} (first {min(len(scan.rows), limits.max_rows)} rows)",
        headers=headers,
        rows=scan.rows,
        truncated=scan.truncated,
    )


def render_workbook(scans: Sequence[SheetScan], limits: SpreadsheetLimits) -> str:
    max_scan = max(limits.max_rows, limits.max_rows_scanned)
    lines = [f"Sheets detected: {format_count(len(scans))}"]
    if len(scans) > limits.max_sheets:
        lines.append(f"Preview limited to first {limits.max_sheets} sheets.")
    lines.append(
        f"Rows sampled per sheet: up to {format_count(max_scan)} "
        f"(preview shows first {format_count(limits.max_rows)})."
    )
    lines.append(f"Columns sampled per sheet: up to {limits.max_columns}.")
    lines.append("")
    for scan in scans:
        lines.extend(_sheet_lines(scan, limits))
        lines.append("")
    return "\n".join(lines).rstrip()


class SpreadsheetAnalyzer(Analyzer):
    name = "spreadsheet"
    priority = 250

    def can_handle(self, context: AnalysisContext) -> bool:
        return extension_family(context.path) is FormatFamily.SPREADSHEET

    def summarize(self, context: AnalysisContext, token: CancellationToken) -> SummaryResult:
        limits = context.settings.spreadsheet
        try:
            scans = scan_workbook(context.path, limits, token)
        except _WORKBOOK_ERRORS as exc:
            return SummaryResult.diagnostic("Excel Summary", f"Failed to read workbook: {exc}")
        tables = tuple(t for t in (sheet_table(s, limits) for s in scans) if t is not None)
        return SummaryResult(title="Excel Summary", body=render_workbook(scans, limits), tables=tables)


__all__ = [
    "SheetScan",
    "SpreadsheetAnalyzer",
    "format_cell",
    "render_workbook",
    "scan_workbook",
    "sheet_table",
]
