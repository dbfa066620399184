# SPDX-License-Identifier: AGPL-3.0-or-later
"""Delimited text (CSV family) analyzer with delimiter sniffing and numeric stats."""

from __future__ import annotations

import csv
import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..cancellation import CancellationToken
from ..models import AnalysisContext, SummaryResult, TableSummary
from ..settings import DelimitedLimits
from ..sniff import FormatFamily, extension_family, read_header
from ..textutil import format_count, format_decimal, stream_encoding
from .base import Analyzer


_CANDIDATES = (",", ";", "\t", "|", ":")
_DELIMITER_NAMES = {
    "\t": "Tab (\\t)",
    ";": "Semicolon (;)",
    "|": "Pipe (|)",
    ":": "Colon (:)",
    ",": "Comma (,)",
}
_NUMBER = re.compile(r"^[+-]?(?:\d[\d,]*)?(?:\.\d*)?$")
_SNIFF_LINE_CHARS = 64 * 1024


@dataclass
class ColumnStats:
    """Running min/max/mean over the numeric cells of one column."""

    minimum: Optional[Decimal] = None
    maximum: Optional[Decimal] = None
    total: Decimal = Decimal(0)
    count: int = 0

    def push(self, value: Decimal) -> None:
        if self.minimum is None or value < self.minimum:
            self.minimum = value
        if self.maximum is None or value > self.maximum:
            self.maximum = value
        self.total += value
        self.count += 1

    @property
    def mean(self) -> Decimal:
        return self.total / self.count if self.count else Decimal(0)


@dataclass
class DelimitedScan:
    delimiter: str = ","
    headers: List[str] = field(default_factory=list)
    rows: List[List[str]] = field(default_factory=list)
    rows_scanned: int = 0
    truncated: bool = False
    stats: Dict[int, ColumnStats] = field(default_factory=dict)
    empty: bool = False


def count_unquoted(line: str, delimiter: str) -> int:
    """Count *delimiter* occurrences outside double-quoted spans."""

    in_quotes = False
    count = 0
    index = 0
    length = len(line)
    while index < length:
        char = line[index]
        if char == '"':
            if in_quotes and index + 1 < length and line[index + 1] == '"':
                index += 1
            else:
                in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            count += 1
        index += 1
    return count


def detect_delimiter(line: str) -> str:
    best, best_count = ",", 0
    for candidate in _CANDIDATES:
        count = count_unquoted(line, candidate)
        if count > best_count:
            best, best_count = candidate, count
    return best


def describe_delimiter(delimiter: str) -> str:
    return _DELIMITER_NAMES.get(delimiter, delimiter)


def parse_number(cell: str) -> Optional[Decimal]:
    text = cell.strip()
    if not text or not any(ch.isdigit() for ch in text) or not _NUMBER.match(text):
        return None
    try:
        return Decimal(text.replace(",", ""))
    except InvalidOperation:
        return None


def _pad(cells: Sequence[str], width: int) -> List[str]:
    return [cells[i] if i < len(cells) else "" for i in range(width)]


def scan_delimited(path: str | Path, limits: DelimitedLimits, token: CancellationToken) -> DelimitedScan:
    """Single forward pass over *path* honouring the row caps in *limits*."""

    encoding = stream_encoding(read_header(path, 4))
    scan = DelimitedScan()
    with open(path, "r", encoding=encoding, errors="replace", newline="") as handle:
        first_line = handle.readline(_SNIFF_LINE_CHARS)
        if not first_line:
            scan.empty = True
            return scan
        scan.delimiter = detect_delimiter(first_line.rstrip("\r\n"))
        handle.seek(0)
        reader = csv.reader(handle, delimiter=scan.delimiter, quotechar='"', doublequote=True)
        header = next(reader, [])
        scan.headers = [
            cell.strip() or f"Column {index + 1}" for index, cell in enumerate(header)
        ]
        width = len(scan.headers)
        for record in reader:
            token.raise_if_cancelled()
            if not record:
                continue
            scan.rows_scanned += 1
            cells = [cell.strip() for cell in record]
            if len(scan.rows) < limits.max_preview_rows:
                scan.rows.append(_pad(cells, width))
            for index, cell in enumerate(cells[:width]):
                value = parse_number(cell)
                if value is not None:
                    scan.stats.setdefault(index, ColumnStats()).push(value)
            if scan.rows_scanned >= limits.max_rows_scanned:
                scan.truncated = True
                break
    return scan


def _render_body(scan: DelimitedScan, limits: DelimitedLimits) -> str:
    lines = [f"Detected delimiter: {describe_delimiter(scan.delimiter)}", "CSV Columns:"]
    lines.extend(f"  {index}. {name}" for index, name in enumerate(scan.headers, start=1))
    lines.append("")
    lines.append(f"Data rows scanned: {format_count(scan.rows_scanned)}")
    shown = len(scan.rows)
    if shown >= limits.max_preview_rows or scan.truncated:
        lines.append(
            f"Preview rows shown: {format_count(shown)} "
            f"(limited to first {format_count(limits.max_preview_rows)})"
        )
    else:
        lines.append(f"Preview rows shown: {format_count(shown)}")
    if scan.stats:
        lines.append("")
        lines.append("Numeric column stats (sample):")
        for index in sorted(scan.stats):
            stats = scan.stats[index]
            name = scan.headers[index] if index < len(scan.headers) else f"Column {index + 1}"
            lines.append(
                f"  {name}: min {format_decimal(stats.minimum)}, "
                f"max {format_decimal(stats.maximum)}, avg {stats.mean:,.2f}"
            )
    if scan.truncated:
        lines.append("")
        lines.append(
            f"Processing stopped early after {format_count(scan.rows_scanned)} rows for performance."
        )
    return "\n".join(lines)


class DelimitedTextAnalyzer(Analyzer):
    name = "delimited"
    priority = 200

    def can_handle(self, context: AnalysisContext) -> bool:
        return extension_family(context.path) is FormatFamily.DELIMITED

    def summarize(self, context: AnalysisContext, token: CancellationToken) -> SummaryResult:
        limits = context.settings.delimited
        try:
            scan = scan_delimited(context.path, limits, token)
        except (OSError, csv.Error) as exc:
            return SummaryResult.diagnostic("CSV Summary", f"Error summarizing CSV: {exc}")
        if scan.empty:
            return SummaryResult(title="CSV Summary", body="CSV appears empty.")
        table = TableSummary(
            title="CSV Preview",
            headers=scan.headers,
            rows=scan.rows,
            truncated=scan.truncated,
        )
        return SummaryResult(title="CSV Summary", body=_render_body(scan, limits), tables=(table,))


__all__ = [
    "ColumnStats",
    "DelimitedScan",
    "DelimitedTextAnalyzer",
    "count_unquoted",
    "describe_delimiter",
    "detect_delimiter",
    "parse_number",
    "scan_delimited",
]
