# SPDX-License-Identifier: AGPL-3.0-or-later
"""Columnar binary (Alteryx YXDB) analyzer."""

from __future__ import annotations

from datetime import date, datetime, time
from typing import List, Sequence

from ..cancellation import CancellationToken
from ..models import AnalysisContext, SummaryResult, TableSummary
from ..settings import ColumnarLimits
from ..sniff import FormatFamily, extension_family
from ..textutil import format_count, format_float, format_timestamp
from ..yxdb import YxdbField, YxdbFormatError, YxdbReader
from .base import Analyzer


_SCHEMA_HEADERS = ("Name", "Type", "Size", "Scale", "Source", "Description")


def format_bytes(value: bytes) -> str:
    if not value:
        return "0 bytes"
    prefix = value[:8].hex().upper()
    suffix = "..." if len(value) > 8 else ""
    return f"0x{prefix}{suffix} ({len(value)} bytes)"


def format_value(value: object, max_length: int) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        text = "TRUE" if value else "FALSE"
    elif isinstance(value, datetime):
        text = format_timestamp(value, seconds=True)
    elif isinstance(value, date):
        text = value.strftime("%Y-%m-%d 00:00:00")
    elif isinstance(value, time):
        text = value.isoformat()
    elif isinstance(value, float):
        text = format_float(value)
    elif isinstance(value, (bytes, bytearray)):
        text = format_bytes(bytes(value))
    else:
        text = str(value)
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


def schema_table(fields: Sequence[YxdbField], token: CancellationToken) -> TableSummary:
    rows: List[List[str]] = []
    for field in fields:
        token.raise_if_cancelled()
        rows.append(
            [
                field.name,
                field.type,
                "" if field.size is None else str(field.size),
                "" if field.scale is None else str(field.scale),
                field.source,
                field.description,
            ]
        )
    return TableSummary(title="Schema", headers=_SCHEMA_HEADERS, rows=rows)


def preview_table(reader: YxdbReader, limits: ColumnarLimits, token: CancellationToken) -> TableSummary:
    names = [field.name for field in reader.fields[: limits.max_columns]]
    columns_truncated = len(reader.fields) > len(names)
    declared = reader.header.record_count
    rows: List[List[str]] = []
    rows_truncated = False
    for values in reader.rows(token):
        if len(rows) >= limits.max_rows:
            rows_truncated = True
            break
        rows.append([format_value(v, limits.max_value_length) for v in values[: len(names)]])
    if not rows:
        return TableSummary(title="Rows preview", headers=names, rows=(), truncated=declared > 0)
    if rows_truncated and declared > 0:
        title = f"Rows preview (first {format_count(len(rows))} of {format_count(declared)})"
    else:
        title = f"Rows preview (first {format_count(len(rows))})"
    return TableSummary(title=title, headers=names, rows=rows, truncated=rows_truncated or columns_truncated)


class ColumnarBinaryAnalyzer(Analyzer):
    name = "columnar"
    priority = 260

    def can_handle(self, context: AnalysisContext) -> bool:
        return extension_family(context.path) is FormatFamily.COLUMNAR

    def summarize(self, context: AnalysisContext, token: CancellationToken) -> SummaryResult:
        limits = context.settings.columnar
        lines: List[str] = []
        tables: List[TableSummary] = []
        status = "ok"
        try:
            with YxdbReader(context.path) as reader:
                header = reader.header
                lines.append(header.description or "YXDB file")
                lines.append(f"Records declared: {format_count(header.record_count)}")
                lines.append(f"Created: {format_timestamp(header.created, seconds=True)}")
                blocks = reader.record_block_count()
                if blocks is not None:
                    lines.append(f"Record blocks: {blocks}")
                lines.append(f"Fields: {format_count(len(reader.fields))}")
                tables.append(schema_table(reader.fields, token))
                tables.append(preview_table(reader, limits, token))
                lines.append(f"Compressed: {'Yes' if reader.compressed_blocks else 'No'}")
        except (YxdbFormatError, OSError) as exc:
            lines.append(f"Failed to read YXDB: {exc}")
            status = "error"
        return SummaryResult(title="YXDB Summary", body="\n".join(lines), tables=tuple(tables), status=status)


__all__ = ["ColumnarBinaryAnalyzer", "format_bytes", "format_value", "preview_table", "schema_table"]
