# SPDX-License-Identifier: AGPL-3.0-or-later
"""Structured markup (XML) analyzer: INCA domain summary or a bounded element scan."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from ..cancellation import CancellationToken
from ..models import AnalysisContext, SummaryResult, TableSummary
from ..settings import MarkupLimits
from ..sniff import looks_like_xml
from ..textutil import format_count, truncate_one_line
from .base import Analyzer
from .inca import is_inca_document, split_tag, summarize_inca


logger = logging.getLogger(__name__)


@dataclass
class MarkupScan:
    root: Optional[str] = None
    elements: int = 0
    attributes: int = 0
    frequencies: Dict[str, int] = field(default_factory=dict)
    samples: List[str] = field(default_factory=list)
    stopped_early: bool = False
    error: Optional[str] = None


def scan_markup(path: str | Path, limits: MarkupLimits, token: CancellationToken) -> MarkupScan:
    """Stream elements until ``limits.max_elements``; parse errors are recorded, not raised."""

    scan = MarkupScan()
    try:
        with open(path, "rb") as handle:
            parser = ET.iterparse(handle, events=("start", "end"))
            for event, element in parser:
                token.raise_if_cancelled()
                if event == "start":
                    _, name = split_tag(element.tag)
                    scan.elements += 1
                    if scan.root is None:
                        scan.root = name
                    scan.attributes += len(element.attrib)
                    scan.frequencies[name] = scan.frequencies.get(name, 0) + 1
                    if scan.elements >= limits.max_elements:
                        scan.stopped_early = True
                        break
                    continue
                if len(scan.samples) < limits.max_text_samples:
                    for text in (element.text, element.tail):
                        stripped = (text or "").strip()
                        if stripped and len(scan.samples) < limits.max_text_samples:
                            scan.samples.append(truncate_one_line(stripped, limits.max_sample_chars))
                element.clear()
    except ET.ParseError as exc:
        scan.error = f"XML parsing error: {exc}"
    return scan


def render_scan(scan: MarkupScan, limits: MarkupLimits) -> str:
    lines: List[str] = []
    if scan.stopped_early:
        lines.append(f"(Scanned {format_count(scan.elements)} elements, stopping early for performance)")
    lines.append(f"Root element: {scan.root or '(unknown)'}")
    lines.append(f"Elements scanned: {format_count(scan.elements)}")
    lines.append(f"Attributes scanned: {format_count(scan.attributes)}")
    if scan.frequencies:
        lines.append("")
        lines.append("Top element names (sample):")
        for name, count in list(scan.frequencies.items())[: limits.max_top_elements]:
            lines.append(f"  {name}: {format_count(count)}")
    if scan.samples:
        lines.append("")
        lines.append("Text samples:")
        lines.extend(f"- {sample}" for sample in scan.samples)
    if scan.error:
        lines.append("")
        lines.append(scan.error)
    return "\n".join(lines)


class MarkupAnalyzer(Analyzer):
    name = "markup"
    priority = 100

    def can_handle(self, context: AnalysisContext) -> bool:
        return looks_like_xml(context.path)

    def summarize(self, context: AnalysisContext, token: CancellationToken) -> SummaryResult:
        if is_inca_document(context.path):
            logger.debug("INCA document detected: %s", context.path)
            try:
                body, tables = summarize_inca(context.path, token)
            except (ET.ParseError, OSError) as exc:
                return SummaryResult.diagnostic("XML Summary", f"Error summarizing INCA document: {exc}")
            return SummaryResult(title="XML Summary", body=body, tables=tuple(tables))

        limits = context.settings.markup
        try:
            scan = scan_markup(context.path, limits, token)
        except OSError as exc:
            return SummaryResult.diagnostic("XML Summary", f"Error summarizing XML: {exc}")
        tables = ()
        if scan.frequencies:
            top = list(scan.frequencies.items())[: limits.max_top_elements]
            tables = (
                TableSummary(
                    title="Top Elements",
                    headers=("Element", "Count"),
                    rows=[(name, format_count(count)) for name, count in top],
                    truncated=len(scan.frequencies) > limits.max_top_elements,
                ),
            )
        status = "error" if scan.error and scan.elements == 0 else "ok"
        return SummaryResult(title="XML Summary", body=render_scan(scan, limits), tables=tables, status=status)


__all__ = ["MarkupAnalyzer", "MarkupScan", "render_scan", "scan_markup"]
