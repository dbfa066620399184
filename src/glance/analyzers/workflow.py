# SPDX-License-Identifier: AGPL-3.0-or-later
"""Alteryx workflow, macro and app files (``.yxmd``, ``.yxmc``, ``.yxwz``)."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..cancellation import CancellationToken
from ..models import AnalysisContext, SummaryResult, TableSummary
from ..sniff import FormatFamily, extension_family
from ..textutil import format_count, truncate
from .base import Analyzer


_VERSION_ATTRIBUTES = ("yxmdVer", "yxmcVer", "yxpVer")
_MAX_EXPRESSION_ROWS = 50
_MAX_EXPRESSION_CHARS = 160


@dataclass
class WorkflowSummary:
    version: str = "Unknown"
    run_e2: str = "Unknown"
    nodes: int = 0
    connections: int = 0
    containers: int = 0
    disabled: int = 0
    tools: Dict[str, int] = field(default_factory=dict)
    inputs: List[str] = field(default_factory=list)
    outputs: List[str] = field(default_factory=list)
    macros: List[str] = field(default_factory=list)
    formulas: List[Tuple[str, str, str]] = field(default_factory=list)
    filters: List[Tuple[str, str]] = field(default_factory=list)


def normalize_expression(expression: Optional[str]) -> str:
    """Collapse a multi-line expression onto one line."""

    if not expression or not expression.strip():
        return ""
    lines = expression.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    return " ".join(part.strip() for part in lines if part.strip())


def _parse_bool(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    lowered = value.strip().lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    return None


def _add_unique(items: List[str], value: str) -> None:
    if value.lower() not in (item.lower() for item in items):
        items.append(value)


def _first_text(node: ET.Element, tag: str) -> str:
    for element in node.iter(tag):
        value = "".join(element.itertext()).strip()
        if value:
            return value
    return ""


def _tool_name(node: ET.Element) -> str:
    gui = node.find("GuiSettings")
    plugin = gui.get("Plugin") if gui is not None else None
    return plugin or "Unknown"


def _collect_files(node: ET.Element, plugin: str, summary: WorkflowSummary) -> None:
    lowered = plugin.lower()
    for element in node.iter("File"):
        value = "".join(element.itertext()).strip()
        if not value:
            continue
        if "input" in lowered:
            _add_unique(summary.inputs, value)
        elif "output" in lowered:
            _add_unique(summary.outputs, value)
    if "directory" in lowered:
        directory = _first_text(node, "Directory")
        file_spec = _first_text(node, "FileSpec")
        if directory:
            _add_unique(summary.inputs, f"{directory}\\{file_spec}" if file_spec else directory)


def _is_disabled(node: ET.Element) -> bool:
    for element in node.iter("Disabled"):
        value = element.get("value")
        if value is not None:
            return _parse_bool(value) is True
    return False


def read_workflow(path: str | Path, token: CancellationToken) -> WorkflowSummary:
    root = ET.parse(str(path)).getroot()
    summary = WorkflowSummary()
    for attribute in _VERSION_ATTRIBUTES:
        if root.get(attribute) is not None:
            summary.version = root.get(attribute)
            break
    run_e2 = _parse_bool(root.get("RunE2"))
    if run_e2 is not None:
        summary.run_e2 = "True" if run_e2 else "False"

    nodes = root.find("Nodes")
    if nodes is not None:
        for node in nodes.iter("Node"):
            token.raise_if_cancelled()
            summary.nodes += 1
            plugin = _tool_name(node)
            tool_id = node.get("ToolID") or "?"
            summary.tools[plugin] = summary.tools.get(plugin, 0) + 1
            lowered = plugin.lower()
            if "toolcontainer" in lowered:
                summary.containers += 1
            if _is_disabled(node):
                summary.disabled += 1
            engine = node.find("EngineSettings")
            macro = engine.get("Macro") if engine is not None else None
            if macro and macro.strip():
                summary.macros.append(macro.strip())
            _collect_files(node, plugin, summary)
            if "formula" in lowered:
                for formula in node.iter("FormulaField"):
                    expression = formula.get("expression")
                    if expression is None:
                        expression = "".join(formula.itertext())
                    expression = normalize_expression(expression)
                    if expression:
                        summary.formulas.append((tool_id, formula.get("field") or "", expression))
            if "filter" in lowered:
                element = next(node.iter("Expression"), None)
                expression = normalize_expression("".join(element.itertext()) if element is not None else None)
                if expression:
                    summary.filters.append((tool_id, expression))

    connections = root.find("Connections")
    if connections is not None:
        summary.connections = len(connections.findall("Connection"))
    return summary


def _sorted_unique(items: List[str]) -> List[str]:
    seen: Dict[str, str] = {}
    for item in items:
        seen.setdefault(item.lower(), item)
    return sorted(seen.values(), key=str.lower)


def render_workflow(summary: WorkflowSummary) -> str:
    lines = [
        f"Workflow version: {summary.version}",
        f"Run with E2: {summary.run_e2}",
        "",
        f"Nodes: {format_count(summary.nodes)} ({format_count(len(summary.tools))} tool types)",
        f"Connections: {format_count(summary.connections)}",
        f"Containers: {format_count(summary.containers)}",
    ]
    if summary.disabled:
        lines.append(f"Disabled nodes: {format_count(summary.disabled)}")
    for header, items in (
        ("Input sources:", summary.inputs),
        ("Output targets:", summary.outputs),
        ("Macros referenced:", summary.macros),
    ):
        if items:
            lines.append("")
            lines.append(header)
            lines.extend(f"  - {item}" for item in _sorted_unique(items))
    if summary.formulas:
        lines.append("")
        lines.append(f"Formula expressions captured: {format_count(len(summary.formulas))}")
    if summary.filters:
        lines.append("")
        lines.append(f"Filter expressions captured: {format_count(len(summary.filters))}")
    return "\n".join(lines)


def _distinct(rows: List[Tuple[str, ...]]) -> List[Tuple[str, ...]]:
    seen = set()
    result = []
    for row in rows:
        key = "|".join(row).lower()
        if key not in seen:
            seen.add(key)
            result.append(row)
    return result


def workflow_tables(summary: WorkflowSummary) -> List[TableSummary]:
    tables: List[TableSummary] = []
    if summary.tools:
        ordered = sorted(summary.tools.items(), key=lambda kv: (-kv[1], kv[0].lower()))
        tables.append(
            TableSummary(title="Tool Usage", headers=("Tool", "Count"), rows=[(k, str(v)) for k, v in ordered])
        )
    if summary.formulas:
        rows = _distinct(
            [
                (tool_id, name or "(Unnamed)", truncate(expression, _MAX_EXPRESSION_CHARS))
                for tool_id, name, expression in summary.formulas
            ]
        )
        tables.append(
            TableSummary(
                title="Formula Expressions",
                headers=("ToolID", "Field", "Expression"),
                rows=rows[:_MAX_EXPRESSION_ROWS],
                truncated=len(rows) > _MAX_EXPRESSION_ROWS,
            )
        )
    if summary.filters:
        rows = _distinct(
            [(tool_id, truncate(expression, _MAX_EXPRESSION_CHARS)) for tool_id, expression in summary.filters]
        )
        tables.append(
            TableSummary(
                title="Filter Expressions",
                headers=("ToolID", "Expression"),
                rows=rows[:_MAX_EXPRESSION_ROWS],
                truncated=len(rows) > _MAX_EXPRESSION_ROWS,
            )
        )
    return tables


class WorkflowAnalyzer(Analyzer):
    name = "workflow"
    priority = 90

    def can_handle(self, context: AnalysisContext) -> bool:
        return extension_family(context.path) is FormatFamily.WORKFLOW

    def summarize(self, context: AnalysisContext, token: CancellationToken) -> SummaryResult:
        title = "Alteryx Workflow Summary"
        try:
            summary = read_workflow(context.path, token)
        except ET.ParseError as exc:
            return SummaryResult.diagnostic(title, f"XML parsing error: {exc}")
        except OSError as exc:
            return SummaryResult.diagnostic(title, f"Error summarizing workflow: {exc}")
        return SummaryResult(title=title, body=render_workflow(summary), tables=tuple(workflow_tables(summary)))


__all__ = [
    "WorkflowAnalyzer",
    "WorkflowSummary",
    "normalize_expression",
    "read_workflow",
    "render_workflow",
    "workflow_tables",
]
