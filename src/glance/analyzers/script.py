# SPDX-License-Identifier: AGPL-3.0-or-later
"""Script markup (JSON) analyzer: lenient parse, depth guard, bounded pretty print."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Tuple

import json5

from ..cancellation import CancellationToken
from ..models import AnalysisContext, SummaryResult
from ..settings import ScriptLimits
from ..sniff import looks_like_json
from ..textutil import detect_bom, format_count
from .base import Analyzer, AnalyzerError


# strings and comments are matched first so their brackets are skipped
_STRUCTURE_RE = re.compile(
    r'"(?:\\.|[^"\\])*"|\'(?:\\.|[^\'\\])*\'|//[^\n]*|/\*.*?\*/|[\[\]{}]',
    re.DOTALL,
)


def nesting_depth(text: str) -> int:
    depth = deepest = 0
    for match in _STRUCTURE_RE.finditer(text):
        char = match.group(0)
        if char in ("[", "{"):
            depth += 1
            deepest = max(deepest, depth)
        elif char in ("]", "}"):
            depth -= 1
    return deepest


def load_json_like(raw: str, max_depth: int) -> object:
    """Parse *raw* as strict JSON, falling back to JSON5 (comments, trailing commas).

    The strict parser's error is the one reported when both fail.
    """

    primary = raw.lstrip("\ufeff")
    if nesting_depth(primary) > max_depth:
        raise AnalyzerError(f"The maximum configured depth of {max_depth} has been exceeded.")
    try:
        return json.loads(primary)
    except json.JSONDecodeError as first_error:
        try:
            return json5.loads(primary)
        except ValueError:
            raise first_error from None


def read_json_text(path: str | Path, limits: ScriptLimits) -> str:
    with open(path, "rb") as handle:
        data = handle.read(limits.max_input_bytes + 1)
    if len(data) > limits.max_input_bytes:
        raise AnalyzerError(f"JSON input exceeds {format_count(limits.max_input_bytes)} bytes.")
    encoding, skip = detect_bom(data)
    return data[skip:].decode(encoding, errors="replace")


def pretty_json(value: object, max_chars: int) -> Tuple[str, bool]:
    pretty = json.dumps(value, indent=2, ensure_ascii=False)
    if len(pretty) > max_chars:
        return pretty[:max_chars] + f"\n... (truncated, total {format_count(len(pretty))} characters)", True
    return pretty, False


class ScriptMarkupAnalyzer(Analyzer):
    name = "script"
    priority = 300

    def can_handle(self, context: AnalysisContext) -> bool:
        return looks_like_json(context.path)

    def summarize(self, context: AnalysisContext, token: CancellationToken) -> SummaryResult:
        limits = context.settings.script
        try:
            text = read_json_text(context.path, limits)
            token.raise_if_cancelled()
            value = load_json_like(text, limits.max_depth)
        except (json.JSONDecodeError, AnalyzerError, RecursionError) as exc:
            return SummaryResult.diagnostic("JSON Summary", f"JSON parsing error: {exc}")
        except OSError as exc:
            return SummaryResult.diagnostic("JSON Summary", f"JSON summary failed: {exc}")
        token.raise_if_cancelled()
        body, _ = pretty_json(value, limits.max_chars)
        return SummaryResult(title="JSON Summary", body=body)


__all__ = [
    "ScriptMarkupAnalyzer",
    "load_json_like",
    "nesting_depth",
    "pretty_json",
    "read_json_text",
]
