# SPDX-License-Identifier: AGPL-3.0-or-later
"""Plain-text preview."""

from __future__ import annotations

from pathlib import Path
from typing import Tuple

from ..cancellation import CancellationToken
from ..models import AnalysisContext, SummaryResult, TextPreview
from ..sniff import is_probably_text
from ..textutil import decode_prefix, format_count, read_prefix
from .base import Analyzer


def read_text_head(path: str | Path, max_bytes: int) -> Tuple[str, bool]:
    with open(path, "rb") as handle:
        data = read_prefix(handle, max_bytes)
        truncated = bool(handle.read(1))
    return decode_prefix(data), truncated


class PlainTextAnalyzer(Analyzer):
    name = "text"
    priority = 900

    def can_handle(self, context: AnalysisContext) -> bool:
        sample = min(context.settings.text.preview_bytes, context.size) if context.size else 0
        return is_probably_text(context.path, max(sample, 1))

    def summarize(self, context: AnalysisContext, token: CancellationToken) -> SummaryResult:
        limit = context.settings.text.preview_bytes
        body = f"Preview (first {format_count(limit)} bytes):"
        try:
            content, truncated = read_text_head(context.path, limit)
        except OSError as exc:
            content, truncated = f"(Could not read file preview: {exc})", False
        token.raise_if_cancelled()
        return SummaryResult(
            title="Text Preview",
            body=body,
            preview=TextPreview(title=context.name, content=content, truncated=truncated),
        )


__all__ = ["PlainTextAnalyzer", "read_text_head"]
