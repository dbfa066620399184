# SPDX-License-Identifier: AGPL-3.0-or-later
"""Format-specific analyzers and the default registration order."""

from __future__ import annotations

from typing import List

from .archive import ArchiveAnalyzer
from .base import Analyzer, AnalyzerError
from .binary import BinaryAnalyzer
from .columnar import ColumnarBinaryAnalyzer
from .delimited import DelimitedTextAnalyzer
from .markdown import MarkdownAnalyzer
from .markup import MarkupAnalyzer
from .script import ScriptMarkupAnalyzer
from .spreadsheet import SpreadsheetAnalyzer
from .text import PlainTextAnalyzer
from .workflow import WorkflowAnalyzer


def default_analyzers() -> List[Analyzer]:
    """Fresh instances of every built-in analyzer, in priority order."""

    return [
        WorkflowAnalyzer(),
        MarkupAnalyzer(),
        DelimitedTextAnalyzer(),
        MarkdownAnalyzer(),
        SpreadsheetAnalyzer(),
        ColumnarBinaryAnalyzer(),
        ScriptMarkupAnalyzer(),
        ArchiveAnalyzer(),
        PlainTextAnalyzer(),
        BinaryAnalyzer(),
    ]


__all__ = [
    "Analyzer",
    "AnalyzerError",
    "ArchiveAnalyzer",
    "BinaryAnalyzer",
    "ColumnarBinaryAnalyzer",
    "DelimitedTextAnalyzer",
    "MarkdownAnalyzer",
    "MarkupAnalyzer",
    "PlainTextAnalyzer",
    "ScriptMarkupAnalyzer",
    "SpreadsheetAnalyzer",
    "WorkflowAnalyzer",
    "default_analyzers",
]
