# SPDX-License-Identifier: AGPL-3.0-or-later
"""Public interface for :mod:`glance` with lightweight imports."""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any, Dict, Tuple

__all__ = [
    "AnalysisContext",
    "Analyzer",
    "AnalyzerError",
    "CancellationToken",
    "Dispatcher",
    "FormatFamily",
    "OperationCancelled",
    "SummaryResult",
    "SummarySettings",
    "TableSummary",
    "TextPreview",
    "build_summary",
    "default_analyzers",
    "detect_format",
    "get_settings",
]

_LAZY_ATTRS: Dict[str, Tuple[str, str]] = {
    "AnalysisContext": (".models", "AnalysisContext"),
    "Analyzer": (".analyzers", "Analyzer"),
    "AnalyzerError": (".analyzers", "AnalyzerError"),
    "CancellationToken": (".cancellation", "CancellationToken"),
    "Dispatcher": (".dispatcher", "Dispatcher"),
    "FormatFamily": (".sniff", "FormatFamily"),
    "OperationCancelled": (".cancellation", "OperationCancelled"),
    "SummaryResult": (".models", "SummaryResult"),
    "SummarySettings": (".settings", "SummarySettings"),
    "TableSummary": (".models", "TableSummary"),
    "TextPreview": (".models", "TextPreview"),
    "build_summary": (".dispatcher", "build_summary"),
    "default_analyzers": (".analyzers", "default_analyzers"),
    "detect_format": (".sniff", "detect_format"),
    "get_settings": (".settings", "get_settings"),
}

if TYPE_CHECKING:  # pragma: no cover - import-time only for type checkers
    from .analyzers import Analyzer, AnalyzerError, default_analyzers
    from .cancellation import CancellationToken, OperationCancelled
    from .dispatcher import Dispatcher, build_summary
    from .models import AnalysisContext, SummaryResult, TableSummary, TextPreview
    from .settings import SummarySettings, get_settings
    from .sniff import FormatFamily, detect_format


def __getattr__(name: str) -> Any:
    try:
        module_name, attr = _LAZY_ATTRS[name]
    except KeyError as exc:  # pragma: no cover - mirrors default behaviour
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}") from exc
    value = getattr(import_module(module_name, __name__), attr)
    globals()[name] = value
    return value


def __dir__() -> list[str]:  # pragma: no cover - convenience for REPLs
    return sorted(set(globals()) | set(__all__))
