# SPDX-License-Identifier: AGPL-3.0-or-later
"""Base class and shared exceptions for file analyzers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..cancellation import CancellationToken
from ..models import AnalysisContext, SummaryResult


class AnalyzerError(RuntimeError):
    """Raised when content cannot be summarized; the message is shown to the user."""


class Analyzer(ABC):
    """A format-specific summarizer selected by the dispatcher.

    ``can_handle`` must be cheap and side-effect free: it may read a small
    header but must not keep any handle open. ``summarize`` must honour the
    caps in ``context.settings`` and poll *token* inside every bounded loop.
    """

    name: str = "base"
    priority: int = 1000

    @abstractmethod
    def can_handle(self, context: AnalysisContext) -> bool:
        """Return ``True`` when this analyzer should process *context*."""

    @abstractmethod
    def summarize(self, context: AnalysisContext, token: CancellationToken) -> SummaryResult:
        """Produce a :class:`SummaryResult` for *context*."""

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"{type(self).__name__}(priority={self.priority})"


__all__ = ["Analyzer", "AnalyzerError"]
