# SPDX-License-Identifier: AGPL-3.0-or-later
"""Route a filesystem path to the first analyzer that accepts it."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional

import yaml

from .analyzers import Analyzer, default_analyzers
from .cancellation import CancellationToken, OperationCancelled
from .models import AnalysisContext, SummaryResult
from .settings import SummarySettings, get_settings
from .textutil import format_count, format_timestamp


logger = logging.getLogger(__name__)

_DIRECTORY_SAMPLE = 10


class Dispatcher:
    """Probe analyzers in priority order and run exactly one of them."""

    def __init__(
        self,
        analyzers: Optional[Iterable[Analyzer]] = None,
        settings: Optional[SummarySettings] = None,
    ) -> None:
        self._analyzers: List[Analyzer] = []
        self._settings = settings
        for analyzer in default_analyzers() if analyzers is None else analyzers:
            self.register(analyzer)

    def register(self, analyzer: Analyzer) -> None:
        self._analyzers.append(analyzer)
        # sorted() is stable, so equal priorities keep registration order
        self._analyzers = sorted(self._analyzers, key=lambda a: a.priority)

    @property
    def analyzers(self) -> List[Analyzer]:
        return list(self._analyzers)

    @property
    def settings(self) -> SummarySettings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    def select(self, context: AnalysisContext) -> Optional[Analyzer]:
        for analyzer in self._analyzers:
            try:
                accepted = analyzer.can_handle(context)
            except Exception:  # probe failure counts as a rejection
                logger.warning("Probe %s failed for %s", analyzer.name, context.path, exc_info=True)
                continue
            if accepted:
                return analyzer
        return None

    def build_summary(self, path: str | Path | None, token: Optional[CancellationToken] = None) -> SummaryResult:
        token = token or CancellationToken.none()
        if path is None or not str(path).strip():
            return SummaryResult.diagnostic("Invalid Path", "No path provided.")

        target = Path(path)
        if target.is_dir():
            return directory_summary(target)
        if not target.is_file():
            return SummaryResult.diagnostic("Not Found", "Item not found.", status="not_found")

        try:
            settings = self.settings
        except (ValueError, yaml.YAMLError) as exc:
            logger.warning("Settings could not be loaded: %s", exc)
            return SummaryResult.diagnostic("Error", f"Invalid settings: {exc}")

        try:
            context = AnalysisContext.from_path(target, settings)
        except OSError as exc:
            return SummaryResult.diagnostic("Error", f"Unable to read file metadata: {exc}")

        try:
            token.raise_if_cancelled()
            analyzer = self.select(context)
            if analyzer is None:
                logger.debug("No analyzer accepted %s", target)
                result = SummaryResult.diagnostic(
                    "Summary", "No analyzer was able to handle this file.", status="unsupported"
                )
            else:
                logger.debug("Summarizing %s with %s", target, analyzer.name)
                result = analyzer.summarize(context, token)
        except OperationCancelled:
            logger.info("Summary canceled for %s", target)
            result = SummaryResult.diagnostic("Canceled", "Operation was canceled.", status="canceled")
        except Exception as exc:
            logger.warning("Analyzer failed for %s", target, exc_info=True)
            result = SummaryResult.diagnostic("Error", f"Error summarizing file: {exc}")
        return with_metadata(context, result)


def metadata_header(context: AnalysisContext) -> List[str]:
    return [
        f"File: {context.name}",
        f"Path: {context.path.resolve()}",
        f"Size: {format_count(context.size)} bytes",
        f"Last modified: {format_timestamp(context.modified, seconds=True)}",
    ]


def with_metadata(context: AnalysisContext, result: SummaryResult) -> SummaryResult:
    lines = metadata_header(context)
    if result.body.strip():
        lines.append("")
        lines.append(result.body)
    return result.with_body("\n".join(lines))


def directory_summary(directory: Path) -> SummaryResult:
    resolved = directory.resolve()
    lines = [f"Folder: {resolved.name or str(resolved)}", f"Path: {resolved}"]
    try:
        children = sorted(directory.iterdir(), key=lambda p: p.name.lower())
    except PermissionError:
        children = None
        lines.append("Items: (access denied)")
    else:
        lines.append(f"Items: {format_count(len(children))}")
    try:
        modified = datetime.fromtimestamp(directory.stat().st_mtime)
        lines.append(f"Last modified: {format_timestamp(modified, seconds=True)}")
    except OSError:
        lines.append("Last modified: (unavailable)")

    if children is None:
        lines.append("")
        lines.append("Sample contents: (access denied)")
    elif children:
        lines.append("")
        lines.append("Sample contents:")
        for child in children[:_DIRECTORY_SAMPLE]:
            label = "[Dir]" if child.is_dir() else "[File]"
            lines.append(f"  {label} {child.name}")
    return SummaryResult(title="Directory Summary", body="\n".join(lines))


def build_summary(
    path: str | Path | None,
    token: Optional[CancellationToken] = None,
    settings: Optional[SummarySettings] = None,
) -> SummaryResult:
    """Summarize *path* with the built-in analyzers."""

    return Dispatcher(settings=settings).build_summary(path, token)


__all__ = ["Dispatcher", "build_summary", "directory_summary", "metadata_header", "with_metadata"]
