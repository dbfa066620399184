# SPDX-License-Identifier: AGPL-3.0-or-later
"""Result and request data structures shared by every analyzer."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .settings import SummarySettings


SummaryStatus = Literal["ok", "error", "canceled", "not_found", "unsupported"]


class TextPreview(BaseModel):
    """Bounded literal excerpt of file content."""

    model_config = ConfigDict(frozen=True)

    title: str
    content: str
    truncated: bool = False


class TableSummary(BaseModel):
    """Titled grid of string cells; short rows are padded to the header width."""

    model_config = ConfigDict(frozen=True)

    title: str
    headers: Tuple[str, ...] = ()
    rows: Tuple[Tuple[str, ...], ...] = ()
    truncated: bool = False

    @model_validator(mode="before")
    @classmethod
    def _pad_rows(cls, data):
        if not isinstance(data, dict):
            return data
        headers = tuple("" if h is None else str(h) for h in data.get("headers") or ())
        width = len(headers)
        rows = []
        for row in data.get("rows") or ():
            cells = ["" if cell is None else str(cell) for cell in row]
            if len(cells) < width:
                cells.extend([""] * (width - len(cells)))
            rows.append(tuple(cells))
        return {**data, "headers": headers, "rows": tuple(rows)}


class SummaryResult(BaseModel):
    """Universal analyzer output handed back to the caller."""

    model_config = ConfigDict(frozen=True)

    title: str
    body: str = ""
    tables: Tuple[TableSummary, ...] = Field(default_factory=tuple)
    preview: Optional[TextPreview] = None
    status: SummaryStatus = "ok"

    @property
    def summary_text(self) -> str:
        """Body followed by the preview block, as a single string."""

        if self.preview is None or not self.preview.content.strip():
            return self.body
        text = f"{self.body}\n\nPreview: {self.preview.title}\n{self.preview.content}"
        if self.preview.truncated:
            text += "\n... (truncated preview)"
        return text

    def with_body(self, body: str) -> "SummaryResult":
        return self.model_copy(update={"body": body})

    @classmethod
    def diagnostic(cls, title: str, message: str, status: SummaryStatus = "error") -> "SummaryResult":
        return cls(title=title, body=message, status=status)


@dataclass(frozen=True, slots=True)
class AnalysisContext:
    """Per-request description of the file being analyzed."""

    path: Path
    size: int
    modified: datetime
    settings: SummarySettings

    @property
    def extension(self) -> str:
        return self.path.suffix.lower()

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def name_lower(self) -> str:
        return self.path.name.lower()

    @classmethod
    def from_path(cls, path: str | Path, settings: SummarySettings) -> "AnalysisContext":
        resolved = Path(path)
        stat = resolved.stat()
        return cls(
            path=resolved,
            size=stat.st_size,
            modified=datetime.fromtimestamp(stat.st_mtime),
            settings=settings,
        )


__all__: List[str] = [
    "AnalysisContext",
    "SummaryResult",
    "SummaryStatus",
    "TableSummary",
    "TextPreview",
]
