# SPDX-License-Identifier: AGPL-3.0-or-later
from pathlib import Path

import pytest
from pydantic import ValidationError

from glance.models import AnalysisContext, SummaryResult, TableSummary, TextPreview
from glance.settings import SummarySettings


def test_table_rows_are_padded_and_stringified() -> None:
    table = TableSummary(title="t", headers=["a", "b", "c"], rows=[["1"], [None, 2]])

    assert table.headers == ("a", "b", "c")
    assert table.rows == (("1", "", ""), ("", "2", ""))
    assert table.truncated is False


def test_summary_text_appends_preview_block() -> None:
    result = SummaryResult(
        title="Text Preview",
        body="Preview (first 10 bytes):",
        preview=TextPreview(title="notes.txt", content="hello", truncated=True),
    )

    assert result.summary_text == (
        "Preview (first 10 bytes):\n\nPreview: notes.txt\nhello\n... (truncated preview)"
    )


def test_blank_preview_is_not_rendered() -> None:
    result = SummaryResult(title="t", body="body", preview=TextPreview(title="x", content="  "))
    assert result.summary_text == "body"


def test_results_are_immutable() -> None:
    result = SummaryResult.diagnostic("Error", "boom")
    assert result.status == "error"
    with pytest.raises(ValidationError):
        result.title = "other"  # type: ignore[misc]
    updated = result.with_body("changed")
    assert updated.body == "changed"
    assert result.body == "boom"


def test_context_from_path(tmp_path: Path) -> None:
    target = tmp_path / "Report.CSV"
    target.write_text("a,b\n", encoding="utf-8")

    context = AnalysisContext.from_path(target, SummarySettings())

    assert context.size == 4
    assert context.extension == ".csv"
    assert context.name == "Report.CSV"
    assert context.name_lower == "report.csv"
