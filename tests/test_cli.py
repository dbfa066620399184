# SPDX-License-Identifier: AGPL-3.0-or-later
import io
import json
from pathlib import Path

from glance.cli import main, render_text
from glance.models import SummaryResult, TableSummary, TextPreview


def test_render_text() -> None:
    result = SummaryResult(
        title="CSV Summary",
        body="Rows: 1",
        tables=(TableSummary(title="CSV Preview", headers=["a"], rows=[["1"]], truncated=True),),
        preview=TextPreview(title="x", content="raw"),
    )

    assert render_text(result) == (
        "== CSV Summary ==\nRows: 1\n\nPreview: x\nraw\n\n[CSV Preview] (truncated)\n  a\n  -\n  1"
    )


def test_cli_text_output(tmp_path: Path) -> None:
    target = tmp_path / "table.csv"
    target.write_text("a,b\n1,2\n", encoding="utf-8")
    out = io.StringIO()

    code = main([str(target)], stdout=out)

    assert code == 0
    output = out.getvalue()
    assert output.startswith("== CSV Summary ==\nFile: table.csv")
    assert "[CSV Preview]" in output


def test_cli_json_output_with_overrides(tmp_path: Path) -> None:
    target = tmp_path / "archive.json"
    target.write_text('{"items": [1, 2, 3]}', encoding="utf-8")
    out = io.StringIO()

    code = main([str(target), "--json", "--set", "json.maxChars=5"], stdout=out)

    assert code == 0
    payload = json.loads(out.getvalue())
    assert payload["title"] == "JSON Summary"
    assert payload["status"] == "ok"
    assert "(truncated, total" in payload["body"]


def test_cli_multiple_paths_and_missing_file(tmp_path: Path) -> None:
    target = tmp_path / "notes.txt"
    target.write_text("hello", encoding="utf-8")
    out = io.StringIO()

    code = main([str(target), str(tmp_path / "missing.txt"), "--json"], stdout=out)

    assert code == 1
    payload = json.loads(out.getvalue())
    assert [item["status"] for item in payload] == ["ok", "not_found"]


def test_cli_rejects_bad_overrides(tmp_path: Path, capsys) -> None:
    target = tmp_path / "notes.txt"
    target.write_text("hello", encoding="utf-8")

    assert main([str(target), "--set", "archive.maxEntries"], stdout=io.StringIO()) == 2
    assert main([str(target), "--set", "archive.maxEntries=0"], stdout=io.StringIO()) == 2
    assert "invalid settings" in capsys.readouterr().err
