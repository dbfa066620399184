# SPDX-License-Identifier: AGPL-3.0-or-later
from pathlib import Path

import pytest
from pydantic import ValidationError

from glance.settings import SummarySettings, get_settings, reset_settings_cache


def test_defaults() -> None:
    settings = SummarySettings()

    assert settings.archive.max_entries == 100
    assert settings.archive.preview_bytes == 512
    assert settings.delimited.max_rows_scanned == 5000
    assert settings.script.max_depth == 256
    assert settings.columnar.max_rows == 15


def test_settings_loads_yaml_and_env(tmp_path: Path, monkeypatch) -> None:
    config = tmp_path / "settings.yaml"
    config.write_text(
        """
archive:
  maxEntries: 50
  previewBytes: 64
json:
  maxChars: 1000
columnarBinary:
  maxRows: 3
        """,
        encoding="utf-8",
    )
    dotenv = tmp_path / ".env"
    dotenv.write_text("GLANCE_TEXT__PREVIEW_BYTES=128\n", encoding="utf-8")

    monkeypatch.setenv("GLANCE_DOTENV", str(dotenv))
    monkeypatch.setenv("GLANCE_ARCHIVE__MAX_ENTRIES", "7")
    # registered so the value loaded from .env is removed again after the test
    monkeypatch.setenv("GLANCE_TEXT__PREVIEW_BYTES", "placeholder")
    monkeypatch.delenv("GLANCE_TEXT__PREVIEW_BYTES")
    reset_settings_cache()
    settings = get_settings(path=config)

    assert settings.archive.max_entries == 7
    assert settings.archive.preview_bytes == 64
    assert settings.script.max_chars == 1000
    assert settings.columnar.max_rows == 3
    assert settings.text.preview_bytes == 128
    assert settings.markup.max_elements == 20_000


def test_settings_path_from_environment(tmp_path: Path, monkeypatch) -> None:
    config = tmp_path / "custom.yaml"
    config.write_text("markdown:\n  maxHeadings: 4\n", encoding="utf-8")
    monkeypatch.setenv("GLANCE_SETTINGS_PATH", str(config))
    reset_settings_cache()

    assert get_settings().markdown.max_headings == 4


def test_env_sections_accept_aliases_and_skip_strays(tmp_path: Path, monkeypatch) -> None:
    config = tmp_path / "settings.yaml"
    config.write_text("text:\n  previewBytes: 10\n", encoding="utf-8")
    monkeypatch.setenv("GLANCE_COLUMNARBINARY__MAX_ROWS", "4")
    monkeypatch.setenv("GLANCE_JSON__MAX_DEPTH", "12")
    monkeypatch.setenv("GLANCE_FOO__BAR", "1")
    reset_settings_cache()

    settings = get_settings(config)

    assert settings.columnar.max_rows == 4
    assert settings.script.max_depth == 12
    assert settings.text.preview_bytes == 10


def test_settings_are_cached(tmp_path: Path) -> None:
    config = tmp_path / "settings.yaml"
    config.write_text("text:\n  previewBytes: 10\n", encoding="utf-8")

    assert get_settings(config) is get_settings(config)


def test_yaml_must_be_mapping(tmp_path: Path) -> None:
    config = tmp_path / "settings.yaml"
    config.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(ValueError):
        get_settings(config)


def test_from_flat_and_merged() -> None:
    settings = SummarySettings.from_flat({"archive.maxEntries": 5, "json.maxDepth": "12"})
    assert settings.archive.max_entries == 5
    assert settings.script.max_depth == 12

    merged = settings.merged({"spreadsheet.maxSheets": "1"})
    assert merged.spreadsheet.max_sheets == 1
    assert merged.archive.max_entries == 5
    assert settings.spreadsheet.max_sheets == 3


def test_invalid_values_are_rejected() -> None:
    with pytest.raises(ValidationError):
        SummarySettings.from_flat({"archive.maxEntries": 0})
    with pytest.raises(ValidationError):
        SummarySettings.from_flat({"archive.unknownKnob": 1})
    with pytest.raises(ValueError):
        SummarySettings.from_flat({"maxEntries": 1})
