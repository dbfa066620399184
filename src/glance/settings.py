# SPDX-License-Identifier: AGPL-3.0-or-later
"""Summary limits loaded from YAML, ``.env`` and environment variables."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field


_ENV_PREFIX = "GLANCE_"


class _Limits(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="forbid")


class TextLimits(_Limits):
    """Plain-text preview and text/binary sniffing sample."""

    preview_bytes: int = Field(default=4096, alias="previewBytes", gt=0)


class DelimitedLimits(_Limits):
    max_rows_scanned: int = Field(default=5000, alias="maxRowsScanned", gt=0)
    max_preview_rows: int = Field(default=100, alias="maxPreviewRows", gt=0)


class MarkupLimits(_Limits):
    max_elements: int = Field(default=20_000, alias="maxElements", gt=0)
    max_top_elements: int = Field(default=12, alias="maxTopElements", gt=0)
    max_text_samples: int = Field(default=3, alias="maxTextSamples", gt=0)
    max_sample_chars: int = Field(default=200, alias="maxSampleChars", gt=0)


class ScriptLimits(_Limits):
    """JSON pretty-print limits."""

    max_chars: int = Field(default=40_000, alias="maxChars", gt=0)
    max_input_bytes: int = Field(default=50 * 1024 * 1024, alias="maxInputBytes", gt=0)
    max_depth: int = Field(default=256, alias="maxDepth", gt=0)


class ArchiveLimits(_Limits):
    max_entries: int = Field(default=100, alias="maxEntries", gt=0)
    preview_bytes: int = Field(default=512, alias="previewBytes", gt=0)


class SpreadsheetLimits(_Limits):
    max_sheets: int = Field(default=3, alias="maxSheets", gt=0)
    max_rows: int = Field(default=100, alias="maxRows", gt=0)
    max_columns: int = Field(default=20, alias="maxColumns", gt=0)
    max_rows_scanned: int = Field(default=2000, alias="maxRowsScanned", gt=0)
    max_cell_chars: int = Field(default=120, alias="maxCellChars", gt=0)


class MarkdownLimits(_Limits):
    max_chars: int = Field(default=20_000, alias="maxChars", gt=0)
    max_headings: int = Field(default=200, alias="maxHeadings", gt=0)


class BinaryLimits(_Limits):
    header_bytes: int = Field(default=256, alias="headerBytes", gt=0)
    entropy_sample_bytes: int = Field(default=64 * 1024, alias="entropySampleBytes", gt=0)
    string_scan_bytes: int = Field(default=4096, alias="stringScanBytes", gt=0)
    string_sample_count: int = Field(default=5, alias="stringSampleCount", gt=0)
    min_string_len: int = Field(default=4, alias="minStringLen", gt=0)
    max_string_len: int = Field(default=40, alias="maxStringLen", gt=0)


class ColumnarLimits(_Limits):
    max_rows: int = Field(default=15, alias="maxRows", gt=0)
    max_columns: int = Field(default=25, alias="maxColumns", gt=0)
    max_value_length: int = Field(default=200, alias="maxValueLength", gt=0)


class SummarySettings(_Limits):
    """Composite settings object; one section per analyzer family."""

    text: TextLimits = Field(default_factory=TextLimits)
    delimited: DelimitedLimits = Field(default_factory=DelimitedLimits)
    markup: MarkupLimits = Field(default_factory=MarkupLimits)
    script: ScriptLimits = Field(default_factory=ScriptLimits, alias="json")
    archive: ArchiveLimits = Field(default_factory=ArchiveLimits)
    spreadsheet: SpreadsheetLimits = Field(default_factory=SpreadsheetLimits)
    markdown: MarkdownLimits = Field(default_factory=MarkdownLimits)
    binary: BinaryLimits = Field(default_factory=BinaryLimits)
    columnar: ColumnarLimits = Field(default_factory=ColumnarLimits, alias="columnarBinary")

    @classmethod
    def from_flat(cls, values: Mapping[str, Any]) -> "SummarySettings":
        """Build settings from dotted keys such as ``archive.maxEntries``."""

        return cls.model_validate(_field_names(cls, _unflatten(values)))

    def merged(self, values: Mapping[str, Any]) -> "SummarySettings":
        """Return a copy with the dotted *values* applied on top."""

        base = self.model_dump()
        override = _field_names(type(self), _unflatten(values))
        return type(self).model_validate(_deep_merge(base, override))


def _unflatten(values: Mapping[str, Any]) -> Dict[str, Any]:
    nested: Dict[str, Any] = {}
    for key, value in values.items():
        parts = [part for part in str(key).split(".") if part]
        if len(parts) != 2:
            raise ValueError(f"Setting keys must look like 'section.knob', got {key!r}")
        nested.setdefault(parts[0], {})[parts[1]] = value
    return nested


def _default_settings_path() -> Path:
    base_dir = Path(__file__).resolve().parents[2]
    return base_dir / "configs" / "settings.yaml"


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Settings YAML at {path} must contain a dictionary")
    return data


def _resolve_settings_path(explicit: Optional[str | Path]) -> Path:
    if explicit:
        return Path(explicit).expanduser()
    env_path = os.getenv("GLANCE_SETTINGS_PATH")
    if env_path:
        return Path(env_path).expanduser()
    return _default_settings_path()


def _resolve_env_path() -> Optional[Path]:
    candidate = os.getenv("GLANCE_DOTENV")
    if candidate:
        return Path(candidate).expanduser()
    default = Path(__file__).resolve().parents[2] / ".env"
    return default if default.exists() else None


def _env_sections() -> Dict[str, str]:
    """Lower-cased section names and aliases mapped to their field names."""

    sections: Dict[str, str] = {}
    for name, field in SummarySettings.model_fields.items():
        sections[name.lower()] = name
        if field.alias:
            sections[field.alias.lower()] = name
    return sections


def _collect_env_overrides() -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    sections = _env_sections()
    for key, value in os.environ.items():
        if not key.startswith(_ENV_PREFIX):
            continue
        parts = key[len(_ENV_PREFIX) :].split("__")
        if len(parts) != 2:
            # GLANCE_SETTINGS_PATH, GLANCE_DOTENV and friends
            continue
        section = sections.get(parts[0].lower())
        if section is None:
            # unrelated variables that happen to share the prefix
            continue
        overrides.setdefault(section, {})[parts[1].lower()] = value
    return overrides


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    result: Dict[str, Any] = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _field_names(model: type[BaseModel], data: Mapping[str, Any]) -> Dict[str, Any]:
    # YAML and flat keys use aliases ("json", "maxEntries"); env overrides use
    # field names. Everything is folded onto field names before merging.
    aliases = {field.alias: name for name, field in model.model_fields.items() if field.alias}
    result: Dict[str, Any] = {}
    for key, value in data.items():
        name = aliases.get(key, key)
        field = model.model_fields.get(name)
        annotation = field.annotation if field is not None else None
        if isinstance(value, Mapping) and isinstance(annotation, type) and issubclass(annotation, BaseModel):
            value = _field_names(annotation, value)
        result[name] = value
    return result


@lru_cache(maxsize=1)
def get_settings(path: Path | None = None) -> SummarySettings:
    """Load the global summary settings, caching the resulting object."""

    env_path = _resolve_env_path()
    if env_path is not None:
        load_dotenv(dotenv_path=env_path, override=False)
    data = _field_names(SummarySettings, _read_yaml(_resolve_settings_path(path)))
    merged = _deep_merge(data, _field_names(SummarySettings, _collect_env_overrides()))
    return SummarySettings.model_validate(merged)


def reset_settings_cache() -> None:
    """Clear the cached settings instance (useful for tests)."""

    get_settings.cache_clear()  # type: ignore[attr-defined]


__all__ = [
    "ArchiveLimits",
    "BinaryLimits",
    "ColumnarLimits",
    "DelimitedLimits",
    "MarkdownLimits",
    "MarkupLimits",
    "ScriptLimits",
    "SpreadsheetLimits",
    "SummarySettings",
    "TextLimits",
    "get_settings",
    "reset_settings_cache",
]
