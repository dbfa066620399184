# SPDX-License-Identifier: AGPL-3.0-or-later
"""File format detection by extension, leading characters and magic bytes."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Dict, Optional

from .textutil import decode_prefix


class FormatFamily(str, Enum):
    WORKFLOW = "workflow"
    MARKUP = "markup"
    DELIMITED = "delimited"
    MARKDOWN = "markdown"
    SPREADSHEET = "spreadsheet"
    COLUMNAR = "columnar"
    SCRIPT = "script"
    ARCHIVE = "archive"
    TEXT = "text"
    BINARY = "binary"


class ArchiveFormat(str, Enum):
    ZIP = "Zip"
    TAR = "Tar"
    TAR_GZ = "TarGz"
    GZIP = "GZip"


_EXTENSION_MAP: Dict[str, FormatFamily] = {
    ".yxmd": FormatFamily.WORKFLOW,
    ".yxmc": FormatFamily.WORKFLOW,
    ".yxwz": FormatFamily.WORKFLOW,
    ".xml": FormatFamily.MARKUP,
    ".csv": FormatFamily.DELIMITED,
    ".tsv": FormatFamily.DELIMITED,
    ".tab": FormatFamily.DELIMITED,
    ".psv": FormatFamily.DELIMITED,
    ".md": FormatFamily.MARKDOWN,
    ".markdown": FormatFamily.MARKDOWN,
    ".mdown": FormatFamily.MARKDOWN,
    ".mkd": FormatFamily.MARKDOWN,
    ".mkdn": FormatFamily.MARKDOWN,
    ".xlsx": FormatFamily.SPREADSHEET,
    ".xlsm": FormatFamily.SPREADSHEET,
    ".xltx": FormatFamily.SPREADSHEET,
    ".xltm": FormatFamily.SPREADSHEET,
    ".yxdb": FormatFamily.COLUMNAR,
    ".json": FormatFamily.SCRIPT,
    ".zip": FormatFamily.ARCHIVE,
    ".tar": FormatFamily.ARCHIVE,
    ".tgz": FormatFamily.ARCHIVE,
    ".gz": FormatFamily.ARCHIVE,
}

_ZIP_THIRD_BYTES = {0x03, 0x05, 0x07}
_PDF_MAGIC = b"%PDF"
_SNIFF_BYTES = 4096
# bytes below 0x20 other than \t \n \v \f \r
_CONTROL_BYTES = frozenset(set(range(0x01, 0x09)) | set(range(0x0E, 0x20)))


def read_header(path: str | Path, size: int) -> bytes:
    """Return the first *size* bytes of *path*, or ``b""`` when unreadable."""

    try:
        with open(path, "rb") as handle:
            return handle.read(size)
    except OSError:
        return b""


def extension_family(path: str | Path) -> Optional[FormatFamily]:
    """Return the family claimed by the file suffix, if any."""

    name = Path(path).name.lower()
    if name.endswith(".tar.gz"):
        return FormatFamily.ARCHIVE
    return _EXTENSION_MAP.get(Path(name).suffix)


def first_significant_char(path: str | Path) -> Optional[str]:
    text = decode_prefix(read_header(path, _SNIFF_BYTES)).lstrip("\ufeff")
    stripped = text.lstrip()
    return stripped[0] if stripped else None


def looks_like_xml(path: str | Path) -> bool:
    family = extension_family(path)
    if family is not None:
        return family is FormatFamily.MARKUP
    return first_significant_char(path) == "<"


def looks_like_json(path: str | Path) -> bool:
    family = extension_family(path)
    if family is not None:
        return family is FormatFamily.SCRIPT
    return first_significant_char(path) in ("{", "[")


def has_zip_signature(path: str | Path) -> bool:
    header = read_header(path, 4)
    return len(header) == 4 and header[:2] == b"PK" and header[2] in _ZIP_THIRD_BYTES


def detect_archive_format(path: str | Path) -> Optional[ArchiveFormat]:
    lower = Path(path).name.lower()
    if lower.endswith((".tar.gz", ".tgz")):
        return ArchiveFormat.TAR_GZ
    if lower.endswith(".tar"):
        return ArchiveFormat.TAR
    if lower.endswith(".gz"):
        return ArchiveFormat.GZIP
    if lower.endswith(".zip"):
        return ArchiveFormat.ZIP
    family = extension_family(path)
    if family is None and has_zip_signature(path):
        return ArchiveFormat.ZIP
    return None


def is_probably_text(path: str | Path, sample_bytes: int) -> bool:
    """Heuristic text check over the first *sample_bytes* bytes."""

    try:
        with open(path, "rb") as handle:
            sample = handle.read(sample_bytes)
    except OSError:
        return False
    if not sample:
        return True
    if sample.startswith(_PDF_MAGIC):
        return False
    if 0 in sample:
        return False
    control = sum(1 for byte in sample if byte in _CONTROL_BYTES)
    return control <= len(sample) * 0.05


def detect_format(path: str | Path, sample_bytes: int = 4096) -> FormatFamily:
    """Return a :class:`FormatFamily` for *path*. Never raises."""

    family = extension_family(path)
    if family is not None:
        return family
    first = first_significant_char(path)
    if first == "<":
        return FormatFamily.MARKUP
    if first in ("{", "["):
        return FormatFamily.SCRIPT
    if has_zip_signature(path):
        return FormatFamily.ARCHIVE
    if is_probably_text(path, sample_bytes):
        return FormatFamily.TEXT
    return FormatFamily.BINARY


__all__ = [
    "ArchiveFormat",
    "FormatFamily",
    "detect_archive_format",
    "detect_format",
    "extension_family",
    "first_significant_char",
    "has_zip_signature",
    "is_probably_text",
    "looks_like_json",
    "looks_like_xml",
    "read_header",
]
