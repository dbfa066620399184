# SPDX-License-Identifier: AGPL-3.0-or-later
"""Archive analyzer for zip, tar, tar.gz and single-stream gzip files."""

from __future__ import annotations

import gzip
import logging
import os
import tarfile
import zipfile
import zlib
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import BinaryIO, List, Optional, Tuple

from ..cancellation import CancellationToken, OperationCancelled
from ..models import AnalysisContext, SummaryResult, TableSummary, TextPreview
from ..settings import ArchiveLimits
from ..sniff import ArchiveFormat, detect_archive_format
from ..textutil import TextTableBuilder, decode_prefix, drain, format_count, format_timestamp, read_prefix
from .base import Analyzer


logger = logging.getLogger(__name__)

PREVIEWABLE_EXTENSIONS = frozenset({".txt", ".json", ".csv", ".md", ".xml", ".yml", ".yaml", ".ini", ".log"})
_ZIP_HEADERS = ("Name", "Size", "Compressed", "Ratio", "Modified")
_TAR_HEADERS = ("Name", "Size", "Type", "Modified")
_TAR_TYPES = {
    tarfile.REGTYPE: "RegularFile",
    tarfile.AREGTYPE: "RegularFile",
    tarfile.CONTTYPE: "ContiguousFile",
    tarfile.DIRTYPE: "Directory",
    tarfile.SYMTYPE: "SymbolicLink",
    tarfile.LNKTYPE: "HardLink",
    tarfile.CHRTYPE: "CharacterDevice",
    tarfile.BLKTYPE: "BlockDevice",
    tarfile.FIFOTYPE: "Fifo",
}
_ARCHIVE_ERRORS = (OSError, EOFError, zlib.error, zipfile.BadZipFile, tarfile.TarError)


class ArchiveEmpty(Exception):
    """Raised internally when an archive has no entries."""


@dataclass
class ArchiveListing:
    body: str
    table: Optional[TableSummary] = None
    preview: Optional[TextPreview] = None


def is_previewable(name: str) -> bool:
    return PurePosixPath(name).suffix.lower() in PREVIEWABLE_EXTENSIONS


def read_text_preview(
    stream: BinaryIO, max_bytes: int, token: CancellationToken, *, drain_rest: bool = True
) -> Tuple[str, bool]:
    """Read a bounded, BOM-aware text prefix, draining the remainder of *stream* when asked."""

    data = read_prefix(stream, max_bytes)
    if drain_rest:
        drain(stream, token)
    text = decode_prefix(data)
    if not text:
        return "(entry appears binary or empty)", False
    return text, len(data) == max_bytes


def _listing(
    counts: List[str],
    headers: Tuple[str, ...],
    rows: List[List[str]],
    total: int,
    limits: ArchiveLimits,
    preview: Optional[TextPreview],
) -> ArchiveListing:
    lines = list(counts)
    lines.append("")
    builder = TextTableBuilder(headers)
    for row in rows:
        builder.add_row(row)
    lines.append(builder.build())
    truncated = total > limits.max_entries
    if truncated:
        lines.append("")
        lines.append(f"... {format_count(total - limits.max_entries)} more entries")
    if preview is not None:
        lines.append("")
        suffix = " (truncated)" if preview.truncated else ""
        lines.append(f"Preview entry: {preview.title}{suffix}")
    table = TableSummary(title="Archive Entries", headers=headers, rows=rows, truncated=truncated)
    return ArchiveListing(body="\n".join(lines).rstrip(), table=table, preview=preview)


def _zip_modified(info: zipfile.ZipInfo) -> str:
    try:
        return format_timestamp(datetime(*info.date_time))
    except ValueError:
        return ""


def summarize_zip(path: str | Path, limits: ArchiveLimits, token: CancellationToken) -> ArchiveListing:
    with zipfile.ZipFile(path) as archive:
        entries = archive.infolist()
        if not entries:
            raise ArchiveEmpty()
        total_size = 0
        total_compressed = 0
        rows: List[List[str]] = []
        for info in entries:
            token.raise_if_cancelled()
            total_size += info.file_size
            total_compressed += info.compress_size
            if len(rows) < limits.max_entries:
                ratio = "-" if info.file_size == 0 else f"{1.0 - info.compress_size / info.file_size:.0%}"
                rows.append(
                    [
                        info.filename,
                        format_count(info.file_size),
                        format_count(info.compress_size),
                        ratio,
                        _zip_modified(info),
                    ]
                )
        preview = None
        candidate = next((i for i in entries if is_previewable(i.filename) and i.file_size > 0), None)
        if candidate is not None:
            try:
                with archive.open(candidate) as stream:
                    content, truncated = read_text_preview(
                        stream, limits.preview_bytes, token, drain_rest=False
                    )
            except OperationCancelled:
                raise
            except (NotImplementedError, RuntimeError, *_ARCHIVE_ERRORS) as exc:
                logger.debug("Preview of %s in %s failed: %s", candidate.filename, path, exc)
                content, truncated = f"(preview unavailable: {exc})", False
            preview = TextPreview(title=candidate.filename, content=content, truncated=truncated)
    counts = [
        f"Entries: {format_count(len(entries))}",
        f"Total uncompressed size: {format_count(total_size)} bytes",
        f"Total compressed size: {format_count(total_compressed)} bytes",
    ]
    return _listing(counts, _ZIP_HEADERS, rows, len(entries), limits, preview)


def summarize_tar(
    path: str | Path, limits: ArchiveLimits, token: CancellationToken, *, compressed: bool = False
) -> ArchiveListing:
    """Single sequential pass; member data is never seeked back to."""

    count = 0
    total_size = 0
    rows: List[List[str]] = []
    preview = None
    with tarfile.open(path, mode="r|gz" if compressed else "r|") as archive:
        for member in archive:
            token.raise_if_cancelled()
            count += 1
            total_size += member.size
            if len(rows) < limits.max_entries:
                rows.append(
                    [
                        member.name,
                        format_count(member.size),
                        _TAR_TYPES.get(member.type, "Unknown"),
                        format_timestamp(datetime.fromtimestamp(member.mtime)),
                    ]
                )
            if not member.isfile():
                continue
            stream = archive.extractfile(member)
            if stream is None:
                continue
            if preview is None and member.size > 0 and is_previewable(member.name):
                content, truncated = read_text_preview(stream, limits.preview_bytes, token)
                preview = TextPreview(title=member.name, content=content, truncated=truncated)
            else:
                drain(stream, token)
    if count == 0:
        raise ArchiveEmpty()
    counts = [f"Entries: {format_count(count)}", f"Total size: {format_count(total_size)} bytes"]
    return _listing(counts, _TAR_HEADERS, rows, count, limits, preview)


def gzip_reported_size(path: str | Path) -> Optional[int]:
    """Return the ISIZE trailer (uncompressed size modulo 2**32), if present."""

    with open(path, "rb") as handle:
        handle.seek(0, os.SEEK_END)
        if handle.tell() < 4:
            return None
        handle.seek(-4, os.SEEK_END)
        return int.from_bytes(handle.read(4), "little")


def summarize_gzip(path: str | Path, limits: ArchiveLimits, token: CancellationToken) -> ArchiveListing:
    compressed_size = os.path.getsize(path)
    reported = gzip_reported_size(path)
    with gzip.open(path, "rb") as stream:
        data = read_prefix(stream, limits.preview_bytes)
    token.raise_if_cancelled()
    content = decode_prefix(data) or "(entry appears binary or empty)"
    truncated = len(data) == limits.preview_bytes
    lines = ["Single compressed stream (.gz)", f"Compressed size: {format_count(compressed_size)} bytes"]
    if reported is not None:
        lines.append(f"Reported uncompressed size: {format_count(reported)} bytes")
    lines.append("")
    lines.append(f"Preview available ({'truncated' if truncated else 'full'})")
    preview = TextPreview(title=Path(path).name, content=content, truncated=truncated)
    return ArchiveListing(body="\n".join(lines), preview=preview)


class ArchiveAnalyzer(Analyzer):
    name = "archive"
    priority = 400

    def can_handle(self, context: AnalysisContext) -> bool:
        return detect_archive_format(context.path) is not None

    def summarize(self, context: AnalysisContext, token: CancellationToken) -> SummaryResult:
        archive_format = detect_archive_format(context.path)
        if archive_format is None:
            return SummaryResult.diagnostic("Archive", "Unsupported archive format.", status="unsupported")
        title = f"{archive_format.value} Summary"
        limits = context.settings.archive
        try:
            if archive_format is ArchiveFormat.ZIP:
                listing = summarize_zip(context.path, limits, token)
            elif archive_format is ArchiveFormat.GZIP:
                listing = summarize_gzip(context.path, limits, token)
            else:
                listing = summarize_tar(
                    context.path, limits, token, compressed=archive_format is ArchiveFormat.TAR_GZ
                )
        except ArchiveEmpty:
            return SummaryResult(title=title, body="Archive is empty.")
        except _ARCHIVE_ERRORS as exc:
            logger.debug("Archive read failed for %s", context.path, exc_info=True)
            return SummaryResult.diagnostic(title, f"Archive summary failed: {exc}")
        tables = (listing.table,) if listing.table is not None else ()
        return SummaryResult(title=title, body=listing.body, tables=tables, preview=listing.preview)


__all__ = [
    "PREVIEWABLE_EXTENSIONS",
    "ArchiveAnalyzer",
    "ArchiveListing",
    "gzip_reported_size",
    "is_previewable",
    "read_text_preview",
    "summarize_gzip",
    "summarize_tar",
    "summarize_zip",
]
