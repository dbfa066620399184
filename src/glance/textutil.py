# SPDX-License-Identifier: AGPL-3.0-or-later
"""Fixed-width table rendering plus small string/number helpers."""

from __future__ import annotations

import codecs
import math
from datetime import datetime
from decimal import Decimal
from typing import BinaryIO, Iterable, List, Optional, Sequence, Tuple

from .cancellation import CancellationToken


_DRAIN_CHUNK = 64 * 1024


class TextTableBuilder:
    """Render rows as a padded, pipe-separated plain-text table."""

    def __init__(self, headers: Iterable[Optional[str]]) -> None:
        header = ["" if h is None else str(h) for h in headers]
        self._rows: List[List[str]] = [header]
        self._widths: List[int] = []
        self._update_widths(header)

    def add_row(self, cells: Iterable[Optional[str]]) -> None:
        row = ["" if c is None else str(c) for c in cells]
        self._rows.append(row)
        self._update_widths(row)

    def add_separator(self) -> None:
        self._rows.append([])

    @property
    def row_count(self) -> int:
        return sum(1 for row in self._rows[1:] if row)

    def build(self) -> str:
        lines = [self._format_row(self._rows[0]), self._separator_line()]
        for row in self._rows[1:]:
            lines.append(self._format_row(row) if row else self._separator_line())
        return "\n".join(lines).rstrip()

    def _update_widths(self, row: Sequence[str]) -> None:
        for index, value in enumerate(row):
            if index >= len(self._widths):
                self._widths.append(len(value))
            else:
                self._widths[index] = max(self._widths[index], len(value))

    def _format_row(self, row: Sequence[str]) -> str:
        parts = []
        for index, value in enumerate(row):
            width = self._widths[index] if index < len(self._widths) else len(value)
            parts.append(value.ljust(width))
        return "  " + "  |  ".join(parts)

    def _separator_line(self) -> str:
        return "  " + "--+--".join("-" * width for width in self._widths)


def render_table(headers: Sequence[str], rows: Iterable[Sequence[str]]) -> str:
    builder = TextTableBuilder(headers)
    for row in rows:
        builder.add_row(row)
    return builder.build()


def indent_block(text: str, prefix: str) -> List[str]:
    return [prefix + line for line in text.split("\n")]


def format_count(value: int) -> str:
    """Integer with thousands separators (``12,345``)."""

    return f"{value:,}"


def format_decimal(value: Decimal) -> str:
    # "f" keeps normalize()'s 1E+2 from leaking into the output
    return format(value.normalize(), "f")


def format_timestamp(value: datetime, *, seconds: bool = False) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S" if seconds else "%Y-%m-%d %H:%M")


def format_float(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer() and abs(value) < 1e15:
        return str(int(value))
    return repr(value)


def truncate_one_line(text: str, limit: int) -> str:
    single = text.replace("\r", " ").replace("\n", " ")
    if len(single) <= limit:
        return single
    return single[:limit] + "…"


def truncate(text: str, limit: int, marker: str = "...") -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + marker


def detect_bom(data: bytes) -> Tuple[str, int]:
    """Return ``(encoding, bom_length)`` for *data*; UTF-8 when no BOM is present."""

    if data.startswith(codecs.BOM_UTF8):
        return "utf-8", 3
    if data.startswith(codecs.BOM_UTF16_LE):
        return "utf-16-le", 2
    if data.startswith(codecs.BOM_UTF16_BE):
        return "utf-16-be", 2
    return "utf-8", 0


def stream_encoding(data: bytes) -> str:
    """Codec for reading a whole file through a text stream that starts with *data*.

    The returned codecs consume the BOM themselves.
    """

    encoding, _ = detect_bom(data)
    if encoding == "utf-8":
        return "utf-8-sig"
    return "utf-16"


def decode_prefix(data: bytes) -> str:
    """Decode a byte prefix, honouring BOMs and dropping a cut-off trailing character."""

    if not data:
        return ""
    encoding, skip = detect_bom(data)
    decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
    return decoder.decode(data[skip:], final=False)


def read_prefix(handle: BinaryIO, limit: int) -> bytes:
    """Read up to *limit* bytes, looping over short reads."""

    chunks: List[bytes] = []
    remaining = limit
    while remaining > 0:
        chunk = handle.read(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def drain(handle: BinaryIO, token: Optional[CancellationToken] = None) -> int:
    """Consume and discard the remainder of *handle*; return the byte count."""

    total = 0
    while True:
        if token is not None:
            token.raise_if_cancelled()
        chunk = handle.read(_DRAIN_CHUNK)
        if not chunk:
            return total
        total += len(chunk)


__all__ = [
    "TextTableBuilder",
    "decode_prefix",
    "detect_bom",
    "drain",
    "format_count",
    "format_decimal",
    "format_float",
    "format_timestamp",
    "indent_block",
    "read_prefix",
    "render_table",
    "stream_encoding",
    "truncate",
    "truncate_one_line",
]
