# SPDX-License-Identifier: AGPL-3.0-or-later
"""Reader for Alteryx ``.yxdb`` files: header, record schema and row stream.

Layout
------
* a 512-byte little-endian header (description text, creation time, schema
  length, record block index position, record count, ...);
* the record schema as a null-terminated UTF-16LE ``RecordInfo`` XML document;
* the record stream, split into blocks. Each block is prefixed by an int32
  length; when the high bit is set the block is stored raw, otherwise it is
  LZF-compressed. Records may straddle block boundaries.

Each record is a fixed-width portion (one slot per field) optionally followed
by an int32 length and the variable-width data referenced from blob slots.
"""

from __future__ import annotations

import logging
import os
import struct
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import BinaryIO, Callable, Dict, Iterator, List, Optional

from ..cancellation import CancellationToken
from .lzf import LzfError, decompress


logger = logging.getLogger(__name__)

HEADER_SIZE = 512
BLOCK_SIZE = 262_144
_RAW_BLOCK = 0x80000000
# a three-byte LZF back reference expands to at most 264 bytes
_LZF_MAX_EXPANSION = 88


class YxdbFormatError(ValueError):
    """Raised when a file does not follow the YXDB layout."""


@dataclass(frozen=True)
class YxdbHeader:
    description: str
    file_id: int
    created: datetime
    meta_info_length: int
    spatial_index_pos: int
    record_block_index_pos: int
    record_count: int
    compression_version: int


@dataclass(frozen=True)
class YxdbField:
    name: str
    type: str
    size: Optional[int] = None
    scale: Optional[int] = None
    source: str = ""
    description: str = ""

    @property
    def width(self) -> int:
        """Bytes occupied in the fixed portion of a record."""

        fixed = _FIXED_WIDTHS.get(self.type)
        if fixed is not None:
            return fixed
        if self.type in ("String", "FixedDecimal"):
            return (self.size or 0) + 1
        if self.type == "WString":
            return (self.size or 0) * 2 + 1
        if self.type in _BLOB_TYPES:
            return 4
        raise YxdbFormatError(f"Unsupported field type: {self.type}")

    @property
    def is_variable(self) -> bool:
        return self.type in _BLOB_TYPES


_FIXED_WIDTHS: Dict[str, int] = {
    "Bool": 1,
    "Byte": 2,
    "Int16": 3,
    "Int32": 5,
    "Int64": 9,
    "Float": 5,
    "Double": 9,
    "Date": 11,
    "DateTime": 20,
    "Time": 9,
}
_BLOB_TYPES = frozenset({"V_String", "V_WString", "Blob", "SpatialObj"})


def parse_header(raw: bytes) -> YxdbHeader:
    if len(raw) < HEADER_SIZE:
        raise YxdbFormatError("File is too small to contain a YXDB header")
    description = raw[:64].split(b"\x00", 1)[0].decode("ascii", errors="replace").strip()
    if "Alteryx" not in description:
        raise YxdbFormatError("Missing 'Alteryx Database File' signature")
    file_id, created, _, _, meta_len = struct.unpack_from("<iiiii", raw, 64)
    spatial, block_index, records = struct.unpack_from("<qqq", raw, 88)
    (compression,) = struct.unpack_from("<i", raw, 112)
    if meta_len <= 0:
        raise YxdbFormatError("Invalid schema length in header")
    if records < 0:
        raise YxdbFormatError("Invalid record count in header")
    return YxdbHeader(
        description=description,
        file_id=file_id,
        created=datetime.fromtimestamp(max(created, 0)),
        meta_info_length=meta_len,
        spatial_index_pos=spatial,
        record_block_index_pos=block_index,
        record_count=records,
        compression_version=compression,
    )


def _optional_int(value: Optional[str]) -> Optional[int]:
    if value is None or not value.strip():
        return None
    try:
        return int(value)
    except ValueError:
        return None


def parse_schema(xml_text: str) -> List[YxdbField]:
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as exc:
        raise YxdbFormatError(f"Invalid record schema: {exc}") from exc
    record_info = root if root.tag == "RecordInfo" else root.find(".//RecordInfo")
    if record_info is None:
        raise YxdbFormatError("Record schema has no RecordInfo element")
    fields = []
    for element in record_info.findall("Field"):
        fields.append(
            YxdbField(
                name=element.get("name", ""),
                type=element.get("type", ""),
                size=_optional_int(element.get("size")),
                scale=_optional_int(element.get("scale")),
                source=element.get("source", ""),
                description=element.get("description", ""),
            )
        )
    return fields


# --------------------------------------------------------------------------------------
# value decoding


def _null_at(buffer: bytes, index: int) -> bool:
    return buffer[index] == 1


def _ascii_slot(buffer: bytes, start: int, length: int) -> Optional[str]:
    if _null_at(buffer, start + length):
        return None
    return buffer[start : start + length].split(b"\x00", 1)[0].decode("latin-1")


def read_blob(buffer: bytes, start: int) -> Optional[bytes]:
    """Resolve a 4-byte blob slot to its bytes; ``None`` for a null value."""

    fixed = int.from_bytes(buffer[start : start + 4], "little")
    if fixed == 0:
        return b""
    if fixed == 1:
        return None
    if fixed & 0x80000000 == 0 and fixed & 0x30000000 != 0:
        # tiny: up to three bytes stored in the slot, length in the top nibble
        return bytes(buffer[start : start + (fixed >> 28)])
    block = start + (fixed & 0x7FFFFFFF)
    if block >= len(buffer):
        raise YxdbFormatError("Blob offset points outside the record")
    first = buffer[block]
    if first & 1:
        length = first >> 1
        return bytes(buffer[block + 1 : block + 1 + length])
    length = int.from_bytes(buffer[block : block + 4], "little") // 2
    return bytes(buffer[block + 4 : block + 4 + length])


def _decode_bool(field: YxdbField, buffer: bytes, start: int):
    value = buffer[start]
    return None if value == 2 else value == 1


def _numeric(fmt: str, size: int) -> Callable[[YxdbField, bytes, int], object]:
    def decode(field: YxdbField, buffer: bytes, start: int):
        if _null_at(buffer, start + size):
            return None
        return struct.unpack_from(fmt, buffer, start)[0]

    return decode


def _decode_decimal(field: YxdbField, buffer: bytes, start: int):
    text = _ascii_slot(buffer, start, field.size or 0)
    if text is None:
        return None
    try:
        return Decimal(text.strip())
    except InvalidOperation:
        return text


def _decode_string(field: YxdbField, buffer: bytes, start: int):
    return _ascii_slot(buffer, start, field.size or 0)


def _decode_wstring(field: YxdbField, buffer: bytes, start: int):
    length = (field.size or 0) * 2
    if _null_at(buffer, start + length):
        return None
    return buffer[start : start + length].decode("utf-16-le", errors="replace").split("\x00", 1)[0]


def _temporal(length: int, parse: Callable[[str], object]) -> Callable[[YxdbField, bytes, int], object]:
    def decode(field: YxdbField, buffer: bytes, start: int):
        text = _ascii_slot(buffer, start, length)
        if text is None:
            return None
        try:
            return parse(text)
        except ValueError:
            return text

    return decode


def _decode_v_string(field: YxdbField, buffer: bytes, start: int):
    blob = read_blob(buffer, start)
    return None if blob is None else blob.decode("latin-1")


def _decode_v_wstring(field: YxdbField, buffer: bytes, start: int):
    blob = read_blob(buffer, start)
    return None if blob is None else blob.decode("utf-16-le", errors="replace")


def _decode_blob(field: YxdbField, buffer: bytes, start: int):
    return read_blob(buffer, start)


_DECODERS: Dict[str, Callable[[YxdbField, bytes, int], object]] = {
    "Bool": _decode_bool,
    "Byte": _numeric("<B", 1),
    "Int16": _numeric("<h", 2),
    "Int32": _numeric("<i", 4),
    "Int64": _numeric("<q", 8),
    "Float": _numeric("<f", 4),
    "Double": _numeric("<d", 8),
    "FixedDecimal": _decode_decimal,
    "String": _decode_string,
    "WString": _decode_wstring,
    "Date": _temporal(10, lambda s: date.fromisoformat(s)),
    "DateTime": _temporal(19, lambda s: datetime.strptime(s, "%Y-%m-%d %H:%M:%S")),
    "Time": _temporal(8, lambda s: time.fromisoformat(s)),
    "V_String": _decode_v_string,
    "V_WString": _decode_v_wstring,
    "Blob": _decode_blob,
    "SpatialObj": _decode_blob,
}


# --------------------------------------------------------------------------------------
# record stream


class _BlockStream:
    """Concatenates record blocks into one logical byte stream."""

    def __init__(self, handle: BinaryIO, file_size: int) -> None:
        self._handle = handle
        self._file_size = file_size
        self._block = b""
        self._pos = 0
        self.blocks_read = 0
        self.compressed_blocks = 0

    def _next_block(self) -> bool:
        prefix = self._handle.read(4)
        if len(prefix) < 4:
            return False
        length = int.from_bytes(prefix, "little")
        raw = bool(length & _RAW_BLOCK)
        length &= 0x7FFFFFFF
        if length > BLOCK_SIZE:
            raise YxdbFormatError(f"Record block length {length} exceeds {BLOCK_SIZE} bytes")
        payload = self._handle.read(length)
        if len(payload) < length:
            raise YxdbFormatError("Record block is truncated")
        if raw:
            self._block = payload
        else:
            try:
                self._block = decompress(payload, BLOCK_SIZE)
            except LzfError as exc:
                raise YxdbFormatError(f"Corrupt compressed block: {exc}") from exc
            self.compressed_blocks += 1
        self._pos = 0
        self.blocks_read += 1
        return True

    def available(self) -> int:
        """Upper bound on the bytes the stream can still produce."""

        unread = max(self._file_size - self._handle.tell(), 0)
        return len(self._block) - self._pos + unread * _LZF_MAX_EXPANSION

    def read(self, size: int) -> bytes:
        parts: List[bytes] = []
        remaining = size
        while remaining > 0:
            if self._pos >= len(self._block) and not self._next_block():
                raise YxdbFormatError("Unexpected end of record data")
            chunk = self._block[self._pos : self._pos + remaining]
            self._pos += len(chunk)
            remaining -= len(chunk)
            parts.append(chunk)
        return b"".join(parts)


class YxdbReader:
    """Sequential reader over a ``.yxdb`` file.

    Use as a context manager; :meth:`rows` yields one list of decoded values per
    record in schema order and may be iterated once.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._handle: BinaryIO = open(self.path, "rb")
        try:
            self.header = parse_header(self._handle.read(HEADER_SIZE))
            meta = self._handle.read(self.header.meta_info_length * 2)
            if len(meta) < self.header.meta_info_length * 2:
                raise YxdbFormatError("Record schema is truncated")
            xml_text = meta.decode("utf-16-le", errors="replace").split("\x00", 1)[0]
            self.fields = parse_schema(xml_text)
            self._offsets = []
            start = 0
            for field in self.fields:
                self._offsets.append(start)
                start += field.width
            self.fixed_size = start
            self.has_variable = any(field.is_variable for field in self.fields)
            self._stream = _BlockStream(self._handle, os.fstat(self._handle.fileno()).st_size)
            logger.debug(
                "Opened %s: %d fields, %d records declared",
                self.path,
                len(self.fields),
                self.header.record_count,
            )
        except Exception:
            self._handle.close()
            raise

    @classmethod
    def open(cls, path: str | Path) -> "YxdbReader":
        return cls(path)

    def __enter__(self) -> "YxdbReader":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._handle.close()

    @property
    def blocks_read(self) -> int:
        return self._stream.blocks_read

    @property
    def compressed_blocks(self) -> int:
        return self._stream.compressed_blocks

    def record_block_count(self) -> Optional[int]:
        """Entries in the record block index, or ``None`` when it is absent or unreadable."""

        position = self.header.record_block_index_pos
        if position <= 0:
            return None
        current = self._handle.tell()
        try:
            self._handle.seek(position)
            data = self._handle.read(4)
        finally:
            self._handle.seek(current)
        if len(data) < 4:
            return None
        return int.from_bytes(data, "little", signed=True)

    def _read_record(self) -> bytes:
        if not self.has_variable:
            return self._stream.read(self.fixed_size)
        fixed = self._stream.read(self.fixed_size + 4)
        var_length = int.from_bytes(fixed[-4:], "little", signed=True)
        if var_length < 0 or var_length > self._stream.available():
            raise YxdbFormatError(f"Variable data length {var_length} exceeds the remaining record data")
        return fixed + self._stream.read(var_length)

    def decode(self, record: bytes) -> List[object]:
        values: List[object] = []
        for field, start in zip(self.fields, self._offsets):
            decoder = _DECODERS.get(field.type)
            if decoder is None:
                raise YxdbFormatError(f"Unsupported field type: {field.type}")
            values.append(decoder(field, record, start))
        return values

    def rows(self, token: Optional[CancellationToken] = None) -> Iterator[List[object]]:
        for _ in range(self.header.record_count):
            if token is not None:
                token.raise_if_cancelled()
            yield self.decode(self._read_record())


__all__ = [
    "BLOCK_SIZE",
    "HEADER_SIZE",
    "YxdbField",
    "YxdbFormatError",
    "YxdbHeader",
    "YxdbReader",
    "parse_header",
    "parse_schema",
    "read_blob",
]
