# SPDX-License-Identifier: AGPL-3.0-or-later
import struct
from datetime import date
from pathlib import Path

import pytest

from glance.analyzers.columnar import ColumnarBinaryAnalyzer, format_bytes, format_value
from glance.models import AnalysisContext
from glance.settings import SummarySettings
from glance.yxdb import BLOCK_SIZE, LzfError, YxdbFormatError, YxdbReader, decompress, read_blob

SCHEMA = (
    '<MetaInfo connection="Output"><RecordInfo>'
    '<Field name="id" source="RecordID" type="Int32" />'
    '<Field name="name" size="256" type="V_String" description="Display name" />'
    "</RecordInfo></MetaInfo>"
)

# id=1, name="hello world" stored as a small blob behind the fixed portion
RECORD_1 = (
    struct.pack("<i", 1) + b"\x00"
    + struct.pack("<I", 8)
    + struct.pack("<i", 12)
    + bytes([11 << 1 | 1]) + b"hello world"
)
# id=null, name="ab" stored inline in the slot
RECORD_2 = struct.pack("<i", 0) + b"\x01" + b"ab\x00\x20" + struct.pack("<i", 0)
# id=3, name=null
RECORD_3 = struct.pack("<i", 3) + b"\x00" + struct.pack("<I", 1) + struct.pack("<i", 0)
# RECORD_3 as LZF: literal "03 00", back reference copying three zeros, literal "01", literal seven zeros
RECORD_3_LZF = bytes([0x01, 0x03, 0x00, 0x20, 0x00, 0x00, 0x01, 0x06]) + b"\x00" * 7


def write_yxdb(path: Path, blocks, record_count: int, schema: str = SCHEMA) -> Path:
    meta = (schema + "\x00").encode("utf-16-le")
    header = bytearray(512)
    header[:21] = b"Alteryx Database File"
    struct.pack_into("<iiiii", header, 64, 0x00440205, 1_700_000_000, 0, 0, len(meta) // 2)

    body = bytearray()
    positions = []
    offset = 512 + len(meta)
    for payload, compressed in blocks:
        positions.append(offset + len(body))
        length = len(payload) if compressed else len(payload) | 0x80000000
        body += struct.pack("<I", length) + payload
    index_pos = offset + len(body)
    index = struct.pack("<i", len(positions)) + b"".join(struct.pack("<q", p) for p in positions)

    struct.pack_into("<qqq", header, 88, 0, index_pos, record_count)
    struct.pack_into("<i", header, 112, 1)
    path.write_bytes(bytes(header) + meta + bytes(body) + index)
    return path


@pytest.fixture
def sample(tmp_path: Path) -> Path:
    return write_yxdb(
        tmp_path / "sample.yxdb",
        [(RECORD_1 + RECORD_2, False), (RECORD_3_LZF, True)],
        record_count=3,
    )


def test_lzf_literals_and_overlapping_references() -> None:
    assert decompress(bytes([0x02, 0x61, 0x62, 0x63, 0x40, 0x02]), 100) == b"abcabca"
    assert decompress(RECORD_3_LZF, 100) == RECORD_3


def test_lzf_rejects_malformed_input() -> None:
    with pytest.raises(LzfError):
        decompress(bytes([0x05, 0x01]), 100)
    with pytest.raises(LzfError):
        decompress(bytes([0x20, 0x05]), 100)
    with pytest.raises(LzfError):
        decompress(bytes([0x02, 0x61, 0x62, 0x63]), 2)


def test_read_blob_encodings() -> None:
    assert read_blob(b"\x00\x00\x00\x00", 0) == b""
    assert read_blob(b"\x01\x00\x00\x00", 0) is None
    assert read_blob(b"xy\x00\x20", 0) == b"xy"
    # length prefix is stored doubled
    large = struct.pack("<I", 4) + struct.pack("<I", 12) + b"abcdef"
    assert read_blob(large, 0) == b"abcdef"


def test_reader_decodes_rows(sample: Path) -> None:
    with YxdbReader(sample) as reader:
        assert reader.header.description == "Alteryx Database File"
        assert reader.header.record_count == 3
        assert [(f.name, f.type, f.width) for f in reader.fields] == [("id", "Int32", 5), ("name", "V_String", 4)]
        assert reader.fields[0].source == "RecordID"
        assert reader.fields[1].description == "Display name"
        assert reader.record_block_count() == 2
        rows = list(reader.rows())
        assert reader.blocks_read == 2
        assert reader.compressed_blocks == 1

    assert rows == [[1, "hello world"], [None, "ab"], [3, None]]


def test_reader_rejects_other_files(tmp_path: Path) -> None:
    short = tmp_path / "short.yxdb"
    short.write_bytes(b"Alteryx")
    foreign = tmp_path / "foreign.yxdb"
    foreign.write_bytes(b"\x00" * 1024)

    with pytest.raises(YxdbFormatError):
        YxdbReader(short)
    with pytest.raises(YxdbFormatError, match="signature"):
        YxdbReader(foreign)


def test_truncated_record_stream(tmp_path: Path) -> None:
    target = write_yxdb(tmp_path / "cut.yxdb", [(RECORD_1, False)], record_count=2)

    with YxdbReader(target) as reader:
        with pytest.raises(YxdbFormatError):
            list(reader.rows())


def test_oversized_block_is_rejected(tmp_path: Path) -> None:
    target = write_yxdb(tmp_path / "huge.yxdb", [(RECORD_1, False)], record_count=1)
    data = bytearray(target.read_bytes())
    prefix = 512 + len((SCHEMA + "\x00").encode("utf-16-le"))
    struct.pack_into("<I", data, prefix, 0x80000000 | (BLOCK_SIZE + 1))
    target.write_bytes(bytes(data))

    with YxdbReader(target) as reader:
        with pytest.raises(YxdbFormatError, match="exceeds"):
            list(reader.rows())


def test_oversized_variable_length_is_rejected(tmp_path: Path) -> None:
    record = struct.pack("<i", 1) + b"\x00" + b"ab\x00\x20" + struct.pack("<i", 0x7FFFFFFF)
    target = write_yxdb(tmp_path / "var.yxdb", [(record, False)], record_count=1)

    with YxdbReader(target) as reader:
        with pytest.raises(YxdbFormatError, match="Variable data length"):
            list(reader.rows())


def test_format_bytes() -> None:
    assert format_bytes(b"") == "0 bytes"
    assert format_bytes(b"\x01\xab") == "0x01AB (2 bytes)"
    assert format_bytes(bytes(10)) == "0x0000000000000000... (10 bytes)"


def test_format_value_matches_cell_rendering() -> None:
    assert format_value(float("nan"), 10) == "NaN"
    assert format_value(float("inf"), 10) == "Infinity"
    assert format_value(float("-inf"), 10) == "-Infinity"
    assert format_value(2.0, 10) == "2"
    assert format_value(2.5, 10) == "2.5"
    assert format_value(date(2024, 1, 2), 30) == "2024-01-02 00:00:00"
    assert format_value(True, 10) == "TRUE"


def test_columnar_summary(sample: Path, settings, token) -> None:
    result = ColumnarBinaryAnalyzer().summarize(AnalysisContext.from_path(sample, settings), token)

    assert result.title == "YXDB Summary"
    assert result.status == "ok"
    lines = result.body.split("\n")
    assert lines[0] == "Alteryx Database File"
    assert "Records declared: 3" in lines
    assert "Record blocks: 2" in lines
    assert "Fields: 2" in lines
    assert lines[-1] == "Compressed: Yes"
    schema, preview = result.tables
    assert schema.title == "Schema"
    assert schema.rows[1] == ("name", "V_String", "256", "", "", "Display name")
    assert preview.title == "Rows preview (first 3)"
    assert preview.rows == (("1", "hello world"), ("", "ab"), ("3", ""))


def test_columnar_preview_is_capped(sample: Path, token) -> None:
    settings = SummarySettings.from_flat({"columnarBinary.maxRows": 2, "columnarBinary.maxColumns": 1})

    result = ColumnarBinaryAnalyzer().summarize(AnalysisContext.from_path(sample, settings), token)

    preview = result.tables[1]
    assert preview.title == "Rows preview (first 2 of 3)"
    assert preview.headers == ("id",)
    assert preview.truncated is True


def test_columnar_failure_is_reported(tmp_path: Path, settings, token) -> None:
    target = tmp_path / "fake.yxdb"
    target.write_bytes(b"\x00" * 600)

    result = ColumnarBinaryAnalyzer().summarize(AnalysisContext.from_path(target, settings), token)

    assert result.status == "error"
    assert result.body.startswith("Failed to read YXDB:")
