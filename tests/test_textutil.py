# SPDX-License-Identifier: AGPL-3.0-or-later
import io
from decimal import Decimal

from glance.cancellation import CancellationToken
from glance.textutil import (
    TextTableBuilder,
    decode_prefix,
    detect_bom,
    drain,
    format_count,
    format_decimal,
    read_prefix,
    truncate,
    truncate_one_line,
)


def test_table_builder_pads_columns() -> None:
    builder = TextTableBuilder(["a", "bb"])
    builder.add_row(["ccc", "d"])
    builder.add_separator()
    builder.add_row([None, "e"])

    assert builder.row_count == 2
    assert builder.build().split("\n") == [
        "  a    |  bb",
        "  -----+----",
        "  ccc  |  d ",
        "  -----+----",
        "       |  e",
    ]


def test_number_formatting() -> None:
    assert format_count(1234567) == "1,234,567"
    assert format_decimal(Decimal("1000")) == "1000"
    assert format_decimal(Decimal("2.50")) == "2.5"


def test_truncation_helpers() -> None:
    assert truncate("abcdef", 3) == "abc..."
    assert truncate("abc", 3) == "abc"
    assert truncate_one_line("a\nb\r\nc", 100) == "a b  c"
    assert truncate_one_line("abcdef", 2) == "ab…"


def test_bom_detection_and_prefix_decoding() -> None:
    assert detect_bom(b"\xef\xbb\xbfabc") == ("utf-8", 3)
    assert detect_bom(b"\xff\xfea\x00") == ("utf-16-le", 2)
    assert detect_bom(b"abc") == ("utf-8", 0)

    assert decode_prefix("hi".encode("utf-16")) == "hi"
    # a cut-off multi-byte sequence is dropped rather than replaced
    assert decode_prefix("aé".encode("utf-8")[:2]) == "a"


def test_read_prefix_and_drain() -> None:
    stream = io.BytesIO(b"x" * 200_000)

    assert read_prefix(stream, 10) == b"x" * 10
    assert drain(stream, CancellationToken()) == 199_990
    assert stream.read() == b""
