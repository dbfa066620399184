# SPDX-License-Identifier: AGPL-3.0-or-later
import hashlib
import os
from pathlib import Path

from glance.analyzers.binary import (
    BinaryAnalyzer,
    detect_signature,
    hex_dump,
    printable_strings,
    shannon_entropy,
)
from glance.analyzers.text import PlainTextAnalyzer
from glance.models import AnalysisContext
from glance.settings import SummarySettings


def test_entropy_bounds() -> None:
    assert shannon_entropy(b"") == 0.0
    assert shannon_entropy(b"aaaa") == 0.0
    assert shannon_entropy(bytes(range(256))) == 8.0
    assert abs(shannon_entropy(b"ab") - 1.0) < 1e-9


def test_hex_dump_layout() -> None:
    dump = hex_dump(b"ABC\x00" * 5)
    lines = dump.split("\n")

    assert len(lines) == 2
    assert lines[0] == "0000: " + "41 42 43 00 " * 4 + " | ABC.ABC.ABC.ABC."
    assert lines[1].startswith("0010: 41 42 43 00")
    assert lines[1].endswith("| ABC.")


def test_printable_strings() -> None:
    data = b"\x00\x01hello\x00ab\x00" + b"x" * 60 + b"\x00"
    assert list(printable_strings(data, 4, 40)) == ["hello", "x" * 40]


def test_signatures() -> None:
    assert detect_signature(b"\x89PNG\r\n") == "PNG image"
    assert detect_signature(b"MZ\x90\x00") == "Windows Executable (PE)"
    assert detect_signature(b"????") is None


def test_binary_summary(tmp_path: Path, settings, token) -> None:
    target = tmp_path / "image.png"
    payload = b"\x89PNG\r\n\x1a\n" + b"IHDR" + bytes(range(256)) * 4
    target.write_bytes(payload)

    result = BinaryAnalyzer().summarize(AnalysisContext.from_path(target, settings), token)

    assert result.title == "Binary Summary"
    assert "Detected format: PNG image" in result.body
    assert f"SHA256: {hashlib.sha256(payload).hexdigest().upper()}" in result.body
    assert "Entropy (0-8): " in result.body
    assert "Header (first 64 bytes):\n0000: 89 50 4E 47" in result.body


def test_text_preview(tmp_path: Path, token) -> None:
    target = tmp_path / "notes.log"
    target.write_text("line one\nline two\n", encoding="utf-8")
    settings = SummarySettings.from_flat({"text.previewBytes": 8})
    context = AnalysisContext.from_path(target, settings)

    assert PlainTextAnalyzer().can_handle(context)
    result = PlainTextAnalyzer().summarize(context, token)

    assert result.title == "Text Preview"
    assert result.body == "Preview (first 8 bytes):"
    assert result.preview.content == "line one"
    assert result.preview.truncated is True


def test_text_rejects_binary(tmp_path: Path, settings) -> None:
    target = tmp_path / "data.dat"
    target.write_bytes(b"\x00\x01\x02binary")

    assert not PlainTextAnalyzer().can_handle(AnalysisContext.from_path(target, settings))


def test_entropy_of_zero_and_random_buffers() -> None:
    assert shannon_entropy(bytes(1024)) == 0.0
    assert abs(shannon_entropy(os.urandom(64 * 1024)) - 8.0) < 0.05
