# SPDX-License-Identifier: AGPL-3.0-or-later
"""Fallback analyzer for opaque binary content."""

from __future__ import annotations

import hashlib
import math
from collections import Counter
from pathlib import Path
from typing import Iterator, List, Optional

from ..cancellation import CancellationToken
from ..models import AnalysisContext, SummaryResult
from ..textutil import read_prefix
from .base import Analyzer


KNOWN_SIGNATURES = (
    (b"MZ", "Windows Executable (PE)"),
    (b"\x7fELF", "ELF Executable"),
    (b"PK\x03\x04", "ZIP archive"),
    (b"\x89PNG", "PNG image"),
    (b"%PDF", "PDF document"),
    (b"GIF8", "GIF image"),
    (b"BM", "BMP image"),
    (b"ID3", "MP3 audio (ID3)"),
)
_HASH_CHUNK = 64 * 1024
_DUMP_BYTES = 64


def detect_signature(head: bytes) -> Optional[str]:
    for signature, description in KNOWN_SIGNATURES:
        if head.startswith(signature):
            return description
    return None


def sha256_file(path: str | Path, token: CancellationToken) -> str:
    digest = hashlib.sha256()
    with open(path, "rb") as handle:
        while True:
            token.raise_if_cancelled()
            chunk = handle.read(_HASH_CHUNK)
            if not chunk:
                break
            digest.update(chunk)
    return digest.hexdigest().upper()


def shannon_entropy(data: bytes) -> float:
    """Bits per byte, in ``[0, 8]``; ``0`` for empty input."""

    if not data:
        return 0.0
    length = len(data)
    entropy = 0.0
    for count in Counter(data).values():
        p = count / length
        entropy -= p * math.log2(p)
    return entropy


def hex_dump(data: bytes, width: int = 16) -> str:
    lines = []
    for offset in range(0, len(data), width):
        chunk = data[offset : offset + width]
        hex_part = " ".join(f"{b:02X}" for b in chunk)
        ascii_part = "".join(chr(b) if 32 <= b <= 126 else "." for b in chunk)
        lines.append(f"{offset:04X}: {hex_part.ljust(width * 3)} | {ascii_part}")
    return "\n".join(lines)


def printable_strings(data: bytes, min_length: int, max_length: int) -> Iterator[str]:
    """Yield runs of printable ASCII; runs longer than *max_length* are clipped."""

    current: List[str] = []
    for byte in data:
        if 32 <= byte <= 126:
            if len(current) < max_length:
                current.append(chr(byte))
            continue
        if len(current) >= min_length:
            yield "".join(current)
        current = []
    if len(current) >= min_length:
        yield "".join(current)


class BinaryAnalyzer(Analyzer):
    name = "binary"
    priority = 1000

    def can_handle(self, context: AnalysisContext) -> bool:
        return True

    def summarize(self, context: AnalysisContext, token: CancellationToken) -> SummaryResult:
        limits = context.settings.binary
        try:
            with open(context.path, "rb") as handle:
                head = read_prefix(handle, limits.header_bytes)
                tail = read_prefix(handle, limits.string_scan_bytes)
                handle.seek(0)
                sample = read_prefix(handle, limits.entropy_sample_bytes)
            checksum = sha256_file(context.path, token)
        except OSError as exc:
            return SummaryResult.diagnostic("Binary Summary", f"Binary summary failed: {exc}")

        lines: List[str] = []
        detected = detect_signature(head)
        if detected:
            lines.append(f"Detected format: {detected}")
        lines.append(f"SHA256: {checksum}")
        lines.append(f"Entropy (0-8): {shannon_entropy(sample):.2f}")
        lines.append("")
        lines.append(f"Header (first {_DUMP_BYTES} bytes):")
        lines.append(hex_dump(head[:_DUMP_BYTES]))

        samples = []
        for text in printable_strings(head + tail, limits.min_string_len, limits.max_string_len):
            token.raise_if_cancelled()
            samples.append(text)
            if len(samples) >= limits.string_sample_count:
                break
        if samples:
            lines.append("")
            lines.append("Printable samples:")
            lines.extend(f"- {text}" for text in samples)
        return SummaryResult(title="Binary Summary", body="\n".join(lines).rstrip())


__all__ = [
    "KNOWN_SIGNATURES",
    "BinaryAnalyzer",
    "detect_signature",
    "hex_dump",
    "printable_strings",
    "sha256_file",
    "shannon_entropy",
]
