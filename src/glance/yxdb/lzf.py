# SPDX-License-Identifier: AGPL-3.0-or-later
"""Pure Python LZF decompressor for YXDB record blocks."""

from __future__ import annotations


class LzfError(ValueError):
    """Raised when an LZF block is malformed."""


def decompress(data: bytes, max_output: int) -> bytes:
    """Decompress one LZF block of at most *max_output* bytes.

    Control bytes below 32 introduce a literal run of ``ctrl + 1`` bytes;
    anything else is a back reference of length ``(ctrl >> 5) + 2`` (with an
    extension byte when the 3-bit length is 7) into the output produced so far.
    """

    out = bytearray()
    index = 0
    end = len(data)
    while index < end:
        ctrl = data[index]
        index += 1
        if ctrl < 32:
            length = ctrl + 1
            if index + length > end:
                raise LzfError("literal run overruns input")
            if len(out) + length > max_output:
                raise LzfError("output exceeds block size")
            out += data[index : index + length]
            index += length
            continue

        length = ctrl >> 5
        if length == 7:
            if index >= end:
                raise LzfError("truncated back reference length")
            length += data[index]
            index += 1
        if index >= end:
            raise LzfError("truncated back reference offset")
        ref = len(out) - ((ctrl & 0x1F) << 8) - data[index] - 1
        index += 1
        length += 2
        if ref < 0:
            raise LzfError("back reference before start of output")
        if len(out) + length > max_output:
            raise LzfError("output exceeds block size")
        # references may overlap the bytes they produce
        for offset in range(length):
            out.append(out[ref + offset])
    return bytes(out)


__all__ = ["LzfError", "decompress"]
