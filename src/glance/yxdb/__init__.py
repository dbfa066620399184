# SPDX-License-Identifier: AGPL-3.0-or-later
"""Alteryx YXDB columnar file reader."""

from .lzf import LzfError, decompress
from .reader import BLOCK_SIZE, YxdbField, YxdbFormatError, YxdbHeader, YxdbReader, read_blob

__all__ = [
    "BLOCK_SIZE",
    "LzfError",
    "YxdbField",
    "YxdbFormatError",
    "YxdbHeader",
    "YxdbReader",
    "decompress",
    "read_blob",
]
