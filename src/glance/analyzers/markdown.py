# SPDX-License-Identifier: AGPL-3.0-or-later
"""Lightweight markup (Markdown) analyzer with a plain-terminal rendering."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from ..cancellation import CancellationToken
from ..models import AnalysisContext, SummaryResult, TextPreview
from ..settings import MarkdownLimits
from ..sniff import FormatFamily, extension_family, read_header
from ..textutil import format_count, stream_encoding
from .base import Analyzer


_RULE = "─" * 40


def parse_heading(line: str) -> Optional[Tuple[int, str]]:
    """Return ``(level, text)`` for an ATX heading, or ``None``."""

    level = len(line) - len(line.lstrip("#"))
    if level == 0 or level > 6:
        return None
    rest = line[level:]
    if rest.startswith(" "):
        rest = rest[1:]
    text = rest.strip()
    return (level, text) if text else None


def count_words(line: str) -> int:
    count = 0
    in_word = False
    for char in line:
        if char.isalnum():
            if not in_word:
                in_word = True
                count += 1
        else:
            in_word = False
    return count


def is_horizontal_rule(line: str) -> bool:
    if len(line) < 3:
        return False
    marker = None
    count = 0
    for char in line:
        if char.isspace():
            continue
        if char not in "-_*" or (marker is not None and char != marker):
            return False
        marker = char
        count += 1
    return count >= 3


def list_item(line: str) -> Optional[Tuple[str, str]]:
    if len(line) >= 2 and line[0] in "-*+" and line[1] == " ":
        return "•", line[2:].strip()
    dot = line.find(".")
    if dot > 0 and dot + 1 < len(line) and line[dot + 1] == " " and line[:dot].isdigit():
        return line[: dot + 1], line[dot + 2 :].strip()
    return None


def _replace_links(text: str) -> str:
    out: List[str] = []
    index = 0
    while index < len(text):
        start = text.find("[", index)
        if start == -1:
            out.append(text[index:])
            break
        out.append(text[index:start])
        close = text.find("]", start + 1)
        if close == -1:
            out.append(text[start:])
            break
        if close + 1 < len(text) and text[close + 1] == "(":
            paren = text.find(")", close + 2)
            if paren != -1:
                label = text[start + 1 : close]
                url = text[close + 2 : paren]
                out.append(label)
                if url.strip():
                    out.append(f" ({url})")
                index = paren + 1
                continue
        out.append(text[start : close + 1])
        index = close + 1
    return "".join(out)


def _replace_inline_code(text: str) -> str:
    if "`" not in text:
        return text
    result = text.replace("`", "'")
    # close an unbalanced span
    if text.count("`") % 2:
        result += "'"
    return result


def format_inline(text: str) -> str:
    if not text:
        return ""
    result = _replace_inline_code(_replace_links(text))
    for marker in ("**", "__", "~~"):
        result = result.replace(marker, "")
    return result.strip()


def format_line(line: str, in_code: bool) -> Tuple[List[str], bool]:
    """Render one source line; returns the output lines and the new code-fence state."""

    trimmed_end = line.rstrip()
    trimmed = trimmed_end.lstrip()
    if trimmed.startswith("```"):
        in_code = not in_code
        return ["[code block]" if in_code else ""], in_code
    if in_code:
        return [f"    {trimmed_end}"], in_code

    heading = parse_heading(trimmed)
    if heading is not None:
        level, text = heading
        inline = format_inline(text)
        if level == 1:
            upper = inline.upper()
            return [upper, "=" * max(3, min(len(upper), 80))], in_code
        if level == 2:
            return [inline, "-" * max(3, min(len(inline), 80))], in_code
        return [" " * min((level - 2) * 2, 6) + f"• {inline}"], in_code

    if trimmed.startswith(">"):
        return [f"│ {format_inline(trimmed.lstrip('> '))}"], in_code
    if is_horizontal_rule(trimmed):
        return [_RULE], in_code
    item = list_item(trimmed)
    if item is not None:
        marker, content = item
        return [f"{marker} {format_inline(content)}"], in_code
    return [format_inline(trimmed_end)], in_code


class _PreviewBuffer:
    def __init__(self, limit: int) -> None:
        self.limit = max(1, limit)
        self.parts: List[str] = []
        self.length = 0
        self.truncated = False

    def append_line(self, content: str) -> None:
        if self.length > 0:
            self._append("\n")
        self._append(content)

    def _append(self, content: str) -> None:
        if self.truncated or not content:
            return
        room = self.limit - self.length
        piece = content[:room]
        self.parts.append(piece)
        self.length += len(piece)
        if self.length >= self.limit:
            self.truncated = True

    def text(self) -> str:
        return "".join(self.parts)


@dataclass
class MarkdownStats:
    lines: int = 0
    words: int = 0
    characters: int = 0
    headings: List[Tuple[int, str]] = field(default_factory=list)
    preview: str = ""
    truncated: bool = False


def scan_markdown(path: str | Path, limits: MarkdownLimits, token: CancellationToken) -> MarkdownStats:
    encoding = stream_encoding(read_header(path, 4))
    stats = MarkdownStats()
    buffer = _PreviewBuffer(limits.max_chars)
    in_code = False
    with open(path, "r", encoding=encoding, errors="replace") as handle:
        for raw in handle:
            token.raise_if_cancelled()
            line = raw.rstrip("\n")
            stats.lines += 1
            stats.characters += len(line) + 1
            stats.words += count_words(line)
            heading = parse_heading(line.lstrip())
            if heading is not None:
                stats.headings.append(heading)
            if not buffer.truncated:
                rendered, in_code = format_line(line, in_code)
                for piece in rendered:
                    buffer.append_line(piece)
                    if buffer.truncated:
                        break
    stats.preview = buffer.text()
    stats.truncated = buffer.truncated
    return stats


def render_markdown_summary(stats: MarkdownStats, limits: MarkdownLimits) -> str:
    lines = [
        f"Lines: {format_count(stats.lines)}",
        f"Words: {format_count(stats.words)}",
        f"Characters (including newline markers): {format_count(stats.characters)}",
        f"Headings detected: {format_count(len(stats.headings))}",
    ]
    if stats.truncated:
        lines.append("")
        lines.append(f"Preview limited to first {format_count(limits.max_chars)} characters.")
    if stats.headings:
        lines.append("")
        lines.append("Headings:")
        shown = stats.headings[: limits.max_headings]
        for level, text in shown:
            lines.append(" " * min((level - 1) * 2, 10) + f"- {text}")
        if len(stats.headings) > len(shown):
            lines.append(f"... ({len(stats.headings) - len(shown)} more)")
    return "\n".join(lines)


class MarkdownAnalyzer(Analyzer):
    name = "markdown"
    priority = 220

    def can_handle(self, context: AnalysisContext) -> bool:
        return extension_family(context.path) is FormatFamily.MARKDOWN

    def summarize(self, context: AnalysisContext, token: CancellationToken) -> SummaryResult:
        title = f"Markdown Summary ({context.name})"
        limits = context.settings.markdown
        try:
            stats = scan_markdown(context.path, limits, token)
        except OSError as exc:
            return SummaryResult.diagnostic(title, f"Error summarizing Markdown: {exc}")
        return SummaryResult(
            title=title,
            body=render_markdown_summary(stats, limits),
            preview=TextPreview(title=context.name, content=stats.preview, truncated=stats.truncated),
        )


__all__ = [
    "MarkdownAnalyzer",
    "MarkdownStats",
    "count_words",
    "format_inline",
    "format_line",
    "is_horizontal_rule",
    "list_item",
    "parse_heading",
    "render_markdown_summary",
    "scan_markdown",
]
