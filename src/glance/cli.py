# SPDX-License-Identifier: AGPL-3.0-or-later
"""Command line interface printing file summaries."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Dict, List, TextIO

from .dispatcher import Dispatcher
from .models import SummaryResult
from .settings import get_settings
from .textutil import render_table


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="glance", description="Summarize files of unknown type")
    parser.add_argument("paths", nargs="+", help="Files or directories to summarize")
    parser.add_argument("--config", help="Settings YAML (defaults to GLANCE_SETTINGS_PATH or configs/settings.yaml)")
    parser.add_argument(
        "--set",
        dest="overrides",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Override a limit, e.g. --set archive.maxEntries=10 (repeatable)",
    )
    parser.add_argument("--json", action="store_true", help="Emit results as JSON")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")
    return parser.parse_args(argv)


def _parse_overrides(items: List[str]) -> Dict[str, str]:
    overrides: Dict[str, str] = {}
    for item in items:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Overrides must look like key=value, got {item!r}")
        overrides[key.strip()] = value.strip()
    return overrides


def render_text(result: SummaryResult) -> str:
    parts = [f"== {result.title} ==", result.summary_text]
    for table in result.tables:
        parts.append("")
        suffix = " (truncated)" if table.truncated else ""
        parts.append(f"[{table.title}]{suffix}")
        parts.append(render_table(table.headers, table.rows))
    return "\n".join(parts).rstrip()


def main(argv: list[str] | None = None, stdout: TextIO | None = None) -> int:
    args = _parse_args(argv)
    out = stdout or sys.stdout
    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")

    try:
        settings = get_settings(args.config)
        if args.overrides:
            settings = settings.merged(_parse_overrides(args.overrides))
    except ValueError as exc:
        print(f"glance: invalid settings: {exc}", file=sys.stderr)
        return 2

    dispatcher = Dispatcher(settings=settings)
    results = [dispatcher.build_summary(path) for path in args.paths]
    if args.json:
        payload = [result.model_dump(mode="json") for result in results]
        json.dump(payload if len(payload) > 1 else payload[0], out, ensure_ascii=False, indent=2)
        out.write("\n")
    else:
        out.write("\n\n".join(render_text(result) for result in results) + "\n")
    return 1 if any(result.status == "not_found" for result in results) else 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
