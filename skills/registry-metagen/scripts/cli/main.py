#!/usr/bin/env python3
"""Registry metadata CLI: scan self-registering adapters and diff published snapshots."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from _fs import safe_preview_text
from differ import ChangeReport, run_diff
from metagen import MetagenError, ScanResult, ToolState, run_scan
from metagen.constants import DEFAULT_REPORT, EXISTING_ID_POLICIES
from .config import build_scan_options, resolve_path


def build_scan_summary(
    result: ScanResult,
    *,
    output: Path,
    config_name: Optional[str],
    warnings: List[str],
    max_sample: int,
) -> str:
    lines: List[str] = []
    lines.append(f"OUTPUT: {output}")
    if config_name:
        lines.append(f"CONFIG: {config_name}")
    lines.append(f"UNITS_SCANNED: {result.units_scanned}")
    lines.append(f"UNITS_SKIPPED: {result.units_skipped}")
    lines.append(f"ADAPTERS: {len(result.records)}")
    for record in result.records[:max_sample]:
        lines.append(f"  {record.id}: {record.title}")
    if warnings:
        lines.append("WARNINGS:")
        for warning in warnings[:max_sample]:
            lines.append(f"  {safe_preview_text(warning, max_bytes=240)}")
        if len(warnings) > max_sample:
            lines.append(f"  ... {len(warnings) - max_sample} more")
    return "\n".join(lines)


def build_diff_summary(report: ChangeReport, *, output: Path) -> str:
    lines = [
        f"OUTPUT: {output}",
        f"ADDED: {len(report.added)}",
        f"REMOVED: {len(report.removed)}",
        f"UPDATED: {len(report.updated)}",
    ]
    for record in report.added:
        lines.append(f"  + {record.id}")
    for record in report.removed:
        lines.append(f"  - {record.id}")
    for entry in report.updated:
        lines.append(f"  ~ {entry.after.id}")
    return "\n".join(lines)


def report_error(exc: MetagenError) -> int:
    print(json.dumps({"error": str(exc)}, ensure_ascii=True), file=sys.stderr)
    return exc.exit_code


def run_scan_command(args: argparse.Namespace) -> int:
    repo = Path(args.repo).resolve()
    if not repo.is_dir():
        print(json.dumps({"error": f"repo not found: {repo}"}, ensure_ascii=True), file=sys.stderr)
        return 2
    config_warnings: List[str] = []
    options, output, config_name = build_scan_options(args, repo, config_warnings)
    result = run_scan(repo, options, output, tools=ToolState())
    warnings = config_warnings + result.warnings
    print(
        build_scan_summary(
            result,
            output=output,
            config_name=config_name,
            warnings=warnings,
            max_sample=args.max_sample,
        )
    )
    return 0


def run_diff_command(args: argparse.Namespace) -> int:
    if not args.old or not args.new:
        print(
            json.dumps({"error": "Both --old and --new file paths are required."}, ensure_ascii=True),
            file=sys.stderr,
        )
        return 2
    cwd = Path.cwd()
    output = resolve_path(cwd, args.output)
    report = run_diff(resolve_path(cwd, args.old), resolve_path(cwd, args.new), output)
    print(build_diff_summary(report, output=output))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Static registry metadata generator")
    subparsers = parser.add_subparsers(dest="command")

    scan_parser = subparsers.add_parser(
        "scan", help="Trace register() calls and write the adapter metadata snapshot"
    )
    scan_parser.add_argument("--repo", default=".", help="Repo root to scan (default: .)")
    scan_parser.add_argument(
        "--output",
        default=None,
        help="Path to the output YAML file (default: adapters.yaml, relative to --repo)",
    )
    scan_parser.add_argument("--registry-module", default=None, help="Module that defines register()")
    scan_parser.add_argument("--register-function", default=None, help="Registration function name")
    scan_parser.add_argument("--metadata-type", default=None, help="Metadata record class name")
    scan_parser.add_argument(
        "--init-function",
        action="append",
        default=None,
        help="Initializer function names run at load (repeatable or comma-separated)",
    )
    scan_parser.add_argument(
        "--source-root",
        action="append",
        default=None,
        help="Directories that map to top-level packages (default: src,.)",
    )
    scan_parser.add_argument(
        "--search-path",
        action="append",
        default=None,
        help="Where imported modules outside the repo are looked up for constants "
        "(repeatable or comma-separated; default: this interpreter's site-packages)",
    )
    scan_parser.add_argument(
        "--exclude",
        action="append",
        default=None,
        help="Extra glob of files that never register adapters",
    )
    scan_parser.add_argument(
        "--include-tests", action="store_true", help="Scan test modules too"
    )
    scan_parser.add_argument(
        "--existing-id-policy",
        choices=list(EXISTING_ID_POLICIES),
        default=None,
        help="What to do when a published Id is claimed by a different author",
    )
    scan_parser.add_argument("--max-sample", type=int, default=30, help="Summary sample cap")

    diff_parser = subparsers.add_parser(
        "diff", help="Compare two metadata snapshots and write a JSON change report"
    )
    diff_parser.add_argument("--old", default="", help="Path to the old metadata YAML file")
    diff_parser.add_argument("--new", default="", help="Path to the new metadata YAML file")
    diff_parser.add_argument(
        "--output", default=DEFAULT_REPORT, help="Path to the output JSON report file"
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(sys.argv[1:] if argv is None else argv))

    try:
        if args.command == "scan":
            return run_scan_command(args)
        if args.command == "diff":
            return run_diff_command(args)
    except MetagenError as exc:
        return report_error(exc)

    parser.print_help()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
