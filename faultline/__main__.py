"""CLI entry point — python -m faultline."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

logger = logging.getLogger("faultline")


def main(argv: list[str] | None = None) -> int:
    load_dotenv()

    parser = argparse.ArgumentParser(
        prog="faultline",
        description="Correlate a batch of errors, order fixes, and predict new ones.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    # --- analyze ---
    analyze_parser = sub.add_parser("analyze", help="Group and correlate a batch of errors")
    analyze_parser.add_argument("errors_file", help="YAML/JSON list of error records")
    analyze_parser.add_argument("--snapshot", default=None, help="YAML/JSON dependency snapshot")
    analyze_parser.add_argument(
        "--workspace", default=".",
        help="Workspace root holding the error history",
    )
    analyze_parser.add_argument(
        "--no-history", action="store_true",
        help="Do not read or record error history",
    )

    # --- predict ---
    predict_parser = sub.add_parser("predict", help="Predict likely errors in a source file")
    predict_parser.add_argument("source_file", help="Source file to scan")
    predict_parser.add_argument(
        "--workspace", default=".",
        help="Workspace root used to resolve relative imports",
    )
    predict_parser.add_argument("--language", default=None, help="Override language detection")
    predict_parser.add_argument(
        "--no-history", action="store_true",
        help="Skip the recurring-error history check",
    )

    # --- history ---
    history_parser = sub.add_parser("history", help="Show recurring errors from history")
    history_parser.add_argument("--workspace", default=".", help="Workspace root")
    history_parser.add_argument(
        "--min-frequency", type=int, default=None,
        help="Minimum recorded frequency (default from settings)",
    )

    args = parser.parse_args(argv)

    from faultline.config import get_settings

    level = logging.DEBUG if args.verbose else getattr(logging, get_settings().log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        if args.command == "analyze":
            return _analyze(args)
        elif args.command == "predict":
            return _predict(args)
        elif args.command == "history":
            return _history(args)
        else:
            parser.print_help()
            return 1
    except KeyboardInterrupt:
        print("\nInterrupted.")
        return 130


def _load_structured(path: str) -> Any:
    """Parse a YAML (or JSON, which YAML accepts) file."""
    return yaml.safe_load(Path(path).read_text(encoding="utf-8"))


def _analyze(args: argparse.Namespace) -> int:
    """Group, correlate and report a batch of errors."""
    from faultline.history import ErrorHistoryStore
    from faultline.nodes import location_from_mapping
    from faultline.report import diagnose, format_report

    try:
        records = _load_structured(args.errors_file) or []
        snapshot = _load_structured(args.snapshot) if args.snapshot else None
    except (OSError, yaml.YAMLError) as e:
        print(f"Cannot read input: {e}", file=sys.stderr)
        return 1

    if not isinstance(records, list):
        print(f"{args.errors_file}: expected a list of error records", file=sys.stderr)
        return 1
    if snapshot is not None and not isinstance(snapshot, dict):
        print(f"{args.snapshot}: expected a mapping with 'files' and 'dependencies'", file=sys.stderr)
        return 1

    locations, messages, error_types = [], [], []
    for record in records:
        if not isinstance(record, dict):
            logger.warning(f"Skipping non-mapping error record: {record!r}")
            continue
        location = location_from_mapping(record)
        if location is None:
            continue
        locations.append(location)
        messages.append(str(record.get("message") or ""))
        error_types.append(record.get("type") or record.get("error_type"))

    history = None if args.no_history else ErrorHistoryStore(args.workspace)
    report = diagnose(locations, messages, snapshot, history=history, error_types=error_types)
    if history is not None:
        history.save()

    print(format_report(report))
    return 0


def _predict(args: argparse.Namespace) -> int:
    """Scan one source file and print a risk assessment."""
    from faultline.history import ErrorHistoryStore
    from faultline.predictor import ErrorPredictor, format_risk_assessment

    try:
        content = Path(args.source_file).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        print(f"Cannot read source: {e}", file=sys.stderr)
        return 1

    workspace = Path(args.workspace)
    source = Path(args.source_file)
    try:
        file_path = source.resolve().relative_to(workspace.resolve()).as_posix()
    except ValueError:
        file_path = source.as_posix()

    history = None if args.no_history else ErrorHistoryStore(workspace)
    predictor = ErrorPredictor(workspace, history)
    assessment = predictor.assess_risk(content, file_path, args.language)

    print(format_risk_assessment(assessment))
    return 0


def _history(args: argparse.Namespace) -> int:
    """List recurring errors recorded for a workspace."""
    from faultline.config import get_settings
    from faultline.history import ErrorHistoryStore
    from faultline.severity import display_symbol

    min_frequency = args.min_frequency
    if min_frequency is None:
        min_frequency = get_settings().recurring_min_frequency
    store = ErrorHistoryStore(args.workspace)
    recurring = store.recurring(min_frequency)

    print(f"faultline history: {len(store)} entries, {len(recurring)} recurring\n")
    for entry in recurring:
        where = entry.file_path or "?"
        if entry.line_number is not None:
            where = f"{where}:{entry.line_number}"
        fix = entry.user_correction or entry.fix_applied
        print(f"  {display_symbol(entry.severity)} x{entry.frequency} {where} {entry.error_message[:80]}")
        if fix:
            status = "ok" if entry.fix_successful else "unverified"
            print(f"      fix ({status}): {fix}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
