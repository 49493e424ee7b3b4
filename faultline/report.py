"""Combined diagnostic report — grouping and correlation over one batch.

Both views are computed over the same ErrorNodes. When a history store is
supplied every error is recorded in it, and previously successful fixes for
similar messages are attached to the report.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from faultline.correlation import correlate, format_correlation_result
from faultline.grouping import analyze_multiple_errors
from faultline.history import ErrorHistoryStore
from faultline.mismatch import MismatchPattern, detect_api_mismatch
from faultline.nodes import build_error_nodes
from faultline.severity import display_symbol
from faultline.types.errors import CorrelationResult, ErrorLocation, ErrorNode
from faultline.types.grouping import MultiErrorAnalysis
from faultline.types.snapshot import DependencySnapshot

logger = logging.getLogger("faultline.report")


@dataclass
class DiagnosticReport:
    """Everything known about one batch of errors."""

    errors: list[ErrorNode] = field(default_factory=list)
    analysis: MultiErrorAnalysis = field(default_factory=MultiErrorAnalysis)
    correlation: CorrelationResult = field(default_factory=CorrelationResult)
    history_ids: dict[str, str] = field(default_factory=dict)  # error id -> history id
    suggested_fixes: dict[str, str] = field(default_factory=dict)  # error id -> fix
    api_mismatches: dict[str, MismatchPattern] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.errors


def diagnose(
    locations: list[ErrorLocation],
    messages: list[str],
    snapshot: DependencySnapshot | dict[str, Any] | None = None,
    history: ErrorHistoryStore | None = None,
    error_types: list[str | None] | None = None,
) -> DiagnosticReport:
    """Group, correlate and (optionally) record a batch of errors.

    Args:
        locations: Error locations in batch order.
        messages: Error messages, matched to ``locations`` by index.
        snapshot: Workspace dependency snapshot, if one is available.
        history: History store to record sightings in and to ask for fixes.
        error_types: Explicit error types, matched by index.
    """
    errors = build_error_nodes(locations, messages, error_types)
    if not errors:
        return DiagnosticReport()

    report = DiagnosticReport(
        errors=errors,
        analysis=analyze_multiple_errors(errors),
        correlation=correlate(errors, snapshot),
    )

    for error in errors:
        if history is not None:
            # Lookup precedes recording this sighting.
            fix = history.suggest_fix(error.message, error.file_path)
            if fix:
                report.suggested_fixes[error.error_id] = fix
            entry = history.add_or_bump_error(
                error.message,
                error_type=error.error_type,
                severity=error.severity,
                file_path=error.file_path,
                line_number=error.line_number,
                function_name=error.location.function_name,
            )
            report.history_ids[error.error_id] = entry.error_id

        mismatch = detect_api_mismatch(error.message)
        if mismatch is not None:
            report.api_mismatches[error.error_id] = mismatch

    logger.info(
        f"Diagnosed {len(errors)} errors: {len(report.analysis.groups)} groups, "
        f"{len(report.correlation.root_causes)} root causes, "
        f"{len(report.suggested_fixes)} fixes from history"
    )
    return report


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


def format_multi_error_analysis(analysis: MultiErrorAnalysis) -> str:
    """Format the grouping view as a markdown section."""
    lines = ["## Error Groups", ""]
    lines.append(
        f"**Total errors:** {analysis.total_errors} | "
        f"**Critical/high:** {analysis.critical_errors} | "
        f"**Estimated time:** {analysis.estimated_time or 'n/a'}"
    )
    lines.append("")

    if not analysis.groups:
        lines.append("_No error groups._")
        lines.append("")
        return "\n".join(lines)

    lines.append("| Priority | Group | Errors | Root cause |")
    lines.append("|----------|-------|--------|------------|")
    for group in analysis.groups:
        lines.append(
            f"| {group.priority} | `{group.group_id}` | {len(group.errors)} | {group.root_cause} |"
        )
    lines.append("")

    lines.append("### Group Fix Order")
    lines.append("")
    for item in analysis.fix_order:
        after = f" (after step {', '.join(str(d) for d in item.dependencies)})" if item.dependencies else ""
        lines.append(f"{item.step_number}. {item.description}{after}")
    lines.append("")
    return "\n".join(lines)


def format_report(report: DiagnosticReport) -> str:
    """Render a full diagnostic report as markdown."""
    if report.is_empty:
        return "# Diagnostic Report\n\n_No errors to analyze._\n"

    lines = ["# Diagnostic Report", ""]
    for error in report.errors:
        where = error.file_path
        if error.line_number is not None:
            where = f"{where}:{error.line_number}"
        lines.append(f"- {display_symbol(error.severity)} `{error.error_id}` {where}: {error.message}")
    lines.append("")

    sections = [
        "\n".join(lines),
        format_multi_error_analysis(report.analysis),
        format_correlation_result(report.correlation),
    ]

    if report.suggested_fixes or report.api_mismatches:
        extra = ["## Known Fixes", ""]
        for error_id, fix in report.suggested_fixes.items():
            extra.append(f"- `{error_id}` (from history): {fix}")
        for error_id, pattern in report.api_mismatches.items():
            extra.append(f"- `{error_id}` {pattern.error_type}: {pattern.suggested_fix}")
        extra.append("")
        sections.append("\n".join(extra))

    return "\n".join(sections)
