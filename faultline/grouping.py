"""Multi-error grouping — clusters a batch by file, type and critical severity.

Groups are non-exclusive: one error can sit in a file group and a type group
at the same time. Each group gets a priority (severity-weighted plus
size-weighted) and the groups are returned most urgent first. A coarser,
group-level fix order is derived from the prioritized groups.
"""

from __future__ import annotations

import logging

from faultline.severity import priority_score
from faultline.types.core import GroupType, Severity
from faultline.types.errors import ErrorNode
from faultline.types.grouping import ErrorGroup, FixOrderItem, MultiErrorAnalysis

logger = logging.getLogger("faultline.grouping")

UNKNOWN_TYPE = "unknown"
CRITICAL_GROUP_PRIORITY = 100


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def group_errors(errors: list[ErrorNode]) -> list[ErrorGroup]:
    """Partition a batch into prioritized, possibly overlapping groups.

    Runs three groupers and merges their results:
    1. By file — files with more than one error
    2. By type — types with more than one occurrence (``unknown`` excluded)
    3. By severity — only when at least two CRITICAL errors exist

    When none of them yields a group, every error becomes its own group.

    Returns:
        Groups sorted by priority descending (stable for equal priorities).
    """
    if not errors:
        return []

    groups: list[ErrorGroup] = []
    groups.extend(_group_by_file(errors))
    groups.extend(_group_by_type(errors))
    groups.extend(_group_by_critical_severity(errors))

    if not groups:
        groups = _singleton_groups(errors)

    groups.sort(key=lambda g: -g.priority)
    logger.debug(f"Grouped {len(errors)} errors into {len(groups)} groups")
    return groups


def group_priority(errors: list[ErrorNode]) -> int:
    """Priority = 10 × highest severity score + member count."""
    if not errors:
        return 0
    max_score = max(priority_score(e.severity) for e in errors)
    return max_score * 10 + len(errors)


def build_group_fix_order(groups: list[ErrorGroup]) -> list[FixOrderItem]:
    """Turn prioritized groups into numbered remediation steps.

    Step *i* depends on every earlier step *j* whose group shares at least
    one file with group *i*.
    """
    items: list[FixOrderItem] = []
    for index, group in enumerate(groups):
        files = group.files
        dependencies = [
            other_index + 1
            for other_index, other in enumerate(groups[:index])
            if files & other.files
        ]
        items.append(
            FixOrderItem(
                step_number=index + 1,
                group_id=group.group_id,
                description=(
                    f"Fix {len(group.errors)} error(s) in {group.group_type} group: "
                    f"{group.root_cause[:50]}"
                ),
                errors_to_fix=group.error_ids,
                dependencies=dependencies,
            )
        )
    return items


def analyze_multiple_errors(errors: list[ErrorNode]) -> MultiErrorAnalysis:
    """Group a batch, order the groups for fixing and summarize the load."""
    if not errors:
        return MultiErrorAnalysis()

    groups = group_errors(errors)
    critical = sum(1 for e in errors if e.severity in (Severity.CRITICAL, Severity.HIGH))

    return MultiErrorAnalysis(
        groups=groups,
        fix_order=build_group_fix_order(groups),
        total_errors=len(errors),
        critical_errors=critical,
        estimated_time=estimate_time(groups),
    )


def estimate_time(groups: list[ErrorGroup]) -> str:
    """Coarse effort bucket for a set of groups."""
    total_errors = sum(len(g.errors) for g in groups)
    critical_groups = sum(1 for g in groups if g.priority >= CRITICAL_GROUP_PRIORITY)

    if critical_groups > 5:
        return "2-4 hours (many critical errors)"
    if total_errors > 20:
        return "1-2 hours (many errors)"
    if total_errors > 10:
        return "30-60 minutes"
    if total_errors > 5:
        return "15-30 minutes"
    return "5-15 minutes"


# ---------------------------------------------------------------------------
# Internal groupers
# ---------------------------------------------------------------------------


def _group_by_file(errors: list[ErrorNode]) -> list[ErrorGroup]:
    by_file: dict[str, list[ErrorNode]] = {}
    for error in errors:
        by_file.setdefault(error.file_path, []).append(error)

    return [
        ErrorGroup(
            group_id=f"file:{file_path}",
            group_type=GroupType.BY_FILE,
            errors=members,
            priority=group_priority(members),
            root_cause=f"Multiple errors in same file: {file_path}",
        )
        for file_path, members in by_file.items()
        if len(members) > 1
    ]


def _group_by_type(errors: list[ErrorNode]) -> list[ErrorGroup]:
    by_type: dict[str, list[ErrorNode]] = {}
    for error in errors:
        by_type.setdefault(error.error_type or UNKNOWN_TYPE, []).append(error)

    return [
        ErrorGroup(
            group_id=f"type:{error_type}",
            group_type=GroupType.BY_TYPE,
            errors=members,
            priority=group_priority(members),
            root_cause=f"Multiple {error_type} errors detected",
        )
        for error_type, members in by_type.items()
        if len(members) > 1 and error_type != UNKNOWN_TYPE
    ]


def _group_by_critical_severity(errors: list[ErrorNode]) -> list[ErrorGroup]:
    critical = [e for e in errors if e.severity == Severity.CRITICAL]
    if len(critical) < 2:
        return []
    return [
        ErrorGroup(
            group_id=f"severity:{Severity.CRITICAL}",
            group_type=GroupType.BY_SEVERITY,
            errors=critical,
            priority=CRITICAL_GROUP_PRIORITY,
            root_cause=f"Multiple {Severity.CRITICAL} severity errors",
        )
    ]


def _singleton_groups(errors: list[ErrorNode]) -> list[ErrorGroup]:
    return [
        ErrorGroup(
            group_id=f"error:{error.error_id}",
            group_type=GroupType.SINGLE,
            errors=[error],
            priority=priority_score(error.severity),
            root_cause=f"Individual error: {error.message[:50]}",
        )
        for error in errors
    ]
