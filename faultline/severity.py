"""Severity classification — keyword-driven mapping of error text to Severity.

The classifier walks an ordered table of (severity, keywords) rows and returns
the first row whose keywords occur in the lower-cased message (or type name).
HIGH is escalated to CRITICAL when the stack is deep or many files are
affected. With no keyword hit, the type name decides, defaulting to MEDIUM.
"""

from __future__ import annotations

from typing import NamedTuple

from faultline.types.core import Severity


class _KeywordRule(NamedTuple):
    severity: Severity
    keywords: tuple[str, ...]
    match_type: bool  # also match against the error type name


SEVERITY_RULES: tuple[_KeywordRule, ...] = (
    _KeywordRule(
        Severity.CRITICAL,
        (
            "fatal", "crash", "corruption", "security", "vulnerability",
            "data loss", "memory leak", "stack overflow", "out of memory",
            "segmentation fault", "access violation", "null pointer exception",
        ),
        True,
    ),
    _KeywordRule(
        Severity.HIGH,
        (
            "runtime error", "exception", "failed", "cannot", "unable",
            "missing", "not found", "undefined", "reference error",
            "type error", "import error", "module not found",
        ),
        True,
    ),
    _KeywordRule(
        Severity.MEDIUM,
        (
            "compile error", "syntax error", "parse error", "type mismatch",
            "deprecated", "warning", "lint error", "style error",
        ),
        True,
    ),
    _KeywordRule(
        Severity.LOW,
        (
            "deprecation", "style", "formatting", "unused", "optimization",
            "suggestion", "hint", "tip",
        ),
        True,
    ),
    _KeywordRule(
        Severity.INFO,
        (
            "suggestion", "recommendation", "best practice", "consider",
            "you may want", "it's recommended",
        ),
        False,
    ),
)

TYPE_FALLBACK: dict[str, Severity] = {
    "fatalerror": Severity.CRITICAL,
    "fatal": Severity.CRITICAL,
    "runtimeerror": Severity.HIGH,
    "exception": Severity.HIGH,
    "syntaxerror": Severity.MEDIUM,
    "compilationerror": Severity.MEDIUM,
    "typeerror": Severity.MEDIUM,
    "warning": Severity.LOW,
    "deprecation": Severity.LOW,
}

PRIORITY_SCORES: dict[Severity, int] = {
    Severity.CRITICAL: 100,
    Severity.HIGH: 75,
    Severity.MEDIUM: 50,
    Severity.LOW: 25,
    Severity.INFO: 10,
}

_DISPLAY_SYMBOLS: dict[Severity, str] = {
    Severity.CRITICAL: "[CRIT]",
    Severity.HIGH: "[HIGH]",
    Severity.MEDIUM: "[MED]",
    Severity.LOW: "[LOW]",
    Severity.INFO: "[INFO]",
}

DEEP_STACK_THRESHOLD = 10
WIDE_IMPACT_THRESHOLD = 5


def classify(
    message: str,
    error_type: str | None = None,
    stack_depth: int | None = None,
    affected_file_count: int | None = None,
) -> Severity:
    """Classify an error description into a Severity.

    Args:
        message: Free-text error message or description.
        error_type: Optional type tag (e.g. "TypeError").
        stack_depth: Optional stack trace depth.
        affected_file_count: Optional number of files affected.
    """
    lower_message = (message or "").lower()
    lower_type = (error_type or "").lower()

    for rule in SEVERITY_RULES:
        if not _matches(rule, lower_message, lower_type):
            continue
        if rule.severity == Severity.HIGH and _is_systemic(stack_depth, affected_file_count):
            return Severity.CRITICAL
        return rule.severity

    return TYPE_FALLBACK.get(lower_type, Severity.MEDIUM)


def priority_score(severity: Severity) -> int:
    """Sort score for a severity (higher = more urgent)."""
    return PRIORITY_SCORES[severity]


def requires_immediate_attention(severity: Severity) -> bool:
    return severity in (Severity.CRITICAL, Severity.HIGH)


def display_symbol(severity: Severity) -> str:
    return _DISPLAY_SYMBOLS[severity]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _matches(rule: _KeywordRule, lower_message: str, lower_type: str) -> bool:
    for keyword in rule.keywords:
        if keyword in lower_message:
            return True
        if rule.match_type and lower_type and keyword in lower_type:
            return True
    return False


def _is_systemic(stack_depth: int | None, affected_file_count: int | None) -> bool:
    if stack_depth is not None and stack_depth > DEEP_STACK_THRESHOLD:
        return True
    return affected_file_count is not None and affected_file_count > WIDE_IMPACT_THRESHOLD
