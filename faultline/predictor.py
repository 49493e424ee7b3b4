"""Error prediction — heuristic risk scan of source text before anything fails.

Language-specific scanners are registered per language tag and run first;
language-agnostic checks (brace balance, relative-import resolution, API
mismatch patterns) always run; finally the error history is consulted for
messages that keep recurring in the same file. Every prediction is an
unconfirmed candidate with a confidence and a risk level.
"""

from __future__ import annotations

import builtins
import keyword
import logging
import re
from collections.abc import Callable
from pathlib import Path, PurePosixPath

from faultline.config import get_settings
from faultline.history import ErrorHistoryStore
from faultline.mismatch import MISMATCH_PATTERNS
from faultline.types.core import RiskLevel
from faultline.types.prediction import PredictedError, RiskAssessment

logger = logging.getLogger("faultline.predictor")

Scanner = Callable[[list[str], str], list[PredictedError]]

GENERIC_LANGUAGE = "generic"

_SCANNERS: dict[str, Scanner] = {}

_EXTENSION_LANGUAGES: dict[str, str] = {
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".py": "python",
    ".pyw": "python",
    ".java": "java",
    ".kt": "kotlin",
    ".kts": "kotlin",
}

IMPORT_FALLBACK_SUFFIXES: tuple[str, ...] = (
    "", ".js", ".ts", ".jsx", ".tsx", ".py", "/index.js", "/index.ts", "/__init__.py",
)

_STRING_LITERAL = re.compile(r"""(['"`])(?:\\.|(?!\1).)*\1""")


# ---------------------------------------------------------------------------
# Scanner registry
# ---------------------------------------------------------------------------


def register_scanner(*languages: str) -> Callable[[Scanner], Scanner]:
    """Decorator registering a scanner for one or more language tags."""

    def decorator(scanner: Scanner) -> Scanner:
        for language in languages:
            if language in _SCANNERS:
                logger.warning(f"Scanner for '{language}' already registered, overwriting")
            _SCANNERS[language] = scanner
            logger.debug(f"Registered scanner {scanner.__name__} for {language}")
        return scanner

    return decorator


def get_scanner(language: str) -> Scanner | None:
    return _SCANNERS.get(language)


def registered_languages() -> list[str]:
    return list(_SCANNERS.keys())


def detect_language(file_path: str, content: str = "") -> str:
    """Language tag from the file extension, then a shebang sniff, else ``generic``."""
    suffix = PurePosixPath(file_path or "").suffix.lower()
    if suffix in _EXTENSION_LANGUAGES:
        return _EXTENSION_LANGUAGES[suffix]

    stripped = (content or "").lstrip()
    first_line = stripped.splitlines()[0] if stripped else ""
    if first_line.startswith("#!"):
        if "python" in first_line:
            return "python"
        if "node" in first_line:
            return "javascript"
    return GENERIC_LANGUAGE


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


class ErrorPredictor:
    """Runs every applicable check over one file's source text.

    Args:
        workspace: Workspace root used to resolve relative imports. Without
            it the import check is skipped.
        history: Error history consulted for recurring patterns.
        recurring_min_frequency: Minimum recorded frequency for a history
            entry to count as recurring.
    """

    def __init__(
        self,
        workspace: str | Path | None = None,
        history: ErrorHistoryStore | None = None,
        recurring_min_frequency: int | None = None,
    ) -> None:
        self.workspace = Path(workspace) if workspace is not None else None
        self.history = history
        self.recurring_min_frequency = (
            recurring_min_frequency
            if recurring_min_frequency is not None
            else get_settings().recurring_min_frequency
        )

    def predict(
        self, content: str, file_path: str, language: str | None = None
    ) -> list[PredictedError]:
        """Predicted errors for ``content``, highest confidence first."""
        content = content or ""
        lines = content.splitlines()
        language = language or detect_language(file_path, content)

        predictions: list[PredictedError] = []

        scanner = get_scanner(language)
        if scanner is not None:
            predictions.extend(scanner(lines, file_path))
        else:
            logger.debug(f"No scanner for '{language}', running agnostic checks only")

        predictions.extend(check_brace_balance(content, file_path))
        if self.workspace is not None:
            predictions.extend(check_imports(lines, file_path, self.workspace))
        predictions.extend(check_api_mismatches(lines, file_path))
        if self.history is not None:
            predictions.extend(
                check_history(content, file_path, self.history, self.recurring_min_frequency)
            )

        predictions.sort(key=lambda p: -p.confidence)
        logger.debug(f"Predicted {len(predictions)} potential errors in {file_path}")
        return predictions

    def assess_risk(
        self, content: str, file_path: str, language: str | None = None
    ) -> RiskAssessment:
        return summarize_risk(self.predict(content, file_path, language))


def predict(
    content: str,
    file_path: str,
    workspace: str | Path | None = None,
    history: ErrorHistoryStore | None = None,
    language: str | None = None,
) -> list[PredictedError]:
    """Convenience wrapper around ``ErrorPredictor(workspace, history).predict``."""
    return ErrorPredictor(workspace, history).predict(content, file_path, language)


def summarize_risk(predictions: list[PredictedError]) -> RiskAssessment:
    """Aggregate predictions into an overall risk level plus per-level counts.

    CRITICAL if any critical; HIGH if more than two high; MEDIUM if any high
    or more than three medium; otherwise LOW.
    """
    critical = sum(1 for p in predictions if p.risk_level == RiskLevel.CRITICAL)
    high = sum(1 for p in predictions if p.risk_level == RiskLevel.HIGH)
    medium = sum(1 for p in predictions if p.risk_level == RiskLevel.MEDIUM)
    low = sum(1 for p in predictions if p.risk_level == RiskLevel.LOW)

    if critical > 0:
        overall = RiskLevel.CRITICAL
    elif high > 2:
        overall = RiskLevel.HIGH
    elif high > 0 or medium > 3:
        overall = RiskLevel.MEDIUM
    else:
        overall = RiskLevel.LOW

    return RiskAssessment(
        overall_risk=overall,
        predicted_errors=list(predictions),
        critical_count=critical,
        high_count=high,
        medium_count=medium,
        low_count=low,
    )


def format_risk_assessment(assessment: RiskAssessment, limit: int = 10) -> str:
    """Format a risk assessment as a markdown section."""
    lines = [f"## Risk Assessment: {assessment.overall_risk}", ""]
    lines.append(
        f"Critical: {assessment.critical_count} | High: {assessment.high_count} | "
        f"Medium: {assessment.medium_count} | Low: {assessment.low_count}"
    )
    lines.append("")

    if not assessment.predicted_errors:
        lines.append("_No potential errors predicted._")
        lines.append("")
        return "\n".join(lines)

    lines.append("| Risk | Type | Line | Confidence | Description |")
    lines.append("|------|------|------|------------|-------------|")
    for p in assessment.predicted_errors[:limit]:
        line = str(p.line_number) if p.line_number is not None else "-"
        description = p.description[:60] + "..." if len(p.description) > 60 else p.description
        lines.append(f"| {p.risk_level} | {p.error_type} | {line} | {p.confidence:.0%} | {description} |")

    remaining = len(assessment.predicted_errors) - limit
    if remaining > 0:
        lines.append("")
        lines.append(f"_...and {remaining} more._")
    lines.append("")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Language scanners
# ---------------------------------------------------------------------------

_JS_MEMBER_ACCESS = re.compile(r"(?<![\w$.])([A-Za-z_$][\w$]*)\.[A-Za-z_$][\w$]*")
_JS_LOOSE_EQUALITY = re.compile(r"(?<![=!<>])([=!]=)(?!=)")
_JS_AWAIT = re.compile(r"\bawait\b")
_JS_FUNCTION_HEADER = re.compile(
    r"\bfunction\b|=>|^\s*(?:static\s+)?(?:async\s+)?(?!if\b|for\b|while\b|switch\b|catch\b)"
    r"[A-Za-z_$][\w$]*\s*\([^)]*\)\s*\{"
)
_JS_GLOBAL_RECEIVERS = frozenset({
    "this", "super", "console", "Math", "JSON", "Object", "Array", "Promise",
    "Number", "String", "Date", "Symbol", "Reflect", "window", "document",
    "process", "module", "exports", "require", "React",
})


@register_scanner("javascript", "typescript")
def scan_javascript(lines: list[str], file_path: str) -> list[PredictedError]:
    """Null-access, loose-equality and await-outside-async risks."""
    predictions: list[PredictedError] = []

    for index, line in enumerate(lines):
        stripped = line.strip()
        if not stripped or stripped.startswith(("//", "/*", "*")):
            continue
        if stripped.startswith(("import ", "export ")) and " from " in stripped:
            continue
        code = _strip_strings(line)
        line_number = index + 1

        if "?." not in code and "??" not in code:
            flagged: set[str] = set()
            for match in _JS_MEMBER_ACCESS.finditer(code):
                variable = match.group(1)
                if variable in flagged or variable in _JS_GLOBAL_RECEIVERS:
                    continue
                if _js_declares(code, variable):
                    continue
                flagged.add(variable)
                predictions.append(
                    PredictedError(
                        error_type="NullPointerRisk",
                        description=f"Potential null/undefined access: {variable}",
                        file_path=file_path,
                        line_number=line_number,
                        confidence=0.6,
                        risk_level=RiskLevel.MEDIUM,
                        preventive_fix=(
                            f"Use optional chaining: {variable}?.property "
                            f"or nullish coalescing: {variable} ?? defaultValue"
                        ),
                        code_pattern=stripped,
                    )
                )

        loose = _JS_LOOSE_EQUALITY.search(code)
        if loose:
            operator = loose.group(1)
            strict = "===" if operator == "==" else "!=="
            predictions.append(
                PredictedError(
                    error_type="TypeMismatchRisk",
                    description=f"Loose equality ({operator}) may cause type coercion issues",
                    file_path=file_path,
                    line_number=line_number,
                    confidence=0.7,
                    risk_level=RiskLevel.MEDIUM,
                    preventive_fix=f"Use strict equality ({strict}) instead of ({operator})",
                    code_pattern=stripped,
                )
            )

        if _JS_AWAIT.search(code) and "async" not in code:
            header = _enclosing_js_header(lines, index)
            if header is not None and "async" not in lines[header]:
                predictions.append(
                    PredictedError(
                        error_type="AsyncAwaitMismatch",
                        description="await used in non-async function",
                        file_path=file_path,
                        line_number=line_number,
                        confidence=0.9,
                        risk_level=RiskLevel.HIGH,
                        preventive_fix="Add 'async' keyword to function declaration",
                        code_pattern=stripped,
                    )
                )

    return predictions


_PY_BLOCK_OPENER = re.compile(
    r"^\s*(?:async\s+def|def|class|if|elif|else|for|async\s+for|while|try|except|finally|with|async\s+with|match|case)\b"
    r".*:\s*(?:#.*)?$"
)
_PY_CALL = re.compile(r"(?<![\w.])([A-Za-z_]\w*)\s*\(")
_PY_DEF = re.compile(r"^\s*(?:async\s+)?def\s+(\w+)\s*\(([^)]*)")
_PY_CLASS = re.compile(r"^\s*class\s+(\w+)")
_PY_ASSIGN = re.compile(r"^\s*([\w\s,*()\[\]]+?)\s*(?::[^=]+)?(?<![=!<>+\-*/%&|^@])=(?!=)")
_PY_FOR = re.compile(r"\bfor\s+([\w\s,()]+?)\s+in\b")
_PY_AS = re.compile(r"\bas\s+(\w+)")
_PY_IMPORT = re.compile(r"^\s*import\s+(.+)$")
_PY_FROM_IMPORT = re.compile(r"^\s*from\s+\S+\s+import\s+\(?([^)#]+)")
_PY_WALRUS = re.compile(r"(\w+)\s*:=")
_PY_GLOBAL = re.compile(r"^\s*(?:global|nonlocal)\s+(.+)$")
_PY_KNOWN_NAMES = frozenset(dir(builtins)) | frozenset(keyword.kwlist) | frozenset(keyword.softkwlist)


@register_scanner("python")
def scan_python(lines: list[str], file_path: str) -> list[PredictedError]:
    """Missing indentation after block openers and calls to undefined names."""
    predictions: list[PredictedError] = []
    code_lines = _python_code_lines(lines)

    for index, code in code_lines:
        if not _PY_BLOCK_OPENER.match(code):
            continue
        following = next(((i, c) for i, c in code_lines if i > index), None)
        if following is None:
            continue
        next_index, next_code = following
        if _indent_width(next_code) <= _indent_width(code):
            predictions.append(
                PredictedError(
                    error_type="IndentationError",
                    description="Missing indentation after block opener",
                    file_path=file_path,
                    line_number=next_index + 1,
                    confidence=0.9,
                    risk_level=RiskLevel.HIGH,
                    preventive_fix="Indent the block body (4 spaces) under the line ending with ':'",
                    code_pattern=code.strip(),
                )
            )

    defined = _python_defined_names(code_lines)
    reported: set[str] = set()
    for index, code in code_lines:
        for match in _PY_CALL.finditer(code):
            name = match.group(1)
            if name in reported or name in defined or name in _PY_KNOWN_NAMES:
                continue
            reported.add(name)
            predictions.append(
                PredictedError(
                    error_type="NameErrorRisk",
                    description=f"Name '{name}' may be undefined",
                    file_path=file_path,
                    line_number=index + 1,
                    confidence=0.5,
                    risk_level=RiskLevel.MEDIUM,
                    preventive_fix=f"Ensure '{name}' is defined or imported before use",
                    code_pattern=code.strip(),
                )
            )

    return predictions


_JVM_MEMBER_ACCESS = re.compile(r"(?<![\w.])([a-z_]\w*)\.[A-Za-z_]\w*")
_JVM_SAFE_RECEIVERS = frozenset({"this", "super", "it", "java", "javax", "kotlin", "android"})


@register_scanner("java", "kotlin")
def scan_jvm(lines: list[str], file_path: str) -> list[PredictedError]:
    """Member access on possibly-null receivers without a safe call or null check."""
    predictions: list[PredictedError] = []

    for index, line in enumerate(lines):
        stripped = line.strip()
        if not stripped or stripped.startswith(("//", "/*", "*", "@", "package ", "import ")):
            continue
        code = _strip_strings(line)
        if "?." in code or "!!" in code:
            continue

        flagged: set[str] = set()
        for match in _JVM_MEMBER_ACCESS.finditer(code):
            variable = match.group(1)
            if variable in flagged or variable in _JVM_SAFE_RECEIVERS:
                continue
            if re.search(rf"\b{re.escape(variable)}\s*[!=]=\s*null\b", code):
                continue
            flagged.add(variable)
            predictions.append(
                PredictedError(
                    error_type="NullPointerExceptionRisk",
                    description=f"Potential null pointer: {variable}",
                    file_path=file_path,
                    line_number=index + 1,
                    confidence=0.6,
                    risk_level=RiskLevel.MEDIUM,
                    preventive_fix=(
                        f"Add null check: if ({variable} != null) {{ ... }} "
                        f"or use safe call: {variable}?.method()"
                    ),
                    code_pattern=stripped,
                )
            )

    return predictions


# ---------------------------------------------------------------------------
# Language-agnostic checks
# ---------------------------------------------------------------------------


def check_brace_balance(content: str, file_path: str) -> list[PredictedError]:
    """Whole-file count of ``{`` versus ``}``."""
    opened = content.count("{")
    closed = content.count("}")
    if opened == closed:
        return []
    return [
        PredictedError(
            error_type="SyntaxError",
            description=f"Unmatched braces: {opened} open, {closed} close",
            file_path=file_path,
            confidence=0.9,
            risk_level=RiskLevel.HIGH,
            preventive_fix="Match all opening braces { with closing braces }",
            code_pattern="Brace count mismatch",
        )
    ]


_JS_IMPORT_TARGET = re.compile(
    r"""(?:\bimport\s+(?:[\w$*{}\s,]+\s+from\s+)?|\bimport\s*\(\s*|\brequire\s*\(\s*)['"]([^'"]+)['"]"""
)
_PY_RELATIVE_IMPORT = re.compile(r"^\s*from\s+(\.+)([\w.]*)\s+import\b")


def check_imports(lines: list[str], file_path: str, workspace: Path) -> list[PredictedError]:
    """Relative imports that resolve to no file under the common suffix fallbacks."""
    predictions: list[PredictedError] = []
    base_dir = Path(workspace) / PurePosixPath(file_path).parent
    seen: set[str] = set()

    for index, line in enumerate(lines):
        for import_path in _relative_imports(line):
            if import_path in seen:
                continue
            seen.add(import_path)
            if _resolve_import(base_dir, import_path) is not None:
                continue
            predictions.append(
                PredictedError(
                    error_type="ImportError",
                    description=f"Import path may not resolve: {import_path}",
                    file_path=file_path,
                    line_number=index + 1,
                    confidence=0.8,
                    risk_level=RiskLevel.HIGH,
                    preventive_fix=f"Verify import path is correct. Check file exists at: {import_path}",
                    code_pattern=f"import ... from '{import_path}'",
                )
            )

    return predictions


def check_api_mismatches(lines: list[str], file_path: str) -> list[PredictedError]:
    """Lines matching a known API-mismatch code pattern."""
    predictions: list[PredictedError] = []
    for index, line in enumerate(lines):
        for pattern in MISMATCH_PATTERNS:
            if not pattern.matches_code(line):
                continue
            predictions.append(
                PredictedError(
                    error_type=pattern.error_type,
                    description="Potential API mismatch detected",
                    file_path=file_path,
                    line_number=index + 1,
                    confidence=0.7,
                    risk_level=RiskLevel.HIGH,
                    preventive_fix=pattern.suggested_fix,
                    code_pattern=line.strip(),
                )
            )
    return predictions


def check_history(
    content: str,
    file_path: str,
    history: ErrorHistoryStore,
    min_frequency: int = 2,
) -> list[PredictedError]:
    """Recurring errors for this file whose message prefix appears in the text."""
    predictions: list[PredictedError] = []
    lower_content = content.lower()

    for entry in history.history_for_file(file_path):
        if entry.frequency < min_frequency:
            continue
        prefix = entry.error_message[:20].strip().lower()
        if not prefix or prefix not in lower_content:
            continue
        predictions.append(
            PredictedError(
                error_type=entry.error_type or "RecurringError",
                description=(
                    f"Recurring error pattern detected (occurred {entry.frequency} times before)"
                ),
                file_path=file_path,
                line_number=entry.line_number,
                confidence=0.8,
                risk_level=RiskLevel.HIGH,
                preventive_fix=entry.fix_applied or entry.user_correction,
                code_pattern=entry.error_message[:50],
            )
        )

    return predictions


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _strip_strings(line: str) -> str:
    return _STRING_LITERAL.sub("''", line)


def _js_declares(code: str, variable: str) -> bool:
    name = re.escape(variable)
    return re.search(rf"\b(?:const|let|var)\s+{name}\b|(?<![\w$.]){name}\s*=(?!=)", code) is not None


def _enclosing_js_header(lines: list[str], index: int, lookback: int = 20) -> int | None:
    """Nearest line at or above ``index`` (within ``lookback``) that opens a function."""
    for i in range(index, max(-1, index - lookback - 1), -1):
        if _JS_FUNCTION_HEADER.search(_strip_strings(lines[i])):
            return i
    return None


def _python_code_lines(lines: list[str]) -> list[tuple[int, str]]:
    """(index, code) for lines outside triple-quoted strings, comments and strings removed."""
    result: list[tuple[int, str]] = []
    in_docstring = False
    for index, line in enumerate(lines):
        quotes = line.count('"""') + line.count("'''")
        if in_docstring:
            if quotes % 2 == 1:
                in_docstring = False
            continue
        if quotes % 2 == 1:
            in_docstring = True
            continue
        code = _strip_strings(line)
        code = code.split("#", 1)[0].rstrip()
        if code.strip():
            result.append((index, code))
    return result


def _python_defined_names(code_lines: list[tuple[int, str]]) -> set[str]:
    names: set[str] = set()
    for _, code in code_lines:
        if match := _PY_DEF.match(code):
            names.add(match.group(1))
            for param in match.group(2).split(","):
                param = param.split(":", 1)[0].split("=", 1)[0].strip().lstrip("*")
                if param:
                    names.add(param)
        if match := _PY_CLASS.match(code):
            names.add(match.group(1))
        if match := _PY_IMPORT.match(code):
            for part in match.group(1).split(","):
                part = part.strip()
                alias = _PY_AS.search(part)
                names.add(alias.group(1) if alias else part.split(".")[0])
        if match := _PY_FROM_IMPORT.match(code):
            for part in match.group(1).split(","):
                part = part.strip()
                alias = _PY_AS.search(part)
                names.add(alias.group(1) if alias else part)
        if match := _PY_ASSIGN.match(code):
            names.update(re.findall(r"\w+", match.group(1)))
        if match := _PY_GLOBAL.match(code):
            names.update(re.findall(r"\w+", match.group(1)))
        for match in _PY_FOR.finditer(code):
            names.update(re.findall(r"\w+", match.group(1)))
        names.update(_PY_AS.findall(code))
        names.update(_PY_WALRUS.findall(code))
    return names


def _indent_width(code: str) -> int:
    expanded = code.expandtabs(4)
    return len(expanded) - len(expanded.lstrip())


def _relative_imports(line: str) -> list[str]:
    paths = [p for p in _JS_IMPORT_TARGET.findall(line) if p.startswith(("./", "../"))]

    match = _PY_RELATIVE_IMPORT.match(line)
    if match and match.group(2):
        dots, module = match.group(1), match.group(2)
        prefix = "./" if len(dots) == 1 else "../" * (len(dots) - 1)
        paths.append(prefix + module.replace(".", "/"))

    return paths


def _resolve_import(base_dir: Path, import_path: str) -> Path | None:
    target = base_dir / import_path
    for suffix in IMPORT_FALLBACK_SUFFIXES:
        candidate = Path(f"{target}{suffix}")
        if candidate.exists():
            return candidate
    return None
