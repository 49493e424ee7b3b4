"""API mismatch patterns — library/API usage that commonly breaks at runtime.

Each pattern pairs a source-code regex (used by the predictor to flag risky
lines before anything fails) with an error-message regex (used to recognize
the same mismatch in an error that already happened).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field


@dataclass(frozen=True)
class MismatchPattern:
    """A known API mismatch and how to resolve it."""

    error_type: str
    code_pattern: str
    message_pattern: str
    suggested_fix: str
    affected_files: tuple[str, ...] = field(default_factory=tuple)

    def matches_code(self, line: str) -> bool:
        return re.search(self.code_pattern, line, re.IGNORECASE) is not None

    def matches_message(self, message: str) -> bool:
        return re.search(self.message_pattern, message, re.IGNORECASE) is not None


MISMATCH_PATTERNS: tuple[MismatchPattern, ...] = (
    MismatchPattern(
        error_type="SQLite API Mismatch",
        code_pattern=r"\bdb\.execute\s*\(",
        message_pattern=r"execute\b.*is not a function",
        suggested_fix=(
            "SQLite uses db.all(), db.get(), db.run() instead of db.execute(). "
            "Check the database module for correct API usage."
        ),
        affected_files=("database.js", "db.js", "routes/", "controllers/"),
    ),
    MismatchPattern(
        error_type="Database API Mismatch",
        code_pattern=r"\bdb\.query\s*\(",
        message_pattern=r"query\b.*is not a function",
        suggested_fix=(
            "Check that the code uses the API of the database library actually installed. "
            "SQLite uses different methods than MySQL/PostgreSQL."
        ),
        affected_files=("database.js", "db.js"),
    ),
    MismatchPattern(
        error_type="Promise/Callback Mismatch",
        code_pattern=r"\bfs\.(?:readFile|writeFile|readdir|stat)\s*\([^)]*\)\s*\.then\s*\(",
        message_pattern=r"cannot read propert(?:y|ies) .*then",
        suggested_fix=(
            "Function returns via callback, not a Promise. Use the callback pattern, "
            "fs.promises, or promisify the function."
        ),
    ),
    MismatchPattern(
        error_type="Deprecated Buffer Constructor",
        code_pattern=r"\bnew\s+Buffer\s*\(",
        message_pattern=r"Buffer\(\) is deprecated",
        suggested_fix="Use Buffer.from(), Buffer.alloc() or Buffer.allocUnsafe() instead of new Buffer().",
    ),
    MismatchPattern(
        error_type="React Root API Mismatch",
        code_pattern=r"\bReactDOM\.render\s*\(",
        message_pattern=r"ReactDOM\.render is no longer supported",
        suggested_fix="React 18+ uses createRoot(container).render(element) from 'react-dom/client'.",
    ),
    MismatchPattern(
        error_type="Removed collections ABC Import",
        code_pattern=r"from\s+collections\s+import\s+.*\b(?:Mapping|MutableMapping|Sequence|Iterable|Callable)\b",
        message_pattern=r"cannot import name '\w+' from 'collections'",
        suggested_fix="Import abstract base classes from collections.abc instead of collections.",
    ),
    MismatchPattern(
        error_type="Removed DataFrame.append",
        code_pattern=r"\bdf\w*\.append\s*\(",
        message_pattern=r"'DataFrame' object has no attribute 'append'",
        suggested_fix="pandas 2.0 removed DataFrame.append; use pd.concat([df, other]).",
    ),
)


def detect_api_mismatch(message: str) -> MismatchPattern | None:
    """First known mismatch whose message pattern matches the error text."""
    if not message:
        return None
    for pattern in MISMATCH_PATTERNS:
        if pattern.matches_message(message):
            return pattern
    return None
